# tests/conftest.py
import logging

import pytest

from analytics.config import reload_config


@pytest.fixture
def yearly_rows():
    """Three years of perfectly linear data"""
    return [
        {"A": "1", "B": "10", "Year": "2020"},
        {"A": "2", "B": "20", "Year": "2021"},
        {"A": "3", "B": "30", "Year": "2022"},
    ]


@pytest.fixture
def sales_rows():
    """Mixed numeric / categorical table with gaps"""
    return [
        {"Region": "North", "Product": "Widget", "Sales": "120", "Units": "12", "Year": "2021"},
        {"Region": "South", "Product": "Gadget", "Sales": "80", "Units": "9", "Year": "2019"},
        {"Region": "North", "Product": "", "Sales": "150", "Units": "14", "Year": "2023"},
        {"Region": "East", "Product": "Widget", "Sales": "95.5", "Units": "10", "Year": "2020"},
        {"Region": "North", "Product": "Gizmo", "Sales": "130", "Units": "13", "Year": "2022"},
    ]


@pytest.fixture
def sales_columns():
    return ["Region", "Product", "Sales", "Units", "Year"]


@pytest.fixture
def sales_csv():
    return (
        b"Region,Product,Sales,Units,Year\n"
        b"North,Widget,120,12,2021\n"
        b"South,Gadget,80,9,2019\n"
        b"North,,150,14,2023\n"
        b"East,Widget,95.5,10,2020\n"
        b"North,Gizmo,130,13,2022\n"
    )


@pytest.fixture
def clean_env(monkeypatch):
    """Remove analyzer environment overrides and reset the config singleton"""
    for var in (
        "ANALYZER_TIME_COLUMN",
        "ANALYZER_ALIGN_ROWS",
        "ANALYZER_MAX_FILE_SIZE_MB",
        "ANALYZER_LOG_LEVEL",
        "ANALYZER_LOG_FILE",
    ):
        monkeypatch.delenv(var, raising=False)
    reload_config()
    yield monkeypatch
    monkeypatch.undo()
    reload_config()


@pytest.fixture
def restore_logging():
    """Put the root logger back the way it was after setup_logging() runs"""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
