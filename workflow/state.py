# state.py — Pipeline state
# Keys shared by the analysis steps
"""
state.py — Pipeline State

AnalysisState is the dict every step reads from. Steps return only the keys
they change and LangGraph merges them in.
"""

from __future__ import annotations

from typing import Any, Callable, TypedDict

from analytics.config import DEFAULT_TIME_COLUMN


class AnalysisState(TypedDict, total=False):
    """State of one analysis run (every key optional for partial updates)."""

    # ---- upload and run options ---------------------------------------------
    raw_file: bytes | None
    filename: str | None  # extension selects the parser
    time_column: str
    align_rows: bool  # correlation pairing by row

    # ---- parsed table -------------------------------------------------------
    rows: list[dict[str, Any]] | None
    columns: list[str] | None  # header order
    row_count: int
    col_count: int

    # ---- results ------------------------------------------------------------
    report: dict | None  # analyze() output, unsanitized
    highlights: list[dict] | None
    summary: str | None
    warnings: list[str]
    ui_payload: dict | None  # strict-JSON payload for the dashboard / CLI

    # ---- progress -----------------------------------------------------------
    current_node: str | None
    progress: float  # 0.0 - 1.0
    progress_message: str | None
    progress_callback: Callable[[dict], None] | None

    # ---- failure ------------------------------------------------------------
    error: str | None
    error_type: str | None  # DATA_MISSING | DATA_INVALID | ANALYSIS_FAILED
    failed_node: str | None
    recovery_hint: str | None


def create_initial_state(
    raw_file: bytes | None = None,
    filename: str | None = None,
    time_column: str = DEFAULT_TIME_COLUMN,
    align_rows: bool = False,
    progress_callback: Callable[[dict], None] | None = None,
) -> AnalysisState:
    """
    Build the state a run starts from.

    Args:
        raw_file: File contents
        filename: Upload name
        time_column: Header that triggers time-series analysis
        align_rows: Pair correlation values by row instead of by position
        progress_callback: Receives a dict after each progress step

    Returns:
        AnalysisState with every key present
    """
    return AnalysisState(
        raw_file=raw_file,
        filename=filename,
        time_column=time_column,
        align_rows=align_rows,
        rows=None,
        columns=None,
        row_count=0,
        col_count=0,
        report=None,
        highlights=None,
        summary=None,
        warnings=[],
        ui_payload=None,
        current_node=None,
        progress=0.0,
        progress_message=None,
        progress_callback=progress_callback,
        error=None,
        error_type=None,
        failed_node=None,
        recovery_hint=None,
    )
