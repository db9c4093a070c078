# tests/test_config.py
import logging

import pytest

from analytics.config import AnalyzerConfig, get_config, reload_config
from analytics.logging_config import LOGGER_NAMESPACE, get_logger, log_execution_time, setup_logging


class TestAnalyzerConfig:

    def test_defaults(self, clean_env):
        config = get_config()
        assert config.time_column == "Year"
        assert config.align_correlation_rows is False
        assert config.max_file_size_mb == 100
        assert config.max_file_size_bytes == 100 * 1024 * 1024
        assert config.log_level == "INFO"
        assert config.log_file is None

    def test_environment_overrides(self, clean_env):
        clean_env.setenv("ANALYZER_TIME_COLUMN", "Month")
        clean_env.setenv("ANALYZER_ALIGN_ROWS", "Yes")
        clean_env.setenv("ANALYZER_MAX_FILE_SIZE_MB", "5")
        clean_env.setenv("ANALYZER_LOG_LEVEL", "debug")
        clean_env.setenv("ANALYZER_LOG_FILE", "logs/analyzer.log")

        config = reload_config()
        assert config.time_column == "Month"
        assert config.align_correlation_rows is True
        assert config.max_file_size_mb == 5
        assert config.log_level == "DEBUG"
        assert config.log_file == "logs/analyzer.log"

    def test_falsy_align_flag(self, clean_env):
        clean_env.setenv("ANALYZER_ALIGN_ROWS", "0")
        assert reload_config().align_correlation_rows is False

    def test_invalid_size_raises(self, clean_env):
        clean_env.setenv("ANALYZER_MAX_FILE_SIZE_MB", "lots")
        with pytest.raises(ValueError):
            AnalyzerConfig.from_env()

    def test_singleton(self, clean_env):
        assert get_config() is get_config()
        first = get_config()
        assert reload_config() is not first
        assert get_config() is not first


class TestLogging:

    def test_setup_logging_sets_level_and_handlers(self, restore_logging, tmp_path):
        log_file = tmp_path / "logs" / "run.log"
        logger = setup_logging(log_level="debug", log_file=str(log_file))

        root = logging.getLogger()
        assert logger.name == LOGGER_NAMESPACE
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 2
        assert log_file.parent.is_dir()

    def test_setup_logging_without_console(self, restore_logging):
        setup_logging(log_to_console=False)
        assert logging.getLogger().handlers == []

    def test_unknown_level_falls_back_to_info(self, restore_logging):
        setup_logging(log_level="chatty", log_to_console=False)
        assert logging.getLogger().level == logging.INFO

    def test_get_logger_is_namespaced(self):
        assert get_logger("workflow").name == f"{LOGGER_NAMESPACE}.workflow"

    def test_log_execution_time(self, caplog):
        @log_execution_time
        def double(x):
            return x * 2

        with caplog.at_level(logging.INFO, logger=LOGGER_NAMESPACE):
            assert double(4) == 8
        assert any("Completed double" in message for message in caplog.messages)

    def test_log_execution_time_reraises(self, caplog):
        @log_execution_time
        def explode():
            raise RuntimeError("boom")

        with caplog.at_level(logging.INFO, logger=LOGGER_NAMESPACE):
            with pytest.raises(RuntimeError):
                explode()
        assert any("Failed explode" in message for message in caplog.messages)
