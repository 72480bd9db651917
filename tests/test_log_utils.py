"""Tests for log_utils module."""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from unittest.mock import patch

import pytest
from rich.logging import RichHandler

from waasabi import log_utils
from waasabi.constants import LOGGER_NAME


def _file_handlers(logger):
    return [h for h in logger.handlers if isinstance(h, RotatingFileHandler)]


class TestLogConfiguration:
    def test_configure_logging_default(self):
        with patch("waasabi.log_utils.get_log_dir", return_value=Path("/nonexistent")):
            with patch.object(Path, "mkdir", side_effect=OSError("read-only")):
                logger = log_utils.configure_logging()
        assert log_utils.config is None
        assert logger.level == logging.INFO
        assert len(logger.handlers) == 1

    def test_configure_logging_stores_config(self):
        test_config = {"logging": {"log_to_file": False, "level": "debug"}}
        logger = log_utils.configure_logging(test_config)

        assert log_utils.config == test_config
        assert logger.name == LOGGER_NAME
        assert logger.level == logging.DEBUG
        assert logger.propagate is False

    def test_unknown_level_falls_back_to_info(self):
        logger = log_utils.configure_logging(
            {"logging": {"log_to_file": False, "level": "chatty"}}
        )
        assert logger.level == logging.INFO

    def test_reconfigure_replaces_handlers(self):
        log_utils.configure_logging({"logging": {"log_to_file": False}})
        log_utils.configure_logging({"logging": {"log_to_file": False}})
        assert len(logging.getLogger(LOGGER_NAME).handlers) == 1

    def test_get_logger_twice_keeps_one_handler_set(self, tmp_path):
        log_utils.configure_logging(
            {"logging": {"filename": str(tmp_path / "bot.log")}}
        )
        first = log_utils.get_logger(LOGGER_NAME)
        old_handlers = list(first.handlers)
        second = log_utils.get_logger(LOGGER_NAME)

        assert second is first
        assert len(second.handlers) == 2
        assert not set(old_handlers) & set(second.handlers)


class TestComponentLevels:
    def test_library_loggers_silenced_by_default(self):
        log_utils.configure_logging({"logging": {"log_to_file": False}})
        assert logging.getLogger("nio").level == logging.CRITICAL + 1
        assert logging.getLogger("aiohttp").level == logging.CRITICAL + 1

    def test_library_debug_levels(self):
        log_utils.configure_logging(
            {
                "logging": {
                    "log_to_file": False,
                    "debug": {"matrix_nio": True, "aiohttp": "warning"},
                }
            }
        )
        assert logging.getLogger("nio.client").level == logging.DEBUG
        assert logging.getLogger("aiohttp.server").level == logging.WARNING

    def test_bot_components_inherit_by_default(self):
        log_utils.configure_logging({"logging": {"log_to_file": False, "level": "warning"}})
        dispatcher_logger = logging.getLogger(f"{LOGGER_NAME}.dispatcher")

        assert dispatcher_logger.level == logging.NOTSET
        assert dispatcher_logger.getEffectiveLevel() == logging.WARNING

    @pytest.mark.parametrize(
        "component, value, expected",
        [
            ("dispatcher", "debug", logging.DEBUG),
            ("driver", True, logging.DEBUG),
            ("matrix", "error", logging.ERROR),
            ("backend", "nonsense", logging.DEBUG),
        ],
    )
    def test_bot_component_levels(self, component, value, expected):
        log_utils.configure_logging(
            {"logging": {"log_to_file": False, "debug": {component: value}}}
        )
        assert logging.getLogger(f"{LOGGER_NAME}.{component}").level == expected
        # The other bot components are untouched
        assert logging.getLogger(f"{LOGGER_NAME}.rooms").level == logging.NOTSET

    def test_component_debug_records_reach_app_handlers(self):
        log_utils.configure_logging(
            {"logging": {"log_to_file": False, "debug": {"dispatcher": "debug"}}}
        )
        app_logger = logging.getLogger(LOGGER_NAME)
        assert app_logger.level == logging.INFO

        records = []
        with patch.object(app_logger.handlers[0], "handle", side_effect=records.append):
            logging.getLogger(f"{LOGGER_NAME}.dispatcher").debug("dispatch detail")
            logging.getLogger(f"{LOGGER_NAME}.driver").debug("driver detail")

        assert [r.getMessage() for r in records] == ["dispatch detail"]

    def test_reconfigure_clears_component_levels(self):
        log_utils.configure_logging(
            {"logging": {"log_to_file": False, "debug": {"matrix": True}}}
        )
        log_utils.configure_logging({"logging": {"log_to_file": False}})
        assert logging.getLogger(f"{LOGGER_NAME}.matrix").level == logging.NOTSET

    def test_non_mapping_debug_section_ignored(self):
        log_utils.configure_logging({"logging": {"log_to_file": False, "debug": True}})
        assert logging.getLogger(f"{LOGGER_NAME}.driver").level == logging.NOTSET
        assert logging.getLogger("nio").level == logging.CRITICAL + 1


class TestLogDirectory:
    @patch("waasabi.config.get_config_dir")
    def test_get_log_dir(self, mock_get_config_dir):
        mock_get_config_dir.return_value = Path("/test/config")
        assert str(log_utils.get_log_dir()) == "/test/config/logs"


class TestLoggerCreation:
    def test_rich_handler_by_default(self):
        log_utils.configure_logging({"logging": {"log_to_file": False}})
        handlers = logging.getLogger(LOGGER_NAME).handlers
        assert isinstance(handlers[0], RichHandler)

    def test_plain_handler_without_colors(self):
        log_utils.configure_logging(
            {"logging": {"log_to_file": False, "color_enabled": False}}
        )
        handler = logging.getLogger(LOGGER_NAME).handlers[0]
        assert not isinstance(handler, RichHandler)

    def test_file_logging(self, tmp_path):
        log_file = tmp_path / "logs" / "bot.log"
        log_utils.configure_logging(
            {"logging": {"filename": str(log_file), "max_log_size": 1, "backup_count": 2}}
        )
        file_handlers = _file_handlers(logging.getLogger(LOGGER_NAME))
        assert len(file_handlers) == 1
        assert file_handlers[0].maxBytes == 1024 * 1024
        assert file_handlers[0].backupCount == 2
        assert file_handlers[0].baseFilename == str(log_file)
        assert log_file.parent.is_dir()

    @pytest.mark.parametrize(
        "size, expected",
        [("512KB", 512 * 1024), ("2mb", 2 * 1024 * 1024), ("1000B", 1000)],
    )
    def test_max_log_size_with_unit(self, tmp_path, size, expected):
        log_utils.configure_logging(
            {"logging": {"filename": str(tmp_path / "bot.log"), "max_log_size": size}}
        )
        assert _file_handlers(logging.getLogger(LOGGER_NAME))[0].maxBytes == expected

    def test_bad_max_log_size_keeps_console_only(self, tmp_path):
        logger = log_utils.configure_logging(
            {"logging": {"filename": str(tmp_path / "bot.log"), "max_log_size": "lots"}}
        )
        assert len(logger.handlers) == 1
        assert _file_handlers(logger) == []
