"""
Logging utilities for Waasabi.

All bot modules log through children of the `Waasabi` logger. `configure_logging`
gives that logger a Rich console handler and an optional rotating log file, and
sets per-component levels from the `logging.debug` section:

    logging:
      level: info
      debug:
        dispatcher: debug   # Waasabi.dispatcher
        matrix: true        # Waasabi.matrix at DEBUG
        matrix_nio: warning # nio.* library loggers
"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from waasabi.constants.app import LOGGER_NAME
from waasabi.constants.config import CONFIG_KEY_LOGGING
from waasabi.constants.logging import (
    BOT_COMPONENTS,
    DEFAULT_LOG_BACKUP_COUNT,
    DEFAULT_LOG_FILENAME,
    DEFAULT_LOG_SIZE_MB,
    LIBRARY_LOGGERS,
    LOG_DATE_FORMAT,
    LOG_FORMAT,
    LOG_SIZE_BYTES_MULTIPLIER,
)

console = Console()

# Full application config, set by configure_logging
config = None

_SIZE_SUFFIXES = (("kb", 1024), ("mb", LOG_SIZE_BYTES_MULTIPLIER), ("b", 1))


def _logging_section() -> dict:
    if not config:
        return {}
    section = config.get(CONFIG_KEY_LOGGING)
    return section if isinstance(section, dict) else {}


def _level_from(value, default: int) -> int:
    """Map a level name such as "debug" to its number, else return `default`."""
    if isinstance(value, str):
        level = logging.getLevelName(value.upper())
        if isinstance(level, int):
            return level
    return default


def _component_level(value, unset: int) -> int:
    if not value:
        return unset
    if value is True:
        return logging.DEBUG
    return _level_from(value, logging.DEBUG)


def apply_component_levels():
    """
    Set per-component log levels from `logging.debug`.

    Library components (`matrix_nio`, `aiohttp`) are silenced unless enabled.
    Bot components (`dispatcher`, `driver`, `matrix`, ...) set the level of the
    `Waasabi.<component>` child logger and otherwise inherit the app level.
    `true` means DEBUG; a string names the level, unknown names mean DEBUG.
    """
    debug_cfg = _logging_section().get("debug")
    if not isinstance(debug_cfg, dict):
        debug_cfg = {}

    for component, names in LIBRARY_LOGGERS.items():
        level = _component_level(debug_cfg.get(component), logging.CRITICAL + 1)
        for name in names:
            logging.getLogger(name).setLevel(level)

    for component in BOT_COMPONENTS:
        level = _component_level(debug_cfg.get(component), logging.NOTSET)
        logging.getLogger(f"{LOGGER_NAME}.{component}").setLevel(level)


def get_log_dir():
    """
    Return the default directory for application logs.

    Returns:
        pathlib.Path: The config directory with "logs" appended (may not exist).
    """
    from waasabi.config import get_config_dir

    return get_config_dir() / "logs"


def _max_log_bytes(value) -> int:
    """
    Parse `logging.max_log_size`.

    Numbers are megabytes. Strings carry a unit suffix: "512KB", "10MB" or
    "1000000B". Raises ValueError for anything else.
    """
    if value is None:
        return DEFAULT_LOG_SIZE_MB * LOG_SIZE_BYTES_MULTIPLIER
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return int(value * LOG_SIZE_BYTES_MULTIPLIER)
    if isinstance(value, str):
        text = value.strip().lower()
        for suffix, multiplier in _SIZE_SUFFIXES:
            if text.endswith(suffix):
                return int(float(text[: -len(suffix)]) * multiplier)
    raise ValueError(f"Invalid max_log_size: {value!r}")


def _console_handler(color_enabled: bool) -> logging.Handler:
    if not color_enabled:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
        return handler

    handler = RichHandler(
        rich_tracebacks=True,
        console=console,
        show_time=True,
        show_level=True,
        show_path=False,
        markup=False,
        log_time_format=LOG_DATE_FORMAT,
        omit_repeated_times=False,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    return handler


def _file_handler(logging_cfg: dict):
    """Build the rotating file handler, or return None if the file is unusable."""
    filename = logging_cfg.get("filename")
    log_file = Path(filename) if filename else get_log_dir() / DEFAULT_LOG_FILENAME
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            log_file,
            maxBytes=_max_log_bytes(logging_cfg.get("max_log_size")),
            backupCount=logging_cfg.get("backup_count", DEFAULT_LOG_BACKUP_COUNT),
            encoding="utf-8",
        )
    except (OSError, ValueError) as e:
        console.print(
            f"[yellow]Warning: Could not create log file at {log_file}: {e}[/yellow]"
        )
        return None
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    return handler


def get_logger(name=LOGGER_NAME):
    """
    Attach fresh console and file handlers to the logger `name` and return it.

    Handlers from an earlier call are removed and closed first, so calling this
    again after the config changes leaves exactly one set of handlers. The level
    comes from `logging.level` (default INFO). The logger does not propagate.
    """
    logger = logging.getLogger(name)
    logging_cfg = _logging_section()

    logger.setLevel(_level_from(logging_cfg.get("level"), logging.INFO))
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    logger.addHandler(_console_handler(logging_cfg.get("color_enabled", True)))
    if logging_cfg.get("log_to_file", True):
        file_handler = _file_handler(logging_cfg)
        if file_handler is not None:
            logger.addHandler(file_handler)
    return logger


def configure_logging(config_dict=None):
    """
    Apply the `logging` section of `config_dict` and return the `Waasabi` logger.

    Passing None resets to the defaults: INFO to the console and the default
    log file, library loggers silenced, bot components inheriting.
    """
    global config
    config = config_dict
    apply_component_levels()
    return get_logger(LOGGER_NAME)
