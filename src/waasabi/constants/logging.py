"""Constants for logging configuration."""

__all__ = [
    "BOT_COMPONENTS",
    "DEFAULT_LOG_BACKUP_COUNT",
    "DEFAULT_LOG_FILENAME",
    "DEFAULT_LOG_LEVEL",
    "DEFAULT_LOG_SIZE_MB",
    "LIBRARY_LOGGERS",
    "LOG_FORMAT",
    "LOG_DATE_FORMAT",
    "LOG_LEVELS",
    "LOG_SIZE_BYTES_MULTIPLIER",
]

# Third-party loggers, silenced unless enabled under logging.debug
LIBRARY_LOGGERS = {
    "matrix_nio": (
        "nio",
        "nio.client",
        "nio.http",
        "nio.responses",
        "nio.rooms",
    ),
    "aiohttp": ("aiohttp", "aiohttp.access", "aiohttp.server"),
}

# Bot child loggers (Waasabi.<component>); inherit the app level unless set
BOT_COMPONENTS = (
    "api",
    "backend",
    "commands",
    "config",
    "dispatcher",
    "driver",
    "invites",
    "matrix",
    "rooms",
    "roster",
)

# Default log settings
DEFAULT_LOG_SIZE_MB = 10
DEFAULT_LOG_BACKUP_COUNT = 5
LOG_SIZE_BYTES_MULTIPLIER = 1024 * 1024
DEFAULT_LOG_FILENAME = "waasabi.log"
LOG_FORMAT = "%(asctime)s %(levelname)s:%(name)s:%(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Log levels
LOG_LEVELS = ("critical", "error", "warning", "info", "debug")
DEFAULT_LOG_LEVEL = "info"
