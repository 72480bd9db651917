"""Constants for configuration files, keys and environment variables."""

import os
from pathlib import Path

from waasabi.constants.app import APP_NAME

__all__ = [
    "CONFIG_DIR",
    "CONFIG_DIR_PERMISSIONS",
    "CONFIG_KEY_ADMINS",
    "CONFIG_KEY_API",
    "CONFIG_KEY_BACKEND",
    "CONFIG_KEY_DISPATCHER",
    "CONFIG_KEY_LOGGING",
    "CONFIG_KEY_MATRIX",
    "DEFAULT_CONFIG_FILENAME",
    "DEFAULT_ENV_FILENAME",
    "ENV_API_SECRET",
    "ENV_BACKEND_PASSWORD",
    "ENV_MATRIX_PASSWORD",
    "REQUIRED_CONFIG_KEYS",
    "SAMPLE_CONFIG_FILENAME",
]

# XDG config location
_CONFIG_HOME = Path(os.environ.get("XDG_CONFIG_HOME") or Path.home() / ".config")
CONFIG_DIR = _CONFIG_HOME / APP_NAME
CONFIG_DIR_PERMISSIONS = 0o700

DEFAULT_CONFIG_FILENAME = "config.yaml"
DEFAULT_ENV_FILENAME = ".env"
SAMPLE_CONFIG_FILENAME = "sample_config.yaml"

# Top-level sections
CONFIG_KEY_MATRIX = "matrix"
CONFIG_KEY_API = "api"
CONFIG_KEY_BACKEND = "backend"
CONFIG_KEY_DISPATCHER = "dispatcher"
CONFIG_KEY_LOGGING = "logging"
CONFIG_KEY_ADMINS = "admins"

# (section, key) pairs that must be present and non-empty
REQUIRED_CONFIG_KEYS = (
    ("matrix", "homeserver"),
    ("matrix", "user"),
    ("matrix", "password"),
    ("api", "secret"),
    ("backend", "host"),
    ("backend", "user"),
    ("backend", "password"),
)

# Environment overrides for secrets
ENV_MATRIX_PASSWORD = "WAASABI_MATRIX_PASSWORD"  # nosec B105  # noqa: S105
ENV_BACKEND_PASSWORD = "WAASABI_BACKEND_PASSWORD"  # nosec B105  # noqa: S105
ENV_API_SECRET = "WAASABI_API_SECRET"  # nosec B105  # noqa: S105
