"""Configuration loading for Waasabi.

Reads the YAML configuration file, validates the required sections and lets a
legacy `.env` file or the process environment override secrets.
"""

import logging
import os
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv

from .constants import (
    CONFIG_DIR,
    CONFIG_DIR_PERMISSIONS,
    CONFIG_KEY_ADMINS,
    CONFIG_KEY_API,
    CONFIG_KEY_BACKEND,
    CONFIG_KEY_MATRIX,
    DEFAULT_API_LISTEN,
    DEFAULT_ENV_FILENAME,
    ENV_API_SECRET,
    ENV_BACKEND_PASSWORD,
    ENV_MATRIX_PASSWORD,
    FILE_ENCODING_UTF8,
    LOGGER_NAME,
    REQUIRED_CONFIG_KEYS,
)

logger = logging.getLogger(f"{LOGGER_NAME}.config")


class ConfigError(Exception):
    """Raised when a configuration value cannot be interpreted."""

    pass


def get_config_dir() -> Path:
    """
    Ensure the application's configuration directory exists and return its Path.

    Failure to restrict the directory permissions is logged at debug level and
    otherwise ignored.
    """
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    try:
        os.chmod(CONFIG_DIR, CONFIG_DIR_PERMISSIONS)
    except OSError:
        logger.debug(
            f"Could not set config dir perms to {oct(CONFIG_DIR_PERMISSIONS)}",
            exc_info=True,
        )
    return CONFIG_DIR


def _missing_keys(config: dict) -> list:
    missing = []
    for section, key in REQUIRED_CONFIG_KEYS:
        values = config.get(section)
        if not isinstance(values, dict) or values.get(key) in (None, ""):
            missing.append(f"{section}.{key}")
    return missing


def load_config(config_file, log_loading=True):
    """
    Load and validate the bot configuration from a YAML file.

    Secrets may be left empty in the file when the matching environment variable
    is set; `load_environment` fills them in before the required keys are checked.
    `matrix.admins` defaults to an empty list and must be a list when present.

    Parameters:
        config_file (str): Path to the YAML configuration file.
        log_loading (bool): Whether to log the "Loaded configuration" message.

    Returns:
        dict | None: Parsed configuration on success; None if the file cannot be
        read, contains invalid YAML, or fails validation.
    """
    try:
        with open(config_file, "r", encoding=FILE_ENCODING_UTF8) as f:
            config = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError):
        logger.exception(f"Error loading config from {config_file}")
        return None

    if not isinstance(config, dict):
        logger.error(f"Configuration in {config_file} must be a mapping")
        return None

    load_environment(config, config_file)

    missing = _missing_keys(config)
    if missing:
        logger.error(
            f"Missing required configuration in {config_file}: {', '.join(missing)}"
        )
        return None

    matrix_section = config[CONFIG_KEY_MATRIX]
    admins = matrix_section.get(CONFIG_KEY_ADMINS)
    if admins is None:
        matrix_section[CONFIG_KEY_ADMINS] = []
    elif not isinstance(admins, list):
        logger.error("'matrix.admins' must be a list in config")
        return None

    try:
        parse_listen_address(config[CONFIG_KEY_API].get("listen", DEFAULT_API_LISTEN))
    except ConfigError as e:
        logger.error(f"Invalid api.listen in {config_file}: {e}")
        return None

    if log_loading:
        logger.info(f"Loaded configuration from {config_file}")
    return config


def load_environment(config: dict, config_path: str) -> dict:
    """
    Apply secrets from a `.env` file and the process environment to `config`.

    Looks for a `.env` next to the config file, then in the current working
    directory, and loads the first one found. Environment variables then take
    precedence over the file values for the Matrix password, backend password and
    API secret.

    Parameters:
        config (dict): Parsed configuration; updated in place.
        config_path (str): Path of the active config file, used to locate `.env`.

    Returns:
        dict: The same `config` mapping, for chaining.
    """
    env_paths_to_check = [
        os.path.join(os.path.dirname(os.path.abspath(config_path)), DEFAULT_ENV_FILENAME),
        os.path.join(os.getcwd(), DEFAULT_ENV_FILENAME),
    ]

    for env_path in env_paths_to_check:
        if os.path.exists(env_path):
            load_dotenv(env_path)
            logger.debug(f"Loaded environment variables from {env_path}")
            break
    else:
        logger.debug("No .env file found; relying on process environment")

    overrides = (
        (ENV_MATRIX_PASSWORD, CONFIG_KEY_MATRIX, "password"),
        (ENV_BACKEND_PASSWORD, CONFIG_KEY_BACKEND, "password"),
        (ENV_API_SECRET, CONFIG_KEY_API, "secret"),
    )
    for env_name, section, key in overrides:
        value = os.getenv(env_name)
        if value:
            if not isinstance(config.get(section), dict):
                config[section] = {}
            config[section][key] = value
            logger.debug(f"Using {env_name} from environment for {section}.{key}")

    return config


def parse_listen_address(value) -> tuple:
    """
    Split a `host:port` listen address into its parts.

    Raises:
        ConfigError: If the value has no port or the port is not a valid number.
    """
    if not isinstance(value, str) or ":" not in value:
        raise ConfigError(f"expected host:port, got {value!r}")
    host, _, port = value.rpartition(":")
    host = host.strip("[]") or "0.0.0.0"  # nosec B104
    try:
        port_number = int(port)
    except ValueError as e:
        raise ConfigError(f"invalid port {port!r}") from e
    if not 0 < port_number < 65536:
        raise ConfigError(f"port out of range: {port_number}")
    return host, port_number


def get_section(config: dict, name: str) -> dict:
    """Return a config section as a dict, or an empty dict when absent."""
    section: Optional[dict] = config.get(name) if isinstance(config, dict) else None
    return section if isinstance(section, dict) else {}
