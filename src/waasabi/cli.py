#!/usr/bin/env python3
"""Command-line interface for Waasabi."""

import argparse
import asyncio
import logging
import os
import sys
from typing import Awaitable, TypeVar

from . import __version__
from .backend import BackendError
from .bot import main as bot_main
from .config import get_section, load_config
from .constants import (
    APP_DISPLAY_NAME,
    CLI_DESCRIPTION,
    CLI_HELP_CONFIG,
    CLI_HELP_LOG_LEVEL,
    CONFIG_DIR,
    CONFIG_KEY_ADMINS,
    CONFIG_KEY_API,
    CONFIG_KEY_BACKEND,
    CONFIG_KEY_LOGGING,
    CONFIG_KEY_MATRIX,
    DEFAULT_API_LISTEN,
    DEFAULT_CONFIG_FILENAME,
    DEFAULT_LOG_LEVEL,
    EXECUTABLE_NAME,
    LOG_LEVELS,
    LOGGER_NAME,
    MSG_CONFIG_EXISTS,
    MSG_DELETE_EXISTING,
    MSG_GENERATED_CONFIG,
)
from .log_utils import configure_logging
from .matrix import MatrixError
from .tools import copy_sample_config_to

logger = logging.getLogger(LOGGER_NAME)


# Wrapper to ease testing (tests can patch waasabi.cli.run_async)
T = TypeVar("T")


def run_async(coro: Awaitable[T]) -> T:
    """
    Run an asyncio coroutine to completion using asyncio.run and return its result.

    Exceptions raised by the coroutine are propagated to the caller.
    """
    return asyncio.run(coro)


def get_default_config_path():
    """
    Return the default configuration file path used by the CLI.

    Returns:
        pathlib.Path: CONFIG_DIR joined with DEFAULT_CONFIG_FILENAME.
    """
    return CONFIG_DIR / DEFAULT_CONFIG_FILENAME


def generate_config(config_path):
    """
    Create a sample configuration file at config_path by copying the bundled template.

    If the target file already exists this function prints guidance and returns False.
    Otherwise it copies the sample config into place, restricts it to the owner
    (mode 0o600) and returns True.

    Parameters:
        config_path (str or pathlib.Path): Destination path for the generated config.

    Returns:
        bool: True if a new config file was created; False if the file already existed.
    """
    if os.path.exists(config_path):
        print(MSG_CONFIG_EXISTS)
        print(f"  {config_path}")
        print(MSG_DELETE_EXISTING)
        print("Otherwise, edit the current file in place.")
        return False

    written = copy_sample_config_to(str(config_path))

    # Set restrictive permissions (readable/writable by owner only)
    os.chmod(written, 0o600)

    print(MSG_GENERATED_CONFIG.format(written))
    print()
    print("📝 Please edit the configuration file with your Matrix and backend details.")
    print(f"▶️  Then run '{EXECUTABLE_NAME} --config {written}' to start the bot.")
    return True


def validate_config(config_path) -> bool:
    """Load `config_path` and print a short summary. Returns False if it is invalid."""
    config = load_config(config_path)
    if not config:
        # load_config already logs the specific error.
        return False

    matrix_cfg = get_section(config, CONFIG_KEY_MATRIX)
    print("✓ Configuration file is valid")
    print(f"  Config file: {config_path}")
    print(f"  Homeserver: {matrix_cfg.get('homeserver')}")
    print(f"  Bot user: {matrix_cfg.get('user')}")
    print(f"  Admins: {len(matrix_cfg.get(CONFIG_KEY_ADMINS, []))}")
    print(f"  Backend: {get_section(config, CONFIG_KEY_BACKEND).get('host')}")
    print(
        f"  Control API: {get_section(config, CONFIG_KEY_API).get('listen', DEFAULT_API_LISTEN)}"
    )
    return True


def build_parser():
    default_config_path = get_default_config_path()

    parser = argparse.ArgumentParser(
        prog=EXECUTABLE_NAME,
        description=CLI_DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Examples:
  {EXECUTABLE_NAME}                          # Run the bot
  {EXECUTABLE_NAME} config generate          # Generate a sample config file
  {EXECUTABLE_NAME} config validate          # Check an existing config file
        """,
    )
    parser.add_argument(
        "--config",
        default=str(default_config_path),
        help=CLI_HELP_CONFIG.format(default_config_path),
    )
    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        default=None,
        help=CLI_HELP_LOG_LEVEL.format(DEFAULT_LOG_LEVEL),
    )
    parser.add_argument(
        "--version", action="version", version=f"{APP_DISPLAY_NAME} {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")
    config_parser = subparsers.add_parser("config", help="Configuration management")
    config_subparsers = config_parser.add_subparsers(dest="config_action")
    config_subparsers.add_parser("generate", help="Generate a sample config file")
    config_subparsers.add_parser("validate", help="Validate the configuration file")

    return parser, config_parser


def main(argv=None):
    """
    Run the Waasabi command-line interface.

    Without a subcommand the bot is started with the given config file.
    `config generate` and `config validate` manage the config file instead.
    Exits with status 1 when the config is missing or invalid, or when the bot
    stops because of an error.
    """
    parser, config_parser = build_parser()
    args = parser.parse_args(argv)

    # Console logging for the CLI itself until the config is known
    log_level = getattr(logging, (args.log_level or DEFAULT_LOG_LEVEL).upper())
    logging.basicConfig(
        level=log_level, format="%(asctime)s - %(levelname)s - %(message)s"
    )

    if args.command == "config":
        if args.config_action == "generate":
            generate_config(args.config)
            return
        if args.config_action == "validate":
            if not validate_config(args.config):
                sys.exit(1)
            return
        config_parser.print_help()
        return

    if not os.path.exists(args.config):
        logging.error(f"Config file not found: {args.config}")
        logging.info(
            f"Tip: run '{EXECUTABLE_NAME} config generate' to create a starter file."
        )
        sys.exit(1)

    config = load_config(args.config)
    if not config:
        sys.exit(1)
    if args.log_level:
        if not isinstance(config.get(CONFIG_KEY_LOGGING), dict):
            config[CONFIG_KEY_LOGGING] = {}
        config[CONFIG_KEY_LOGGING]["level"] = args.log_level
    configure_logging(config)

    try:
        run_async(bot_main(args.config, config))
    except KeyboardInterrupt:
        logger.info("Bot stopped by user")
    except (MatrixError, BackendError):
        logger.exception("Error running bot")
        sys.exit(1)
    except Exception:
        logger.exception("Unexpected error running bot")
        sys.exit(1)


if __name__ == "__main__":
    main()
