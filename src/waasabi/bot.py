"""Bot startup: wires the Matrix client, backend, dispatcher and control API."""

import logging

from .api import create_app, start_api
from .backend import BackendClient
from .commands import CommandRouter
from .config import get_section, load_config, parse_listen_address
from .constants import (
    CONFIG_KEY_ADMINS,
    CONFIG_KEY_API,
    CONFIG_KEY_BACKEND,
    CONFIG_KEY_DISPATCHER,
    CONFIG_KEY_MATRIX,
    DEFAULT_API_LISTEN,
    DEFAULT_CONFIG_FILENAME,
    DEFAULT_DISPATCH_BURST,
    DEFAULT_DISPATCH_RATE_PER_MINUTE,
    DEFAULT_INTEGRATIONS_ENDPOINT,
    DISPATCHER_SHUTDOWN_TIMEOUT_SEC,
    LOGGER_NAME,
    MATRIX_DEVICE_ID,
    SYNC_TIMEOUT_MS,
)
from .dispatcher import RateLimitedDispatcher
from .driver import BotContext, SyncDriver
from .invites import InviteRetryQueue
from .matrix import MatrixProtocol
from .rooms import RoomStateStore
from .roster import AdminRoster

logger = logging.getLogger(LOGGER_NAME)


async def main(config_path=DEFAULT_CONFIG_FILENAME, config=None):
    """
    Main entry point for the bot.

    Logs in to the backend and the homeserver, starts the dispatcher and the
    control API, then runs the sync loop until it fails. Everything started here
    is shut down again on the way out.

    Parameters:
        config_path (str): Path to the configuration file.
        config (dict, optional): Pre-loaded configuration. If provided, config_path is not read.

    Raises:
        RuntimeError: If the configuration cannot be loaded.
        BackendError: If the backend login fails.
        TransportError: If the Matrix login fails or the sync loop stops.
    """
    if config is None:
        config = load_config(config_path)
        if not config:
            logger.error(f"Failed to load configuration from {config_path}")
            raise RuntimeError(f"Failed to load configuration from {config_path}")

    matrix_cfg = get_section(config, CONFIG_KEY_MATRIX)
    api_cfg = get_section(config, CONFIG_KEY_API)
    backend_cfg = get_section(config, CONFIG_KEY_BACKEND)
    dispatcher_cfg = get_section(config, CONFIG_KEY_DISPATCHER)

    host, port = parse_listen_address(api_cfg.get("listen", DEFAULT_API_LISTEN))

    backend = BackendClient(
        backend_cfg["host"],
        backend_cfg.get("integrations_endpoint") or DEFAULT_INTEGRATIONS_ENDPOINT,
    )
    protocol = None
    dispatcher = None
    runner = None
    try:
        logger.info("Logging in to the backend")
        await backend.login(backend_cfg["user"], backend_cfg["password"])

        logger.info("Creating AsyncClient")
        protocol = MatrixProtocol.create(
            matrix_cfg["homeserver"],
            matrix_cfg["user"],
            device_id=matrix_cfg.get("device_id") or MATRIX_DEVICE_ID,
        )
        await protocol.login(matrix_cfg["password"])

        dispatcher = RateLimitedDispatcher(
            dispatcher_cfg.get("rate_per_minute", DEFAULT_DISPATCH_RATE_PER_MINUTE),
            dispatcher_cfg.get("burst", DEFAULT_DISPATCH_BURST),
        ).start()

        roster = AdminRoster(matrix_cfg.get(CONFIG_KEY_ADMINS) or [])
        context = BotContext(
            protocol=protocol,
            dispatcher=dispatcher,
            backend=backend,
            roster=roster,
            bot_id=protocol.user_id,
        )
        store = RoomStateStore(roster, on_admin_join=context.op_admins)
        invites = InviteRetryQueue(protocol, store)
        router = CommandRouter(protocol, roster, context.bot_id)
        driver = SyncDriver(
            context,
            store,
            invites,
            router,
            sync_timeout_ms=matrix_cfg.get("sync_timeout_ms", SYNC_TIMEOUT_MS),
        )

        app = create_app(protocol, roster, api_cfg["secret"])
        runner = await start_api(app, host, port)

        logger.info(f"Starting bot as {context.bot_id} with admins: {roster.describe()}")
        await driver.run()
    finally:
        if runner is not None:
            await runner.cleanup()
        if dispatcher is not None:
            await dispatcher.aclose(timeout=DISPATCHER_SHUTDOWN_TIMEOUT_SEC)
        await backend.close()
        if protocol is not None:
            await protocol.close()
        logger.info("Bot stopped")
