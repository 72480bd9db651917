import logging
import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

# Ensure src/ is importable without installation
PROJECT_ROOT = Path(__file__).resolve().parent.parent
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from waasabi.constants import BOT_COMPONENTS, LOGGER_NAME  # noqa: E402
from waasabi.roster import AdminRoster  # noqa: E402

BOT_ID = "@waasabi:example.org"
ADMIN = "@alice:example.org"


class FakeClock:
    """Manual clock whose sleep advances time instead of waiting."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    async def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def roster():
    return AdminRoster([ADMIN])


@pytest.fixture
def protocol():
    """A MatrixProtocol stand-in whose calls all succeed."""
    mock = MagicMock()
    mock.user_id = BOT_ID
    mock.server_name = "example.org"
    mock.join = AsyncMock()
    mock.invite = AsyncMock()
    mock.send_message = AsyncMock()
    mock.create_room = AsyncMock(return_value="!new:example.org")
    mock.op_users = AsyncMock()
    mock.set_power_levels = AsyncMock()
    mock.resolve_alias = AsyncMock(side_effect=lambda room: room)
    mock.sync = AsyncMock()
    mock.close = AsyncMock()
    return mock


@pytest.fixture(autouse=True)
def reset_app_logger():
    """Undo handler, level and propagation changes made by configure_logging."""
    yield
    app_logger = logging.getLogger(LOGGER_NAME)
    for handler in list(app_logger.handlers):
        app_logger.removeHandler(handler)
        handler.close()
    app_logger.propagate = True
    app_logger.setLevel(logging.NOTSET)
    for component in BOT_COMPONENTS:
        logging.getLogger(f"{LOGGER_NAME}.{component}").setLevel(logging.NOTSET)
