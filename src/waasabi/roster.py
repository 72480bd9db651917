"""Admin users allowed to run chat commands."""

import logging
from typing import Iterable, List

from .constants import CHAR_COMMA, LOGGER_NAME

logger = logging.getLogger(f"{LOGGER_NAME}.roster")


class AdminRoster:
    """
    Ordered set of Matrix user ids with elevated command privileges.

    Seeded from configuration and only grown at runtime through the `!op`
    command; nothing is persisted across restarts.
    """

    def __init__(self, users: Iterable[str] = ()):
        self._users: List[str] = []
        for user in users:
            self.add(user)

    def __contains__(self, user_id) -> bool:
        return user_id in self._users

    def __iter__(self):
        return iter(list(self._users))

    def __len__(self) -> int:
        return len(self._users)

    def __repr__(self):
        return f"AdminRoster({self._users!r})"

    def add(self, user_id: str) -> bool:
        """Append `user_id`; returns False if it was already present."""
        if user_id in self._users:
            return False
        self._users.append(user_id)
        logger.info(f"Added {user_id} to the admin roster")
        return True

    def members(self) -> List[str]:
        return list(self._users)

    def with_bot(self, bot_id: str) -> List[str]:
        """Roster members followed by the bot's own id, without duplicates."""
        users = self.members()
        if bot_id and bot_id not in users:
            users.append(bot_id)
        return users

    def describe(self) -> str:
        return CHAR_COMMA.join(self._users)
