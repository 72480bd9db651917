"""Joining rooms the bot was invited to, with bounded retries."""

import logging
from dataclasses import dataclass
from typing import Dict, List

from .constants import INVITE_RETRY_ATTEMPTS, LOGGER_NAME
from .matrix import MatrixError
from .rooms import RoomStateStore

logger = logging.getLogger(f"{LOGGER_NAME}.invites")


@dataclass
class PendingInvite:
    room_id: str
    attempts_remaining: int


class InviteRetryQueue:
    """
    Join invited rooms, remembering failed joins for a few more sync cycles.

    Retries are driven by `retry_tick`, which the sync loop calls once per batch;
    there is no timer of its own. Giving up is silent apart from a log line.
    """

    def __init__(self, protocol, store: RoomStateStore, attempts: int = INVITE_RETRY_ATTEMPTS):
        self.protocol = protocol
        self.store = store
        self.attempts = attempts
        self._pending: Dict[str, PendingInvite] = {}

    def __contains__(self, room_id) -> bool:
        return room_id in self._pending

    def __len__(self) -> int:
        return len(self._pending)

    def pending(self) -> List[PendingInvite]:
        return [PendingInvite(p.room_id, p.attempts_remaining) for p in self._pending.values()]

    async def _join(self, room_id: str) -> bool:
        logger.info(f"Joining '{room_id}' by invitation")
        try:
            await self.protocol.join(room_id)
        except MatrixError as e:
            logger.error(f"Failed to respond to invitation. Room ID: {room_id} Error: {e}")
            return False
        self.store.get(room_id)
        return True

    async def record_invite(self, room_id: str) -> bool:
        """
        Try to join `room_id` right away.

        On failure the room is queued with a fresh retry budget, replacing any
        budget left over from an earlier invite.

        Returns:
            bool: True if the join succeeded.
        """
        if await self._join(room_id):
            self._pending.pop(room_id, None)
            return True
        self._pending[room_id] = PendingInvite(room_id, self.attempts)
        return False

    async def retry_tick(self) -> List[str]:
        """
        Retry every pending join once.

        Returns:
            list[str]: Rooms joined during this tick.
        """
        joined = []
        to_delete = []
        for entry in list(self._pending.values()):
            entry.attempts_remaining -= 1
            if await self._join(entry.room_id):
                joined.append(entry.room_id)
                to_delete.append(entry.room_id)
            elif entry.attempts_remaining <= 0:
                logger.warning(f"Giving up on joining {entry.room_id}")
                to_delete.append(entry.room_id)

        for room_id in to_delete:
            self._pending.pop(room_id, None)
        return joined
