"""In-memory view of the rooms the bot has joined."""

import logging
from dataclasses import asdict, dataclass
from typing import Callable, Dict, List, Optional

from .constants import LOGGER_NAME, MEMBERSHIP_JOIN
from .events import CanonicalAliasEvent, MemberEvent, NameEvent, TopicEvent
from .roster import AdminRoster

logger = logging.getLogger(f"{LOGGER_NAME}.rooms")


@dataclass
class RoomInfo:
    id: str
    name: Optional[str] = None
    alias: Optional[str] = None
    topic: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


class RoomStateStore:
    """
    Room metadata keyed by room id, updated from state events.

    Entries are created on first lookup and never removed. `apply` reports
    whether an event touched room metadata (name, alias, topic); membership
    events are not metadata changes but may trigger `on_admin_join`.
    """

    def __init__(
        self,
        roster: AdminRoster,
        on_admin_join: Optional[Callable[[str, str], None]] = None,
    ):
        self.roster = roster
        self.on_admin_join = on_admin_join
        self._rooms: Dict[str, RoomInfo] = {}

    def __contains__(self, room_id) -> bool:
        return room_id in self._rooms

    def __len__(self) -> int:
        return len(self._rooms)

    def get(self, room_id: str) -> RoomInfo:
        """Return the RoomInfo for `room_id`, creating an empty one if needed."""
        info = self._rooms.get(room_id)
        if info is None:
            info = RoomInfo(id=room_id)
            self._rooms[room_id] = info
        return info

    def rooms(self) -> List[RoomInfo]:
        return list(self._rooms.values())

    def snapshot(self) -> List[dict]:
        """Serializable copy of every known room, safe to hand to other tasks."""
        return [info.to_dict() for info in self._rooms.values()]

    def apply(self, room_id: str, event) -> bool:
        """
        Apply one state event to the room's metadata.

        Returns:
            bool: True if the event is a room metadata event (name, alias or topic).
        """
        info = self.get(room_id)

        if isinstance(event, CanonicalAliasEvent):
            logger.debug(f"(Room: {room_id}) Received canonical alias: {event.alias!r}")
            info.alias = event.alias
            return True
        if isinstance(event, NameEvent):
            logger.debug(f"(Room: {room_id}) Received name: {event.name!r}")
            info.name = event.name
            return True
        if isinstance(event, TopicEvent):
            logger.debug(f"(Room: {room_id}) Received topic: {event.topic!r}")
            info.topic = event.topic
            return True
        if isinstance(event, MemberEvent):
            if event.membership == MEMBERSHIP_JOIN:
                logger.debug(f"User {event.user_id} joined room {room_id}")
                if event.user_id in self.roster and self.on_admin_join is not None:
                    logger.debug("An admin user joined. Opping.")
                    self.on_admin_join(room_id, event.user_id)
            return False

        logger.debug(f"(Room: {room_id}) Unhandled state: {event!r}")
        return False
