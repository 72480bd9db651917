"""Matrix API calls.

Thin wrapper around `nio.AsyncClient` exposing the primitives the bot needs and
converting sync responses into `SyncBatch` values built from `waasabi.events`.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional

import aiohttp
import nio.exceptions
from nio import (
    AsyncClient,
    AsyncClientConfig,
    JoinResponse,
    LoginResponse,
    RoomAliasEvent,
    RoomCreateResponse,
    RoomGetStateEventResponse,
    RoomInviteResponse,
    RoomMemberEvent,
    RoomMessage,
    RoomNameEvent,
    RoomPutStateResponse,
    RoomResolveAliasResponse,
    RoomSendResponse,
    RoomTopicEvent,
    SyncResponse,
)
from nio.api import RoomVisibility

from .constants import (
    ADMIN_POWER_LEVEL,
    DEFAULT_EVENT_POWER_LEVELS,
    EVENT_TYPE_POWER_LEVELS,
    EVENT_TYPE_ROOM_MESSAGE,
    LOGGER_NAME,
    MATRIX_DEVICE_ID,
    MATRIX_DEVICE_NAME,
    MAX_TRANSPORT_TIMEOUTS,
    MSGTYPE_TEXT,
    ROOM_GUEST_ACCESS,
    ROOM_HISTORY_VISIBILITY,
    ROOM_JOIN_RULE,
    SYNC_TIMEOUT_MS,
)
from .events import (
    CanonicalAliasEvent,
    IgnoredEvent,
    MemberEvent,
    MessageEvent,
    NameEvent,
    TopicEvent,
)

logger = logging.getLogger(f"{LOGGER_NAME}.matrix")

_TRANSPORT_EXCEPTIONS = (
    nio.exceptions.LocalProtocolError,
    nio.exceptions.RemoteProtocolError,
    nio.exceptions.RemoteTransportError,
    aiohttp.ClientError,
    asyncio.TimeoutError,
    OSError,
)


class MatrixError(Exception):
    """Raised when the homeserver rejects a request or cannot be reached."""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class TransportError(MatrixError):
    """Raised when login or sync fails. Fatal for the sync loop."""

    pass


@dataclass
class JoinedRoom:
    state_events: List = field(default_factory=list)
    timeline_events: List = field(default_factory=list)


@dataclass
class SyncBatch:
    """One sync response, reduced to what the bot consumes."""

    next_cursor: Optional[str]
    invited_rooms: List[str] = field(default_factory=list)
    joined_rooms: Dict[str, JoinedRoom] = field(default_factory=dict)

    def is_empty(self) -> bool:
        return not self.invited_rooms and not self.joined_rooms


def convert_event(event):
    """
    Convert a matrix-nio event into the bot's own event types.

    Returns an `IgnoredEvent` carrying the event type for anything the bot does
    not act on.
    """
    if isinstance(event, RoomNameEvent):
        return NameEvent(name=event.name or None)
    if isinstance(event, RoomTopicEvent):
        return TopicEvent(topic=event.topic)
    if isinstance(event, RoomAliasEvent):
        return CanonicalAliasEvent(alias=event.canonical_alias)
    if isinstance(event, RoomMemberEvent):
        return MemberEvent(
            user_id=event.state_key, membership=event.membership, sender=event.sender
        )
    if isinstance(event, RoomMessage):
        source = getattr(event, "source", None) or {}
        content = source.get("content", {})
        msgtype = content.get("msgtype", MSGTYPE_TEXT)
        body = getattr(event, "body", None) if msgtype == MSGTYPE_TEXT else None
        return MessageEvent(
            sender=event.sender,
            body=body,
            msgtype=msgtype,
            event_id=getattr(event, "event_id", "") or "",
            source=source,
        )

    source = getattr(event, "source", None) or {}
    return IgnoredEvent(event_type=source.get("type") or type(event).__name__)


def convert_sync_response(response) -> SyncBatch:
    """Build a `SyncBatch` from a `nio.SyncResponse`."""
    batch = SyncBatch(next_cursor=response.next_batch)
    batch.invited_rooms = list(response.rooms.invite.keys())
    for room_id, info in response.rooms.join.items():
        batch.joined_rooms[room_id] = JoinedRoom(
            state_events=[convert_event(e) for e in (info.state or [])],
            timeline_events=[
                convert_event(e) for e in (getattr(info.timeline, "events", None) or [])
            ],
        )
    return batch


def _error_message(response) -> str:
    message = getattr(response, "message", None)
    if message:
        return message
    return "Unknown error" if response is None else type(response).__name__


def _check(response, expected, action, error_cls=MatrixError):
    if isinstance(response, expected):
        return response
    raise error_cls(
        f"{action} failed: {_error_message(response)}",
        status_code=getattr(response, "status_code", None),
    )


def merge_power_levels(current: Mapping, user_levels: Mapping[str, int]) -> dict:
    """
    Compute new `m.room.power_levels` content.

    Starts from the current content, keeps every existing user level, raises the
    given users to their requested level and makes sure the default event levels
    are present (existing values win over the defaults).
    """
    content = dict(current or {})

    users = dict(content.get("users") or {})
    users.update(user_levels)
    content["users"] = users

    events = dict(DEFAULT_EVENT_POWER_LEVELS)
    events.update(content.get("events") or {})
    content["events"] = events

    return content


class MatrixProtocol:
    """The Matrix primitives used by the bot, backed by a nio `AsyncClient`."""

    def __init__(self, client):
        self.client = client

    @classmethod
    def create(cls, homeserver: str, user_id: str, device_id: str = MATRIX_DEVICE_ID):
        client_config = AsyncClientConfig(
            max_timeouts=MAX_TRANSPORT_TIMEOUTS, store_sync_tokens=False
        )
        client = AsyncClient(
            homeserver, user_id, device_id=device_id, config=client_config
        )
        return cls(client)

    def __repr__(self):
        return f"MatrixProtocol(user_id={self.user_id!r})"

    @property
    def user_id(self) -> str:
        return self.client.user_id

    @property
    def server_name(self) -> str:
        """The homeserver part of the bot's user id."""
        _, _, server = (self.user_id or "").partition(":")
        return server

    async def login(self, password: str, device_name: str = MATRIX_DEVICE_NAME):
        """
        Log in with a password.

        Raises:
            TransportError: If the homeserver refuses the login or cannot be reached.
        """
        try:
            response = await self.client.login(password, device_name=device_name)
        except _TRANSPORT_EXCEPTIONS as e:
            raise TransportError(f"Login failed: {e}") from e
        _check(response, LoginResponse, "Login", TransportError)
        logger.info(f"Logged in as {self.user_id} (device {self.client.device_id})")
        return response

    async def sync(
        self,
        cursor: Optional[str] = None,
        timeout_ms: int = SYNC_TIMEOUT_MS,
        full_state: bool = False,
    ) -> SyncBatch:
        """
        Long-poll the homeserver for new events since `cursor`.

        Raises:
            TransportError: On any failure. The caller is expected to stop.
        """
        try:
            response = await self.client.sync(
                timeout=timeout_ms, since=cursor, full_state=full_state
            )
        except _TRANSPORT_EXCEPTIONS as e:
            raise TransportError(f"Sync failed: {e}") from e
        _check(response, SyncResponse, "Sync", TransportError)
        return convert_sync_response(response)

    async def join(self, room_id: str):
        try:
            response = await self.client.join(room_id)
        except _TRANSPORT_EXCEPTIONS as e:
            raise MatrixError(f"Joining {room_id} failed: {e}") from e
        _check(response, JoinResponse, f"Joining {room_id}")

    async def invite(self, room_id: str, user_id: str):
        try:
            response = await self.client.room_invite(room_id, user_id)
        except _TRANSPORT_EXCEPTIONS as e:
            raise MatrixError(f"Inviting {user_id} to {room_id} failed: {e}") from e
        _check(response, RoomInviteResponse, f"Inviting {user_id} to {room_id}")

    async def send_message(self, room_id: str, text: str):
        """Send `text` as an unformatted plaintext message."""
        content = {"msgtype": MSGTYPE_TEXT, "body": text}
        try:
            response = await self.client.room_send(
                room_id,
                EVENT_TYPE_ROOM_MESSAGE,
                content,
                ignore_unverified_devices=True,
            )
        except _TRANSPORT_EXCEPTIONS as e:
            raise MatrixError(f"Sending to {room_id} failed: {e}") from e
        _check(response, RoomSendResponse, f"Sending to {room_id}")

    async def create_room(
        self,
        alias: str,
        name: str,
        topic: Optional[str] = None,
        invite_list: Iterable[str] = (),
    ) -> str:
        """
        Create a private, invite-only room with shared history and guest access.

        Returns:
            str: The new room's id.
        """
        initial_state = [
            {
                "type": "m.room.guest_access",
                "state_key": "",
                "content": {"guest_access": ROOM_GUEST_ACCESS},
            },
            {
                "type": "m.room.join_rules",
                "state_key": "",
                "content": {"join_rule": ROOM_JOIN_RULE},
            },
            {
                "type": "m.room.history_visibility",
                "state_key": "",
                "content": {"history_visibility": ROOM_HISTORY_VISIBILITY},
            },
        ]
        try:
            response = await self.client.room_create(
                visibility=RoomVisibility.private,
                alias=alias,
                name=name,
                topic=topic,
                invite=list(invite_list),
                initial_state=initial_state,
            )
        except _TRANSPORT_EXCEPTIONS as e:
            raise MatrixError(f"Creating room {alias} failed: {e}") from e
        response = _check(response, RoomCreateResponse, f"Creating room {alias}")
        logger.info(f"Created room {response.room_id} with alias {alias}")
        return response.room_id

    async def set_power_levels(self, room_id: str, user_level_map: Mapping[str, int]):
        """Merge `user_level_map` into the room's current power levels."""
        try:
            current = await self.client.room_get_state_event(
                room_id, EVENT_TYPE_POWER_LEVELS, ""
            )
            current = _check(
                current,
                RoomGetStateEventResponse,
                f"Reading power levels of {room_id}",
            )
            content = merge_power_levels(current.content, user_level_map)
            response = await self.client.room_put_state(
                room_id, EVENT_TYPE_POWER_LEVELS, content, state_key=""
            )
        except _TRANSPORT_EXCEPTIONS as e:
            raise MatrixError(f"Setting power levels in {room_id} failed: {e}") from e
        _check(response, RoomPutStateResponse, f"Setting power levels in {room_id}")

    async def op_users(self, room_id: str, user_ids: Iterable[str]):
        """Give every user in `user_ids` admin power in the room."""
        await self.set_power_levels(
            room_id, {user_id: ADMIN_POWER_LEVEL for user_id in user_ids}
        )

    async def resolve_alias(self, alias_or_id: str) -> str:
        """
        Resolve a room alias (`#room:server`) to a room id.

        Room ids (`!id:server`) are returned unchanged.
        """
        if alias_or_id.startswith("!"):
            return alias_or_id
        if not alias_or_id.startswith("#"):
            raise MatrixError(f"Not a room id or alias: {alias_or_id!r}")
        try:
            response = await self.client.room_resolve_alias(alias_or_id)
        except _TRANSPORT_EXCEPTIONS as e:
            raise MatrixError(f"Resolving {alias_or_id} failed: {e}") from e
        response = _check(response, RoomResolveAliasResponse, f"Resolving {alias_or_id}")
        return response.room_id

    async def close(self):
        await self.client.close()
