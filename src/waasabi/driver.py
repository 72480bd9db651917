"""The sync loop: pulls batches from the homeserver and routes their contents."""

import logging
from dataclasses import dataclass, replace

from .commands import CommandRouter
from .constants import LOGGER_NAME, SYNC_TIMEOUT_MS
from .dispatcher import RateLimitedDispatcher
from .events import MessageEvent, is_state_event
from .invites import InviteRetryQueue
from .matrix import SyncBatch
from .roster import AdminRoster
from .rooms import RoomStateStore

logger = logging.getLogger(f"{LOGGER_NAME}.driver")


@dataclass
class BotContext:
    """Long-lived collaborators shared by the bot's components."""

    protocol: object
    dispatcher: RateLimitedDispatcher
    backend: object
    roster: AdminRoster
    bot_id: str

    def op_admins(self, room_id: str, user_id: str = None):
        """Queue a task giving the roster and the bot admin power in `room_id`."""
        if user_id:
            logger.info(f"Admin {user_id} joined {room_id}, updating power levels")
        users = self.roster.with_bot(self.bot_id)
        return self.dispatcher.submit(lambda: self.protocol.op_users(room_id, users))


class SyncDriver:
    """
    Drives the bot from sync batches.

    For every batch: pending invites are retried and new ones joined, state is
    applied to the room store, messages are relayed to the backend and handed
    to the command router, and the room list is published once if anything
    changed. A TransportError from the homeserver ends `run`.
    """

    def __init__(
        self,
        context: BotContext,
        store: RoomStateStore,
        invites: InviteRetryQueue,
        router: CommandRouter,
        sync_timeout_ms: int = SYNC_TIMEOUT_MS,
    ):
        self.context = context
        self.store = store
        self.invites = invites
        self.router = router
        self.sync_timeout_ms = sync_timeout_ms
        self.cursor = None

    def __repr__(self):
        return f"SyncDriver(cursor={self.cursor!r}, rooms={len(self.store)})"

    async def run(self):
        protocol = self.context.protocol

        logger.info("Performing initial sync")
        batch = await protocol.sync(None, self.sync_timeout_ms, full_state=True)
        self.cursor = batch.next_cursor
        await self.process_batch(batch, handle_messages=False)
        logger.info(f"Initial sync done, {len(self.store)} room(s) known")

        while True:
            batch = await protocol.sync(self.cursor, self.sync_timeout_ms)
            self.cursor = batch.next_cursor
            await self.process_batch(batch)

    async def process_batch(self, batch: SyncBatch, handle_messages: bool = True) -> bool:
        """
        Process one sync batch.

        Parameters:
            batch (SyncBatch): The converted sync response.
            handle_messages (bool): Whether timeline messages are relayed and
                treated as commands. Off for the initial sync.

        Returns:
            bool: True if any room metadata changed and the room list was published.
        """
        changed = False

        if await self.invites.retry_tick():
            changed = True
        for room_id in batch.invited_rooms:
            if await self.invites.record_invite(room_id):
                changed = True

        for room_id, room in batch.joined_rooms.items():
            for event in room.state_events:
                if self.store.apply(room_id, event):
                    changed = True

            for event in room.timeline_events:
                if is_state_event(event):
                    if self.store.apply(room_id, event):
                        changed = True
                elif isinstance(event, MessageEvent):
                    if handle_messages:
                        await self._handle_message(room_id, event)
                else:
                    logger.debug(f"(Room: {room_id}) Skipping {event!r}")

        if changed:
            self.publish_rooms()
        return changed

    async def _handle_message(self, room_id: str, event: MessageEvent):
        if event.sender == self.context.bot_id:
            return

        backend = self.context.backend
        room_info = replace(self.store.get(room_id))
        self.context.dispatcher.submit(
            lambda: backend.post_chat_message(room_info, room_id, event)
        )
        if event.body is not None:
            await self.router.handle(event.sender, room_id, event.body)

    def publish_rooms(self) -> bool:
        """Queue one task posting the current room list to the backend."""
        rooms = self.store.snapshot()
        backend = self.context.backend
        return self.context.dispatcher.submit(lambda: backend.post_rooms(rooms))
