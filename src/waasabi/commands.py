"""Chat commands for admins.

Commands are recognized only in messages from users on the admin roster and
only when the whole message parses with the exact number of arguments the
command takes. Everything else is ignored quietly.
"""

import logging
import shlex
from dataclasses import dataclass
from typing import Optional, Union

from .constants import (
    CMD_CREATE,
    CMD_INVITE,
    CMD_OP,
    CMD_OP_ASK,
    CMD_PING,
    LOGGER_NAME,
    REPLY_ADMIN_ADDED,
    REPLY_CREATE_ROOM,
    REPLY_CURRENT_ADMINS,
    REPLY_PONG,
)
from .matrix import MatrixError
from .roster import AdminRoster

logger = logging.getLogger(f"{LOGGER_NAME}.commands")


@dataclass(frozen=True)
class Ping:
    pass


@dataclass(frozen=True)
class Invite:
    target: str


@dataclass(frozen=True)
class OpAsk:
    pass


@dataclass(frozen=True)
class Op:
    target: Optional[str] = None


@dataclass(frozen=True)
class Create:
    alias: str
    name: str
    topic: Optional[str] = None


Command = Union[Ping, Invite, OpAsk, Op, Create]

# token -> (min args, max args)
COMMAND_ARITY = {
    CMD_PING: (0, 0),
    CMD_INVITE: (1, 1),
    CMD_OP_ASK: (0, 0),
    CMD_OP: (0, 1),
    CMD_CREATE: (2, 3),
}


def parse_command(text: str) -> Optional[Command]:
    """
    Parse a chat message into a Command.

    Arguments are split with shell-like quoting, so `!create myroom "My Room"`
    has two arguments.

    Returns:
        Command or None: None for unknown commands, wrong arity or unbalanced quotes.
    """
    try:
        tokens = shlex.split(text or "")
    except ValueError as e:
        logger.debug(f"Could not tokenize {text!r}: {e}")
        return None
    if not tokens:
        return None

    head, args = tokens[0], tokens[1:]
    arity = COMMAND_ARITY.get(head)
    if arity is None:
        return None
    low, high = arity
    if not low <= len(args) <= high:
        logger.debug(f"Wrong number of arguments for {head}: {len(args)}")
        return None

    if head == CMD_PING:
        return Ping()
    if head == CMD_INVITE:
        return Invite(args[0])
    if head == CMD_OP_ASK:
        return OpAsk()
    if head == CMD_OP:
        return Op(args[0] if args else None)
    return Create(*args)


class CommandRouter:
    """Runs admin commands against the Matrix protocol."""

    def __init__(self, protocol, roster: AdminRoster, bot_id: str):
        self.protocol = protocol
        self.roster = roster
        self.bot_id = bot_id

    def __repr__(self):
        return f"CommandRouter(bot_id={self.bot_id!r}, admins={len(self.roster)})"

    async def handle(self, sender: str, room_id: str, raw_text: str):
        """
        Handle one message body. Returns the executed Command, or None.

        Failures of the resulting Matrix calls are logged and not raised.
        """
        if sender not in self.roster:
            return None
        command = parse_command(raw_text)
        if command is None:
            logger.debug(f"Ignoring message from {sender} in {room_id}: {raw_text!r}")
            return None

        logger.info(f"Running {command!r} from {sender} in {room_id}")
        try:
            await self._run(command, room_id)
        except MatrixError:
            logger.exception(f"Command {command!r} failed in {room_id}")
        return command

    async def _run(self, command: Command, room_id: str):
        if isinstance(command, Ping):
            await self.protocol.send_message(room_id, REPLY_PONG)
        elif isinstance(command, Invite):
            if not command.target.strip():
                return
            await self.protocol.invite(room_id, command.target)
        elif isinstance(command, OpAsk):
            await self.protocol.send_message(
                room_id, REPLY_CURRENT_ADMINS.format(self.roster.describe())
            )
        elif isinstance(command, Op):
            await self._op(command, room_id)
        elif isinstance(command, Create):
            await self._create(command, room_id)

    async def _op(self, command: Op, room_id: str):
        if command.target and self.roster.add(command.target):
            await self.protocol.send_message(
                room_id, REPLY_ADMIN_ADDED.format(command.target)
            )
        await self.protocol.op_users(room_id, self.roster.with_bot(self.bot_id))

    async def _create(self, command: Create, room_id: str):
        reply = REPLY_CREATE_ROOM.format(
            alias=command.alias,
            server=self.protocol.server_name,
            name=command.name,
        )
        await self.protocol.send_message(room_id, reply)
        await self.protocol.create_room(
            command.alias,
            command.name,
            topic=command.topic,
            invite_list=self.roster.members(),
        )
