"""Tests for admin chat commands."""

from unittest.mock import MagicMock

import pytest

from waasabi.commands import (
    CommandRouter,
    Create,
    Invite,
    Op,
    OpAsk,
    Ping,
    parse_command,
)
from waasabi.matrix import MatrixError

from conftest import ADMIN, BOT_ID

ROOM = "!room:example.org"
STRANGER = "@mallory:example.org"


class TestParseCommand:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("!ping", Ping()),
            ("!invite @bob:example.org", Invite("@bob:example.org")),
            ("?op", OpAsk()),
            ("!op", Op()),
            ("!op @bob:example.org", Op("@bob:example.org")),
            ('!create myroom "My Room"', Create("myroom", "My Room")),
            (
                "!create myroom 'My Room' 'All about rooms'",
                Create("myroom", "My Room", "All about rooms"),
            ),
        ],
    )
    def test_valid_commands(self, text, expected):
        assert parse_command(text) == expected

    @pytest.mark.parametrize(
        "text",
        [
            "",
            "   ",
            "hello",
            "ping",
            "!ping now",
            "!invite",
            "!invite a b",
            "?op extra",
            "!op a b",
            "!create onlyalias",
            "!create a b c d",
            '!create myroom "My Room',
        ],
    )
    def test_invalid_commands(self, text):
        assert parse_command(text) is None


class TestCommandRouter:
    @pytest.fixture
    def router(self, protocol, roster):
        return CommandRouter(protocol, roster, BOT_ID)

    @pytest.mark.asyncio
    async def test_ping(self, router, protocol):
        assert await router.handle(ADMIN, ROOM, "!ping") == Ping()
        protocol.send_message.assert_awaited_once_with(ROOM, "PONG!")

    @pytest.mark.asyncio
    async def test_non_admin_is_ignored(self, router, protocol):
        assert await router.handle(STRANGER, ROOM, "!ping") is None
        for name in ("send_message", "invite", "create_room", "op_users"):
            getattr(protocol, name).assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "text", ["!invite @x:y", "?op", "!op @x:y", "!create a b", "!op"]
    )
    async def test_non_admin_never_touches_protocol(self, router, protocol, roster, text):
        await router.handle(STRANGER, ROOM, text)
        assert protocol.method_calls == []
        assert roster.members() == [ADMIN]

    @pytest.mark.asyncio
    async def test_unparseable_message_is_silent(self, router, protocol):
        assert await router.handle(ADMIN, ROOM, "!create oops") is None
        assert protocol.method_calls == []

    @pytest.mark.asyncio
    async def test_invite(self, router, protocol):
        await router.handle(ADMIN, ROOM, "!invite @bob:example.org")
        protocol.invite.assert_awaited_once_with(ROOM, "@bob:example.org")

    @pytest.mark.asyncio
    async def test_blank_invite_target_is_noop(self, router, protocol):
        await router.handle(ADMIN, ROOM, '!invite "  "')
        protocol.invite.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_op_ask_lists_admins(self, router, protocol, roster):
        roster.add("@bob:example.org")
        await router.handle(ADMIN, ROOM, "?op")
        protocol.send_message.assert_awaited_once_with(
            ROOM, f"Current admins: {ADMIN}, @bob:example.org"
        )

    @pytest.mark.asyncio
    async def test_op_without_argument_pushes_roster_and_bot(
        self, router, protocol, roster
    ):
        await router.handle(ADMIN, ROOM, "!op")

        assert roster.members() == [ADMIN]
        protocol.send_message.assert_not_awaited()
        protocol.op_users.assert_awaited_once_with(ROOM, [ADMIN, BOT_ID])

    @pytest.mark.asyncio
    async def test_op_with_argument_adds_admin(self, router, protocol, roster):
        await router.handle(ADMIN, ROOM, "!op @bob:example.org")

        assert roster.members() == [ADMIN, "@bob:example.org"]
        protocol.send_message.assert_awaited_once_with(ROOM, "Added @bob:example.org")
        protocol.op_users.assert_awaited_once_with(
            ROOM, [ADMIN, "@bob:example.org", BOT_ID]
        )

    @pytest.mark.asyncio
    async def test_op_existing_admin_sends_no_ack(self, router, protocol, roster):
        await router.handle(ADMIN, ROOM, f"!op {ADMIN}")

        assert roster.members() == [ADMIN]
        protocol.send_message.assert_not_awaited()
        protocol.op_users.assert_awaited_once_with(ROOM, [ADMIN, BOT_ID])

    @pytest.mark.asyncio
    async def test_create_replies_before_creating(self, router, protocol, roster):
        calls = MagicMock()
        protocol.send_message.side_effect = lambda *a: calls.send_message(*a)
        protocol.create_room.side_effect = lambda *a, **kw: calls.create_room(*a, **kw)

        await router.handle(ADMIN, ROOM, '!create myroom "My Room"')

        assert [c[0] for c in calls.mock_calls] == ["send_message", "create_room"]
        protocol.send_message.assert_awaited_once_with(
            ROOM,
            "Will create a room named #myroom:example.org with the name: My Room. "
            "You will be invited.",
        )
        protocol.create_room.assert_awaited_once_with(
            "myroom", "My Room", topic=None, invite_list=[ADMIN]
        )

    @pytest.mark.asyncio
    async def test_create_with_topic(self, router, protocol):
        await router.handle(ADMIN, ROOM, "!create myroom Room 'A topic'")
        protocol.create_room.assert_awaited_once_with(
            "myroom", "Room", topic="A topic", invite_list=[ADMIN]
        )

    @pytest.mark.asyncio
    async def test_protocol_failure_is_logged_not_raised(self, router, protocol, caplog):
        protocol.send_message.side_effect = MatrixError("forbidden", status_code=403)

        with caplog.at_level("ERROR"):
            assert await router.handle(ADMIN, ROOM, "!ping") == Ping()
        assert "failed" in caplog.text
