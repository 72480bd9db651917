"""Tests for the room state store and admin roster."""

from unittest.mock import MagicMock

from waasabi.events import (
    CanonicalAliasEvent,
    IgnoredEvent,
    MemberEvent,
    MessageEvent,
    NameEvent,
    TopicEvent,
)
from waasabi.rooms import RoomInfo, RoomStateStore
from waasabi.roster import AdminRoster

from conftest import ADMIN, BOT_ID

ROOM = "!room:example.org"


class TestRoomStateStore:
    def test_get_creates_default_entry(self, roster):
        store = RoomStateStore(roster)
        assert ROOM not in store
        assert store.get(ROOM) == RoomInfo(id=ROOM)
        assert ROOM in store
        assert len(store) == 1

    def test_metadata_events_update_room(self, roster):
        store = RoomStateStore(roster)
        assert store.apply(ROOM, NameEvent("RustFest")) is True
        assert store.apply(ROOM, CanonicalAliasEvent("#rustfest:example.org")) is True
        assert store.apply(ROOM, TopicEvent("Talks")) is True
        assert store.get(ROOM) == RoomInfo(
            id=ROOM, name="RustFest", alias="#rustfest:example.org", topic="Talks"
        )

    def test_alias_can_be_cleared(self, roster):
        store = RoomStateStore(roster)
        store.apply(ROOM, CanonicalAliasEvent("#old:example.org"))
        assert store.apply(ROOM, CanonicalAliasEvent(None)) is True
        assert store.get(ROOM).alias is None

    def test_applying_twice_is_idempotent(self, roster):
        store = RoomStateStore(roster)
        events = [NameEvent("A"), TopicEvent("B"), CanonicalAliasEvent("#c:d")]
        for event in events:
            store.apply(ROOM, event)
        first = store.snapshot()
        for event in events:
            store.apply(ROOM, event)
        assert store.snapshot() == first

    def test_admin_join_triggers_callback(self, roster):
        on_admin_join = MagicMock()
        store = RoomStateStore(roster, on_admin_join=on_admin_join)

        changed = store.apply(ROOM, MemberEvent(ADMIN, "join"))

        assert changed is False
        on_admin_join.assert_called_once_with(ROOM, ADMIN)

    def test_non_admin_or_non_join_is_ignored(self, roster):
        on_admin_join = MagicMock()
        store = RoomStateStore(roster, on_admin_join=on_admin_join)

        assert store.apply(ROOM, MemberEvent("@mallory:example.org", "join")) is False
        assert store.apply(ROOM, MemberEvent(ADMIN, "leave")) is False
        on_admin_join.assert_not_called()

    def test_unknown_events_are_ignored(self, roster, caplog):
        store = RoomStateStore(roster)
        with caplog.at_level("DEBUG"):
            assert store.apply(ROOM, IgnoredEvent("m.room.pinned_events")) is False
            assert store.apply(ROOM, MessageEvent(ADMIN, "hi")) is False
        assert store.get(ROOM) == RoomInfo(id=ROOM)
        assert "Unhandled state" in caplog.text

    def test_snapshot_is_a_copy(self, roster):
        store = RoomStateStore(roster)
        store.apply(ROOM, NameEvent("Before"))
        snapshot = store.snapshot()
        store.apply(ROOM, NameEvent("After"))
        assert snapshot == [{"id": ROOM, "name": "Before", "alias": None, "topic": None}]


class TestAdminRoster:
    def test_keeps_order_and_ignores_duplicates(self):
        roster = AdminRoster(["@a:x", "@b:x", "@a:x"])
        assert roster.members() == ["@a:x", "@b:x"]
        assert roster.add("@b:x") is False
        assert roster.add("@c:x") is True
        assert list(roster) == ["@a:x", "@b:x", "@c:x"]

    def test_membership_is_exact(self):
        roster = AdminRoster(["@a:x"])
        assert "@a:x" in roster
        assert "@A:x" not in roster
        assert "a" not in roster

    def test_with_bot_appends_bot_once(self):
        roster = AdminRoster([ADMIN])
        assert roster.with_bot(BOT_ID) == [ADMIN, BOT_ID]
        roster.add(BOT_ID)
        assert roster.with_bot(BOT_ID) == [ADMIN, BOT_ID]

    def test_describe(self):
        assert AdminRoster(["@a:x", "@b:x"]).describe() == "@a:x, @b:x"
        assert AdminRoster().describe() == ""
