"""Constants specific to the Matrix protocol and client."""

__all__ = [
    "ADMIN_POWER_LEVEL",
    "DEFAULT_EVENT_POWER_LEVELS",
    "EVENT_TYPE_POWER_LEVELS",
    "EVENT_TYPE_ROOM_MESSAGE",
    "INVITE_RETRY_ATTEMPTS",
    "MATRIX_DEVICE_ID",
    "MATRIX_DEVICE_NAME",
    "MAX_TRANSPORT_TIMEOUTS",
    "MEMBERSHIP_JOIN",
    "MSGTYPE_TEXT",
    "ROOM_GUEST_ACCESS",
    "ROOM_HISTORY_VISIBILITY",
    "ROOM_JOIN_RULE",
    "SYNC_TIMEOUT_MS",
]

# Timeouts and limits
SYNC_TIMEOUT_MS = 30000
MAX_TRANSPORT_TIMEOUTS = 5

# Fixed device id, reused across restarts
MATRIX_DEVICE_ID = "TBANTADCIL"
MATRIX_DEVICE_NAME = "waasabi-matrix"

# Joins retried on later sync batches before giving up
INVITE_RETRY_ATTEMPTS = 3

# Event and content types
EVENT_TYPE_ROOM_MESSAGE = "m.room.message"
EVENT_TYPE_POWER_LEVELS = "m.room.power_levels"
MSGTYPE_TEXT = "m.text"
MEMBERSHIP_JOIN = "join"

# Power levels
ADMIN_POWER_LEVEL = 100
DEFAULT_EVENT_POWER_LEVELS = {
    "m.room.avatar": 50,
    "m.room.canonical_alias": 50,
    "m.room.encrypted": 100,
    "m.room.history_visibility": 100,
    "m.room.name": 50,
    "m.room.power_levels": 100,
    "m.room.server_acl": 100,
    "m.room.tombstone": 100,
}

# Initial state for rooms created by the bot
ROOM_GUEST_ACCESS = "can_join"
ROOM_JOIN_RULE = "invite"
ROOM_HISTORY_VISIBILITY = "shared"
