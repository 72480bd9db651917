"""Constants for chat commands, replies and CLI output."""

__all__ = [
    "CLI_DESCRIPTION",
    "CLI_HELP_CONFIG",
    "CLI_HELP_LOG_LEVEL",
    "CMD_CREATE",
    "CMD_INVITE",
    "CMD_OP",
    "CMD_OP_ASK",
    "CMD_PING",
    "MSG_CONFIG_EXISTS",
    "MSG_DELETE_EXISTING",
    "MSG_GENERATED_CONFIG",
    "REPLY_ADMIN_ADDED",
    "REPLY_CREATE_ROOM",
    "REPLY_CURRENT_ADMINS",
    "REPLY_PONG",
]

# Chat command tokens
CMD_PING = "!ping"
CMD_INVITE = "!invite"
CMD_OP_ASK = "?op"
CMD_OP = "!op"
CMD_CREATE = "!create"

# Chat replies
REPLY_PONG = "PONG!"
REPLY_CURRENT_ADMINS = "Current admins: {}"
REPLY_ADMIN_ADDED = "Added {}"
REPLY_CREATE_ROOM = (
    "Will create a room named #{alias}:{server} with the name: {name}. "
    "You will be invited."
)

# CLI
CLI_DESCRIPTION = "Waasabi - Matrix bot for conference chat rooms"
CLI_HELP_CONFIG = "Path to config file (default: {})"
CLI_HELP_LOG_LEVEL = "Set logging level (default: {})"

MSG_CONFIG_EXISTS = "A config file already exists at:"
MSG_DELETE_EXISTING = "If you want to regenerate it, delete the existing file first."
MSG_GENERATED_CONFIG = "Generated sample config file at: {}"
