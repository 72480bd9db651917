"""Constants for the control-plane HTTP API."""

__all__ = [
    "API_FIELD_ALIAS",
    "API_FIELD_API_KEY",
    "API_FIELD_NAME",
    "API_FIELD_ROOM_ID",
    "API_FIELD_TOPIC",
    "API_FIELD_USER_ID",
    "API_PATH_INVITE",
    "API_PATH_ROOM",
    "API_RESPONSE_OK",
    "DEFAULT_API_LISTEN",
]

API_PATH_INVITE = "/invite"
API_PATH_ROOM = "/room"

API_FIELD_API_KEY = "api_key"
API_FIELD_USER_ID = "user_id"
API_FIELD_ROOM_ID = "room_id"
API_FIELD_ALIAS = "alias"
API_FIELD_NAME = "name"
API_FIELD_TOPIC = "topic"

API_RESPONSE_OK = {"status": "ok"}
DEFAULT_API_LISTEN = "127.0.0.1:3000"
