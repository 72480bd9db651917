"""Constants for the event backend (Strapi) client."""

__all__ = [
    "BACKEND_CHAT_MESSAGES_PATH",
    "BACKEND_LOGIN_PATH",
    "BACKEND_RECEIVED_BY",
    "BACKEND_REQUEST_TIMEOUT_SEC",
    "BACKEND_USER_AGENT",
    "DEFAULT_INTEGRATIONS_ENDPOINT",
]

BACKEND_LOGIN_PATH = "auth/local"
BACKEND_CHAT_MESSAGES_PATH = "chat-messages"
DEFAULT_INTEGRATIONS_ENDPOINT = "event-manager/integrations"
BACKEND_USER_AGENT = "ferris-bot/0.1.0"
BACKEND_RECEIVED_BY = "ferris-bot"
BACKEND_REQUEST_TIMEOUT_SEC = 30
