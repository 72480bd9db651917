"""Simple Strapi client.

Strapi is the event backend: it stores data about the conference and acts as
the hub between the Matrix chat and the event frontend. Posts are best-effort
and are only ever made from dispatcher tasks.
"""

import asyncio
import logging
from typing import Iterable, Optional

import aiohttp

from .constants import (
    BACKEND_CHAT_MESSAGES_PATH,
    BACKEND_LOGIN_PATH,
    BACKEND_RECEIVED_BY,
    BACKEND_REQUEST_TIMEOUT_SEC,
    BACKEND_USER_AGENT,
    DEFAULT_INTEGRATIONS_ENDPOINT,
    LOGGER_NAME,
)

logger = logging.getLogger(f"{LOGGER_NAME}.backend")


class BackendError(Exception):
    """Raised when the backend rejects a request or cannot be reached."""

    def __init__(self, message, status=None):
        super().__init__(message)
        self.status = status


def build_chat_message(room_info, room_id: str, event) -> dict:
    """
    Build the `chat-messages` payload for a room message.

    Parameters:
        room_info (RoomInfo): Current metadata of the room the message was sent in.
        room_id (str): The room id.
        event (MessageEvent): The message; `message` is None for non-text types.
    """
    return {
        "received_by": BACKEND_RECEIVED_BY,
        "channel": room_id,
        "channel_name": room_info.name,
        "channel_details": {"alias": room_info.alias},
        "sender": event.sender,
        "sender_details": None,
        "message": event.body,
        "message_details": event.source,
    }


class BackendClient:
    """A client for authenticated JSON posts to the backend."""

    def __init__(
        self,
        host: str,
        integrations: str = DEFAULT_INTEGRATIONS_ENDPOINT,
        session: Optional[aiohttp.ClientSession] = None,
        timeout=BACKEND_REQUEST_TIMEOUT_SEC,
    ):
        self.base = host.rstrip("/")
        self.integrations = integrations
        self.jwt = None
        self._session = session
        self._owns_session = session is None
        self._timeout = (
            timeout
            if isinstance(timeout, aiohttp.ClientTimeout)
            else aiohttp.ClientTimeout(total=timeout)
        )

    def __repr__(self):
        return f"BackendClient(base={self.base!r}, logged_in={self.jwt is not None})"

    def url(self, path: str) -> str:
        return f"{self.base}/{path.lstrip('/')}"

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=self._timeout, headers={"User-Agent": BACKEND_USER_AGENT}
            )
            self._owns_session = True
        return self._session

    async def login(self, identifier: str, password: str):
        """
        Log in with an API identifier and password and keep the returned JWT.

        Raises:
            BackendError: On a non-200 status, a missing token or a network error.
        """
        url = self.url(BACKEND_LOGIN_PATH)
        try:
            async with self._get_session().post(
                url, json={"identifier": identifier, "password": password}
            ) as response:
                if response.status != 200:
                    raise BackendError(
                        f"Failed to login, status: {response.status}",
                        status=response.status,
                    )
                data = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise BackendError(f"Failed to login at {url}: {e}") from e

        jwt = data.get("jwt") if isinstance(data, dict) else None
        if not jwt:
            raise BackendError("Login response did not contain a token")
        self.jwt = jwt
        logger.info(f"Logged in to backend at {self.base}")

    async def post(self, path: str, data) -> int:
        """
        POST `data` as JSON to `path` with the bearer token.

        Returns:
            int: The HTTP status of the response.

        Raises:
            BackendError: On a 4xx/5xx status or a network error.
        """
        url = self.url(path)
        headers = {"Authorization": f"Bearer {self.jwt}"} if self.jwt else {}
        try:
            async with self._get_session().post(
                url, json=data, headers=headers
            ) as response:
                if response.status >= 400:
                    try:
                        snippet = (await response.text())[:200]
                    except (aiohttp.ClientError, UnicodeDecodeError):
                        snippet = "<unavailable>"
                    raise BackendError(
                        f"HTTP {response.status} posting to {url} - body[:200]={snippet!r}",
                        status=response.status,
                    )
                logger.debug(f"Posted to {url}: HTTP {response.status}")
                return response.status
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise BackendError(f"Network error posting to {url}: {e}") from e

    async def post_chat_message(self, room_info, room_id: str, event) -> int:
        """Post a chat message to the backend."""
        logger.debug(f"Posting message from {room_id}")
        return await self.post(
            BACKEND_CHAT_MESSAGES_PATH, build_chat_message(room_info, room_id, event)
        )

    async def post_rooms(self, rooms: Iterable[dict]) -> int:
        """Publish the full list of known rooms to the integrations endpoint."""
        rooms = list(rooms)
        logger.debug(f"Publishing {len(rooms)} room(s) to the backend")
        return await self.post(self.integrations, {"rooms": rooms})

    async def close(self):
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None
