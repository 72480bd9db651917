"""HTTP control API.

Two endpoints, both authenticated with the shared `api_key` in the JSON body:

* `POST /invite` - invite a user to a room (id or alias).
* `POST /room` - create a new room and invite the admins.
"""

import hmac
import json
import logging

from aiohttp import web

from .constants import (
    API_FIELD_ALIAS,
    API_FIELD_API_KEY,
    API_FIELD_NAME,
    API_FIELD_ROOM_ID,
    API_FIELD_TOPIC,
    API_FIELD_USER_ID,
    API_PATH_INVITE,
    API_PATH_ROOM,
    API_RESPONSE_OK,
    LOGGER_NAME,
)
from .matrix import MatrixError

logger = logging.getLogger(f"{LOGGER_NAME}.api")

PROTOCOL_KEY = web.AppKey("protocol", object)
ROSTER_KEY = web.AppKey("roster", object)
SECRET_KEY = web.AppKey("api_secret", str)


class BadRequest(Exception):
    """The request body is not a JSON object with the required string fields."""

    pass


async def _read_body(request: web.Request, required, optional=()) -> dict:
    try:
        data = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise BadRequest(f"Invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise BadRequest("Expected a JSON object")

    fields = {}
    for key in required:
        value = data.get(key)
        if not isinstance(value, str):
            raise BadRequest(f"Missing or invalid field: {key}")
        fields[key] = value
    for key in optional:
        value = data.get(key)
        if value is not None and not isinstance(value, str):
            raise BadRequest(f"Invalid field: {key}")
        fields[key] = value
    return fields


def _authorized(request: web.Request, api_key: str) -> bool:
    secret = request.app[SECRET_KEY]
    return hmac.compare_digest(api_key.encode("utf-8"), secret.encode("utf-8"))


def _error(status: int, message: str) -> web.Response:
    return web.json_response({"status": "error", "error": message}, status=status)


async def handle_invite(request: web.Request) -> web.Response:
    """POST /invite - invite `user_id` into `room_id`."""
    try:
        body = await _read_body(
            request, (API_FIELD_USER_ID, API_FIELD_ROOM_ID, API_FIELD_API_KEY)
        )
    except BadRequest as e:
        return _error(400, str(e))
    if not _authorized(request, body[API_FIELD_API_KEY]):
        logger.warning(f"Rejected invite request from {request.remote}: bad api_key")
        return _error(403, "Forbidden")

    user_id = body[API_FIELD_USER_ID]
    logger.info(f"Received invite request: {user_id} to {body[API_FIELD_ROOM_ID]}")
    protocol = request.app[PROTOCOL_KEY]
    try:
        room_id = await protocol.resolve_alias(body[API_FIELD_ROOM_ID])
        await protocol.invite(room_id, user_id)
    except MatrixError:
        logger.exception(f"Failed to invite {user_id}")
        return _error(500, "Failed to invite user")
    return web.json_response(API_RESPONSE_OK)


async def handle_room(request: web.Request) -> web.Response:
    """POST /room - create a room named `name` with alias `alias`."""
    try:
        body = await _read_body(
            request,
            (API_FIELD_API_KEY, API_FIELD_ALIAS, API_FIELD_NAME),
            optional=(API_FIELD_TOPIC,),
        )
    except BadRequest as e:
        return _error(400, str(e))
    if not _authorized(request, body[API_FIELD_API_KEY]):
        logger.warning(f"Rejected room request from {request.remote}: bad api_key")
        return _error(403, "Forbidden")

    alias = body[API_FIELD_ALIAS]
    logger.info(f"Received create room request: {alias} ({body[API_FIELD_NAME]})")
    try:
        await request.app[PROTOCOL_KEY].create_room(
            alias,
            body[API_FIELD_NAME],
            topic=body[API_FIELD_TOPIC],
            invite_list=request.app[ROSTER_KEY].members(),
        )
    except MatrixError:
        logger.exception(f"Failed to create room {alias}")
        return _error(500, "Failed to create room")
    return web.json_response(API_RESPONSE_OK)


def create_app(protocol, roster, api_secret: str) -> web.Application:
    app = web.Application()
    app[PROTOCOL_KEY] = protocol
    app[ROSTER_KEY] = roster
    app[SECRET_KEY] = api_secret
    app.router.add_post(API_PATH_INVITE, handle_invite)
    app.router.add_post(API_PATH_ROOM, handle_room)
    return app


async def start_api(app: web.Application, host: str, port: int) -> web.AppRunner:
    """Serve `app` on host:port. Call `cleanup()` on the returned runner to stop."""
    runner = web.AppRunner(app, access_log=None)
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()
    logger.info(f"Control API listening on http://{host}:{port}")
    return runner
