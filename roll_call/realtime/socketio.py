"""Socket.IO server for the live attendance session.

Client convention:
- Socket.IO path: /ws/attendance/ (``SOCKETIO_PATH``)
- Auth: `query.token` (identity token), `auth: { token }` as fallback
- Frames: the client calls ``socket.send(envelope)`` and listens on
  ``message``; envelopes are ``{"event": ..., "data": ...}`` JSON objects.

A handshake with a bad token is refused with the ERROR envelope as the
``connect_error`` data, and the socket never enters the registry.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import parse_qs

import socketio
from django.conf import settings
from socketio import exceptions as sio_exceptions

from roll_call.attendance.finalizer import Finalizer
from roll_call.attendance.session import live_session
from roll_call.attendance.store import DjangoAttendanceStore
from roll_call.realtime import messages
from roll_call.realtime.broadcast import Broadcaster
from roll_call.realtime.dispatcher import CommandDispatcher
from roll_call.realtime.registry import ConnectionRegistry
from roll_call.users.tokens import AuthError

logger = logging.getLogger(__name__)


sio = socketio.AsyncServer(
    async_mode="asgi",
    cors_allowed_origins=settings.SOCKETIO_CORS_ALLOWED_ORIGINS,
    logger=False,
    engineio_logger=False,
)


class SocketIOTransport:
    """Registry transport for one Socket.IO client."""

    def __init__(
        self,
        server: socketio.AsyncServer,
        sid: str,
        namespace: str = "/",
    ) -> None:
        self.server = server
        self.sid = sid
        self.namespace = namespace

    def is_open(self) -> bool:
        return bool(self.server.manager.is_connected(self.sid, self.namespace))

    async def send(self, text: str) -> None:
        await self.server.send(text, to=self.sid, namespace=self.namespace)


registry = ConnectionRegistry()
broadcaster = Broadcaster(registry)
finalizer = Finalizer(live_session, DjangoAttendanceStore(), broadcaster)
dispatcher = CommandDispatcher(live_session, broadcaster, finalizer)


def _extract_token(environ: dict[str, Any], auth: Any | None) -> str | None:
    """Extract the identity token from Socket.IO environ/auth.

    Handles python-socketio environ shapes across ASGI/WSGI servers.
    """

    scope: Any = environ
    if isinstance(environ, dict) and "asgi.scope" in environ:
        inner = environ.get("asgi.scope")
        if isinstance(inner, dict):
            scope = inner

    query_string: str | bytes = ""
    if isinstance(scope, dict) and "query_string" in scope:
        query_string = scope.get("query_string", b"")
    elif isinstance(scope, dict) and "QUERY_STRING" in scope:
        query_string = scope.get("QUERY_STRING", "")

    if isinstance(query_string, (bytes, bytearray)):
        query_string = query_string.decode(errors="ignore")

    token = parse_qs(str(query_string)).get("token", [None])[0]
    if isinstance(token, str) and token:
        return token

    # Allow `auth: { token }` as fallback.
    if isinstance(auth, dict):
        auth_token = auth.get("token")
        if isinstance(auth_token, str) and auth_token:
            return auth_token

    return None


@sio.event
async def connect(sid: str, environ: dict[str, Any], auth: Any | None = None):
    token = _extract_token(environ, auth)
    try:
        entry = registry.register(sid, SocketIOTransport(sio, sid), token)
    except AuthError as exc:
        logger.info("Refused socket %s: %s", sid, exc.message)
        raise sio_exceptions.ConnectionRefusedError(
            exc.reason, messages.error(exc.message).as_dict()
        ) from exc

    logger.info(
        "Socket %s joined as %s (%s)",
        sid,
        entry.identity.email,
        entry.identity.role,
    )


@sio.event
async def disconnect(sid: str, reason: Any = None):
    entry = registry.unregister(sid)
    if entry is not None:
        logger.info("Socket %s (%s) left", sid, entry.identity.email)


@sio.on("message")
async def message(sid: str, data: Any):
    entry = registry.get(sid)
    if entry is None:
        await sio.send(messages.error("Unauthorized").to_json(), to=sid)
        return
    await dispatcher.handle(entry, data)
