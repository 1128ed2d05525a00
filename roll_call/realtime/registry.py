"""Authenticated realtime connections, keyed by transport id (the Socket.IO sid)."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING
from typing import Protocol

from roll_call.users.tokens import decode_identity_token

if TYPE_CHECKING:  # import for type checking only
    from collections.abc import Callable

    from roll_call.users.tokens import Identity


class Transport(Protocol):
    def is_open(self) -> bool: ...

    async def send(self, text: str) -> None: ...


@dataclass(frozen=True)
class ConnectionEntry:
    key: str
    identity: Identity
    transport: Transport

    def is_open(self) -> bool:
        return self.transport.is_open()


class ConnectionRegistry:
    def __init__(
        self,
        decode_token: Callable[[str | None], Identity] = decode_identity_token,
    ) -> None:
        self._decode_token = decode_token
        self._lock = threading.Lock()
        self._entries: dict[str, ConnectionEntry] = {}

    def register(
        self,
        key: str,
        transport: Transport,
        raw_token: str | None,
    ) -> ConnectionEntry:
        """Bind the identity in ``raw_token`` to ``transport``.

        AuthError from the token codec propagates and nothing is added.
        """
        identity = self._decode_token(raw_token)
        entry = ConnectionEntry(key=key, identity=identity, transport=transport)
        with self._lock:
            self._entries[key] = entry
        return entry

    def unregister(self, key: str) -> ConnectionEntry | None:
        with self._lock:
            return self._entries.pop(key, None)

    def get(self, key: str) -> ConnectionEntry | None:
        with self._lock:
            return self._entries.get(key)

    def iter_open(self) -> list[ConnectionEntry]:
        """Entries whose transport is still open, as of this call.

        Closed entries are skipped but stay registered until ``unregister``.
        """
        with self._lock:
            entries = list(self._entries.values())
        return [entry for entry in entries if entry.is_open()]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries
