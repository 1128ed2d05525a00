from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:  # import for type checking only
    from roll_call.realtime.messages import ServerMessage
    from roll_call.realtime.registry import ConnectionEntry
    from roll_call.realtime.registry import ConnectionRegistry

logger = logging.getLogger(__name__)


class Broadcaster:
    """Best-effort delivery of server messages to registered connections.

    No retries and no acknowledgements: a connection that closes or fails
    mid fan-out simply misses the message.
    """

    def __init__(self, registry: ConnectionRegistry) -> None:
        self.registry = registry

    async def publish(self, message: ServerMessage) -> int:
        """Send ``message`` to every open connection; return how many took it."""
        text = message.to_json()
        delivered = 0
        for entry in self.registry.iter_open():
            # Liveness is re-checked per send; the snapshot may be stale.
            if not entry.is_open():
                continue
            if await self._deliver(entry, text):
                delivered += 1
        return delivered

    async def unicast(self, entry: ConnectionEntry, message: ServerMessage) -> bool:
        if not entry.is_open():
            return False
        return await self._deliver(entry, message.to_json())

    async def _deliver(self, entry: ConnectionEntry, text: str) -> bool:
        try:
            await entry.transport.send(text)
        except Exception:  # noqa: BLE001 - fan-out must not stop on one client
            logger.warning("Dropped message for connection %s", entry.key, exc_info=True)
            return False
        return True
