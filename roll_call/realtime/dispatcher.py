"""Applies inbound realtime commands to the live attendance session.

Per frame: decode the envelope, gate the event by role, validate the payload,
then run the handler for the command type. Anything rejected along the way
is answered with an ERROR to the sender only and leaves the session alone.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from typing import Any

from roll_call.attendance.session import SessionError
from roll_call.attendance.session import UnknownStudent
from roll_call.attendance.store import PersistError
from roll_call.realtime import messages
from roll_call.realtime.events.attendance import publish_attendance_marked
from roll_call.realtime.events.attendance import publish_today_summary
from roll_call.realtime.messages import FinishSession
from roll_call.realtime.messages import MarkAttendance
from roll_call.realtime.messages import MessageError
from roll_call.realtime.messages import RequestMyAttendance
from roll_call.realtime.messages import RequestSummary

if TYPE_CHECKING:  # import for type checking only
    from roll_call.attendance.finalizer import Finalizer
    from roll_call.attendance.session import LiveAttendanceSession
    from roll_call.realtime.broadcast import Broadcaster
    from roll_call.realtime.registry import ConnectionEntry

logger = logging.getLogger(__name__)

NOT_YET_UPDATED = "not yet updated"


class CommandDispatcher:
    def __init__(
        self,
        session: LiveAttendanceSession,
        broadcaster: Broadcaster,
        finalizer: Finalizer,
    ) -> None:
        self.session = session
        self.broadcaster = broadcaster
        self.finalizer = finalizer
        self._handlers = {
            MarkAttendance: self._mark_attendance,
            RequestSummary: self._today_summary,
            FinishSession: self._done,
            RequestMyAttendance: self._my_attendance,
        }

    async def handle(self, entry: ConnectionEntry, raw: Any) -> None:
        try:
            envelope = messages.decode_envelope(raw)
            messages.authorize(entry.identity, envelope.event)
            command = envelope.to_command()
        except MessageError as exc:
            logger.info("Rejected frame from %s: %s", entry.key, exc.message)
            await self.broadcaster.unicast(entry, messages.error(exc.message))
            return

        handler = self._handlers[type(command)]
        try:
            await handler(entry, command)
        except SessionError as exc:
            await self.broadcaster.unicast(entry, messages.error(exc.message))

    async def _mark_attendance(
        self,
        entry: ConnectionEntry,
        command: MarkAttendance,
    ) -> None:
        try:
            self.session.mark(command.student_id, command.status)
        except UnknownStudent:
            # Not on the roster snapshot: dropped without a reply.
            logger.warning(
                "Ignoring mark from %s for %s: not on the session roster",
                entry.key,
                command.student_id,
            )
            return
        await publish_attendance_marked(
            self.broadcaster, command.student_id, command.status
        )

    async def _today_summary(
        self,
        entry: ConnectionEntry,
        command: RequestSummary,
    ) -> None:
        await publish_today_summary(self.broadcaster, self.session.summary())

    async def _done(self, entry: ConnectionEntry, command: FinishSession) -> None:
        try:
            await self.finalizer.finalize()
        except PersistError:
            # Already reported to every connection by the finalizer.
            logger.info("DONE from %s left the session open for retry", entry.key)

    async def _my_attendance(
        self,
        entry: ConnectionEntry,
        command: RequestMyAttendance,
    ) -> None:
        status = self.session.status_of(entry.identity.user_id) or NOT_YET_UPDATED
        await self.broadcaster.unicast(entry, messages.my_attendance(status))
