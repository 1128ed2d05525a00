"""Commit of the live roll call into durable storage."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from roll_call.attendance.session import AttendanceSummary
from roll_call.attendance.store import PersistedAttendanceRecord
from roll_call.attendance.store import PersistError
from roll_call.realtime.events.attendance import publish_session_done
from roll_call.realtime.events.attendance import publish_session_failed

if TYPE_CHECKING:  # import for type checking only
    from roll_call.attendance.session import LiveAttendanceSession
    from roll_call.attendance.session import SessionSnapshot
    from roll_call.attendance.store import AttendanceStore
    from roll_call.realtime.broadcast import Broadcaster

logger = logging.getLogger(__name__)

PERSISTED_MESSAGE = "Attendance data persisted successfully"


@dataclass(frozen=True)
class FinalizeReport:
    roll_call_id: str
    class_id: str
    summary: AttendanceSummary
    records_written: int
    message: str = PERSISTED_MESSAGE


def build_records(snapshot: SessionSnapshot) -> list[PersistedAttendanceRecord]:
    return [
        PersistedAttendanceRecord(
            roll_call_id=snapshot.roll_call_id,
            class_id=snapshot.class_id,
            student_id=student_id,
            status=status,
        )
        for student_id, status in sorted(snapshot.marks.items())
    ]


class Finalizer:
    """Drains the live session into the store exactly once.

    While the batch insert is outstanding the session refuses further marks
    and a second DONE, so what is written is exactly what gets cleared. On a
    failed write the session is reopened untouched so DONE can be retried.
    """

    def __init__(
        self,
        session: LiveAttendanceSession,
        store: AttendanceStore,
        broadcaster: Broadcaster,
    ) -> None:
        self.session = session
        self.store = store
        self.broadcaster = broadcaster

    async def finalize(self) -> FinalizeReport:
        snapshot = self.session.begin_finalize()
        records = build_records(snapshot)
        try:
            written = await self.store.insert_many(records)
        except PersistError as exc:
            self.session.abort_finalize()
            logger.warning(
                "Roll call %s for class %s not persisted: %s",
                snapshot.roll_call_id,
                snapshot.class_id,
                exc.message,
            )
            await publish_session_failed(self.broadcaster, exc.message)
            raise
        except BaseException:
            # Cancelled or failed outside the store contract: reopen for retry.
            self.session.abort_finalize()
            logger.exception(
                "Roll call %s for class %s aborted during commit",
                snapshot.roll_call_id,
                snapshot.class_id,
            )
            raise

        self.session.clear()
        # Counts come from the records just written, not from a re-read.
        summary = AttendanceSummary.from_statuses(r.status for r in records)
        report = FinalizeReport(
            roll_call_id=snapshot.roll_call_id,
            class_id=snapshot.class_id,
            summary=summary,
            records_written=written,
        )
        logger.info(
            "Roll call %s for class %s persisted: %s",
            report.roll_call_id,
            report.class_id,
            summary.as_dict(),
        )
        await publish_session_done(self.broadcaster, report.message, summary)
        return report
