"""Durable storage behind the live session: roster lookup and batch commit."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING
from typing import Protocol

from channels.db import database_sync_to_async
from django.db import DatabaseError
from django.db import transaction

from roll_call.attendance.models import AttendanceRecord
from roll_call.attendance.session import AttendanceSummary
from roll_call.audit.models import AuditLog
from roll_call.audit.utils import log_action
from roll_call.classes.models import SchoolClass

if TYPE_CHECKING:  # import for type checking only
    from collections.abc import Sequence

logger = logging.getLogger(__name__)


class PersistError(Exception):
    """The attendance batch could not be written."""

    def __init__(self, message: str = "Failed to persist attendance data") -> None:
        super().__init__(message)
        self.message = message


@dataclass(frozen=True)
class PersistedAttendanceRecord:
    roll_call_id: str
    class_id: str
    student_id: str
    status: str


class AttendanceStore(Protocol):
    def find_roster(self, class_id: str) -> set[str] | None: ...

    async def insert_many(self, records: Sequence[PersistedAttendanceRecord]) -> int: ...


class DjangoAttendanceStore:
    """AttendanceStore backed by the Django ORM."""

    def find_roster(self, class_id: str) -> set[str] | None:
        """Roster snapshot for ``class_id``, or None when the class is unknown."""
        try:
            pk = int(class_id)
        except (TypeError, ValueError):
            return None
        school_class = SchoolClass.objects.filter(pk=pk).first()
        if school_class is None:
            return None
        return school_class.roster_ids()

    async def insert_many(self, records: Sequence[PersistedAttendanceRecord]) -> int:
        return await database_sync_to_async(self._write)(list(records))

    def _write(self, records: list[PersistedAttendanceRecord]) -> int:
        # ignore_conflicts keeps a retried commit of the same roll call from
        # writing a second row per student.
        rows = [
            AttendanceRecord(
                roll_call_id=r.roll_call_id,
                school_class_id=r.class_id,
                student_id=r.student_id,
                status=r.status,
            )
            for r in records
        ]
        summary = AttendanceSummary.from_statuses(r.status for r in records)
        try:
            with transaction.atomic():
                AttendanceRecord.objects.bulk_create(rows, ignore_conflicts=True)
                if records:
                    log_action(
                        AuditLog.Action.SESSION_FINALIZED,
                        message=f"roll_call={records[0].roll_call_id}",
                        model_name="classes.SchoolClass",
                        record_id=int(records[0].class_id),
                        after=summary.as_dict(),
                    )
        except DatabaseError as exc:
            logger.exception("Attendance batch insert failed")
            raise PersistError from exc
        return len(rows)
