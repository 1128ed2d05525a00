"""The live attendance session shared by every connection in the process.

Only one roll call can be open at a time. All reads and writes go through
``LiveAttendanceSession`` which serializes them behind a lock; the lock is
never held across an ``await`` so both the synchronous REST views and the
Socket.IO handlers can use it.
"""

from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass
from dataclasses import field
from types import MappingProxyType
from typing import TYPE_CHECKING
from typing import Any

from django.utils import timezone

from roll_call.attendance.models import AttendanceStatus

if TYPE_CHECKING:  # import for type checking only
    from collections.abc import Callable
    from collections.abc import Iterable
    from collections.abc import Mapping
    from datetime import datetime


class SessionError(Exception):
    """Base class for rejected session operations."""

    default_message = "Attendance session error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class NoActiveSession(SessionError):
    default_message = "No active attendance session"


class SessionAlreadyActive(SessionError):
    default_message = "An attendance session is already active"


class UnknownStudent(SessionError):
    default_message = "Student is not on the session roster"


class FinalizeInProgress(SessionError):
    default_message = "Attendance session is being finalized"


@dataclass(frozen=True)
class AttendanceSummary:
    present: int = 0
    absent: int = 0
    total: int = 0

    @classmethod
    def from_statuses(cls, statuses: Iterable[str]) -> AttendanceSummary:
        values = list(statuses)
        present = sum(1 for s in values if s == AttendanceStatus.PRESENT)
        absent = sum(1 for s in values if s == AttendanceStatus.ABSENT)
        return cls(present=present, absent=absent, total=len(values))

    def as_dict(self) -> dict[str, int]:
        return {"present": self.present, "absent": self.absent, "total": self.total}


@dataclass(frozen=True)
class SessionSnapshot:
    """Point-in-time, read-only copy of the live session."""

    class_id: str = ""
    roll_call_id: str = ""
    started_at: datetime | None = None
    marks: Mapping[str, str] = field(default_factory=dict)

    @property
    def is_active(self) -> bool:
        return bool(self.class_id)

    def summary(self) -> AttendanceSummary:
        return AttendanceSummary.from_statuses(self.marks.values())

    def as_dict(self) -> dict[str, Any]:
        return {
            "roll_call_id": self.roll_call_id,
            "class_id": self.class_id,
            "started_at": self.started_at.isoformat() if self.started_at else "",
            "marks": dict(self.marks),
        }


class LiveAttendanceSession:
    def __init__(self, clock: Callable[[], datetime] = timezone.now) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._class_id = ""
        self._roll_call_id = ""
        self._started_at: datetime | None = None
        self._marks: dict[str, str] = {}
        self._marked: set[str] = set()
        self._finalizing = False

    @property
    def is_active(self) -> bool:
        with self._lock:
            return bool(self._class_id)

    @property
    def is_finalizing(self) -> bool:
        with self._lock:
            return self._finalizing

    def start(self, class_id: str, roster: Iterable[str]) -> SessionSnapshot:
        """Open a roll call for ``class_id`` with every roster student absent.

        The roster is copied here; students enrolled later are never part of
        this session.
        """
        class_id = str(class_id)
        if not class_id:
            msg = "class_id must not be empty"
            raise ValueError(msg)
        with self._lock:
            if self._class_id:
                raise SessionAlreadyActive
            self._class_id = class_id
            self._roll_call_id = str(uuid.uuid4())
            self._started_at = self._clock()
            self._marks = {str(sid): AttendanceStatus.ABSENT.value for sid in roster}
            self._marked = set()
            self._finalizing = False
            return self._snapshot_locked()

    def mark(self, student_id: str, status: str) -> None:
        status = AttendanceStatus(status).value
        with self._lock:
            self._require_active_locked()
            if self._finalizing:
                raise FinalizeInProgress
            if student_id not in self._marks:
                raise UnknownStudent
            self._marks[student_id] = status
            self._marked.add(student_id)

    def status_of(self, student_id: str | None) -> str | None:
        """Mark a teacher has set for ``student_id`` in this session.

        None when the student is not on the roster or has not been marked yet;
        unmarked students still count as absent everywhere else.
        """
        with self._lock:
            self._require_active_locked()
            if student_id is None or student_id not in self._marked:
                return None
            return self._marks[student_id]

    def summary(self) -> AttendanceSummary:
        with self._lock:
            self._require_active_locked()
            return AttendanceSummary.from_statuses(self._marks.values())

    def snapshot(self) -> SessionSnapshot:
        with self._lock:
            return self._snapshot_locked()

    def begin_finalize(self) -> SessionSnapshot:
        """Freeze the marks for commit and hand back what must be persisted."""
        with self._lock:
            self._require_active_locked()
            if self._finalizing:
                raise FinalizeInProgress
            self._finalizing = True
            return self._snapshot_locked()

    def abort_finalize(self) -> None:
        """Reopen the session for marks after a failed commit."""
        with self._lock:
            self._finalizing = False

    def clear(self) -> None:
        with self._lock:
            self._class_id = ""
            self._roll_call_id = ""
            self._started_at = None
            self._marks = {}
            self._marked = set()
            self._finalizing = False

    def _require_active_locked(self) -> None:
        if not self._class_id:
            raise NoActiveSession

    def _snapshot_locked(self) -> SessionSnapshot:
        return SessionSnapshot(
            class_id=self._class_id,
            roll_call_id=self._roll_call_id,
            started_at=self._started_at,
            marks=MappingProxyType(dict(self._marks)),
        )


# Process-wide roll call shared by the REST API and the Socket.IO server.
live_session = LiveAttendanceSession()
