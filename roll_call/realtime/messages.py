"""Wire format of the live attendance protocol.

Every frame, in both directions, is a JSON object ``{"event": ..., "data": ...}``.
Inbound frames are decoded once into an ``Envelope`` and then into one of the
command dataclasses below; outbound frames are built as ``ServerMessage``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING
from typing import Any
from typing import ClassVar

from django.core.serializers.json import DjangoJSONEncoder
from rest_framework import serializers

from roll_call.attendance.models import AttendanceStatus
from roll_call.users.models import User

if TYPE_CHECKING:  # import for type checking only
    from roll_call.attendance.session import AttendanceSummary
    from roll_call.users.tokens import Identity


class Event(str, Enum):
    ATTENDANCE_MARKED = "ATTENDANCE_MARKED"
    TODAY_SUMMARY = "TODAY_SUMMARY"
    DONE = "DONE"
    MY_ATTENDANCE = "MY_ATTENDANCE"
    ERROR = "ERROR"


# Role each inbound event is reserved for. ERROR is outbound only.
REQUIRED_ROLE: dict[Event, str] = {
    Event.ATTENDANCE_MARKED: User.Role.TEACHER,
    Event.TODAY_SUMMARY: User.Role.TEACHER,
    Event.DONE: User.Role.TEACHER,
    Event.MY_ATTENDANCE: User.Role.STUDENT,
}


class MessageError(Exception):
    """A frame that is rejected back to its sender only."""

    default_message = "Invalid message"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class MalformedMessage(MessageError):
    default_message = "Invalid message format"


class UnknownEvent(MessageError):
    default_message = "Unknown event"


class Forbidden(MessageError):
    default_message = "Forbidden"


@dataclass(frozen=True)
class MarkAttendance:
    event: ClassVar[Event] = Event.ATTENDANCE_MARKED
    student_id: str
    status: str


@dataclass(frozen=True)
class RequestSummary:
    event: ClassVar[Event] = Event.TODAY_SUMMARY


@dataclass(frozen=True)
class FinishSession:
    event: ClassVar[Event] = Event.DONE


@dataclass(frozen=True)
class RequestMyAttendance:
    event: ClassVar[Event] = Event.MY_ATTENDANCE


ClientCommand = MarkAttendance | RequestSummary | FinishSession | RequestMyAttendance


class MarkAttendanceSerializer(serializers.Serializer):
    studentId = serializers.CharField()  # noqa: N815 - wire name
    status = serializers.ChoiceField(choices=AttendanceStatus.choices)


@dataclass(frozen=True)
class Envelope:
    event: Event
    data: Any = None

    def to_command(self) -> ClientCommand:
        """Validate the event payload and build the matching command."""
        if self.event is Event.ATTENDANCE_MARKED:
            if not isinstance(self.data, dict):
                raise MalformedMessage
            serializer = MarkAttendanceSerializer(data=self.data)
            if not serializer.is_valid():
                raise MalformedMessage
            return MarkAttendance(
                student_id=serializer.validated_data["studentId"],
                status=serializer.validated_data["status"],
            )
        if self.event is Event.TODAY_SUMMARY:
            return RequestSummary()
        if self.event is Event.DONE:
            return FinishSession()
        if self.event is Event.MY_ATTENDANCE:
            return RequestMyAttendance()
        raise UnknownEvent


def decode_envelope(raw: Any) -> Envelope:
    """Decode an inbound frame (JSON text, bytes or an already parsed dict)."""
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode()
        except UnicodeDecodeError as exc:
            raise MalformedMessage from exc
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError as exc:
            raise MalformedMessage from exc
    if not isinstance(raw, dict):
        raise MalformedMessage
    name = raw.get("event")
    if not isinstance(name, str) or not name:
        raise MalformedMessage
    try:
        event = Event(name)
    except ValueError as exc:
        raise UnknownEvent from exc
    if event not in REQUIRED_ROLE:
        raise UnknownEvent
    return Envelope(event=event, data=raw.get("data"))


def authorize(identity: Identity, event: Event) -> None:
    if identity.role != REQUIRED_ROLE[event]:
        raise Forbidden


@dataclass(frozen=True)
class ServerMessage:
    event: Event
    data: Any

    def as_dict(self) -> dict[str, Any]:
        return {"event": self.event.value, "data": self.data}

    def to_json(self) -> str:
        return json.dumps(self.as_dict(), cls=DjangoJSONEncoder)


def attendance_marked(student_id: str, status: str) -> ServerMessage:
    return ServerMessage(
        Event.ATTENDANCE_MARKED, {"studentId": student_id, "status": status}
    )


def today_summary(summary: AttendanceSummary) -> ServerMessage:
    return ServerMessage(Event.TODAY_SUMMARY, summary.as_dict())


def done_succeeded(message: str, summary: AttendanceSummary) -> ServerMessage:
    return ServerMessage(
        Event.DONE, {"success": True, "message": message, **summary.as_dict()}
    )


def done_failed(message: str) -> ServerMessage:
    return ServerMessage(Event.DONE, {"success": False, "message": message})


def my_attendance(status: str) -> ServerMessage:
    return ServerMessage(Event.MY_ATTENDANCE, {"status": status})


def error(message: str) -> ServerMessage:
    return ServerMessage(Event.ERROR, {"message": message})
