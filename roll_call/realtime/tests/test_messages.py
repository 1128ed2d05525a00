import json

import pytest

from roll_call.attendance.session import AttendanceSummary
from roll_call.realtime import messages
from roll_call.realtime.messages import Event
from roll_call.realtime.messages import FinishSession
from roll_call.realtime.messages import Forbidden
from roll_call.realtime.messages import MalformedMessage
from roll_call.realtime.messages import MarkAttendance
from roll_call.realtime.messages import RequestMyAttendance
from roll_call.realtime.messages import RequestSummary
from roll_call.realtime.messages import UnknownEvent
from roll_call.users.tokens import Identity


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (
            {"event": "ATTENDANCE_MARKED", "data": {"studentId": "7", "status": "absent"}},
            MarkAttendance(student_id="7", status="absent"),
        ),
        ('{"event": "TODAY_SUMMARY"}', RequestSummary()),
        (b'{"event": "DONE", "data": null}', FinishSession()),
        ({"event": "MY_ATTENDANCE", "data": {"ignored": True}}, RequestMyAttendance()),
    ],
)
def test_decode_to_command(raw, expected):
    assert messages.decode_envelope(raw).to_command() == expected


@pytest.mark.parametrize(
    "raw",
    [
        "not json",
        b"\xff\xfe",
        "[1, 2]",
        42,
        {"data": {}},
        {"event": ""},
        {"event": 5},
    ],
)
def test_malformed_frames(raw):
    with pytest.raises(MalformedMessage) as excinfo:
        messages.decode_envelope(raw)
    assert excinfo.value.message == "Invalid message format"


@pytest.mark.parametrize("name", ["ERROR", "attendance_marked", "ROLL_CALL"])
def test_unknown_or_outbound_only_events(name):
    with pytest.raises(UnknownEvent) as excinfo:
        messages.decode_envelope({"event": name})
    assert excinfo.value.message == "Unknown event"


@pytest.mark.parametrize(
    "data",
    [
        None,
        "A",
        {"studentId": "A"},
        {"status": "present"},
        {"studentId": "A", "status": "PRESENT"},
        {"studentId": "", "status": "present"},
    ],
)
def test_mark_payload_is_validated(data):
    envelope = messages.decode_envelope({"event": "ATTENDANCE_MARKED", "data": data})
    with pytest.raises(MalformedMessage):
        envelope.to_command()


def test_authorize_by_role():
    teacher = Identity(email="t@example.com", role="teacher")
    student = Identity(email="s@example.com", role="student", user_id="3")

    for event in (Event.ATTENDANCE_MARKED, Event.TODAY_SUMMARY, Event.DONE):
        messages.authorize(teacher, event)
        with pytest.raises(Forbidden):
            messages.authorize(student, event)

    messages.authorize(student, Event.MY_ATTENDANCE)
    with pytest.raises(Forbidden):
        messages.authorize(teacher, Event.MY_ATTENDANCE)


def test_outbound_envelopes():
    summary = AttendanceSummary(present=2, absent=1, total=3)

    assert json.loads(messages.today_summary(summary).to_json()) == {
        "event": "TODAY_SUMMARY",
        "data": {"present": 2, "absent": 1, "total": 3},
    }
    assert messages.done_succeeded("ok", summary).as_dict() == {
        "event": "DONE",
        "data": {"success": True, "message": "ok", "present": 2, "absent": 1, "total": 3},
    }
    assert messages.done_failed("nope").as_dict() == {
        "event": "DONE",
        "data": {"success": False, "message": "nope"},
    }
    assert messages.error("Forbidden").as_dict() == {
        "event": "ERROR",
        "data": {"message": "Forbidden"},
    }
