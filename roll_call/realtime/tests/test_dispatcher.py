import json

from roll_call.realtime.dispatcher import NOT_YET_UPDATED
from roll_call.realtime.tests.fakes import CLASS_ID
from roll_call.realtime.tests.fakes import ROSTER


def frame(event, data=None):
    return {"event": event, "data": data}


def test_initial_summary_counts_everyone_absent(live):
    live.start()
    teacher, teacher_socket = live.connect("teacher")
    _, student_socket = live.connect("student", user_id="A")

    live.send(teacher, frame("TODAY_SUMMARY"))

    expected = {
        "event": "TODAY_SUMMARY",
        "data": {"present": 0, "absent": 3, "total": 3},
    }
    assert teacher_socket.frames == [expected]
    assert student_socket.frames == [expected]


def test_summary_after_marks_and_is_side_effect_free(live):
    live.start()
    teacher, teacher_socket = live.connect("teacher")
    live.send(teacher, frame("ATTENDANCE_MARKED", {"studentId": "A", "status": "present"}))
    live.send(teacher, frame("ATTENDANCE_MARKED", {"studentId": "B", "status": "present"}))
    before = dict(live.session.snapshot().marks)

    live.send(teacher, frame("TODAY_SUMMARY"))
    live.send(teacher, frame("TODAY_SUMMARY"))

    summaries = [f["data"] for f in teacher_socket.frames if f["event"] == "TODAY_SUMMARY"]
    assert summaries == [{"present": 2, "absent": 1, "total": 3}] * 2
    assert dict(live.session.snapshot().marks) == before


def test_mark_is_broadcast_to_every_connection_including_sender(live):
    live.start()
    teacher, teacher_socket = live.connect("teacher")
    _, other_teacher_socket = live.connect("teacher")
    _, student_socket = live.connect("student", user_id="B")

    live.send(teacher, frame("ATTENDANCE_MARKED", {"studentId": "A", "status": "present"}))

    expected = [
        {"event": "ATTENDANCE_MARKED", "data": {"studentId": "A", "status": "present"}}
    ]
    assert teacher_socket.frames == expected
    assert other_teacher_socket.frames == expected
    assert student_socket.frames == expected
    # Identical bytes for every observer
    assert teacher_socket.sent == student_socket.sent
    assert live.session.snapshot().marks["A"] == "present"


def test_roster_keys_never_change_while_marking(live):
    live.start()
    teacher, _ = live.connect("teacher")
    for student_id, status in [("A", "present"), ("C", "present"), ("A", "absent")]:
        live.send(
            teacher,
            frame("ATTENDANCE_MARKED", {"studentId": student_id, "status": status}),
        )
        assert set(live.session.snapshot().marks) == ROSTER


def test_last_write_wins_across_teachers(live):
    live.start()
    first, first_socket = live.connect("teacher")
    second, second_socket = live.connect("teacher")

    live.send(first, frame("ATTENDANCE_MARKED", {"studentId": "C", "status": "present"}))
    live.send(second, frame("ATTENDANCE_MARKED", {"studentId": "C", "status": "absent"}))

    assert live.session.snapshot().marks["C"] == "absent"
    assert first_socket.frames[-1]["data"] == {"studentId": "C", "status": "absent"}
    assert second_socket.frames == first_socket.frames


def test_mark_for_student_off_roster_is_dropped_silently(live):
    live.start()
    teacher, teacher_socket = live.connect("teacher")
    _, student_socket = live.connect("student", user_id="A")

    live.send(teacher, frame("ATTENDANCE_MARKED", {"studentId": "Z", "status": "present"}))

    assert teacher_socket.sent == []
    assert student_socket.sent == []
    assert set(live.session.snapshot().marks) == ROSTER
    assert "Z" not in live.session.snapshot().marks


def test_done_persists_clears_and_broadcasts(live):
    live.start()
    teacher, teacher_socket = live.connect("teacher")
    _, student_socket = live.connect("student", user_id="A")
    live.send(teacher, frame("ATTENDANCE_MARKED", {"studentId": "A", "status": "present"}))
    live.send(teacher, frame("ATTENDANCE_MARKED", {"studentId": "B", "status": "present"}))

    live.send(teacher, frame("DONE"))

    assert len(live.store.batches) == 1
    batch = live.store.batches[0]
    assert len(batch) == 3
    assert {(r.class_id, r.student_id, r.status) for r in batch} == {
        (CLASS_ID, "A", "present"),
        (CLASS_ID, "B", "present"),
        (CLASS_ID, "C", "absent"),
    }
    assert live.session.snapshot().class_id == ""
    assert not live.session.is_active

    done = {
        "event": "DONE",
        "data": {
            "success": True,
            "message": "Attendance data persisted successfully",
            "present": 2,
            "absent": 1,
            "total": 3,
        },
    }
    assert teacher_socket.frames[-1] == done
    assert student_socket.frames[-1] == done


def test_done_without_session_errors_to_sender_only(live):
    teacher, teacher_socket = live.connect("teacher")
    _, other_socket = live.connect("teacher")

    live.send(teacher, frame("DONE"))

    assert teacher_socket.frames == [
        {"event": "ERROR", "data": {"message": "No active attendance session"}}
    ]
    assert other_socket.sent == []
    assert live.store.calls == 0


def test_failed_commit_keeps_session_for_retry(live):
    live.start()
    teacher, teacher_socket = live.connect("teacher")
    _, student_socket = live.connect("student", user_id="A")
    live.send(teacher, frame("ATTENDANCE_MARKED", {"studentId": "A", "status": "present"}))
    live.store.fail = True

    live.send(teacher, frame("DONE"))

    failed = {
        "event": "DONE",
        "data": {"success": False, "message": "Failed to persist attendance data"},
    }
    assert teacher_socket.frames[-1] == failed
    assert student_socket.frames[-1] == failed
    assert live.session.is_active
    assert not live.session.is_finalizing
    assert live.session.snapshot().marks["A"] == "present"

    # Marks are accepted again and a retried DONE commits once.
    live.send(teacher, frame("ATTENDANCE_MARKED", {"studentId": "B", "status": "present"}))
    live.store.fail = False
    live.send(teacher, frame("DONE"))

    assert len(live.store.batches) == 1
    assert teacher_socket.frames[-1]["data"]["success"] is True
    assert teacher_socket.frames[-1]["data"]["present"] == 2
    assert not live.session.is_active


def test_my_attendance_before_and_after_mark(live):
    live.start()
    teacher, teacher_socket = live.connect("teacher")
    student, student_socket = live.connect("student", user_id="A")

    live.send(student, frame("MY_ATTENDANCE"))
    assert student_socket.frames == [
        {"event": "MY_ATTENDANCE", "data": {"status": NOT_YET_UPDATED}}
    ]

    live.send(teacher, frame("ATTENDANCE_MARKED", {"studentId": "A", "status": "present"}))
    live.send(student, frame("MY_ATTENDANCE"))

    assert student_socket.frames[-1] == {
        "event": "MY_ATTENDANCE",
        "data": {"status": "present"},
    }
    # Replies are unicast: the teacher only saw the mark broadcast.
    assert [f["event"] for f in teacher_socket.frames] == ["ATTENDANCE_MARKED"]


def test_my_attendance_off_roster_or_without_user_id(live):
    live.start()
    stranger, stranger_socket = live.connect("student", user_id="Z")
    anonymous, anonymous_socket = live.connect("student")

    live.send(stranger, frame("MY_ATTENDANCE"))
    live.send(anonymous, frame("MY_ATTENDANCE"))

    expected = [{"event": "MY_ATTENDANCE", "data": {"status": NOT_YET_UPDATED}}]
    assert stranger_socket.frames == expected
    assert anonymous_socket.frames == expected


def test_my_attendance_requires_active_session(live):
    student, student_socket = live.connect("student", user_id="A")

    live.send(student, frame("MY_ATTENDANCE"))

    assert student_socket.frames == [
        {"event": "ERROR", "data": {"message": "No active attendance session"}}
    ]


def test_teacher_asking_my_attendance_is_forbidden(live):
    live.start()
    teacher, teacher_socket = live.connect("teacher")
    before = dict(live.session.snapshot().marks)

    live.send(teacher, frame("MY_ATTENDANCE"))

    assert teacher_socket.frames == [
        {"event": "ERROR", "data": {"message": "Forbidden"}}
    ]
    assert dict(live.session.snapshot().marks) == before


def test_students_cannot_drive_the_session(live):
    live.start()
    student, student_socket = live.connect("student", user_id="A")
    _, teacher_socket = live.connect("teacher")

    for event in ("ATTENDANCE_MARKED", "TODAY_SUMMARY", "DONE"):
        live.send(student, frame(event, {"studentId": "A", "status": "present"}))

    assert [f["data"]["message"] for f in student_socket.frames] == ["Forbidden"] * 3
    assert teacher_socket.sent == []
    assert live.session.snapshot().marks["A"] == "absent"
    assert live.store.calls == 0


def test_commands_need_an_active_session(live):
    teacher, teacher_socket = live.connect("teacher")

    live.send(teacher, frame("ATTENDANCE_MARKED", {"studentId": "A", "status": "present"}))
    live.send(teacher, frame("TODAY_SUMMARY"))

    assert teacher_socket.frames == [
        {"event": "ERROR", "data": {"message": "No active attendance session"}}
    ] * 2


def test_unknown_and_malformed_frames(live):
    live.start()
    teacher, teacher_socket = live.connect("teacher")
    _, student_socket = live.connect("student", user_id="A")

    live.send(teacher, frame("SHUFFLE_SEATS"))
    live.send(teacher, frame("ERROR", {"message": "spoofed"}))
    live.send(teacher, "{not json")
    live.send(teacher, json.dumps(["ATTENDANCE_MARKED"]))
    live.send(teacher, frame("ATTENDANCE_MARKED", {"studentId": "A", "status": "late"}))
    live.send(teacher, frame("ATTENDANCE_MARKED", "A"))

    assert [f["data"]["message"] for f in teacher_socket.frames] == [
        "Unknown event",
        "Unknown event",
        "Invalid message format",
        "Invalid message format",
        "Invalid message format",
        "Invalid message format",
    ]
    assert student_socket.sent == []
    assert live.session.snapshot().marks["A"] == "absent"


def test_json_text_frames_are_accepted(live):
    live.start()
    teacher, teacher_socket = live.connect("teacher")

    live.send(
        teacher,
        json.dumps(
            {"event": "ATTENDANCE_MARKED", "data": {"studentId": "A", "status": "present"}}
        ),
    )

    assert teacher_socket.frames[0]["event"] == "ATTENDANCE_MARKED"


def test_marks_and_done_are_refused_while_commit_is_in_flight(live):
    live.start()
    teacher, teacher_socket = live.connect("teacher")
    live.session.begin_finalize()

    live.send(teacher, frame("ATTENDANCE_MARKED", {"studentId": "A", "status": "present"}))
    live.send(teacher, frame("DONE"))
    live.send(teacher, frame("TODAY_SUMMARY"))

    assert [f["event"] for f in teacher_socket.frames] == [
        "ERROR",
        "ERROR",
        "TODAY_SUMMARY",
    ]
    assert teacher_socket.frames[0]["data"]["message"] == (
        "Attendance session is being finalized"
    )
    assert live.session.snapshot().marks["A"] == "absent"
    assert live.store.calls == 0


def test_closed_connection_misses_broadcasts(live):
    live.start()
    teacher, teacher_socket = live.connect("teacher")
    _, gone_socket = live.connect("student", user_id="A")
    gone_socket.close()

    live.send(teacher, frame("TODAY_SUMMARY"))

    assert len(teacher_socket.frames) == 1
    assert gone_socket.sent == []
