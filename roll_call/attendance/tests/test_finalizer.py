import pytest
from asgiref.sync import async_to_sync

from roll_call.attendance.finalizer import PERSISTED_MESSAGE
from roll_call.attendance.finalizer import build_records
from roll_call.attendance.session import AttendanceSummary
from roll_call.attendance.session import NoActiveSession
from roll_call.attendance.store import PersistError


def test_build_records_one_per_roster_student(live):
    snapshot = live.start()
    records = build_records(snapshot)

    assert [r.student_id for r in records] == ["A", "B", "C"]
    assert {r.roll_call_id for r in records} == {snapshot.roll_call_id}
    assert {r.status for r in records} == {"absent"}


def test_finalize_reports_counts_from_written_records(live):
    snapshot = live.start()
    live.session.mark("B", "present")

    report = async_to_sync(live.finalizer.finalize)()

    assert report.roll_call_id == snapshot.roll_call_id
    assert report.class_id == "42"
    assert report.records_written == 3
    assert report.summary == AttendanceSummary(present=1, absent=2, total=3)
    assert report.message == PERSISTED_MESSAGE
    assert not live.session.is_active


def test_finalize_empty_roster(live):
    live.start(roster=set())

    report = async_to_sync(live.finalizer.finalize)()

    assert live.store.batches == [[]]
    assert report.summary == AttendanceSummary()


def test_failed_write_reopens_session(live):
    live.start()
    live.session.mark("A", "present")
    live.store.fail = True
    _, observer = live.connect("student", user_id="A")

    with pytest.raises(PersistError):
        async_to_sync(live.finalizer.finalize)()

    assert live.session.is_active
    assert not live.session.is_finalizing
    assert live.session.status_of("A") == "present"
    assert observer.frames == [
        {
            "event": "DONE",
            "data": {"success": False, "message": "Failed to persist attendance data"},
        }
    ]


def test_finalize_without_session(live):
    with pytest.raises(NoActiveSession):
        async_to_sync(live.finalizer.finalize)()
    assert live.store.calls == 0


def test_unexpected_store_failure_reopens_session(live, monkeypatch):
    live.start()
    live.session.mark("C", "present")

    async def broken_insert(records):
        msg = "driver went away"
        raise RuntimeError(msg)

    monkeypatch.setattr(live.store, "insert_many", broken_insert)

    with pytest.raises(RuntimeError, match="driver went away"):
        async_to_sync(live.finalizer.finalize)()

    assert live.session.is_active
    assert not live.session.is_finalizing
    assert live.session.status_of("C") == "present"

    # Marks are accepted again and a retried commit goes through.
    monkeypatch.undo()
    live.session.mark("A", "present")
    report = async_to_sync(live.finalizer.finalize)()

    assert report.summary == AttendanceSummary(present=2, absent=1, total=3)
    assert len(live.store.batches) == 1
    assert not live.session.is_active
