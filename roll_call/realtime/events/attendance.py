from __future__ import annotations

from typing import TYPE_CHECKING

from roll_call.realtime import messages

if TYPE_CHECKING:  # import for type checking only
    from roll_call.attendance.session import AttendanceSummary
    from roll_call.realtime.broadcast import Broadcaster


async def publish_attendance_marked(
    broadcaster: Broadcaster,
    student_id: str,
    status: str,
) -> int:
    return await broadcaster.publish(messages.attendance_marked(student_id, status))


async def publish_today_summary(
    broadcaster: Broadcaster,
    summary: AttendanceSummary,
) -> int:
    return await broadcaster.publish(messages.today_summary(summary))


async def publish_session_done(
    broadcaster: Broadcaster,
    message: str,
    summary: AttendanceSummary,
) -> int:
    """Tell every observer the roll call was committed, with the final counts."""
    return await broadcaster.publish(messages.done_succeeded(message, summary))


async def publish_session_failed(broadcaster: Broadcaster, message: str) -> int:
    return await broadcaster.publish(messages.done_failed(message))
