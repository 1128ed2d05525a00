from django.conf import settings
from django.db import models


class AttendanceStatus(models.TextChoices):
    PRESENT = "present", "Present"
    ABSENT = "absent", "Absent"


class AttendanceRecord(models.Model):
    """One student's committed mark from a finalized roll call.

    - ``roll_call_id`` identifies the live session the mark came from
    - at most one record per student per roll call, so a retried commit
      cannot double-insert
    """

    roll_call_id = models.UUIDField(db_index=True)
    school_class = models.ForeignKey(
        "classes.SchoolClass",
        on_delete=models.CASCADE,
        related_name="attendance_records",
    )
    student = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="attendance_records",
    )
    status = models.CharField(max_length=16, choices=AttendanceStatus.choices)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["roll_call_id", "student"],
                name="unique_student_per_roll_call",
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover - simple repr
        return f"AttendanceRecord({self.student_id}@{self.school_class_id}: {self.status})"
