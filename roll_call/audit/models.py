from django.conf import settings
from django.db import models


class AuditLog(models.Model):
    """Who did what to the roll call, for after-the-fact review.

    ``model_name``/``record_id`` point at the object acted on (the class for
    roll call events); ``after`` holds the counts or sizes at that moment.
    """

    class Action(models.TextChoices):
        LOGIN = "login", "Login"
        SESSION_STARTED = "attendance.session_started", "Roll call started"
        SESSION_FINALIZED = "attendance.session_finalized", "Roll call committed"

    action = models.CharField(max_length=100, choices=Action.choices)
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="audit_entries",
    )
    message = models.TextField(blank=True)
    model_name = models.CharField(max_length=150, blank=True)
    record_id = models.BigIntegerField(null=True, blank=True)
    after = models.JSONField(null=True, blank=True)
    ip_address = models.CharField(max_length=64, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["action", "created_at"], name="audit_action_created_idx"),
        ]

    def __str__(self) -> str:
        who = self.actor_id or "system"
        return f"{self.get_action_display()} by {who} at {self.created_at:%Y-%m-%d %H:%M}"
