from django.apps import AppConfig


class AuditConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "roll_call.audit"
    verbose_name = "Audit trail"

    def ready(self) -> None:
        # Connects the login receiver
        from roll_call.audit import signals  # noqa: F401
