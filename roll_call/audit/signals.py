from django.contrib.auth.signals import user_logged_in
from django.dispatch import receiver

from .models import AuditLog
from .utils import log_action


@receiver(user_logged_in)
def on_user_logged_in(sender, request, user, **kwargs):
    ip = request.META.get("REMOTE_ADDR", "-") if request else "-"
    log_action(
        AuditLog.Action.LOGIN,
        actor=user,
        message=f"role={getattr(user, 'role', '-')}",
        ip_address=ip,
    )
