from rest_framework.permissions import BasePermission

from roll_call.users.models import User


class _RolePermission(BasePermission):
    """Base helper to gate access by the user's role."""

    role: str = ""
    message = "Forbidden"

    def has_permission(self, request, view) -> bool:
        user = getattr(request, "user", None)
        if not (user and getattr(user, "is_authenticated", False)):
            return False
        return getattr(user, "role", None) == self.role


class IsTeacher(_RolePermission):
    role = User.Role.TEACHER
    message = "Forbidden, teacher access required"


class IsStudent(_RolePermission):
    role = User.Role.STUDENT
    message = "Forbidden, student access required"
