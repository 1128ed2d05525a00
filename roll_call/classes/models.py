from django.conf import settings
from django.db import models


class SchoolClass(models.Model):
    """A class taught by one teacher with a roster of enrolled students."""

    name = models.CharField(max_length=255)
    teacher = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="taught_classes",
    )
    students = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        related_name="enrolled_classes",
        blank=True,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        verbose_name_plural = "school classes"

    def __str__(self) -> str:  # pragma: no cover - simple repr
        return self.name

    def roster_ids(self) -> set[str]:
        """Student ids as carried in identity tokens and live session marks."""
        return {str(pk) for pk in self.students.values_list("pk", flat=True)}
