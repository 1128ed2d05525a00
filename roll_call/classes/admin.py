from django.contrib import admin

from roll_call.classes import models


@admin.register(models.SchoolClass)
class SchoolClassAdmin(admin.ModelAdmin):
    list_display = ["id", "name", "teacher", "created_at"]
    search_fields = ["name"]
    list_filter = ["created_at"]
    filter_horizontal = ["students"]
