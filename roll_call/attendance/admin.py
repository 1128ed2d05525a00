from django.contrib import admin

from roll_call.attendance import models


@admin.register(models.AttendanceRecord)
class AttendanceRecordAdmin(admin.ModelAdmin):
    list_display = ["id", "roll_call_id", "school_class", "student", "status"]
    search_fields = ["roll_call_id"]
    list_filter = ["status", "created_at"]
