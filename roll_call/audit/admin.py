from django.contrib import admin

from roll_call.audit import models


@admin.register(models.AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ["created_at", "action", "actor", "record_id", "message"]
    list_filter = ["action"]
    search_fields = ["message", "actor__email"]
    readonly_fields = [f.name for f in models.AuditLog._meta.fields]
    date_hierarchy = "created_at"
