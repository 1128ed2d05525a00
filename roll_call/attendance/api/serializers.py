from rest_framework import serializers

from roll_call.attendance.models import AttendanceRecord


class StartSessionSerializer(serializers.Serializer):
    class_id = serializers.CharField()


class AttendanceRecordSerializer(serializers.ModelSerializer[AttendanceRecord]):
    class_id = serializers.IntegerField(source="school_class_id", read_only=True)
    student_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = AttendanceRecord
        fields = ["id", "roll_call_id", "class_id", "student_id", "status", "created_at"]
        read_only_fields = fields
