from rest_framework import serializers

from roll_call.classes.models import SchoolClass
from roll_call.users.models import User


class SchoolClassSerializer(serializers.ModelSerializer[SchoolClass]):
    teacher = serializers.PrimaryKeyRelatedField(read_only=True)
    students = serializers.PrimaryKeyRelatedField(many=True, read_only=True)

    class Meta:
        model = SchoolClass
        fields = ["id", "name", "teacher", "students", "created_at"]
        read_only_fields = ["id", "teacher", "students", "created_at"]


class AddStudentSerializer(serializers.Serializer):
    student_id = serializers.PrimaryKeyRelatedField(
        queryset=User.objects.filter(role=User.Role.STUDENT),
        error_messages={"does_not_exist": "No student with id {pk_value}."},
    )
