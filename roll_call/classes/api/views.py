from __future__ import annotations

from rest_framework import mixins
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from roll_call.attendance.api.serializers import AttendanceRecordSerializer
from roll_call.attendance.models import AttendanceRecord
from roll_call.classes.models import SchoolClass
from roll_call.users.api.permissions import IsStudent
from roll_call.users.api.permissions import IsTeacher

from .serializers import AddStudentSerializer
from .serializers import SchoolClassSerializer


class SchoolClassViewSet(
    mixins.CreateModelMixin,
    mixins.RetrieveModelMixin,
    GenericViewSet,
):
    """Classes and their rosters.

    - create: teacher only, the caller becomes the class teacher
    - retrieve: any authenticated user
    - add_student: teacher only
    - my_attendance: student only, committed records for the caller
    """

    permission_classes = [IsAuthenticated]
    serializer_class = SchoolClassSerializer
    queryset = SchoolClass.objects.prefetch_related("students")

    def get_permissions(self):
        if self.action in {"create", "add_student"}:
            return [IsAuthenticated(), IsTeacher()]
        if self.action == "my_attendance":
            return [IsAuthenticated(), IsStudent()]
        return [p() for p in self.permission_classes]

    def perform_create(self, serializer):
        serializer.save(teacher=self.request.user)

    @action(detail=True, methods=["post"], url_path="add-student")
    def add_student(self, request, pk=None):
        school_class = self.get_object()
        serializer = AddStudentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        school_class.students.add(serializer.validated_data["student_id"])
        out = SchoolClassSerializer(school_class, context={"request": request}).data
        return Response(out, status=status.HTTP_200_OK)

    @action(detail=True, methods=["get"], url_path="my-attendance")
    def my_attendance(self, request, pk=None):
        school_class = self.get_object()
        records = AttendanceRecord.objects.filter(
            school_class=school_class, student=request.user
        )
        return Response(AttendanceRecordSerializer(records, many=True).data)
