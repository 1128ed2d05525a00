from django.urls import path

from roll_call.attendance.api.views import CurrentSessionView
from roll_call.attendance.api.views import StartAttendanceView

urlpatterns = [
    path("start/", StartAttendanceView.as_view(), name="attendance-start"),
    path("session/", CurrentSessionView.as_view(), name="attendance-session"),
]
