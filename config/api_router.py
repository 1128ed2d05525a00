from django.urls import include
from django.urls import path
from rest_framework.routers import SimpleRouter

from roll_call.classes.api.views import SchoolClassViewSet
from roll_call.users.api.views import StudentListView

router = SimpleRouter()

router.register("classes", SchoolClassViewSet)


app_name = "api"
urlpatterns = [
    path("auth/", include("roll_call.users.api.urls")),
    path("attendance/", include("roll_call.attendance.api.urls")),
    path("students/", StudentListView.as_view(), name="student-list"),
    *router.urls,
]
