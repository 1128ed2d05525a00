from django.urls import path

from roll_call.users.api.views import LoginView
from roll_call.users.api.views import SignupView

urlpatterns = [
    path("signup/", SignupView.as_view(), name="auth-signup"),
    path("login/", LoginView.as_view(), name="auth-login"),
]
