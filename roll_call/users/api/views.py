import logging

from django.contrib.auth.signals import user_logged_in
from drf_spectacular.utils import extend_schema
from rest_framework import generics
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.exceptions import NotFound
from rest_framework.permissions import AllowAny
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from roll_call.users.api.permissions import IsTeacher
from roll_call.users.api.serializers import LoginSerializer
from roll_call.users.api.serializers import SignupSerializer
from roll_call.users.api.serializers import UserSerializer
from roll_call.users.models import User
from roll_call.users.tokens import issue_identity_token

logger = logging.getLogger(__name__)


class InvalidCredentials(APIException):
    # Login runs without authenticators, so AuthenticationFailed would surface as 403
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Invalid password"
    default_code = "invalid_password"


class SignupView(generics.CreateAPIView):
    permission_classes = [AllowAny]
    authentication_classes: list = []
    serializer_class = SignupSerializer

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        logger.info("Signed up %s as %s", user.email, user.role)
        return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)


class LoginView(APIView):
    """Exchange email and password for an identity token."""

    permission_classes = [AllowAny]
    authentication_classes: list = []

    @extend_schema(request=LoginSerializer, responses={200: None})
    def post(self, request):
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        email = serializer.validated_data["email"]
        user = User.objects.filter(email=email).first()
        if user is None:
            msg = "User not found"
            raise NotFound(msg)
        if not user.check_password(serializer.validated_data["password"]):
            raise InvalidCredentials
        token = issue_identity_token(user)
        user_logged_in.send(sender=user.__class__, request=request, user=user)
        return Response({"token": token})


class StudentListView(generics.ListAPIView):
    permission_classes = [IsAuthenticated, IsTeacher]
    serializer_class = UserSerializer
    pagination_class = None

    def get_queryset(self):
        return User.objects.filter(role=User.Role.STUDENT).order_by("id")
