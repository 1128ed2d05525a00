import logging

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.exceptions import NotFound
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from roll_call.attendance.api.serializers import StartSessionSerializer
from roll_call.attendance.session import SessionAlreadyActive
from roll_call.attendance.session import live_session
from roll_call.attendance.store import DjangoAttendanceStore
from roll_call.audit.models import AuditLog
from roll_call.audit.utils import log_action
from roll_call.users.api.permissions import IsTeacher

logger = logging.getLogger(__name__)


class SessionConflict(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "An attendance session is already active."
    default_code = "session_already_active"


class StartAttendanceView(APIView):
    """Open the live roll call for a class.

    Every student on the roster at this moment starts out absent; later
    roster edits do not reach the running session. Only one session can be
    active at a time, so a second start is refused until DONE commits.
    """

    permission_classes = [IsAuthenticated, IsTeacher]
    store = DjangoAttendanceStore()

    @extend_schema(request=StartSessionSerializer, responses={200: None})
    def post(self, request):
        serializer = StartSessionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        class_id = str(serializer.validated_data["class_id"]).strip()

        roster = self.store.find_roster(class_id)
        if roster is None:
            msg = "Class not found"
            raise NotFound(msg)
        try:
            snapshot = live_session.start(class_id, roster)
        except SessionAlreadyActive as exc:
            raise SessionConflict(exc.message) from exc

        log_action(
            AuditLog.Action.SESSION_STARTED,
            actor=request.user,
            message=f"roll_call={snapshot.roll_call_id}",
            model_name="classes.SchoolClass",
            record_id=int(class_id),
            after={"roster_size": len(roster)},
        )
        logger.info(
            "Roll call %s started for class %s by %s (%d students)",
            snapshot.roll_call_id,
            class_id,
            request.user.email,
            len(roster),
        )
        return Response(snapshot.as_dict(), status=status.HTTP_200_OK)


class CurrentSessionView(APIView):
    permission_classes = [IsAuthenticated, IsTeacher]

    @extend_schema(responses={200: None})
    def get(self, request):
        snapshot = live_session.snapshot()
        if not snapshot.is_active:
            return Response({"active": False})
        return Response(
            {
                "active": True,
                "finalizing": live_session.is_finalizing,
                **snapshot.as_dict(),
                "summary": snapshot.summary().as_dict(),
            }
        )
