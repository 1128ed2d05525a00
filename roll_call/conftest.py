import pytest

from roll_call.attendance.session import live_session
from roll_call.realtime.tests.fakes import LiveHarness
from roll_call.users.models import User


@pytest.fixture(autouse=True)
def _reset_live_session():
    live_session.clear()
    yield
    live_session.clear()


@pytest.fixture
def live() -> LiveHarness:
    return LiveHarness.build()


@pytest.fixture
def teacher(db) -> User:
    return User.objects.create_user(
        username="teacher@example.com",
        email="teacher@example.com",
        password="TeachPass!123",  # noqa: S106
        name="Ada Teacher",
        role=User.Role.TEACHER,
    )


@pytest.fixture
def make_student(db):
    def _make(slug: str) -> User:
        email = f"{slug}@example.com"
        return User.objects.create_user(
            username=email,
            email=email,
            password="StudyPass!123",  # noqa: S106
            name=slug.title(),
            role=User.Role.STUDENT,
        )

    return _make


@pytest.fixture
def student(make_student) -> User:
    return make_student("student")
