"""Identity tokens shared by the REST API and the live attendance socket.

A token is a simplejwt access token carrying ``email``, ``role`` and
``userId`` next to the standard ``user_id`` claim, so the socket layer can
bind an identity to a connection without a database round-trip.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import AccessToken

from roll_call.users.models import User

if TYPE_CHECKING:  # import for type checking only
    from collections.abc import Mapping

REASON_UNAUTHORIZED = "unauthorized"
REASON_TOKEN_EXPIRED = "token_expired"


class AuthError(Exception):
    """The presented identity token is missing, malformed or no longer valid."""

    def __init__(self, message: str, reason: str = REASON_UNAUTHORIZED) -> None:
        super().__init__(message)
        self.message = message
        self.reason = reason


@dataclass(frozen=True)
class Identity:
    email: str
    role: str
    user_id: str | None = None

    @property
    def is_teacher(self) -> bool:
        return self.role == User.Role.TEACHER

    @property
    def is_student(self) -> bool:
        return self.role == User.Role.STUDENT


def issue_identity_token(user: User) -> str:
    token = AccessToken.for_user(user)
    token["email"] = user.email
    token["role"] = user.role
    token["userId"] = str(user.pk)
    return str(token)


def identity_from_claims(claims: Mapping[str, object]) -> Identity:
    email = claims.get("email")
    role = claims.get("role")
    user_id = claims.get("userId")
    if not isinstance(email, str) or not email:
        msg = "Token is missing the email claim"
        raise AuthError(msg)
    if role not in User.Role.values:
        msg = "Token carries an unknown role"
        raise AuthError(msg)
    return Identity(
        email=email,
        role=str(role),
        user_id=str(user_id) if user_id not in (None, "") else None,
    )


def _has_expired(raw: str) -> bool:
    """True when ``raw`` is a well-formed token whose ``exp`` is in the past."""
    try:
        unverified = AccessToken(raw, verify=False)
    except TokenError:
        return False
    try:
        unverified.check_exp()
    except TokenError:
        return True
    return False


def decode_identity_token(raw: str | None) -> Identity:
    """Verify ``raw`` and return the identity it carries.

    Raises AuthError when the token is absent, badly signed, expired or lacks
    the identity claims.
    """
    if not raw:
        msg = "Missing token"
        raise AuthError(msg)
    try:
        token = AccessToken(raw)
    except TokenError as exc:
        if _has_expired(raw):
            msg = "Token has expired"
            raise AuthError(msg, reason=REASON_TOKEN_EXPIRED) from exc
        msg = "Invalid token"
        raise AuthError(msg) from exc
    return identity_from_claims(token.payload)
