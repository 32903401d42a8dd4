"""
Shared authentication helpers.
Provides token creation, identity resolution, and role enforcement.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import jwt
from flask import request

from backend import config
from backend.common.errors import AuthError, ForbiddenError

JWT_SECRET = config.JWT_SECRET
if not JWT_SECRET:
    raise RuntimeError("JWT_SECRET is missing. Set it in .env")

TOKEN_EXPIRATION_MINUTES = config.TOKEN_EXPIRATION_MINUTES


@dataclass(frozen=True)
class Identity:
    """The resolved caller of a request."""

    user_id: int
    role: str
    name: str = ""
    email: str = ""

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


# --- JWT CREATION ---
def create_token(user_id: int, role: str) -> str:
    """
    Generates a new JWT for a given user.

    Args:
        user_id (int): The unique ID of the user.
        role (str): The role of the user (user, admin).

    Returns:
        str: Encoded JWT string.
    """
    now = datetime.now(timezone.utc)

    payload = {
        "sub": str(user_id),
        "role": role,
        "exp": now + timedelta(minutes=TOKEN_EXPIRATION_MINUTES),
        "iat": now
    }

    return jwt.encode(payload, JWT_SECRET, algorithm="HS256")


def decode_token(token: str) -> int:
    """
    Validate a JWT and return the user id it was issued for.

    Raises:
        AuthError: Expired, malformed or wrongly signed token.
    """
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=["HS256"])
    except jwt.ExpiredSignatureError:
        raise AuthError("Token expired")
    except jwt.InvalidTokenError:
        raise AuthError("Invalid token")

    try:
        return int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise AuthError("Invalid token")


# --- IDENTITY RESOLUTION ---
def resolve_identity(store: Any, token: str) -> Identity:
    """
    Resolve a bearer token to the stored user.

    The role comes from the users table, not from the token, so role changes
    and deleted accounts take effect immediately.
    """
    user_id = decode_token(token)

    with store.transaction() as tx:
        user = tx.get_user(user_id)

    if not user:
        raise AuthError("User not found")

    return Identity(user_id=user["user_id"], role=user["role"], name=user["name"], email=user["email"])


def bearer_token() -> Optional[str]:
    auth = request.headers.get("Authorization", "")
    if not auth.startswith("Bearer "):
        return None
    return auth.split(" ", 1)[1].strip() or None


def require_authenticated(store: Any) -> Identity:
    """
    Resolve the caller from the Authorization header of the current request.

    Raises:
        AuthError: Missing or invalid credential.
    """
    token = bearer_token()
    if not token:
        raise AuthError("Not authorized, no token")
    return resolve_identity(store, token)


def require_admin(identity: Identity) -> None:
    """
    Raises:
        ForbiddenError: The identity does not hold the admin role.
    """
    if not identity.is_admin:
        raise ForbiddenError("Not authorized as an admin")
