"""
Authentication service route handlers.

Provides routes for:
- User signup
- User login
- Profile retrieval (/me)
- Profile update (/me PUT)

All JWT logic is delegated to `auth_service.utils`.
"""

import logging
from typing import Any, Dict, Tuple

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError
from flask import Blueprint, Response, jsonify, request

from backend.auth_service.models import (
    DEFAULT_ROLE,
    NAME_MAX_LENGTH,
    normalize_email,
    validate_password,
    validate_signup,
)
from backend.auth_service.utils import create_token, require_authenticated
from backend.common.errors import AuthError, NotFoundError, ValidationError, json_body
from backend.database.store import get_store

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__)
ph = PasswordHasher()


# --- REQUEST LOGGING ---
@auth_bp.before_request
def before_request() -> None:
    logger.info(f"[Auth] Incoming {request.method} {request.path}")


@auth_bp.after_request
def after_request(response: Response) -> Response:
    logger.info(f"[Auth] Response {response.status}")
    return response


# --- REGISTER ---
@auth_bp.route("/register", methods=["POST"])
def register() -> Tuple[Response, int]:
    """
    Create a new account with the 'user' role.

    Expects a JSON body with:
    - name (str)
    - email (str): Unique email address.
    - password (str): Minimum 6 characters.
    - phone (str, optional)

    Returns:
        201: JSON with the user and a new JWT token.
        400: Validation errors, or email already exists.
    """
    data: Dict[str, Any] = json_body()

    errors = validate_signup(data)
    if errors:
        raise ValidationError("Validation failed", errors)

    pw_hash = ph.hash(data["password"])
    phone = data.get("phone")

    with get_store().transaction() as tx:
        user = tx.insert_user(
            name=data["name"].strip(),
            email=normalize_email(data["email"]),
            password_hash=pw_hash,
            phone=phone.strip() if isinstance(phone, str) and phone.strip() else None,
            role=DEFAULT_ROLE,
        )

    logger.info(f"[Auth] New user {user['user_id']} signed up")
    token = create_token(user["user_id"], user["role"])
    return jsonify({"user": user, "token": token}), 201


# --- LOGIN ---
@auth_bp.route("/login", methods=["POST"])
def login() -> Tuple[Response, int]:
    """
    Authenticate a user and return a JWT.

    Returns:
        200: JSON with the user and JWT token.
        400: Missing credentials.
        401: Invalid credentials (wrong password or email).
    """
    data: Dict[str, Any] = json_body()
    email = normalize_email(data.get("email"))
    password = data.get("password") if isinstance(data.get("password"), str) else ""

    if not email or not password:
        raise ValidationError("Email and password required")

    with get_store().transaction() as tx:
        user = tx.get_user_credentials(email)

    if not user:
        raise AuthError("Invalid credentials")

    try:
        ph.verify(user.pop("password_hash"), password)
    except (VerificationError, InvalidHashError):
        raise AuthError("Invalid credentials")

    token = create_token(user["user_id"], user["role"])
    return jsonify({"user": user, "token": token}), 200


# --- GET CURRENT USER ---
@auth_bp.route("/me", methods=["GET"])
def get_current_user() -> Tuple[Response, int]:
    """
    Retrieve the current user's profile.

    Returns:
        200: User profile object.
        401: Authentication failure.
    """
    store = get_store()
    identity = require_authenticated(store)

    with store.transaction() as tx:
        user = tx.get_user(identity.user_id)

    if not user:
        raise NotFoundError("User not found")

    return jsonify(user), 200


# --- UPDATE CURRENT USER ---
@auth_bp.route("/me", methods=["PUT"])
def update_current_user() -> Tuple[Response, int]:
    """
    Sparse self-service profile update.

    Allowed fields: name, phone, password. Email and role are not editable here.

    Returns:
        200: Updated user object.
        400: No valid fields provided, or invalid values.
        401: Authentication failure.
    """
    store = get_store()
    identity = require_authenticated(store)
    data: Dict[str, Any] = json_body()

    fields: Dict[str, Any] = {}
    errors = []

    name = data.get("name")
    if isinstance(name, str) and name.strip():
        if len(name.strip()) > NAME_MAX_LENGTH:
            errors.append({"field": "name", "message": f"Name must be {NAME_MAX_LENGTH} characters or less"})
        else:
            fields["name"] = name.strip()

    if "phone" in data:
        phone = data.get("phone")
        fields["phone"] = phone.strip() if isinstance(phone, str) and phone.strip() else None

    if data.get("password"):
        password_errors = validate_password(data["password"])
        if password_errors:
            errors.extend(password_errors)
        else:
            fields["password_hash"] = ph.hash(data["password"])

    if errors:
        raise ValidationError("Validation failed", errors)
    if not fields:
        raise ValidationError("No valid fields provided")

    with store.transaction() as tx:
        user = tx.update_user(identity.user_id, fields)

    if not user:
        raise NotFoundError("User not found")

    logger.info(f"[Auth] User {identity.user_id} updated profile fields {sorted(fields)}")
    return jsonify(user), 200
