"""
User record shape and validation for the authentication service.

A user has a name, a unique email, an Argon2 password hash, a role
('user' or 'admin'), an optional phone number and a creation timestamp.
"""

import re
from typing import Any, Dict, List

USER_ROLES = ("user", "admin")
DEFAULT_ROLE = "user"

PASSWORD_MIN_LENGTH = 6
NAME_MAX_LENGTH = 120

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

# Fields a user may change on their own profile
PROFILE_FIELDS = ("name", "phone")


def normalize_email(email: Any) -> str:
    return (email or "").strip().lower() if isinstance(email, str) or email is None else ""


def validate_signup(data: Dict[str, Any]) -> List[Dict[str, str]]:
    """
    Validate a signup body.

    Returns:
        list: One {"field", "message"} entry per violation.
    """
    errors: List[Dict[str, str]] = []

    name = data.get("name")
    if not isinstance(name, str) or not name.strip():
        errors.append({"field": "name", "message": "Name is required"})
    elif len(name.strip()) > NAME_MAX_LENGTH:
        errors.append({"field": "name", "message": f"Name must be {NAME_MAX_LENGTH} characters or less"})

    email = normalize_email(data.get("email"))
    if not email:
        errors.append({"field": "email", "message": "Email is required"})
    elif not EMAIL_PATTERN.match(email):
        errors.append({"field": "email", "message": "Please provide a valid email"})

    errors.extend(validate_password(data.get("password")))
    return errors


def validate_password(password: Any) -> List[Dict[str, str]]:
    if not isinstance(password, str) or not password:
        return [{"field": "password", "message": "Password is required"}]
    if len(password) < PASSWORD_MIN_LENGTH:
        return [{"field": "password", "message": f"Password must be at least {PASSWORD_MIN_LENGTH} characters"}]
    return []
