"""
Registrations service routes: register for events, cancel, and list
registrations for the current user or (admins) for an event.
"""

import logging
from typing import Any, Dict, Tuple

from flask import Blueprint, Response, jsonify, request

from backend.auth_service.utils import require_authenticated
from backend.common.errors import json_body
from backend.database.store import get_store
from backend.registrations_service.ledger import RegistrationLedger

logger = logging.getLogger(__name__)

registrations_bp = Blueprint("registrations", __name__)


# --- REQUEST LOGGING ---
@registrations_bp.before_request
def before_request() -> None:
    logger.info(f"[Registrations] Incoming {request.method} {request.path}")


@registrations_bp.after_request
def after_request(response: Response) -> Response:
    logger.info(f"[Registrations] Response {response.status}")
    return response


@registrations_bp.route("/", methods=["POST"])
def register_for_event() -> Tuple[Response, int]:
    """
    Register the current user for an event.

    Expects JSON: { "eventId": int }  ("event_id" is accepted too)

    Returns:
        201: Registration with event and user populated.
        400: Missing event id, or already registered.
        401: Not authenticated.
        404: Event not found.
    """
    store = get_store()
    identity = require_authenticated(store)

    data: Dict[str, Any] = json_body()
    event_id = data.get("eventId", data.get("event_id"))

    registration = RegistrationLedger(store).register(identity, event_id)
    return jsonify(registration), 201


@registrations_bp.route("/user", methods=["GET"])
def get_my_registrations() -> Tuple[Response, int]:
    """
    The current user's registrations, most recent first.

    Returns:
        200: List of registrations with events populated.
        401: Not authenticated.
    """
    store = get_store()
    identity = require_authenticated(store)
    return jsonify(RegistrationLedger(store).list_for_user(identity)), 200


@registrations_bp.route("/event/<int:event_id>", methods=["GET"])
def get_event_registrations(event_id: int) -> Tuple[Response, int]:
    """
    Admin-only list of registrations for an event, most recent first.

    Returns:
        200: List of registrations with registrant name/email/phone.
        401/403: Not an authenticated admin.
    """
    store = get_store()
    identity = require_authenticated(store)
    return jsonify(RegistrationLedger(store).list_for_event(identity, event_id)), 200


@registrations_bp.route("/<int:registration_id>", methods=["DELETE"])
def cancel_registration(registration_id: int) -> Tuple[Response, int]:
    """
    Cancel a registration. Allowed for its owner or an admin.

    Returns:
        200: Confirmation message.
        401: Not authenticated.
        403: Not the owner and not an admin.
        404: Registration not found.
    """
    store = get_store()
    identity = require_authenticated(store)
    RegistrationLedger(store).cancel(identity, registration_id)
    return jsonify({"message": "Registration cancelled successfully"}), 200


@registrations_bp.route("/check/<int:event_id>", methods=["GET"])
def check_registration(event_id: int) -> Tuple[Response, int]:
    """
    Whether the current user is registered for an event.

    Returns:
        200: {"isRegistered": bool, "registration": object | null}
        401: Not authenticated.
    """
    store = get_store()
    identity = require_authenticated(store)
    return jsonify(RegistrationLedger(store).check_status(identity, event_id)), 200
