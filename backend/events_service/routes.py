"""
Events service routes: list, search, read, create, update, and delete events.
Writes and statistics are restricted to admins.
"""

import logging
from typing import Any, Dict, Tuple

from flask import Blueprint, Response, jsonify, request

from backend.auth_service.utils import require_authenticated
from backend.common.errors import json_body
from backend.database.store import get_store
from backend.events_service.catalog import EventCatalog

logger = logging.getLogger(__name__)

events_bp = Blueprint("events", __name__)


def _catalog() -> EventCatalog:
    return EventCatalog(get_store())


# --- REQUEST LOGGING ---
@events_bp.before_request
def before_request() -> None:
    logger.info(f"[Events] Incoming {request.method} {request.path}")


@events_bp.after_request
def after_request(response: Response) -> Response:
    logger.info(f"[Events] Response {response.status}")
    return response


@events_bp.route("/", methods=["GET"])
def list_events() -> Tuple[Response, int]:
    """
    Return all events matching the query filters, ordered by date.

    Query parameters:
    - search: case-insensitive title substring
    - category: exact category, or 'all'
    - dateFrom, dateTo: inclusive ISO date bounds

    Returns:
        200: List of event objects.
        400: Unparseable date bound.
    """
    events = _catalog().list(request.args)
    return jsonify(events), 200


@events_bp.route("/stats", methods=["GET"])
def get_stats() -> Tuple[Response, int]:
    """
    Admin-only totals of events, users and registrations.

    Returns:
        200: {"total_events", "total_users", "total_registrations"}
        401/403: Not an authenticated admin.
    """
    identity = require_authenticated(get_store())
    return jsonify(_catalog().stats(identity)), 200


@events_bp.route("/<int:event_id>", methods=["GET"])
def get_event(event_id: int) -> Tuple[Response, int]:
    """
    Get a single event by ID.

    Returns:
        200: Event object.
        404: Event not found.
    """
    return jsonify(_catalog().get_by_id(event_id)), 200


@events_bp.route("/", methods=["POST"])
def create_event() -> Tuple[Response, int]:
    """
    Create an event (admin only).

    Returns:
        201: The stored event.
        400: {"error": ..., "errors": [{"field", "message"}, ...]}
        401/403: Not an authenticated admin.
    """
    identity = require_authenticated(get_store())
    data: Dict[str, Any] = json_body()
    event = _catalog().create(identity, data)
    return jsonify(event), 201


@events_bp.route("/<int:event_id>", methods=["PUT"])
def update_event(event_id: int) -> Tuple[Response, int]:
    """
    Update an event (admin only). Omitted or empty fields are left unchanged.

    Returns:
        200: The updated event.
        400: Invalid value for a supplied field.
        401/403: Not an authenticated admin.
        404: Event not found.
    """
    identity = require_authenticated(get_store())
    data: Dict[str, Any] = json_body()
    event = _catalog().update(identity, event_id, data)
    return jsonify(event), 200


@events_bp.route("/<int:event_id>", methods=["DELETE"])
def delete_event(event_id: int) -> Tuple[Response, int]:
    """
    Delete an event and every registration for it (admin only).

    Returns:
        200: Confirmation message.
        401/403: Not an authenticated admin.
        404: Event not found.
    """
    identity = require_authenticated(get_store())
    _catalog().delete(identity, event_id)
    return jsonify({"message": "Event removed successfully"}), 200
