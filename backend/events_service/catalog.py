"""
Event Catalog: create, update, delete, list and search events.

Writes are admin-only; reads are public. Category and location rules live
in events_service.models and are applied before anything reaches the store.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

from backend.auth_service.utils import Identity, require_admin
from backend.common.errors import NotFoundError, ValidationError
from backend.events_service.cascade import CascadeCoordinator
from backend.events_service.models import (
    build_event,
    build_event_changes,
    is_blank,
    parse_date,
    validate_event,
)

logger = logging.getLogger(__name__)


class EventCatalog:
    """
    Event operations over an injected Entity Store.

    Args:
        store: Object exposing transaction() -> StoreSession.
        cascade (CascadeCoordinator, optional): Registration cleanup on delete.
    """

    def __init__(self, store: Any, cascade: Optional[CascadeCoordinator] = None):
        self.store = store
        self.cascade = cascade or CascadeCoordinator()

    def create(self, identity: Identity, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create an event.

        Raises:
            ForbiddenError: Caller is not an admin.
            ValidationError: Every violated field is listed in `errors`.
        """
        require_admin(identity)

        errors = validate_event(data)
        if errors:
            raise ValidationError("Validation failed", errors)

        record = build_event(data)
        with self.store.transaction() as tx:
            event = tx.insert_event(record, created_by=identity.user_id)

        logger.info(f"[Events] Event {event['event_id']} created by user {identity.user_id}")
        return event

    def update(self, identity: Identity, event_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Sparse update: omitted or empty fields keep their stored value.

        Raises:
            ForbiddenError: Caller is not an admin.
            NotFoundError: No such event.
            ValidationError: A supplied value is invalid (e.g. unknown category).
        """
        require_admin(identity)

        with self.store.transaction() as tx:
            current = tx.get_event(event_id, lock="update")
            if not current:
                raise NotFoundError("Event not found")

            changes, errors = build_event_changes(data, current)
            if errors:
                raise ValidationError("Validation failed", errors)
            if not changes:
                return current

            event = tx.update_event(event_id, changes)

        logger.info(f"[Events] Event {event_id} updated fields {sorted(changes)}")
        return event

    def delete(self, identity: Identity, event_id: int) -> None:
        """
        Delete an event and, through the cascade, all of its registrations.

        Raises:
            ForbiddenError: Caller is not an admin.
            NotFoundError: No such event.
            CascadeError: Removal failed after the purge (rolled back).
        """
        require_admin(identity)

        with self.store.transaction() as tx:
            if not tx.get_event(event_id, lock="update"):
                raise NotFoundError("Event not found")
            purged = self.cascade.remove_event(tx, event_id)

        logger.info(f"[Events] Event {event_id} deleted with {purged} registration(s)")

    def list(self, filters: Mapping[str, Any]) -> List[Dict[str, Any]]:
        """
        Public listing ordered by date ascending.

        Recognized filters:
        - search: case-insensitive substring of the title
        - category: exact match; "all" or absent means no filter
        - dateFrom / dateTo: inclusive date bounds
        """
        search = filters.get("search")
        category = filters.get("category")
        if is_blank(category) or category == "all":
            category = None

        bounds = {}
        for key in ("dateFrom", "dateTo"):
            raw = filters.get(key)
            if is_blank(raw):
                bounds[key] = None
                continue
            bounds[key] = parse_date(raw)
            if bounds[key] is None:
                raise ValidationError(f"{key} must be a valid ISO-8601 date")

        with self.store.transaction() as tx:
            return tx.list_events(
                search=search.strip() if not is_blank(search) else None,
                category=category,
                date_from=bounds["dateFrom"],
                date_to=bounds["dateTo"],
            )

    def get_by_id(self, event_id: int) -> Dict[str, Any]:
        with self.store.transaction() as tx:
            event = tx.get_event(event_id)
        if not event:
            raise NotFoundError("Event not found")
        return event

    def stats(self, identity: Identity) -> Dict[str, int]:
        """Exact collection counts at call time (admin only)."""
        require_admin(identity)
        with self.store.transaction() as tx:
            return tx.count_all()
