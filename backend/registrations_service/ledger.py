"""
Registration Ledger: register, cancel and query event registrations.

Rules enforced here:
- at most one registration per (user, event); the store's unique
  constraint backs up the pre-check when two requests race
- a registration can only be created for an existing event
- only the owner or an admin may cancel a registration
- the per-event listing is admin-only
"""

import logging
from typing import Any, Dict, List

from backend.auth_service.utils import Identity, require_admin
from backend.common.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def coerce_id(value: Any, not_found_message: str) -> int:
    """
    Turn a client-supplied id into an int.

    An id that is not an integer cannot name any record, so it is reported
    as not found rather than as a validation problem. This mirrors the
    `<int:...>` converters on the path ids, which answer 404 for the same input.
    """
    if isinstance(value, bool):
        raise NotFoundError(not_found_message)
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        raise NotFoundError(not_found_message)


class RegistrationLedger:
    """
    Registration operations over an injected Entity Store.

    Args:
        store: Object exposing transaction() -> StoreSession.
    """

    def __init__(self, store: Any):
        self.store = store

    def register(self, identity: Identity, event_id: Any) -> Dict[str, Any]:
        """
        Register the caller for an event.

        The event row is share-locked for the rest of the transaction so a
        concurrent delete of the same event waits for this insert (and then
        purges it) instead of racing past it.

        Returns:
            dict: The registration with its event and user (name, email) populated.

        Raises:
            ValidationError: No event id supplied.
            NotFoundError: The event does not exist.
            ConflictError: The caller is already registered.
        """
        if event_id is None or (isinstance(event_id, str) and not event_id.strip()):
            raise ValidationError("Event ID is required")
        event_id = coerce_id(event_id, "Event not found")

        with self.store.transaction() as tx:
            if not tx.get_event(event_id, lock="share"):
                raise NotFoundError("Event not found")

            if tx.find_registration(identity.user_id, event_id):
                raise ConflictError("You are already registered for this event")

            created = tx.insert_registration(identity.user_id, event_id)
            registration = tx.get_registration_detail(created["registration_id"])

        logger.info(
            f"[Registrations] User {identity.user_id} registered for event {event_id} "
            f"(registration {created['registration_id']})"
        )
        return registration

    def cancel(self, identity: Identity, registration_id: int) -> None:
        """
        Cancel a registration.

        Raises:
            NotFoundError: No such registration (including a second cancel).
            ForbiddenError: Caller is neither the owner nor an admin.
        """
        with self.store.transaction() as tx:
            registration = tx.get_registration(registration_id)
            if not registration:
                raise NotFoundError("Registration not found")

            if registration["user_id"] != identity.user_id and not identity.is_admin:
                raise ForbiddenError("Not authorized to cancel this registration")

            tx.delete_registration(registration_id)

        logger.info(f"[Registrations] Registration {registration_id} cancelled by user {identity.user_id}")

    def list_for_user(self, identity: Identity) -> List[Dict[str, Any]]:
        """The caller's registrations, newest first, with events populated."""
        with self.store.transaction() as tx:
            return tx.registrations_for_user(identity.user_id)

    def list_for_event(self, identity: Identity, event_id: int) -> List[Dict[str, Any]]:
        """
        All registrations for an event, newest first, with registrant
        name/email/phone. Admin only.
        """
        require_admin(identity)
        with self.store.transaction() as tx:
            return tx.registrations_for_event(event_id)

    def check_status(self, identity: Identity, event_id: int) -> Dict[str, Any]:
        with self.store.transaction() as tx:
            registration = tx.find_registration(identity.user_id, event_id)
        return {"isRegistered": registration is not None, "registration": registration}
