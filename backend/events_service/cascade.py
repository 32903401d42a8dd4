"""
Cascade Coordinator: removes an event together with its registrations.

Both removals run inside the caller's transaction, registrations first and
the event second, so no reader ever sees a registration that points at a
deleted event. The event row is locked FOR UPDATE by the caller, which also
blocks concurrent registrations for that event until the delete commits.
"""

import logging
from typing import Any

from backend.common.errors import CascadeError

logger = logging.getLogger(__name__)


class CascadeCoordinator:
    """Referential cleanup run from the event delete path."""

    def on_event_delete(self, tx: Any, event_id: int) -> int:
        """
        Delete every registration for the event.

        Returns:
            int: Number of registrations purged.
        """
        purged = tx.delete_registrations_for_event(event_id)
        logger.info(f"[Cascade] Purged {purged} registration(s) for event {event_id}")
        return purged

    def remove_event(self, tx: Any, event_id: int) -> int:
        """
        Purge the event's registrations, then the event itself.

        Any failure after the purge is reported as a CascadeError; raising out
        of the transaction rolls the purge back as well.

        Returns:
            int: Number of registrations purged.
        """
        purged = self.on_event_delete(tx, event_id)

        try:
            removed = tx.delete_event(event_id)
        except Exception as e:
            logger.critical(
                f"[Cascade] Event {event_id} could not be removed after purging "
                f"{purged} registration(s); rolling back: {e}"
            )
            raise CascadeError("Failed to delete event") from e

        if not removed:
            logger.critical(
                f"[Cascade] Event {event_id} vanished after purging {purged} registration(s); rolling back"
            )
            raise CascadeError("Failed to delete event")

        return purged
