"""
Entity Store: PostgreSQL persistence for users, events and registrations.

The store is created once by the application factory and injected into the
services; nothing here reaches for a module-level connection. Every unit of
work runs inside EntityStore.transaction(), which hands out a StoreSession
bound to a single connection and commits or rolls back as a whole.

Usage:
    with store.transaction() as tx:
        event = tx.get_event(event_id, lock="update")
        tx.delete_registrations_for_event(event_id)
"""

import logging
from contextlib import contextmanager
from datetime import date
from typing import Any, Callable, Dict, Iterator, List, Optional

import psycopg2.errors
from flask import current_app

from backend.common.errors import ConflictError, NotFoundError
from backend.database.db_connection import get_db

logger = logging.getLogger(__name__)

STORE_EXTENSION_KEY = "entity_store"

# Row locks taken on the event while checking it exists
LOCK_CLAUSES = {
    None: "",
    "share": " FOR SHARE OF e",
    "update": " FOR UPDATE OF e",
}

EVENT_COLUMNS = """
    e.event_id, e.title, e.description, e.event_date, e.event_time,
    e.category, e.venue, e.location_lat, e.location_lng, e.location_address,
    e.image, e.capacity, e.created_at, e.created_by,
    c.name AS creator_name, c.email AS creator_email
"""

EVENT_FROM = "FROM events e JOIN users c ON e.created_by = c.user_id"

USER_COLUMNS = "user_id, name, email, role, phone, created_at"

# Update keys accepted by update_user/update_event mapped to their columns
USER_UPDATE_COLUMNS = {"name": "name", "phone": "phone", "password_hash": "password_hash"}
EVENT_UPDATE_COLUMNS = {
    "title": "title",
    "description": "description",
    "date": "event_date",
    "time": "event_time",
    "category": "category",
    "venue": "venue",
    "image": "image",
    "capacity": "capacity",
}


def _iso(value: Any) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def user_from_row(row: Any) -> Dict[str, Any]:
    return {
        "user_id": row["user_id"],
        "name": row["name"],
        "email": row["email"],
        "role": row["role"],
        "phone": row["phone"],
        "created_at": _iso(row["created_at"]),
    }


def event_from_row(row: Any) -> Dict[str, Any]:
    """Shape an events row (joined with its creator) for API output."""
    return {
        "event_id": row["event_id"],
        "title": row["title"],
        "description": row["description"],
        "date": _iso(row["event_date"]),
        "time": row["event_time"],
        "category": row["category"],
        "venue": row["venue"],
        "location": {
            "lat": float(row["location_lat"]),
            "lng": float(row["location_lng"]),
            "address": row["location_address"],
        },
        "image": row["image"],
        "capacity": row["capacity"],
        "created_by": {
            "user_id": row["created_by"],
            "name": row["creator_name"],
            "email": row["creator_email"],
        },
        "created_at": _iso(row["created_at"]),
    }


def registration_from_row(row: Any) -> Dict[str, Any]:
    return {
        "registration_id": row["registration_id"],
        "user_id": row["user_id"],
        "event_id": row["event_id"],
        "registered_at": _iso(row["registered_at"]),
    }


class StoreSession:
    """Data access bound to one open transaction."""

    def __init__(self, cursor: Any):
        self.cur = cursor

    # --- USERS ---

    def get_user(self, user_id: int) -> Optional[Dict[str, Any]]:
        self.cur.execute(f"SELECT {USER_COLUMNS} FROM users WHERE user_id = %s;", (user_id,))
        row = self.cur.fetchone()
        return user_from_row(row) if row else None

    def get_user_credentials(self, email: str) -> Optional[Dict[str, Any]]:
        """User row plus password hash, for login only."""
        self.cur.execute(
            f"SELECT {USER_COLUMNS}, password_hash FROM users WHERE email = %s;",
            (email,),
        )
        row = self.cur.fetchone()
        if not row:
            return None
        user = user_from_row(row)
        user["password_hash"] = row["password_hash"]
        return user

    def insert_user(
        self,
        name: str,
        email: str,
        password_hash: str,
        phone: Optional[str] = None,
        role: str = "user",
    ) -> Dict[str, Any]:
        sql = f"""
            INSERT INTO users (name, email, password_hash, role, phone)
            VALUES (%s, %s, %s, %s, %s)
            RETURNING {USER_COLUMNS};
        """
        try:
            self.cur.execute(sql, (name, email, password_hash, role, phone))
        except psycopg2.errors.UniqueViolation as e:
            raise ConflictError("Email already exists") from e
        return user_from_row(self.cur.fetchone())

    def update_user(self, user_id: int, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        if not fields:
            return self.get_user(user_id)

        set_clause = ", ".join(f"{USER_UPDATE_COLUMNS[k]} = %s" for k in fields)
        set_clause += ", updated_at = CURRENT_TIMESTAMP"
        values = list(fields.values()) + [user_id]

        self.cur.execute(
            f"UPDATE users SET {set_clause} WHERE user_id = %s RETURNING {USER_COLUMNS};",
            values,
        )
        row = self.cur.fetchone()
        return user_from_row(row) if row else None

    # --- EVENTS ---

    def get_event(self, event_id: int, lock: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """
        Fetch one event with its creator populated.

        Args:
            event_id (int): Event primary key.
            lock (str, optional): "share" or "update" to row-lock the event
                until the transaction ends.
        """
        sql = f"SELECT {EVENT_COLUMNS} {EVENT_FROM} WHERE e.event_id = %s{LOCK_CLAUSES[lock]};"
        self.cur.execute(sql, (event_id,))
        row = self.cur.fetchone()
        return event_from_row(row) if row else None

    def list_events(
        self,
        search: Optional[str] = None,
        category: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> List[Dict[str, Any]]:
        sql = f"SELECT {EVENT_COLUMNS} {EVENT_FROM} WHERE 1=1"
        params: List[Any] = []

        if search:
            sql += " AND e.title ILIKE %s"
            params.append(f"%{_escape_like(search)}%")
        if category:
            sql += " AND e.category = %s"
            params.append(category)
        if date_from:
            sql += " AND e.event_date >= %s"
            params.append(date_from)
        if date_to:
            sql += " AND e.event_date <= %s"
            params.append(date_to)

        sql += " ORDER BY e.event_date ASC, e.event_id ASC;"

        self.cur.execute(sql, params)
        return [event_from_row(row) for row in self.cur.fetchall()]

    def insert_event(self, record: Dict[str, Any], created_by: int) -> Dict[str, Any]:
        sql = """
            INSERT INTO events (
                title, description, event_date, event_time, category, venue,
                location_lat, location_lng, location_address,
                image, capacity, created_by
            ) VALUES (
                %s, %s, %s, %s, %s, %s,
                %s, %s, %s,
                %s, %s, %s
            )
            RETURNING event_id;
        """
        location = record["location"]
        self.cur.execute(sql, (
            record["title"], record["description"], record["date"], record["time"],
            record["category"], record["venue"],
            location["lat"], location["lng"], location.get("address"),
            record["image"], record["capacity"], created_by,
        ))
        event_id = self.cur.fetchone()["event_id"]
        return self.get_event(event_id)

    def update_event(self, event_id: int, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        fields = []
        values: List[Any] = []

        for key, value in changes.items():
            if key == "location":
                fields.extend(["location_lat = %s", "location_lng = %s", "location_address = %s"])
                values.extend([value["lat"], value["lng"], value.get("address")])
            else:
                fields.append(f"{EVENT_UPDATE_COLUMNS[key]} = %s")
                values.append(value)

        fields.append("updated_at = CURRENT_TIMESTAMP")
        values.append(event_id)

        self.cur.execute(f"UPDATE events SET {', '.join(fields)} WHERE event_id = %s;", values)
        return self.get_event(event_id)

    def delete_event(self, event_id: int) -> int:
        self.cur.execute("DELETE FROM events WHERE event_id = %s;", (event_id,))
        return self.cur.rowcount

    # --- REGISTRATIONS ---

    def get_registration(self, registration_id: int) -> Optional[Dict[str, Any]]:
        self.cur.execute(
            "SELECT registration_id, user_id, event_id, registered_at "
            "FROM registrations WHERE registration_id = %s;",
            (registration_id,),
        )
        row = self.cur.fetchone()
        return registration_from_row(row) if row else None

    def find_registration(self, user_id: int, event_id: int) -> Optional[Dict[str, Any]]:
        self.cur.execute(
            "SELECT registration_id, user_id, event_id, registered_at "
            "FROM registrations WHERE user_id = %s AND event_id = %s;",
            (user_id, event_id),
        )
        row = self.cur.fetchone()
        return registration_from_row(row) if row else None

    def insert_registration(self, user_id: int, event_id: int) -> Dict[str, Any]:
        """
        Insert a registration; the (user_id, event_id) unique constraint is
        the authoritative duplicate guard.

        Raises:
            ConflictError: The user already holds a registration for the event.
            NotFoundError: The event (or user) no longer exists.
        """
        sql = """
            INSERT INTO registrations (user_id, event_id)
            VALUES (%s, %s)
            RETURNING registration_id, user_id, event_id, registered_at;
        """
        try:
            self.cur.execute(sql, (user_id, event_id))
        except psycopg2.errors.UniqueViolation as e:
            raise ConflictError("You are already registered for this event") from e
        except psycopg2.errors.ForeignKeyViolation as e:
            raise NotFoundError("Event not found") from e
        return registration_from_row(self.cur.fetchone())

    def get_registration_detail(self, registration_id: int) -> Optional[Dict[str, Any]]:
        """Registration with its event and registrant (name/email) populated."""
        sql = f"""
            SELECT r.registration_id, r.user_id, r.registered_at,
                   u.name AS user_name, u.email AS user_email,
                   {EVENT_COLUMNS}
            FROM registrations r
            JOIN events e ON r.event_id = e.event_id
            JOIN users c ON e.created_by = c.user_id
            JOIN users u ON r.user_id = u.user_id
            WHERE r.registration_id = %s;
        """
        self.cur.execute(sql, (registration_id,))
        row = self.cur.fetchone()
        if not row:
            return None
        registration = registration_from_row(row)
        registration["event"] = event_from_row(row)
        registration["user"] = {"name": row["user_name"], "email": row["user_email"]}
        return registration

    def delete_registration(self, registration_id: int) -> int:
        self.cur.execute("DELETE FROM registrations WHERE registration_id = %s;", (registration_id,))
        return self.cur.rowcount

    def delete_registrations_for_event(self, event_id: int) -> int:
        self.cur.execute("DELETE FROM registrations WHERE event_id = %s;", (event_id,))
        return self.cur.rowcount

    def registrations_for_user(self, user_id: int) -> List[Dict[str, Any]]:
        """The user's registrations, newest first, each with its event populated."""
        sql = f"""
            SELECT r.registration_id, r.user_id, r.registered_at, {EVENT_COLUMNS}
            FROM registrations r
            JOIN events e ON r.event_id = e.event_id
            JOIN users c ON e.created_by = c.user_id
            WHERE r.user_id = %s
            ORDER BY r.registered_at DESC, r.registration_id DESC;
        """
        self.cur.execute(sql, (user_id,))
        registrations = []
        for row in self.cur.fetchall():
            registration = registration_from_row(row)
            registration["event"] = event_from_row(row)
            registrations.append(registration)
        return registrations

    def registrations_for_event(self, event_id: int) -> List[Dict[str, Any]]:
        """An event's registrations, newest first, with registrant contact details."""
        sql = """
            SELECT r.registration_id, r.user_id, r.event_id, r.registered_at,
                   u.name, u.email, u.phone
            FROM registrations r
            JOIN users u ON r.user_id = u.user_id
            WHERE r.event_id = %s
            ORDER BY r.registered_at DESC, r.registration_id DESC;
        """
        self.cur.execute(sql, (event_id,))
        registrations = []
        for row in self.cur.fetchall():
            registration = registration_from_row(row)
            registration["user"] = {"name": row["name"], "email": row["email"], "phone": row["phone"]}
            registrations.append(registration)
        return registrations

    # --- STATS / MAINTENANCE ---

    def count_all(self) -> Dict[str, int]:
        self.cur.execute("""
            SELECT
                (SELECT COUNT(*) FROM events) AS total_events,
                (SELECT COUNT(*) FROM users) AS total_users,
                (SELECT COUNT(*) FROM registrations) AS total_registrations;
        """)
        row = self.cur.fetchone()
        return {
            "total_events": row["total_events"],
            "total_users": row["total_users"],
            "total_registrations": row["total_registrations"],
        }

    def truncate_all(self) -> None:
        self.cur.execute("TRUNCATE registrations, events, users RESTART IDENTITY;")


class EntityStore:
    """
    Transaction factory over a connection callable.

    Args:
        connect (callable): Returns a new psycopg2 connection. Defaults to get_db.
    """

    def __init__(self, connect: Callable[[], Any] = get_db):
        self._connect = connect

    @contextmanager
    def transaction(self) -> Iterator[StoreSession]:
        conn = self._connect()
        try:
            with conn.cursor() as cur:
                yield StoreSession(cur)
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()


def get_store() -> Any:
    """The store installed on the running application."""
    return current_app.extensions[STORE_EXTENSION_KEY]
