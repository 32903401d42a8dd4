import copy
import itertools
import os
from contextlib import contextmanager
from datetime import date, datetime, timedelta, timezone

import psycopg2.errors
import pytest

# Ensure JWT_SECRET is set before any backend module is imported
os.environ["JWT_SECRET"] = "test_secret"
os.environ.setdefault("DATABASE_URL", "postgresql://localhost/event_test")

from backend.auth_service.utils import Identity, create_token  # noqa: E402
from backend.common.errors import ConflictError, NotFoundError  # noqa: E402
from backend.gateway.server import create_app  # noqa: E402


# --- IN-MEMORY ENTITY STORE ---
# Mirrors backend.database.store.StoreSession, including the constraints the
# PostgreSQL schema enforces: unique email, unique (user_id, event_id) and
# foreign keys from registrations to users/events.

class InMemorySession:
    def __init__(self, store):
        self.store = store

    def _user(self, u):
        return {
            "user_id": u["user_id"],
            "name": u["name"],
            "email": u["email"],
            "role": u["role"],
            "phone": u["phone"],
            "created_at": u["created_at"].isoformat(),
        }

    def _event(self, e):
        creator = self.store.users[e["created_by"]]
        return {
            "event_id": e["event_id"],
            "title": e["title"],
            "description": e["description"],
            "date": e["date"].isoformat(),
            "time": e["time"],
            "category": e["category"],
            "venue": e["venue"],
            "location": dict(e["location"]),
            "image": e["image"],
            "capacity": e["capacity"],
            "created_by": {"user_id": creator["user_id"], "name": creator["name"], "email": creator["email"]},
            "created_at": e["created_at"].isoformat(),
        }

    def _registration(self, r):
        return {
            "registration_id": r["registration_id"],
            "user_id": r["user_id"],
            "event_id": r["event_id"],
            "registered_at": r["registered_at"].isoformat(),
        }

    def _newest_first(self, rows):
        return sorted(rows, key=lambda r: (r["registered_at"], r["registration_id"]), reverse=True)

    # --- USERS ---
    def get_user(self, user_id):
        u = self.store.users.get(user_id)
        return self._user(u) if u else None

    def get_user_credentials(self, email):
        for u in self.store.users.values():
            if u["email"] == email:
                return dict(self._user(u), password_hash=u["password_hash"])
        return None

    def insert_user(self, name, email, password_hash, phone=None, role="user"):
        if any(u["email"] == email for u in self.store.users.values()):
            raise ConflictError("Email already exists")
        user_id = self.store.next_id("users")
        self.store.users[user_id] = {
            "user_id": user_id, "name": name, "email": email, "password_hash": password_hash,
            "role": role, "phone": phone, "created_at": self.store.now(),
        }
        return self._user(self.store.users[user_id])

    def update_user(self, user_id, fields):
        u = self.store.users.get(user_id)
        if not u:
            return None
        u.update(fields)
        return self._user(u)

    # --- EVENTS ---
    def get_event(self, event_id, lock=None):
        self.store.locks.append((event_id, lock))
        e = self.store.events.get(event_id)
        return self._event(e) if e else None

    def list_events(self, search=None, category=None, date_from=None, date_to=None):
        rows = list(self.store.events.values())
        if search:
            rows = [e for e in rows if search.lower() in e["title"].lower()]
        if category:
            rows = [e for e in rows if e["category"] == category]
        if date_from:
            rows = [e for e in rows if e["date"] >= date_from]
        if date_to:
            rows = [e for e in rows if e["date"] <= date_to]
        rows.sort(key=lambda e: (e["date"], e["event_id"]))
        return [self._event(e) for e in rows]

    def insert_event(self, record, created_by):
        if created_by not in self.store.users:
            raise psycopg2.errors.ForeignKeyViolation("events.created_by")
        event_id = self.store.next_id("events")
        self.store.events[event_id] = dict(
            copy.deepcopy(record), event_id=event_id, created_by=created_by, created_at=self.store.now()
        )
        return self._event(self.store.events[event_id])

    def update_event(self, event_id, changes):
        e = self.store.events.get(event_id)
        if not e:
            return None
        e.update(copy.deepcopy(changes))
        return self._event(e)

    def delete_event(self, event_id):
        if any(r["event_id"] == event_id for r in self.store.registrations.values()):
            raise psycopg2.errors.ForeignKeyViolation("registrations.event_id")
        return 1 if self.store.events.pop(event_id, None) else 0

    # --- REGISTRATIONS ---
    def get_registration(self, registration_id):
        r = self.store.registrations.get(registration_id)
        return self._registration(r) if r else None

    def find_registration(self, user_id, event_id):
        for r in self.store.registrations.values():
            if r["user_id"] == user_id and r["event_id"] == event_id:
                return self._registration(r)
        return None

    def insert_registration(self, user_id, event_id):
        if any(r["user_id"] == user_id and r["event_id"] == event_id for r in self.store.registrations.values()):
            raise ConflictError("You are already registered for this event")
        if event_id not in self.store.events or user_id not in self.store.users:
            raise NotFoundError("Event not found")
        registration_id = self.store.next_id("registrations")
        self.store.registrations[registration_id] = {
            "registration_id": registration_id, "user_id": user_id,
            "event_id": event_id, "registered_at": self.store.now(),
        }
        return self._registration(self.store.registrations[registration_id])

    def get_registration_detail(self, registration_id):
        r = self.store.registrations.get(registration_id)
        if not r:
            return None
        u = self.store.users[r["user_id"]]
        return dict(
            self._registration(r),
            event=self._event(self.store.events[r["event_id"]]),
            user={"name": u["name"], "email": u["email"]},
        )

    def delete_registration(self, registration_id):
        return 1 if self.store.registrations.pop(registration_id, None) else 0

    def delete_registrations_for_event(self, event_id):
        doomed = [k for k, r in self.store.registrations.items() if r["event_id"] == event_id]
        for k in doomed:
            del self.store.registrations[k]
        return len(doomed)

    def registrations_for_user(self, user_id):
        rows = [r for r in self.store.registrations.values() if r["user_id"] == user_id]
        return [
            dict(self._registration(r), event=self._event(self.store.events[r["event_id"]]))
            for r in self._newest_first(rows)
        ]

    def registrations_for_event(self, event_id):
        rows = [r for r in self.store.registrations.values() if r["event_id"] == event_id]
        result = []
        for r in self._newest_first(rows):
            u = self.store.users[r["user_id"]]
            result.append(dict(self._registration(r), user={"name": u["name"], "email": u["email"], "phone": u["phone"]}))
        return result

    # --- STATS / MAINTENANCE ---
    def count_all(self):
        return {
            "total_events": len(self.store.events),
            "total_users": len(self.store.users),
            "total_registrations": len(self.store.registrations),
        }

    def truncate_all(self):
        self.store.users.clear()
        self.store.events.clear()
        self.store.registrations.clear()
        self.store.sequences = {name: itertools.count(1) for name in self.store.sequences}


class InMemoryStore:
    """Entity Store double; a transaction that raises leaves no trace."""

    def __init__(self):
        self.users = {}
        self.events = {}
        self.registrations = {}
        self.sequences = {name: itertools.count(1) for name in ("users", "events", "registrations")}
        self.locks = []
        self._ticks = itertools.count()

    def next_id(self, table):
        return next(self.sequences[table])

    def now(self):
        # Strictly increasing timestamps keep "newest first" deterministic
        return datetime(2025, 1, 1, tzinfo=timezone.utc) + timedelta(seconds=next(self._ticks))

    @contextmanager
    def transaction(self):
        snapshot = copy.deepcopy((self.users, self.events, self.registrations))
        try:
            yield InMemorySession(self)
        except Exception:
            self.users, self.events, self.registrations = snapshot
            raise


# --- FIXTURES ---

@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def app(store):
    app = create_app(store=store)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


def _add_user(store, name, email, role="user", phone=None):
    with store.transaction() as tx:
        user = tx.insert_user(name=name, email=email, password_hash="hashed_secret", phone=phone, role=role)
    return Identity(user_id=user["user_id"], role=role, name=name, email=email)


@pytest.fixture
def admin(store):
    return _add_user(store, "Admin User", "admin@eventhub.com", role="admin", phone="+1 555-0100")


@pytest.fixture
def alice(store):
    return _add_user(store, "Alice Student", "alice@example.com", phone="+1 555-0101")


@pytest.fixture
def bob(store):
    return _add_user(store, "Bob Student", "bob@example.com", phone="+1 555-0102")


@pytest.fixture
def auth_header():
    def _header(identity):
        return {"Authorization": f"Bearer {create_token(identity.user_id, identity.role)}"}
    return _header


@pytest.fixture
def event_payload():
    return {
        "title": "Tech Innovation Summit",
        "description": "Keynotes and workshops",
        "date": "2025-03-01",
        "time": "09:00 AM",
        "category": "Conference",
        "venue": "Main Auditorium",
        "lat": 40.71,
        "lng": -74.00,
        "address": "123 University Ave",
        "capacity": 500,
    }


@pytest.fixture
def make_event(store, admin):
    """Insert an event straight into the store."""
    def _make(title="Sample Event", category="Other", on=date(2025, 3, 1), **extra):
        record = {
            "title": title,
            "description": "Description",
            "date": on,
            "time": "10:00 AM",
            "category": category,
            "venue": "Student Center",
            "location": {"lat": 40.7, "lng": -74.0, "address": None},
            "image": "default-event.jpg",
            "capacity": 100,
        }
        record.update(extra)
        with store.transaction() as tx:
            return tx.insert_event(record, created_by=admin.user_id)
    return _make


@pytest.fixture
def session_class():
    """The store session class, for patching individual operations."""
    return InMemorySession
