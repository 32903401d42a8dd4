import pytest
from datetime import date, datetime, timezone
from unittest.mock import MagicMock

import psycopg2.errors

from backend.common.errors import ConflictError, NotFoundError
from backend.database.store import EntityStore, StoreSession, event_from_row


@pytest.fixture
def mock_conn():
    mock_conn = MagicMock()
    mock_cursor = MagicMock()
    mock_cursor.__enter__.return_value = mock_cursor
    mock_cursor.__exit__.return_value = None
    mock_conn.cursor.return_value = mock_cursor
    return mock_conn


@pytest.fixture
def mock_cursor(mock_conn):
    return mock_conn.cursor.return_value


def event_row(**overrides):
    row = {
        "event_id": 1,
        "title": "Test Event",
        "description": "Desc",
        "event_date": date(2025, 1, 5),
        "event_time": "08:00 AM",
        "category": "Sports",
        "venue": "Sports Complex",
        "location_lat": 40.7614,
        "location_lng": -73.9776,
        "location_address": "321 Athletic Way",
        "image": "default-event.jpg",
        "capacity": 300,
        "created_at": datetime(2024, 12, 1, 9, 0, tzinfo=timezone.utc),
        "created_by": 7,
        "creator_name": "Admin User",
        "creator_email": "admin@eventhub.com",
    }
    row.update(overrides)
    return row


def test_transaction_commits_and_closes(mock_conn):
    store = EntityStore(connect=lambda: mock_conn)

    with store.transaction() as tx:
        assert isinstance(tx, StoreSession)

    mock_conn.commit.assert_called_once()
    mock_conn.rollback.assert_not_called()
    mock_conn.close.assert_called_once()


def test_transaction_rolls_back_on_error(mock_conn):
    store = EntityStore(connect=lambda: mock_conn)

    with pytest.raises(NotFoundError):
        with store.transaction():
            raise NotFoundError("Event not found")

    mock_conn.rollback.assert_called_once()
    mock_conn.commit.assert_not_called()
    mock_conn.close.assert_called_once()


def test_event_from_row():
    event = event_from_row(event_row())

    assert event["date"] == "2025-01-05"
    assert event["time"] == "08:00 AM"
    assert event["location"] == {"lat": 40.7614, "lng": -73.9776, "address": "321 Athletic Way"}
    assert event["created_by"] == {"user_id": 7, "name": "Admin User", "email": "admin@eventhub.com"}
    assert event["created_at"] == "2024-12-01T09:00:00+00:00"


@pytest.mark.parametrize("lock, clause", [(None, None), ("share", "FOR SHARE OF e"), ("update", "FOR UPDATE OF e")])
def test_get_event_lock_clause(mock_cursor, lock, clause):
    mock_cursor.fetchone.return_value = event_row()

    event = StoreSession(mock_cursor).get_event(1, lock=lock)

    sql, params = mock_cursor.execute.call_args[0]
    assert params == (1,)
    assert event["title"] == "Test Event"
    if clause:
        assert clause in sql
    else:
        assert "FOR " not in sql


def test_get_event_missing(mock_cursor):
    mock_cursor.fetchone.return_value = None
    assert StoreSession(mock_cursor).get_event(2) is None


def test_list_events_filters(mock_cursor):
    mock_cursor.fetchall.return_value = [event_row()]

    events = StoreSession(mock_cursor).list_events(
        search="100%_off", category="Sports", date_from=date(2025, 1, 1), date_to=date(2025, 1, 31)
    )

    sql, params = mock_cursor.execute.call_args[0]
    assert "e.title ILIKE %s" in sql
    assert "e.category = %s" in sql
    assert "e.event_date >= %s" in sql
    assert "e.event_date <= %s" in sql
    assert "ORDER BY e.event_date ASC" in sql
    assert params == ["%100\\%\\_off%", "Sports", date(2025, 1, 1), date(2025, 1, 31)]
    assert len(events) == 1


def test_list_events_without_filters(mock_cursor):
    mock_cursor.fetchall.return_value = []

    assert StoreSession(mock_cursor).list_events() == []
    sql, params = mock_cursor.execute.call_args[0]
    assert params == []
    assert "ILIKE" not in sql


def test_insert_registration_duplicate(mock_cursor):
    mock_cursor.execute.side_effect = psycopg2.errors.UniqueViolation()

    with pytest.raises(ConflictError):
        StoreSession(mock_cursor).insert_registration(1, 2)


def test_insert_registration_missing_event(mock_cursor):
    mock_cursor.execute.side_effect = psycopg2.errors.ForeignKeyViolation()

    with pytest.raises(NotFoundError):
        StoreSession(mock_cursor).insert_registration(1, 2)


def test_insert_registration(mock_cursor):
    registered_at = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)
    mock_cursor.fetchone.return_value = {
        "registration_id": 9, "user_id": 1, "event_id": 2, "registered_at": registered_at
    }

    registration = StoreSession(mock_cursor).insert_registration(1, 2)

    assert registration == {
        "registration_id": 9, "user_id": 1, "event_id": 2, "registered_at": "2025-01-01T12:00:00+00:00"
    }
    assert mock_cursor.execute.call_args[0][1] == (1, 2)


def test_insert_user_duplicate_email(mock_cursor):
    mock_cursor.execute.side_effect = psycopg2.errors.UniqueViolation()

    with pytest.raises(ConflictError) as exc:
        StoreSession(mock_cursor).insert_user("A", "a@example.com", "hash")
    assert exc.value.message == "Email already exists"


def test_delete_registrations_for_event(mock_cursor):
    mock_cursor.rowcount = 3

    assert StoreSession(mock_cursor).delete_registrations_for_event(5) == 3
    sql, params = mock_cursor.execute.call_args[0]
    assert sql.startswith("DELETE FROM registrations WHERE event_id")
    assert params == (5,)


def test_update_event_replaces_location_columns(mock_cursor):
    mock_cursor.fetchone.return_value = event_row()

    StoreSession(mock_cursor).update_event(1, {
        "title": "New", "location": {"lat": 1.5, "lng": 2.5, "address": None},
    })

    sql, values = mock_cursor.execute.call_args_list[0][0]
    assert "title = %s" in sql
    assert "location_lat = %s, location_lng = %s, location_address = %s" in sql
    assert values == ["New", 1.5, 2.5, None, 1]


def test_registrations_for_event_populates_contact(mock_cursor):
    mock_cursor.fetchall.return_value = [{
        "registration_id": 4, "user_id": 3, "event_id": 1,
        "registered_at": datetime(2025, 1, 2, tzinfo=timezone.utc),
        "name": "Jane Smith", "email": "jane@example.com", "phone": "+1 555-0102",
    }]

    registrations = StoreSession(mock_cursor).registrations_for_event(1)

    sql = mock_cursor.execute.call_args[0][0]
    assert "ORDER BY r.registered_at DESC" in sql
    assert registrations[0]["user"] == {"name": "Jane Smith", "email": "jane@example.com", "phone": "+1 555-0102"}


def test_count_all(mock_cursor):
    mock_cursor.fetchone.return_value = {"total_events": 7, "total_users": 4, "total_registrations": 5}
    assert StoreSession(mock_cursor).count_all() == {
        "total_events": 7, "total_users": 4, "total_registrations": 5
    }
