"""
Create the database schema.

Run once against an empty database (re-running is harmless, every
statement is IF NOT EXISTS):

    python -m backend.database.init_db

Registrations carry a UNIQUE (user_id, event_id) constraint so that two
concurrent registrations for the same pair cannot both commit, and a plain
foreign key to events so a registration can never point at a deleted event.
There is no ON DELETE CASCADE: event deletion purges registrations itself.
"""

import logging
import sys
from typing import Any, Callable

from backend.auth_service.models import USER_ROLES
from backend.database.db_connection import get_db
from backend.events_service.models import EVENT_CATEGORIES

logger = logging.getLogger(__name__)


def _sql_list(values) -> str:
    return ", ".join(f"'{v}'" for v in values)


SCHEMA_SQL = f"""
CREATE TABLE IF NOT EXISTS users (
    user_id SERIAL PRIMARY KEY,
    name VARCHAR(120) NOT NULL,
    email TEXT NOT NULL UNIQUE,
    password_hash TEXT NOT NULL,
    role VARCHAR(20) NOT NULL DEFAULT 'user' CHECK (role IN ({_sql_list(USER_ROLES)})),
    phone TEXT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMPTZ
);

CREATE TABLE IF NOT EXISTS events (
    event_id SERIAL PRIMARY KEY,
    title VARCHAR(200) NOT NULL,
    description TEXT NOT NULL,
    event_date DATE NOT NULL,
    event_time TEXT NOT NULL,
    category VARCHAR(20) NOT NULL CHECK (category IN ({_sql_list(EVENT_CATEGORIES)})),
    venue TEXT NOT NULL,
    location_lat DOUBLE PRECISION NOT NULL,
    location_lng DOUBLE PRECISION NOT NULL,
    location_address TEXT,
    image TEXT NOT NULL DEFAULT 'default-event.jpg',
    capacity INTEGER NOT NULL DEFAULT 100 CHECK (capacity > 0),
    created_by INTEGER NOT NULL REFERENCES users (user_id),
    created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMPTZ
);

CREATE INDEX IF NOT EXISTS events_event_date_idx ON events (event_date);

CREATE TABLE IF NOT EXISTS registrations (
    registration_id SERIAL PRIMARY KEY,
    user_id INTEGER NOT NULL REFERENCES users (user_id),
    event_id INTEGER NOT NULL REFERENCES events (event_id),
    registered_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    CONSTRAINT registrations_user_event_key UNIQUE (user_id, event_id)
);

CREATE INDEX IF NOT EXISTS registrations_event_id_idx ON registrations (event_id);
"""


def init_db(connect: Callable[[], Any] = get_db) -> None:
    """
    Apply SCHEMA_SQL in a single transaction.

    Args:
        connect (callable): Connection factory, defaults to get_db.
    """
    conn = connect()
    try:
        with conn.cursor() as cur:
            cur.execute(SCHEMA_SQL)
        conn.commit()
        logger.info("Database schema is up to date.")
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(asctime)s - %(message)s")
    try:
        init_db()
    except Exception as e:
        logger.error(f"Schema creation FAILED: {e}")
        sys.exit(1)
