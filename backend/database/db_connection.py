"""
PostgreSQL connection helper.
Provides get_db() for the Entity Store.
"""

import logging

import psycopg2
from psycopg2.extras import DictCursor

from backend import config

logger = logging.getLogger(__name__)


def get_db():
    """
    Returns a new psycopg2 connection with dictionary-based row access.

    The caller owns the connection and must commit/rollback and close it;
    EntityStore.transaction() does this for all service code.

    Returns:
        psycopg2.extensions.connection: A connection object with DictCursor factory.

    Raises:
        RuntimeError: If DATABASE_URL is not configured.
        psycopg2.Error: If connection fails.
    """
    if not config.DATABASE_URL:
        raise RuntimeError("DATABASE_URL is not set. Please set the environment variable.")

    try:
        conn = psycopg2.connect(config.DATABASE_URL)
        # Rows come back as dictionaries (e.g., {"user_id": 1, "email": "..."})
        conn.cursor_factory = DictCursor
        return conn
    except psycopg2.Error as e:
        logger.error(f"Error connecting to database: {e}")
        raise
