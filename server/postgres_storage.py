"""PostgreSQL storage implementation."""

import json
import logging
import os
import psycopg2
from psycopg2.extras import RealDictCursor

from core.interfaces import Storage

logger = logging.getLogger(__name__)


class PostgresStorage(Storage):
    """PostgreSQL-based key-value storage, one row per (player, key).

    Connection or query errors are logged and degrade like an unavailable
    store: reads return the default, writes return False.
    """

    def __init__(self, db_url: str = None):
        self.db_url = db_url or os.environ.get(
            'DATABASE_URL',
            'postgresql://localhost:5432/prompt_battle'
        )
        self._conn = None
        self._initialized = False

    @property
    def conn(self):
        """Lazy connection initialization."""
        if self._conn is None or self._conn.closed:
            self._conn = psycopg2.connect(self.db_url)
            if not self._initialized:
                self._init_db()
                self._initialized = True
        return self._conn

    def _init_db(self):
        """Create tables if they don't exist."""
        with self._conn.cursor() as cur:
            cur.execute("""
                CREATE TABLE IF NOT EXISTS kv_store (
                    user_id VARCHAR(255) NOT NULL,
                    key VARCHAR(255) NOT NULL,
                    value JSONB NOT NULL,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    PRIMARY KEY (user_id, key)
                )
            """)
            cur.execute("""
                CREATE INDEX IF NOT EXISTS idx_kv_store_updated
                ON kv_store(updated_at)
            """)
        self._conn.commit()

    def close(self):
        """Close the database connection."""
        if self._conn and not self._conn.closed:
            self._conn.close()

    def _rollback(self):
        if self._conn is not None and not self._conn.closed:
            self._conn.rollback()

    def get(self, key: str, default=None, user_id: str = "default"):
        try:
            with self.conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(
                    "SELECT value FROM kv_store WHERE user_id = %s AND key = %s",
                    (user_id, key)
                )
                row = cur.fetchone()
                if row:
                    return row['value']
                return default
        except psycopg2.Error as e:
            logger.error(f"Error loading '{key}': {e}")
            self._rollback()
            return default

    def set(self, key: str, value, user_id: str = "default") -> bool:
        try:
            with self.conn.cursor() as cur:
                cur.execute("""
                    INSERT INTO kv_store (user_id, key, value, updated_at)
                    VALUES (%s, %s, %s, CURRENT_TIMESTAMP)
                    ON CONFLICT (user_id, key)
                    DO UPDATE SET value = EXCLUDED.value, updated_at = CURRENT_TIMESTAMP
                """, (user_id, key, json.dumps(value)))
            self.conn.commit()
            return True
        except (psycopg2.Error, TypeError, ValueError) as e:
            logger.error(f"Error saving '{key}': {e}")
            self._rollback()
            return False

    def remove(self, key: str, user_id: str = "default") -> bool:
        try:
            with self.conn.cursor() as cur:
                cur.execute(
                    "DELETE FROM kv_store WHERE user_id = %s AND key = %s",
                    (user_id, key)
                )
            self.conn.commit()
            return True
        except psycopg2.Error as e:
            logger.error(f"Error removing '{key}': {e}")
            self._rollback()
            return False

    def exists(self, key: str, user_id: str = "default") -> bool:
        try:
            with self.conn.cursor() as cur:
                cur.execute(
                    "SELECT 1 FROM kv_store WHERE user_id = %s AND key = %s",
                    (user_id, key)
                )
                return cur.fetchone() is not None
        except psycopg2.Error as e:
            logger.error(f"Error checking '{key}': {e}")
            self._rollback()
            return False

    def clear(self, user_id: str = "default") -> bool:
        try:
            with self.conn.cursor() as cur:
                cur.execute("DELETE FROM kv_store WHERE user_id = %s", (user_id,))
            self.conn.commit()
            return True
        except psycopg2.Error as e:
            logger.error(f"Error clearing data for {user_id}: {e}")
            self._rollback()
            return False

    def keys(self, user_id: str = "default") -> list[str]:
        try:
            with self.conn.cursor() as cur:
                cur.execute(
                    "SELECT key FROM kv_store WHERE user_id = %s ORDER BY key",
                    (user_id,)
                )
                return [row[0] for row in cur.fetchall()]
        except psycopg2.Error as e:
            logger.error(f"Error listing keys: {e}")
            self._rollback()
            return []

    def list_users(self) -> list[str]:
        """List all players with stored data."""
        try:
            with self.conn.cursor() as cur:
                cur.execute("SELECT DISTINCT user_id FROM kv_store ORDER BY user_id")
                return [row[0] for row in cur.fetchall()]
        except psycopg2.Error as e:
            logger.error(f"Error listing users: {e}")
            self._rollback()
            return []
