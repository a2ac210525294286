"""SQLite settings store for recipients and their feed watermark."""

import json
import logging
import os
import sqlite3
from typing import Iterable, List, Optional

from .constants import sort_categories, sort_exp_levels
from .models import Recipient

logger = logging.getLogger(__name__)

SCHEMA = """
    CREATE TABLE IF NOT EXISTS users (
        chat_id TEXT PRIMARY KEY,
        categories TEXT,
        exp_levels TEXT NOT NULL DEFAULT '[]',
        is_active INTEGER NOT NULL DEFAULT 1,
        last_job_link TEXT,
        created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
        updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
"""


def parse_categories(raw_value: Optional[str]) -> List[str]:
    """
    Read a stored categories column.

    Accepts a JSON list, a JSON string or a bare string written by older
    versions that stored a single category.
    """
    if not raw_value:
        return []
    try:
        parsed = json.loads(raw_value)
    except ValueError:
        return sort_categories([raw_value])

    if isinstance(parsed, list):
        return sort_categories(value for value in parsed if isinstance(value, str))
    if isinstance(parsed, str):
        return sort_categories([parsed])
    return sort_categories([raw_value])


def parse_exp_levels(raw_value: Optional[str]) -> List[str]:
    if not raw_value:
        return []
    try:
        parsed = json.loads(raw_value)
    except ValueError:
        return []
    if not isinstance(parsed, list):
        return []
    return [value for value in parsed if isinstance(value, str)]


class SettingsStore:
    """Persistent per-chat settings backed by one SQLite file."""

    def __init__(self, db_path: str):
        """
        Open the database and create tables if they don't exist.

        Args:
            db_path: Path to the SQLite database file, or ":memory:".
        """
        if db_path != ":memory:":
            directory = os.path.dirname(os.path.abspath(db_path))
            os.makedirs(directory, exist_ok=True)
        self.db_path = db_path
        self.conn = sqlite3.connect(db_path)
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA journal_mode = WAL")
        self.conn.execute(SCHEMA)
        self.conn.commit()

    def close(self) -> None:
        self.conn.close()

    def _write(self, sql: str, params: tuple) -> None:
        self.conn.execute(sql, params)
        self.conn.commit()

    def ensure(self, chat_id) -> None:
        """Create the settings row for a chat if it does not exist yet."""
        self._write("INSERT OR IGNORE INTO users (chat_id) VALUES (?)", (str(chat_id),))

    def get(self, chat_id) -> Optional[Recipient]:
        """
        Load one recipient.

        Args:
            chat_id: Chat identity.

        Returns:
            The Recipient, or None if the chat never interacted.
        """
        row = self.conn.execute(
            "SELECT * FROM users WHERE chat_id = ?", (str(chat_id),)
        ).fetchone()
        return self._to_recipient(row) if row else None

    def list_configured(self) -> List[Recipient]:
        """Active recipients with at least one category filter, oldest first."""
        rows = self.conn.execute(
            "SELECT * FROM users WHERE is_active = 1 AND categories IS NOT NULL "
            "ORDER BY created_at, chat_id"
        ).fetchall()
        recipients = [self._to_recipient(row) for row in rows]
        return [recipient for recipient in recipients if recipient.is_configured]

    def save_category_filters(self, chat_id, categories: Iterable[str]) -> None:
        """
        Store category filters. An empty selection is stored as NULL.

        Args:
            chat_id: Chat identity.
            categories: Category selectors; the "all" sentinel wins over the rest.
        """
        normalized = sort_categories(categories)
        payload = json.dumps(normalized) if normalized else None
        self._write(
            """
            INSERT INTO users (chat_id, categories, updated_at)
            VALUES (?, ?, CURRENT_TIMESTAMP)
            ON CONFLICT(chat_id) DO UPDATE SET
                categories = excluded.categories,
                updated_at = CURRENT_TIMESTAMP
            """,
            (str(chat_id), payload),
        )

    def save_exp_filters(self, chat_id, exp_levels: Iterable[str]) -> None:
        """Store experience level filters. An empty list means no filter."""
        self._write(
            """
            INSERT INTO users (chat_id, exp_levels, updated_at)
            VALUES (?, ?, CURRENT_TIMESTAMP)
            ON CONFLICT(chat_id) DO UPDATE SET
                exp_levels = excluded.exp_levels,
                updated_at = CURRENT_TIMESTAMP
            """,
            (str(chat_id), json.dumps(sort_exp_levels(exp_levels))),
        )

    def set_active(self, chat_id, is_active: bool) -> None:
        self._write(
            "UPDATE users SET is_active = ?, updated_at = CURRENT_TIMESTAMP WHERE chat_id = ?",
            (1 if is_active else 0, str(chat_id)),
        )

    def set_watermark(self, chat_id, link: Optional[str]) -> None:
        """Store the normalized link of the newest delivered item."""
        self._write(
            "UPDATE users SET last_job_link = ?, updated_at = CURRENT_TIMESTAMP WHERE chat_id = ?",
            (link, str(chat_id)),
        )

    @staticmethod
    def _to_recipient(row: sqlite3.Row) -> Recipient:
        return Recipient(
            chat_id=row["chat_id"],
            categories=parse_categories(row["categories"]),
            exp_levels=parse_exp_levels(row["exp_levels"]),
            is_active=row["is_active"] == 1,
            last_job_link=row["last_job_link"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
