"""
SQLite Database Adapter.

Implements the newsletter, content and recipient ports using SQLite.
Structured fields (news ids, categorized items, statistics) are stored
as JSON text columns. Timestamps are ISO-8601 UTC strings.
"""

from __future__ import annotations

import json
import sqlite3
from datetime import UTC, datetime
from typing import Any

from bulletin.domain.entities import (
    ContentItem,
    Newsletter,
    NewsletterStatistics,
    NewsletterStatus,
    Recipient,
)

# -----------------------------------------------------------------------------
# Helper functions
# -----------------------------------------------------------------------------


def dict_factory(cursor: sqlite3.Cursor, row: tuple[Any, ...]) -> dict[str, Any]:
    """Convert SQLite row to dictionary."""
    return {col[0]: row[idx] for idx, col in enumerate(cursor.description)}


def parse_dt(s: str | None) -> datetime | None:
    """Parse ISO datetime string."""
    return datetime.fromisoformat(s) if s else None


def format_dt(dt: datetime | None) -> str | None:
    """Format as ISO UTC so stored timestamps compare as text."""
    if dt is None:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(UTC)
    return dt.isoformat()


def connect(db_path: str) -> sqlite3.Connection:
    """Open a connection configured the way the repositories expect."""
    conn = sqlite3.connect(db_path, check_same_thread=False)
    conn.row_factory = dict_factory
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


# -----------------------------------------------------------------------------
# Base SQLite Repository
# -----------------------------------------------------------------------------


class SQLiteRepoBase:
    """Base class for SQLite repositories."""

    def __init__(self, db_path: str, connection: sqlite3.Connection | None = None):
        self.db_path = db_path
        self._external_conn = connection

    def _get_conn(self) -> sqlite3.Connection:
        """Get database connection (uses external if provided)."""
        if self._external_conn is not None:
            return self._external_conn
        return connect(self.db_path)

    def _should_close(self) -> bool:
        """Whether to close connection after use."""
        return self._external_conn is None

    def _commit(self, conn: sqlite3.Connection) -> None:
        if self._should_close():
            conn.commit()


# -----------------------------------------------------------------------------
# Newsletter Repository
# -----------------------------------------------------------------------------


class SQLiteNewsletterRepo(SQLiteRepoBase):
    """SQLite implementation of NewsletterRepoPort."""

    def find_by_number(self, number: int) -> Newsletter | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM newsletters WHERE number = ?", (number,)
            ).fetchone()
            return self._map_row(row) if row else None
        finally:
            if self._should_close():
                conn.close()

    def save(self, newsletter: Newsletter) -> Newsletter:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO newsletters (
                    number, header_text, news_ids_json, categorized_json,
                    html_content, status, scheduled_at, sent_at,
                    statistics_json, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(number) DO UPDATE SET
                    header_text=excluded.header_text,
                    news_ids_json=excluded.news_ids_json,
                    categorized_json=excluded.categorized_json,
                    html_content=excluded.html_content,
                    status=excluded.status,
                    scheduled_at=excluded.scheduled_at,
                    sent_at=excluded.sent_at,
                    statistics_json=excluded.statistics_json,
                    updated_at=excluded.updated_at
                """,
                (
                    newsletter.number,
                    newsletter.header_text,
                    json.dumps(newsletter.news_ids),
                    json.dumps(
                        {
                            category: [item.model_dump(mode="json") for item in items]
                            for category, items in newsletter.categorized_news.items()
                        }
                    ),
                    newsletter.html_content,
                    newsletter.status.value,
                    format_dt(newsletter.scheduled_at),
                    format_dt(newsletter.sent_at),
                    newsletter.statistics.model_dump_json(),
                    newsletter.created_at.isoformat(),
                    format_dt(newsletter.updated_at),
                ),
            )
            if newsletter.id is None:
                row = conn.execute(
                    "SELECT id FROM newsletters WHERE number = ?", (newsletter.number,)
                ).fetchone()
                newsletter.id = row["id"]
            self._commit(conn)
            return newsletter
        finally:
            if self._should_close():
                conn.close()

    def delete(self, number: int) -> bool:
        conn = self._get_conn()
        try:
            cursor = conn.execute("DELETE FROM newsletters WHERE number = ?", (number,))
            self._commit(conn)
            return cursor.rowcount > 0
        finally:
            if self._should_close():
                conn.close()

    def next_number(self) -> int:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT MAX(number) AS last FROM newsletters").fetchone()
            return (row["last"] or 0) + 1
        finally:
            if self._should_close():
                conn.close()

    def find_ready_to_send(self, now_utc: datetime) -> list[Newsletter]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                """
                SELECT * FROM newsletters
                WHERE status = ? AND scheduled_at IS NOT NULL AND scheduled_at <= ?
                ORDER BY scheduled_at ASC
                """,
                (NewsletterStatus.SCHEDULED.value, format_dt(now_utc)),
            ).fetchall()
            return [self._map_row(r) for r in rows]
        finally:
            if self._should_close():
                conn.close()

    def list_recent(self, limit: int = 20) -> list[Newsletter]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT * FROM newsletters ORDER BY number DESC LIMIT ?", (limit,)
            ).fetchall()
            return [self._map_row(r) for r in rows]
        finally:
            if self._should_close():
                conn.close()

    def _map_row(self, row: dict[str, Any]) -> Newsletter:
        categorized = json.loads(row["categorized_json"] or "{}")
        return Newsletter(
            id=row["id"],
            number=row["number"],
            header_text=row["header_text"],
            news_ids=json.loads(row["news_ids_json"] or "[]"),
            categorized_news={
                category: [ContentItem.model_validate(item) for item in items]
                for category, items in categorized.items()
            },
            html_content=row["html_content"],
            status=NewsletterStatus(row["status"]),
            scheduled_at=parse_dt(row["scheduled_at"]),
            sent_at=parse_dt(row["sent_at"]),
            statistics=NewsletterStatistics.model_validate_json(
                row["statistics_json"] or "{}"
            ),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=parse_dt(row["updated_at"]),
        )


# -----------------------------------------------------------------------------
# Content Repository
# -----------------------------------------------------------------------------


class SQLiteContentRepo(SQLiteRepoBase):
    """SQLite implementation of ContentRepoPort."""

    def find_by_ids(self, ids: list[int]) -> list[ContentItem]:
        if not ids:
            return []
        conn = self._get_conn()
        try:
            placeholders = ",".join("?" for _ in ids)
            rows = conn.execute(
                f"SELECT * FROM news_items WHERE id IN ({placeholders})", tuple(ids)
            ).fetchall()
            return [self._map_row(r) for r in rows]
        finally:
            if self._should_close():
                conn.close()

    def find_available(self, limit: int | None = None) -> list[ContentItem]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                """
                SELECT * FROM news_items
                WHERE post_status = 'publish' AND newsletter_number IS NULL
                ORDER BY created_at DESC
                LIMIT ?
                """,
                (limit if limit is not None else -1,),
            ).fetchall()
            return [self._map_row(r) for r in rows]
        finally:
            if self._should_close():
                conn.close()

    def associate_with_newsletter(self, ids: list[int], number: int) -> int:
        if not ids:
            return 0
        conn = self._get_conn()
        try:
            placeholders = ",".join("?" for _ in ids)
            cursor = conn.execute(
                f"UPDATE news_items SET newsletter_number = ? WHERE id IN ({placeholders})",
                (number, *ids),
            )
            self._commit(conn)
            return cursor.rowcount
        finally:
            if self._should_close():
                conn.close()

    def save(self, item: ContentItem) -> ContentItem:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO news_items (
                    id, title, display_affinity, topical_line, post_status,
                    featured_image_url, newsletter_number, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    title=excluded.title,
                    display_affinity=excluded.display_affinity,
                    topical_line=excluded.topical_line,
                    post_status=excluded.post_status,
                    featured_image_url=excluded.featured_image_url,
                    newsletter_number=excluded.newsletter_number
                """,
                (
                    item.id,
                    item.title,
                    item.display_affinity,
                    item.topical_line,
                    item.post_status,
                    item.featured_image_url,
                    item.newsletter_number,
                    item.created_at.isoformat(),
                ),
            )
            self._commit(conn)
            return item
        finally:
            if self._should_close():
                conn.close()

    def _map_row(self, row: dict[str, Any]) -> ContentItem:
        return ContentItem(
            id=row["id"],
            title=row["title"],
            display_affinity=row["display_affinity"],
            topical_line=row["topical_line"],
            post_status=row["post_status"],
            featured_image_url=row["featured_image_url"],
            newsletter_number=row["newsletter_number"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )


# -----------------------------------------------------------------------------
# Recipient Directory
# -----------------------------------------------------------------------------


class SQLiteRecipientDirectory(SQLiteRepoBase):
    """SQLite implementation of RecipientDirectoryPort (confirmed subscribers)."""

    def find_recipients(self, dependency_ids: list[int] | None = None) -> list[Recipient]:
        sql = "SELECT email, dependency_id FROM subscribers WHERE confirmed = 1"
        params: tuple[Any, ...] = ()
        if dependency_ids:
            sql += f" AND dependency_id IN ({','.join('?' for _ in dependency_ids)})"
            params = tuple(dependency_ids)
        sql += " ORDER BY id ASC"

        conn = self._get_conn()
        try:
            rows = conn.execute(sql, params).fetchall()
            return [
                Recipient(email=r["email"], dependency_id=r["dependency_id"]) for r in rows
            ]
        finally:
            if self._should_close():
                conn.close()

    def add(self, email: str, dependency_id: int, confirmed: bool = True) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO subscribers (email, dependency_id, confirmed)
                VALUES (?, ?, ?)
                ON CONFLICT(email, dependency_id) DO UPDATE SET
                    confirmed=excluded.confirmed
                """,
                (email, dependency_id, int(confirmed)),
            )
            self._commit(conn)
        finally:
            if self._should_close():
                conn.close()
