"""
Repository interfaces for newsletters, content and recipients.

Implementations: SQLite (bulletin.adapters.sqlite_db), in-memory mocks in tests.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from bulletin.domain.entities import ContentItem, Newsletter, Recipient

# -----------------------------------------------------------------------------
# Newsletter Repository
# -----------------------------------------------------------------------------


class NewsletterRepoPort(Protocol):
    """
    Repository for newsletter aggregates.

    Invariants:
    - number is unique; next_number() is last number + 1
    - deletion is explicit only
    """

    def find_by_number(self, number: int) -> Newsletter | None:
        """Get newsletter by its sequence number."""
        ...

    def save(self, newsletter: Newsletter) -> Newsletter:
        """Insert or update; assigns ``id`` on first save."""
        ...

    def delete(self, number: int) -> bool:
        """Delete newsletter by number. Returns False if absent."""
        ...

    def next_number(self) -> int:
        """Next free sequence number."""
        ...

    def find_ready_to_send(self, now_utc: datetime) -> list[Newsletter]:
        """Scheduled newsletters whose scheduled_at is at or before now."""
        ...


# -----------------------------------------------------------------------------
# Content Repository
# -----------------------------------------------------------------------------


class ContentRepoPort(Protocol):
    """Read access to editorial content items."""

    def find_by_ids(self, ids: list[int]) -> list[ContentItem]:
        """Get items by id. Missing ids are skipped; order is unspecified."""
        ...

    def find_available(self, limit: int | None = None) -> list[ContentItem]:
        """Published items not yet attached to a newsletter."""
        ...

    def associate_with_newsletter(self, ids: list[int], number: int) -> int:
        """Mark items as used by newsletter ``number``. Returns rows updated."""
        ...


# -----------------------------------------------------------------------------
# Recipient Directory
# -----------------------------------------------------------------------------


class RecipientDirectoryPort(Protocol):
    """Subscribers who can currently receive email."""

    def find_recipients(self, dependency_ids: list[int] | None = None) -> list[Recipient]:
        """
        List confirmed recipients.

        Args:
            dependency_ids: Restrict to these groups; None means all groups.
        """
        ...
