"""
Error taxonomy for composition, lifecycle and delivery.

Every error carries a stable ``code`` used in result payloads and
when mapping failures to HTTP responses.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from bulletin.domain.entities import ContentItem, NewsletterStatus


class BulletinError(Exception):
    """Base error."""

    code = "bulletin_error"


# --- Allocator ---


class ContentNotEligible(BulletinError):
    """A selected item is not published."""

    code = "content_not_eligible"

    def __init__(self, item_id: int, title: str) -> None:
        self.item_id = item_id
        self.title = title
        super().__init__(
            f"News item '{title}' is not published and cannot be added to a newsletter"
        )


class CapacityExceeded(BulletinError):
    """Every slot category is full."""

    code = "capacity_exceeded"

    def __init__(
        self,
        overflow: list[ContentItem],
        allocated: dict[str, list[ContentItem]],
    ) -> None:
        self.overflow = overflow
        self.allocated = allocated
        super().__init__(
            f"Cannot add {len(overflow)} more news item(s): "
            "all categories are at their limits"
        )


# --- Lifecycle ---


class IllegalTransition(BulletinError):
    code = "illegal_transition"

    def __init__(self, current: NewsletterStatus, attempted: NewsletterStatus) -> None:
        self.current = current
        self.attempted = attempted
        super().__init__(
            f"Illegal transition from {current.name} to {attempted.name}"
        )


class InvalidScheduleTime(BulletinError):
    code = "invalid_schedule_time"

    def __init__(
        self, scheduled_at: datetime, now: datetime, reason: str | None = None
    ) -> None:
        self.scheduled_at = scheduled_at
        self.now = now
        super().__init__(
            f"{reason or 'Scheduled time must be in the future'} "
            f"(got {scheduled_at.isoformat()}, now {now.isoformat()})"
        )


# --- Orchestrator ---


class NewsletterNotFound(BulletinError):
    code = "newsletter_not_found"

    def __init__(self, number: int) -> None:
        self.number = number
        super().__init__(f"Newsletter #{number} not found")


class NotSendable(BulletinError):
    code = "not_sendable"

    def __init__(self, number: int, reason: str) -> None:
        self.number = number
        self.reason = reason
        super().__init__(f"Newsletter #{number} cannot be sent: {reason}")


class NoRecipients(BulletinError):
    code = "no_recipients"

    def __init__(self) -> None:
        super().__init__("No recipients found")


class AlreadySending(BulletinError):
    code = "already_sending"

    def __init__(self, number: int) -> None:
        self.number = number
        super().__init__(f"Newsletter #{number} is already being sent")


class ProviderFailure(BulletinError):
    """The messaging provider rejected or failed a request."""

    code = "provider_failure"

    def __init__(self, operation: str, reason: str, retriable: bool = True) -> None:
        self.operation = operation
        self.reason = reason
        self.retriable = retriable
        super().__init__(f"Provider {operation} failed: {reason}")
