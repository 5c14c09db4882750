"""
Newsletter lifecycle state machine.

    DRAFT ──► SCHEDULED ──► SENDING ──► SENT
      │           │            ▲  │
      │           ▼            │  ▼
      │       CANCELLED        └─ FAILED
      └──────────────────────►┘

Transitions mutate the newsletter in place and are the only place the
status, timestamps and statistics change. Disallowed transitions raise
IllegalTransition; nothing is silently ignored.
"""

from __future__ import annotations

import logging
from datetime import datetime

from bulletin.domain.entities import Newsletter, NewsletterStatistics, NewsletterStatus
from bulletin.domain.errors import IllegalTransition, InvalidScheduleTime

logger = logging.getLogger(__name__)

DRAFT = NewsletterStatus.DRAFT
SCHEDULED = NewsletterStatus.SCHEDULED
SENDING = NewsletterStatus.SENDING
SENT = NewsletterStatus.SENT
FAILED = NewsletterStatus.FAILED
CANCELLED = NewsletterStatus.CANCELLED

VALID_TRANSITIONS: dict[NewsletterStatus, frozenset[NewsletterStatus]] = {
    DRAFT: frozenset({SCHEDULED, SENDING}),
    SCHEDULED: frozenset({SENDING, CANCELLED}),
    SENDING: frozenset({SENT, FAILED}),
    FAILED: frozenset({SENDING}),  # retry
    SENT: frozenset(),
    CANCELLED: frozenset(),
}

EDITABLE_STATUSES = frozenset({DRAFT, SCHEDULED})
SENDABLE_STATUSES = frozenset({DRAFT, SCHEDULED, FAILED})
CANCELLABLE_STATUSES = frozenset({SCHEDULED, SENDING})
FINAL_STATUSES = frozenset({SENT, CANCELLED})

ACTIVE_STATUSES = (DRAFT, SCHEDULED, SENDING)
COMPLETED_STATUSES = (SENT, FAILED, CANCELLED)


# --- Guards ---


def can_transition(current: NewsletterStatus, new: NewsletterStatus) -> bool:
    return new in VALID_TRANSITIONS.get(current, frozenset())


def can_edit(status: NewsletterStatus) -> bool:
    return status in EDITABLE_STATUSES


def can_send(status: NewsletterStatus) -> bool:
    """Status-level check only; the orchestrator also requires rendered HTML."""
    return status in SENDABLE_STATUSES


def can_cancel(status: NewsletterStatus) -> bool:
    return status in CANCELLABLE_STATUSES


def is_final(status: NewsletterStatus) -> bool:
    return status in FINAL_STATUSES


# --- Transitions ---


def transition(
    newsletter: Newsletter,
    new_status: NewsletterStatus,
    now: datetime,
) -> Newsletter:
    """Move to ``new_status`` if the edge exists in VALID_TRANSITIONS."""
    current = newsletter.status
    if not can_transition(current, new_status):
        raise IllegalTransition(current, new_status)

    newsletter.status = new_status
    newsletter.updated_at = now
    logger.info(
        "Newsletter #%s: %s -> %s", newsletter.number, current.name, new_status.name
    )
    return newsletter


def schedule(newsletter: Newsletter, when: datetime, now: datetime) -> Newsletter:
    """
    Schedule the newsletter for ``when``.

    The time check comes first so a past time is always reported as
    InvalidScheduleTime whatever the state. An already scheduled
    newsletter is re-timed in place. ``when`` must carry a UTC offset.
    """
    if when.tzinfo is None or when.utcoffset() is None:
        raise InvalidScheduleTime(when, now, "Scheduled time needs a UTC offset")

    if when <= now:
        raise InvalidScheduleTime(when, now)

    if not can_edit(newsletter.status):
        raise IllegalTransition(newsletter.status, SCHEDULED)

    if newsletter.status != SCHEDULED:
        transition(newsletter, SCHEDULED, now)

    newsletter.scheduled_at = when
    newsletter.updated_at = now
    return newsletter


def mark_as_sending(newsletter: Newsletter, now: datetime) -> Newsletter:
    # Re-checked here, not only by the caller, so a concurrent status
    # change between check and transition still fails.
    if not can_send(newsletter.status):
        raise IllegalTransition(newsletter.status, SENDING)
    return transition(newsletter, SENDING, now)


def mark_as_sent(
    newsletter: Newsletter,
    statistics: NewsletterStatistics | None,
    now: datetime,
) -> Newsletter:
    transition(newsletter, SENT, now)
    newsletter.sent_at = now
    if statistics is not None:
        newsletter.statistics = newsletter.statistics.merged(statistics)
    return newsletter


def mark_as_failed(
    newsletter: Newsletter,
    reason: str,
    now: datetime,
    statistics: NewsletterStatistics | None = None,
) -> Newsletter:
    """Record the failure reason, keeping any partial statistics already present."""
    transition(newsletter, FAILED, now)
    stats = newsletter.statistics
    if statistics is not None:
        stats = stats.merged(statistics)
    newsletter.statistics = stats.merged(NewsletterStatistics(failure_reason=reason))
    return newsletter


def cancel(newsletter: Newsletter, now: datetime) -> Newsletter:
    if not can_cancel(newsletter.status):
        raise IllegalTransition(newsletter.status, CANCELLED)
    return transition(newsletter, CANCELLED, now)
