"""Presentation table for newsletter statuses (labels and badge colors)."""

from __future__ import annotations

from typing import NamedTuple

from bulletin.domain.entities import NewsletterStatus


class StatusDisplay(NamedTuple):
    label: str
    color: str


STATUS_DISPLAY: dict[NewsletterStatus, StatusDisplay] = {
    NewsletterStatus.DRAFT: StatusDisplay("Draft", "#6c757d"),
    NewsletterStatus.SCHEDULED: StatusDisplay("Scheduled", "#17a2b8"),
    NewsletterStatus.SENDING: StatusDisplay("Sending", "#ffc107"),
    NewsletterStatus.SENT: StatusDisplay("Sent", "#28a745"),
    NewsletterStatus.FAILED: StatusDisplay("Failed", "#dc3545"),
    NewsletterStatus.CANCELLED: StatusDisplay("Cancelled", "#6c757d"),
}


def status_label(status: NewsletterStatus) -> str:
    return STATUS_DISPLAY[status].label


def status_color(status: NewsletterStatus) -> str:
    return STATUS_DISPLAY[status].color
