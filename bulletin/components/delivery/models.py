"""
Delivery component models.

Send requests, batch descriptions and the aggregated delivery result.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from bulletin.components.composition.models import ComposeInput
from bulletin.domain.entities import DEFAULT_SUBJECT_TEMPLATE, Recipient
from bulletin.rules.models import Rules

# --- Configuration ---


@dataclass(frozen=True)
class DeliveryConfig:
    """Delivery policy. Built from rules; defaults match rules.yaml."""

    batch_size: int = 300
    second_batch_delay_hours: int = 24
    lock_ttl_seconds: int = 900
    list_name_template: str = "Newsletter #{number} - Batch {batch} - {timestamp}"
    subject_template: str = DEFAULT_SUBJECT_TEMPLATE

    @classmethod
    def from_rules(cls, rules: Rules) -> DeliveryConfig:
        return cls(
            batch_size=rules.delivery.batch_size,
            second_batch_delay_hours=rules.delivery.second_batch_delay_hours,
            lock_ttl_seconds=rules.delivery.lock_ttl_seconds,
            list_name_template=rules.delivery.list_name_template,
            subject_template=rules.newsletter.subject_template,
        )


# --- Input Models ---


@dataclass(frozen=True)
class SendFilters:
    """Recipient filters. ``dependencies`` None means every group."""

    dependencies: tuple[int, ...] | None = None
    limit: int | None = None


@dataclass(frozen=True)
class SendRequest:
    """Input for sending (or scheduling) a newsletter."""

    newsletter_number: int
    html: str | None = None
    filters: SendFilters = field(default_factory=SendFilters)
    scheduled_at: datetime | None = None


@dataclass(frozen=True)
class CancelRequest:
    newsletter_number: int


@dataclass(frozen=True)
class ComposeAndSendRequest:
    """Compose a newsletter, then send or schedule it."""

    compose: ComposeInput
    filters: SendFilters = field(default_factory=SendFilters)
    scheduled_at: datetime | None = None


@dataclass(frozen=True)
class SendDueRequest:
    """Dispatch every scheduled newsletter due at ``now`` (None = clock)."""

    now: datetime | None = None


# --- Internal ---


@dataclass
class DeliveryBatch:
    """One provider campaign covering a slice of the recipients."""

    index: int
    recipients: list[Recipient]
    send_at: datetime | None = None

    @property
    def key(self) -> str:
        return f"batch{self.index}"

    @property
    def size(self) -> int:
        return len(self.recipients)


# --- Output Models ---


@dataclass(frozen=True)
class DeliveryResult:
    """Aggregated outcome of a send, schedule or cancel request."""

    success: bool
    recipient_count: int = 0
    sent_count: int = 0
    errors: list[str] = field(default_factory=list)
    statistics: dict[str, Any] = field(default_factory=dict)
    error_code: str | None = None

    @classmethod
    def succeeded(
        cls,
        recipient_count: int,
        sent_count: int,
        statistics: dict[str, Any] | None = None,
        errors: list[str] | None = None,
    ) -> DeliveryResult:
        return cls(
            success=True,
            recipient_count=recipient_count,
            sent_count=sent_count,
            errors=errors or [],
            statistics=statistics or {},
        )

    @classmethod
    def failed(
        cls,
        errors: list[str],
        recipient_count: int = 0,
        statistics: dict[str, Any] | None = None,
        error_code: str | None = None,
    ) -> DeliveryResult:
        return cls(
            success=False,
            recipient_count=recipient_count,
            sent_count=0,
            errors=errors,
            statistics=statistics or {},
            error_code=error_code,
        )

    @property
    def failed_count(self) -> int:
        return self.recipient_count - self.sent_count

    @property
    def failure_rate(self) -> float:
        """Percentage of recipients not sent, rounded to two decimals."""
        if self.recipient_count == 0:
            return 0.0
        return round(self.failed_count / self.recipient_count * 100, 2)

    @property
    def is_partial(self) -> bool:
        return self.success and self.failed_count > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "recipient_count": self.recipient_count,
            "sent_count": self.sent_count,
            "failed_count": self.failed_count,
            "failure_rate": self.failure_rate,
            "is_partial": self.is_partial,
            "errors": list(self.errors),
            "statistics": dict(self.statistics),
            "error_code": self.error_code,
        }


@dataclass(frozen=True)
class SendDueOutput:
    """Results keyed by newsletter number."""

    results: dict[int, DeliveryResult] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return all(r.success for r in self.results.values())
