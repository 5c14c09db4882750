"""
Delivery orchestration.

Sends a newsletter to its recipients through the messaging provider,
splitting large audiences into an immediate first batch and a delayed
second batch.

Key behaviors:
- At most one send per newsletter at a time (lease lock)
- Content and status are checked before any provider call
- Batches are submitted independently; one failing batch does not
  undo or block the other
- Every send ends in SENT or FAILED, never stuck in SENDING
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from bulletin.core.ports.db import NewsletterRepoPort, RecipientDirectoryPort
from bulletin.core.ports.lock import SendLockPort
from bulletin.core.ports.messaging import MessagingProviderPort
from bulletin.core.ports.time import TimePort
from bulletin.domain.display import status_label
from bulletin.domain.entities import (
    BatchOutcome,
    Newsletter,
    NewsletterStatistics,
    Recipient,
)
from bulletin.domain.errors import (
    AlreadySending,
    BulletinError,
    NewsletterNotFound,
    NoRecipients,
    NotSendable,
    ProviderFailure,
)
from bulletin.domain.state import (
    can_send,
    cancel as cancel_lifecycle,
    mark_as_failed,
    mark_as_sending,
    mark_as_sent,
    schedule,
)

from .models import DeliveryBatch, DeliveryConfig, DeliveryResult, SendFilters, SendRequest

logger = logging.getLogger(__name__)

LIST_TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"


def split_batches(
    recipients: list[Recipient],
    now: datetime,
    config: DeliveryConfig,
) -> list[DeliveryBatch]:
    """
    Split recipients into at most two batches.

    The first ``batch_size`` recipients go out immediately; the rest are
    scheduled ``second_batch_delay_hours`` later. Order is preserved.
    """
    first = DeliveryBatch(index=1, recipients=recipients[: config.batch_size])
    rest = recipients[config.batch_size :]
    if not rest:
        return [first]

    send_at = now + timedelta(hours=config.second_batch_delay_hours)
    return [first, DeliveryBatch(index=2, recipients=rest, send_at=send_at)]


def unique_groups(recipients: list[Recipient]) -> list[int]:
    """Distinct dependency ids in first-seen order."""
    return list(dict.fromkeys(r.dependency_id for r in recipients))


class DeliveryService:
    """
    Newsletter delivery orchestrator.

    Owns the SENDING -> SENT/FAILED part of the lifecycle.
    """

    def __init__(
        self,
        newsletter_repo: NewsletterRepoPort,
        recipients: RecipientDirectoryPort,
        provider: MessagingProviderPort,
        lock: SendLockPort,
        time: TimePort,
        config: DeliveryConfig | None = None,
    ) -> None:
        self._newsletters = newsletter_repo
        self._recipients = recipients
        self._provider = provider
        self._lock = lock
        self._time = time
        self._config = config or DeliveryConfig()

    @property
    def newsletter_repo(self) -> NewsletterRepoPort:
        return self._newsletters

    @property
    def time(self) -> TimePort:
        return self._time

    @property
    def config(self) -> DeliveryConfig:
        return self._config

    # --- Public API ---

    def send(self, request: SendRequest) -> DeliveryResult:
        """
        Send or schedule a newsletter.

        Domain errors become failure results carrying the error code.
        """
        try:
            return self._send(request)
        except BulletinError as e:
            logger.warning(
                "Newsletter #%s: send rejected: %s", request.newsletter_number, e
            )
            return DeliveryResult.failed([str(e)], error_code=e.code)

    def cancel(self, number: int) -> DeliveryResult:
        try:
            newsletter = self._load(number)
            cancel_lifecycle(newsletter, self._time.now_utc())
        except BulletinError as e:
            return DeliveryResult.failed([str(e)], error_code=e.code)

        self._newsletters.save(newsletter)
        return DeliveryResult.succeeded(0, 0, statistics={"status": "cancelled"})

    def send_due(self, now: datetime | None = None) -> dict[int, DeliveryResult]:
        """Send every scheduled newsletter whose time has come."""
        now = now or self._time.now_utc()
        results: dict[int, DeliveryResult] = {}

        for newsletter in self._newsletters.find_ready_to_send(now):
            logger.info(
                "Newsletter #%s due (scheduled %s)",
                newsletter.number,
                newsletter.scheduled_at,
            )
            results[newsletter.number] = self.send(SendRequest(newsletter.number))

        return results

    # --- Orchestration ---

    def _load(self, number: int) -> Newsletter:
        newsletter = self._newsletters.find_by_number(number)
        if newsletter is None:
            raise NewsletterNotFound(number)
        return newsletter

    def _check_sendable(self, newsletter: Newsletter, html: str | None) -> str:
        if not can_send(newsletter.status):
            raise NotSendable(
                newsletter.number, f"status is {status_label(newsletter.status)}"
            )
        if not html or not html.strip():
            raise NotSendable(newsletter.number, "no HTML content")
        return html

    def _send(self, request: SendRequest) -> DeliveryResult:
        number = request.newsletter_number
        newsletter = self._load(number)
        html = self._check_sendable(newsletter, request.html or newsletter.html_content)

        if request.scheduled_at is not None:
            return self._schedule(newsletter, html, request.scheduled_at)

        key = f"newsletter-send:{number}"
        if not self._lock.acquire(key, self._config.lock_ttl_seconds):
            raise AlreadySending(number)

        try:
            # Re-read under the lock; another sender may have finished
            newsletter = self._load(number)
            self._check_sendable(newsletter, html)
            return self._deliver(newsletter, html, request.filters)
        finally:
            self._lock.release(key)

    def _schedule(
        self, newsletter: Newsletter, html: str, when: datetime
    ) -> DeliveryResult:
        schedule(newsletter, when, self._time.now_utc())
        newsletter.html_content = html
        self._newsletters.save(newsletter)

        logger.info("Newsletter #%s scheduled for %s", newsletter.number, when)
        return DeliveryResult.succeeded(
            0,
            0,
            statistics={"status": "scheduled", "scheduled_at": when.isoformat()},
        )

    def _deliver(
        self, newsletter: Newsletter, html: str, filters: SendFilters
    ) -> DeliveryResult:
        now = self._time.now_utc()
        mark_as_sending(newsletter, now)
        newsletter.html_content = html
        newsletter = self._newsletters.save(newsletter)

        try:
            recipients = self._resolve_recipients(filters)
        except Exception as e:
            logger.exception("Newsletter #%s: recipient lookup failed", newsletter.number)
            return self._fail(newsletter, f"Recipient lookup failed: {e}", 0, now)

        if not recipients:
            error = NoRecipients()
            return self._fail(newsletter, str(error), 0, now, error_code=error.code)

        logger.info(
            "Newsletter #%s: sending to %d recipients", newsletter.number, len(recipients)
        )

        if len(recipients) <= self._config.batch_size:
            return self._send_single(newsletter, html, recipients, now)
        return self._send_split(newsletter, html, recipients, now)

    def _resolve_recipients(self, filters: SendFilters) -> list[Recipient]:
        dependencies = list(filters.dependencies) if filters.dependencies else None
        recipients = self._recipients.find_recipients(dependencies)
        if filters.limit is not None:
            recipients = recipients[: filters.limit]
        return recipients

    def _send_single(
        self,
        newsletter: Newsletter,
        html: str,
        recipients: list[Recipient],
        now: datetime,
    ) -> DeliveryResult:
        count = len(recipients)
        try:
            list_ids = self._provider.list_ids_for_groups(unique_groups(recipients))
            result = self._provider.create_and_send_campaign(
                list_ids,
                html,
                tag=str(newsletter.number),
                subject=newsletter.subject(self._config.subject_template),
            )
        except Exception as e:
            logger.exception("Newsletter #%s: campaign failed", newsletter.number)
            return self._fail(newsletter, str(e), count, now)

        if not result.success:
            return self._fail(newsletter, result.error or "Campaign rejected", count, now)

        stats = NewsletterStatistics(
            recipients=count, sent=count, failed=0, errors=[], campaign_id=result.campaign_id
        )
        mark_as_sent(newsletter, stats, now)
        self._newsletters.save(newsletter)

        logger.info(
            "Newsletter #%s sent (campaign %s)", newsletter.number, result.campaign_id
        )
        return DeliveryResult.succeeded(
            count, count, statistics=stats.model_dump(mode="json")
        )

    def _send_split(
        self,
        newsletter: Newsletter,
        html: str,
        recipients: list[Recipient],
        now: datetime,
    ) -> DeliveryResult:
        outcomes: dict[str, BatchOutcome] = {}
        errors: list[str] = []

        for batch in split_batches(recipients, now, self._config):
            try:
                outcomes[batch.key] = self._submit_batch(newsletter, html, batch, now)
            except Exception as e:
                logger.exception(
                    "Newsletter #%s: batch %d failed", newsletter.number, batch.index
                )
                errors.append(f"Batch {batch.index} failed: {e}")
                outcomes[batch.key] = BatchOutcome(
                    status="failed", size=batch.size, send_at=batch.send_at, error=str(e)
                )

        count = len(recipients)
        sent_count = sum(o.size for o in outcomes.values() if o.status != "failed")
        second = outcomes.get("batch2")
        scheduled_at = second.send_at if second and second.status == "scheduled" else None

        stats = NewsletterStatistics(
            recipients=count,
            sent=sent_count,
            failed=count - sent_count,
            errors=errors,
            campaign_id=outcomes["batch1"].campaign_id,
            scheduled_at=scheduled_at,
            batches=outcomes,
        )

        if sent_count == 0:
            return self._fail(newsletter, "; ".join(errors), count, now, statistics=stats)

        mark_as_sent(newsletter, stats, now)
        if scheduled_at is not None:
            newsletter.scheduled_at = scheduled_at
        self._newsletters.save(newsletter)

        logger.info(
            "Newsletter #%s split send: %d/%d accepted",
            newsletter.number,
            sent_count,
            count,
        )
        return DeliveryResult.succeeded(
            count, sent_count, statistics=stats.model_dump(mode="json"), errors=errors
        )

    def _submit_batch(
        self,
        newsletter: Newsletter,
        html: str,
        batch: DeliveryBatch,
        now: datetime,
    ) -> BatchOutcome:
        name = self._config.list_name_template.format(
            number=newsletter.number,
            batch=batch.index,
            timestamp=now.strftime(LIST_TIMESTAMP_FORMAT),
        )
        list_id = self._provider.create_distribution_list(name)
        self._provider.add_recipients_to_list(list_id, [r.email for r in batch.recipients])

        result = self._provider.create_and_send_campaign(
            [list_id],
            html,
            tag=f"{newsletter.number}_{batch.key}",
            subject=newsletter.subject(self._config.subject_template),
            scheduled_at=batch.send_at,
        )
        if not result.success:
            raise ProviderFailure(
                "create_and_send_campaign",
                result.error or "Campaign rejected",
                retriable=False,
            )

        return BatchOutcome(
            status="scheduled" if batch.send_at else "sent",
            size=batch.size,
            campaign_id=result.campaign_id,
            list_id=list_id,
            send_at=batch.send_at,
        )

    def _fail(
        self,
        newsletter: Newsletter,
        reason: str,
        recipient_count: int,
        now: datetime,
        statistics: NewsletterStatistics | None = None,
        error_code: str | None = None,
    ) -> DeliveryResult:
        stats = statistics or NewsletterStatistics(
            recipients=recipient_count, failed=recipient_count, errors=[reason]
        )
        mark_as_failed(newsletter, reason, now, stats)
        self._newsletters.save(newsletter)

        logger.error("Newsletter #%s failed: %s", newsletter.number, reason)
        errors = stats.errors or [reason]
        return DeliveryResult.failed(
            errors,
            recipient_count=recipient_count,
            statistics=newsletter.statistics.model_dump(mode="json"),
            error_code=error_code,
        )
