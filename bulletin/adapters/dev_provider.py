"""
Dev Messaging Provider Adapter.

Logs campaigns instead of sending them. Used for local development
and testing.

Key behaviors:
- Lists and campaigns are kept in memory for test assertions
- Campaign ids are "dev-" prefixed
- Failures can be injected per campaign tag, either as a rejection
  message or as an exception to raise
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import uuid4

from bulletin.core.ports.messaging import CampaignResult

logger = logging.getLogger(__name__)


@dataclass
class DevCampaign:
    """Record of a logged campaign for test assertions."""

    id: str
    list_ids: list[str]
    tag: str
    subject: str
    html: str
    scheduled_at: datetime | None
    logged_at: datetime


@dataclass
class DevMessagingProvider:
    """
    Dev messaging provider that logs instead of sending.

    Implements MessagingProviderPort.
    """

    lists: dict[str, list[str]] = field(default_factory=dict)
    list_names: dict[str, str] = field(default_factory=dict)
    campaigns: list[DevCampaign] = field(default_factory=list)

    # tag -> rejection message or exception
    failures: dict[str, str | Exception] = field(default_factory=dict)

    # dependency (group) id -> provider list id
    group_list_map: dict[int, int] = field(default_factory=dict)

    log_level: int = logging.INFO

    def create_distribution_list(self, name: str) -> str:
        list_id = str(len(self.lists) + 1)
        self.lists[list_id] = []
        self.list_names[list_id] = name
        logger.log(self.log_level, "LIST (dev): created %s name=%r", list_id, name)
        return list_id

    def add_recipients_to_list(self, list_id: str, addresses: list[str]) -> None:
        if list_id not in self.lists:
            raise KeyError(f"Unknown list: {list_id}")
        self.lists[list_id].extend(addresses)
        logger.log(
            self.log_level, "LIST (dev): added %d contacts to %s", len(addresses), list_id
        )

    def list_ids_for_groups(self, group_ids: list[int]) -> list[str]:
        return [str(self.group_list_map.get(g, g)) for g in group_ids]

    def create_and_send_campaign(
        self,
        list_ids: list[str],
        html: str,
        tag: str,
        subject: str,
        scheduled_at: datetime | None = None,
    ) -> CampaignResult:
        failure = self.failures.get(tag)
        if isinstance(failure, Exception):
            raise failure
        if failure:
            logger.log(self.log_level, "CAMPAIGN (dev): rejected tag=%s: %s", tag, failure)
            return CampaignResult.rejected(failure)

        campaign = DevCampaign(
            id=f"dev-{uuid4().hex[:12]}",
            list_ids=list(list_ids),
            tag=tag,
            subject=subject,
            html=html,
            scheduled_at=scheduled_at,
            logged_at=datetime.now(UTC),
        )
        self.campaigns.append(campaign)

        when = scheduled_at.isoformat() if scheduled_at else "now"
        logger.log(
            self.log_level,
            "CAMPAIGN (dev): tag=%s, Subject=%s, Lists=%s, SendAt=%s, ID=%s",
            tag,
            subject,
            ",".join(list_ids),
            when,
            campaign.id,
        )
        return CampaignResult.accepted(campaign.id)

    # --- Test Helper Methods ---

    def get_campaign(self, tag: str) -> DevCampaign | None:
        return next((c for c in self.campaigns if c.tag == tag), None)

    def clear(self) -> None:
        """Clear all stored state (for test isolation)."""
        self.lists.clear()
        self.list_names.clear()
        self.campaigns.clear()
        self.failures.clear()

    @property
    def campaign_count(self) -> int:
        return len(self.campaigns)


# --- Factory Function ---


def create_dev_messaging_provider(
    group_list_map: dict[int, int] | None = None,
    log_level: int = logging.INFO,
) -> DevMessagingProvider:
    """
    Create a dev messaging provider.

    Args:
        group_list_map: Group id to provider list id mapping
        log_level: Logging level for campaign logs

    Returns:
        Configured DevMessagingProvider
    """
    return DevMessagingProvider(group_list_map=dict(group_list_map or {}), log_level=log_level)
