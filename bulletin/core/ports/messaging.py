"""
Messaging Provider Interface.

Protocol-based interface for a campaign email provider (Brevo in
production). The provider owns distribution lists and performs
future-dated delivery out of process.

Implementation strategies:
1. DevMessagingProvider: logs campaigns, keeps them in memory (dev/test)
2. BrevoMessagingProvider: Brevo REST API v3

Key requirements:
- create_and_send_campaign reports rejection through CampaignResult
- transport problems (including timeouts) may raise ProviderFailure
  or TimeoutError; callers treat both as a failed batch
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol


@dataclass(frozen=True)
class CampaignResult:
    """Outcome of a create-and-send campaign call."""

    success: bool
    campaign_id: str | None = None
    error: str | None = None

    @classmethod
    def accepted(cls, campaign_id: str | None) -> CampaignResult:
        return cls(success=True, campaign_id=campaign_id)

    @classmethod
    def rejected(cls, error: str) -> CampaignResult:
        return cls(success=False, error=error)


class MessagingProviderPort(Protocol):
    """Campaign provider interface."""

    def create_distribution_list(self, name: str) -> str:
        """
        Create a provider-side list.

        Returns:
            Provider list id
        """
        ...

    def add_recipients_to_list(self, list_id: str, addresses: list[str]) -> None:
        """Add email addresses to an existing list."""
        ...

    def list_ids_for_groups(self, group_ids: list[int]) -> list[str]:
        """Map recipient group ids to the provider's standing list ids."""
        ...

    def create_and_send_campaign(
        self,
        list_ids: list[str],
        html: str,
        tag: str,
        subject: str,
        scheduled_at: datetime | None = None,
    ) -> CampaignResult:
        """
        Create a campaign for ``list_ids`` and send it now or at ``scheduled_at``.

        Args:
            list_ids: Provider list ids
            html: Rendered body
            tag: Campaign tag (newsletter number, batch suffix)
            subject: Subject line
            scheduled_at: None sends immediately
        """
        ...
