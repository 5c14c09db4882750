"""
Brevo messaging provider.

Talks to the Brevo REST API (v3) for distribution lists and email
campaigns. Transport errors and timeouts surface as ProviderFailure;
campaign rejections (4xx) are returned as a rejected CampaignResult.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime
from typing import Any

import requests
from requests import Response

from bulletin.core.ports.messaging import CampaignResult
from bulletin.domain.errors import ProviderFailure
from bulletin.rules.models import ProviderRules

logger = logging.getLogger(__name__)

# Brevo accepts at most this many emails per list import call
CONTACTS_PER_REQUEST = 150


class BrevoMessagingProvider:
    """MessagingProviderPort backed by the Brevo API."""

    def __init__(
        self,
        api_key: str,
        sender_id: int,
        base_url: str = "https://api.brevo.com/v3",
        timeout: float = 30.0,
        group_list_map: dict[int, int] | None = None,
        folder_id: int = 1,
        session: requests.Session | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.sender_id = sender_id
        self.folder_id = folder_id
        self.group_list_map = dict(group_list_map or {})
        self._timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "api-key": api_key,
                "Accept": "application/json",
                "Content-Type": "application/json",
            }
        )

    def _request(
        self,
        operation: str,
        verb: str,
        path: str,
        payload: dict[str, Any] | None = None,
    ) -> Response:
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            return self.session.request(
                method=verb, url=url, json=payload, timeout=self._timeout
            )
        except requests.Timeout as e:
            raise ProviderFailure(operation, f"timed out after {self._timeout}s") from e
        except requests.RequestException as e:
            raise ProviderFailure(operation, str(e)) from e

    @staticmethod
    def _error_message(response: Response) -> str:
        try:
            body = response.json()
        except ValueError:
            body = {}
        message = body.get("message") if isinstance(body, dict) else None
        return f"HTTP {response.status_code}: {message or response.reason}"

    def _check(self, operation: str, response: Response) -> dict[str, Any]:
        if response.status_code >= 400:
            retriable = response.status_code >= 500 or response.status_code == 429
            raise ProviderFailure(operation, self._error_message(response), retriable)
        if not response.content:
            return {}
        return response.json()

    # --- MessagingProviderPort ---

    def create_distribution_list(self, name: str) -> str:
        response = self._request(
            "create_distribution_list",
            "POST",
            "contacts/lists",
            {"name": name, "folderId": self.folder_id},
        )
        data = self._check("create_distribution_list", response)
        logger.info("Brevo list %s created: %s", data["id"], name)
        return str(data["id"])

    def add_recipients_to_list(self, list_id: str, addresses: list[str]) -> None:
        for start in range(0, len(addresses), CONTACTS_PER_REQUEST):
            chunk = addresses[start : start + CONTACTS_PER_REQUEST]
            response = self._request(
                "add_recipients_to_list",
                "POST",
                f"contacts/lists/{list_id}/contacts/add",
                {"emails": chunk},
            )
            self._check("add_recipients_to_list", response)
        logger.info("Brevo list %s: %d contacts added", list_id, len(addresses))

    def list_ids_for_groups(self, group_ids: list[int]) -> list[str]:
        list_ids = []
        for group_id in group_ids:
            mapped = self.group_list_map.get(group_id)
            if mapped is None:
                logger.warning("No Brevo list mapped for group %s", group_id)
                continue
            list_ids.append(str(mapped))

        if not list_ids:
            raise ProviderFailure(
                "list_ids_for_groups",
                f"no Brevo list mapped for groups {group_ids}",
                retriable=False,
            )
        return list_ids

    def create_and_send_campaign(
        self,
        list_ids: list[str],
        html: str,
        tag: str,
        subject: str,
        scheduled_at: datetime | None = None,
    ) -> CampaignResult:
        payload: dict[str, Any] = {
            "tag": tag,
            "subject": subject,
            "previewText": subject,
            "htmlContent": html,
            "sender": {"id": self.sender_id},
            "recipients": {"listIds": [int(i) for i in list_ids]},
        }
        if scheduled_at is not None:
            payload["scheduledAt"] = scheduled_at.isoformat()

        response = self._request("create_campaign", "POST", "emailCampaigns", payload)
        if 400 <= response.status_code < 500:
            return CampaignResult.rejected(self._error_message(response))
        campaign_id = str(self._check("create_campaign", response)["id"])

        if scheduled_at is None:
            response = self._request(
                "send_campaign", "POST", f"emailCampaigns/{campaign_id}/sendNow"
            )
            if 400 <= response.status_code < 500:
                return CampaignResult.rejected(self._error_message(response))
            self._check("send_campaign", response)

        logger.info(
            "Brevo campaign %s (%s) %s",
            campaign_id,
            tag,
            f"scheduled for {scheduled_at.isoformat()}" if scheduled_at else "sent",
        )
        return CampaignResult.accepted(campaign_id)


# --- Factory Function ---


def create_brevo_provider(
    rules: ProviderRules,
    timeout: float = 30.0,
    session: requests.Session | None = None,
) -> BrevoMessagingProvider:
    """
    Create a Brevo provider from rules.

    Raises:
        ValueError: API key env var unset or sender id missing
    """
    api_key = os.environ.get(rules.api_key_env)
    if not api_key:
        raise ValueError(f"Environment variable {rules.api_key_env} is not set")
    if rules.sender_id is None:
        raise ValueError("provider.sender_id is required for Brevo")

    return BrevoMessagingProvider(
        api_key=api_key,
        sender_id=rules.sender_id,
        base_url=rules.base_url,
        timeout=timeout,
        group_list_map=rules.group_list_map,
        session=session,
    )
