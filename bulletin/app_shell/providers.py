"""Messaging provider selection from rules."""

import logging

from bulletin.adapters.brevo import create_brevo_provider
from bulletin.adapters.dev_provider import create_dev_messaging_provider
from bulletin.core.ports.messaging import MessagingProviderPort
from bulletin.rules.models import Rules

logger = logging.getLogger(__name__)


def build_provider(rules: Rules) -> MessagingProviderPort:
    if rules.provider.name == "brevo":
        logger.info("Using Brevo provider at %s", rules.provider.base_url)
        return create_brevo_provider(
            rules.provider, timeout=rules.delivery.provider_timeout_seconds
        )

    logger.info("Using dev provider (campaigns are logged, not sent)")
    return create_dev_messaging_provider(group_list_map=rules.provider.group_list_map)
