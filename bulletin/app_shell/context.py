from __future__ import annotations

from dataclasses import dataclass

from bulletin.adapters.clock import SystemClock
from bulletin.adapters.jinja_renderer import JinjaNewsletterRenderer
from bulletin.adapters.locks import SQLiteSendLock
from bulletin.adapters.sqlite_db import (
    SQLiteContentRepo,
    SQLiteNewsletterRepo,
    SQLiteRecipientDirectory,
)
from bulletin.app_shell.providers import build_provider
from bulletin.components.delivery import DeliveryConfig, DeliveryService
from bulletin.core.ports.messaging import MessagingProviderPort
from bulletin.core.ports.renderer import RendererPort
from bulletin.core.ports.time import TimePort
from bulletin.rules.models import Rules


@dataclass
class ServiceContext:
    """Wired adapters and services for one database."""

    newsletter_repo: SQLiteNewsletterRepo
    content_repo: SQLiteContentRepo
    recipients: SQLiteRecipientDirectory
    provider: MessagingProviderPort
    renderer: RendererPort
    delivery: DeliveryService
    clock: TimePort
    rules: Rules

    @classmethod
    def create(
        cls,
        db_path: str,
        rules: Rules,
        provider: MessagingProviderPort | None = None,
        clock: TimePort | None = None,
    ) -> ServiceContext:
        clock = clock or SystemClock()
        provider = provider or build_provider(rules)

        newsletter_repo = SQLiteNewsletterRepo(db_path)
        recipients = SQLiteRecipientDirectory(db_path)

        delivery = DeliveryService(
            newsletter_repo=newsletter_repo,
            recipients=recipients,
            provider=provider,
            lock=SQLiteSendLock(db_path, time=clock),
            time=clock,
            config=DeliveryConfig.from_rules(rules),
        )

        return cls(
            newsletter_repo=newsletter_repo,
            content_repo=SQLiteContentRepo(db_path),
            recipients=recipients,
            provider=provider,
            renderer=JinjaNewsletterRenderer(),
            delivery=delivery,
            clock=clock,
            rules=rules,
        )
