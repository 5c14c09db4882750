from functools import lru_cache

from fastapi import Depends

from bulletin.adapters.clock import SystemClock
from bulletin.adapters.jinja_renderer import JinjaNewsletterRenderer
from bulletin.adapters.locks import SQLiteSendLock
from bulletin.adapters.sqlite_db import (
    SQLiteContentRepo,
    SQLiteNewsletterRepo,
    SQLiteRecipientDirectory,
)
from bulletin.app_shell.providers import build_provider
from bulletin.app_shell.settings import Settings, get_settings
from bulletin.components.delivery import DeliveryConfig, DeliveryService
from bulletin.core.ports.messaging import MessagingProviderPort
from bulletin.core.ports.time import TimePort
from bulletin.rules.loader import load_rules
from bulletin.rules.models import Rules


# --- Rules ---
@lru_cache
def get_rules() -> Rules:
    return load_rules(get_settings().rules_path)


# --- Time ---
def get_clock() -> TimePort:
    return SystemClock()


# --- Repos ---
def get_newsletter_repo(settings: Settings = Depends(get_settings)) -> SQLiteNewsletterRepo:
    return SQLiteNewsletterRepo(settings.db_path)


def get_content_repo(settings: Settings = Depends(get_settings)) -> SQLiteContentRepo:
    return SQLiteContentRepo(settings.db_path)


def get_recipient_directory(
    settings: Settings = Depends(get_settings),
) -> SQLiteRecipientDirectory:
    return SQLiteRecipientDirectory(settings.db_path)


# --- Gateways ---
@lru_cache
def get_provider() -> MessagingProviderPort:
    return build_provider(get_rules())


def get_renderer() -> JinjaNewsletterRenderer:
    return JinjaNewsletterRenderer()


# --- Services ---
def get_delivery_service(
    settings: Settings = Depends(get_settings),
    rules: Rules = Depends(get_rules),
    newsletter_repo: SQLiteNewsletterRepo = Depends(get_newsletter_repo),
    recipients: SQLiteRecipientDirectory = Depends(get_recipient_directory),
    provider: MessagingProviderPort = Depends(get_provider),
    clock: TimePort = Depends(get_clock),
) -> DeliveryService:
    return DeliveryService(
        newsletter_repo=newsletter_repo,
        recipients=recipients,
        provider=provider,
        lock=SQLiteSendLock(settings.db_path, time=clock),
        time=clock,
        config=DeliveryConfig.from_rules(rules),
    )
