from bulletin.core.ports.db import (
    ContentRepoPort,
    NewsletterRepoPort,
    RecipientDirectoryPort,
)
from bulletin.core.ports.lock import SendLockPort
from bulletin.core.ports.messaging import CampaignResult, MessagingProviderPort
from bulletin.core.ports.renderer import RendererPort
from bulletin.core.ports.time import TimePort

__all__ = [
    "CampaignResult",
    "ContentRepoPort",
    "MessagingProviderPort",
    "NewsletterRepoPort",
    "RecipientDirectoryPort",
    "RendererPort",
    "SendLockPort",
    "TimePort",
]
