# bulletin: Ports (Protocol Interfaces)
# Abstract interfaces for adapters; no implementations here

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
    # Persistence
    "ContentRepoPort",
    "NewsletterRepoPort",
    "RecipientDirectoryPort",
    # Messaging
    "CampaignResult",
    "MessagingProviderPort",
    # Coordination
    "SendLockPort",
    "TimePort",
    # Rendering
    "RendererPort",
]
