from bulletin.core.ports.db import ContentRepoPort, NewsletterRepoPort
from bulletin.core.ports.renderer import RendererPort
from bulletin.core.ports.time import TimePort

__all__ = ["ContentRepoPort", "NewsletterRepoPort", "RendererPort", "TimePort"]
