"""
Composition component models.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from bulletin.components.slots.models import ContentStatistics
from bulletin.domain.entities import Newsletter

# --- Input Models ---


@dataclass(frozen=True)
class ComposeInput:
    """
    Input for composing a newsletter.

    ``number`` None allocates the next free number.
    """

    header_text: str
    news_ids: tuple[int, ...]
    number: int | None = None
    save: bool = True


# --- Output Models ---


@dataclass(frozen=True)
class ComposeOutput:
    """Output from composition."""

    newsletter: Newsletter | None = None
    html: str | None = None
    statistics: ContentStatistics | None = None
    errors: list[str] = field(default_factory=list)
    success: bool = True
