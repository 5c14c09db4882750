from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

# --- Enums / Literals ---
SlotCategory = Literal["highlight", "normal", "grid"]
PostStatus = Literal["publish", "draft", "pending", "private"]
BatchStatus = Literal["sent", "scheduled", "failed"]

SLOT_CATEGORIES: tuple[SlotCategory, ...] = ("highlight", "normal", "grid")
DEFAULT_CATEGORY: SlotCategory = "normal"
DEFAULT_SUBJECT_TEMPLATE = "Newsletter #{number}"


def _utcnow() -> datetime:
    return datetime.now(UTC)


class NewsletterStatus(Enum):
    """Newsletter lifecycle status. Values match the stored status ids."""

    DRAFT = 1
    SCHEDULED = 2
    SENDING = 3
    SENT = 4
    FAILED = 5
    CANCELLED = 6


# --- Content ---

class ContentItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    display_affinity: str = DEFAULT_CATEGORY
    topical_line: str | None = None
    post_status: PostStatus = "publish"
    featured_image_url: str | None = None
    newsletter_number: int | None = None
    created_at: datetime = Field(default_factory=_utcnow)

    @property
    def is_published(self) -> bool:
        return self.post_status == "publish"

    @property
    def has_image(self) -> bool:
        return bool(self.featured_image_url)

    @property
    def preferred_category(self) -> SlotCategory:
        # Unknown affinities land in the default slot
        if self.display_affinity in SLOT_CATEGORIES:
            return self.display_affinity  # type: ignore[return-value]
        return DEFAULT_CATEGORY


# --- Audience ---

class Recipient(BaseModel):
    model_config = ConfigDict(frozen=True)

    email: str
    dependency_id: int


# --- Delivery statistics ---

class BatchOutcome(BaseModel):
    status: BatchStatus
    size: int = 0
    campaign_id: str | None = None
    list_id: str | None = None
    send_at: datetime | None = None
    error: str | None = None


class NewsletterStatistics(BaseModel):
    recipients: int = 0
    sent: int = 0
    failed: int = 0
    opened: int = 0
    clicked: int = 0
    bounced: int = 0
    unsubscribed: int = 0
    errors: list[str] = Field(default_factory=list)
    campaign_id: str | None = None
    failure_reason: str | None = None
    scheduled_at: datetime | None = None
    batches: dict[str, BatchOutcome] = Field(default_factory=dict)

    def merged(self, other: NewsletterStatistics) -> NewsletterStatistics:
        """Return a copy with the fields explicitly set on ``other`` applied."""
        data = self.model_dump()
        data.update(other.model_dump(exclude_unset=True))
        return NewsletterStatistics.model_validate(data)


# --- Newsletter aggregate ---

class Newsletter(BaseModel):
    id: int | None = None
    number: int
    header_text: str
    news_ids: list[int] = Field(default_factory=list)
    categorized_news: dict[str, list[ContentItem]] = Field(default_factory=dict)
    html_content: str | None = None
    status: NewsletterStatus = NewsletterStatus.DRAFT
    scheduled_at: datetime | None = None
    sent_at: datetime | None = None
    statistics: NewsletterStatistics = Field(default_factory=NewsletterStatistics)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime | None = None

    @property
    def title(self) -> str:
        return f"Newsletter #{self.number}"

    def subject(self, template: str = DEFAULT_SUBJECT_TEMPLATE) -> str:
        return template.format(number=self.number)

    @property
    def has_categorized_content(self) -> bool:
        return any(self.categorized_news.get(c) for c in SLOT_CATEGORIES)

    def categorized_ids(self) -> dict[str, list[int]]:
        return {
            category: [item.id for item in items]
            for category, items in self.categorized_news.items()
        }
