"""
Slot allocator component models.

Category capacities, allocation inputs/outputs and recommendation criteria.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from bulletin.domain.entities import SLOT_CATEGORIES, ContentItem, SlotCategory

# --- Policy ---


@dataclass(frozen=True)
class CategoryLimits:
    """Per-category capacity. Injected so callers and tests can vary it."""

    highlight: int = 3
    normal: int = 9
    grid: int = 9

    def limit_for(self, category: SlotCategory) -> int:
        return int(getattr(self, category))

    @property
    def total(self) -> int:
        return self.highlight + self.normal + self.grid

    def as_dict(self) -> dict[str, int]:
        return {c: self.limit_for(c) for c in SLOT_CATEGORIES}


DEFAULT_LIMITS = CategoryLimits()

# Fallback order when the preferred category is full
ALTERNATIVE_CATEGORIES: dict[SlotCategory, tuple[SlotCategory, ...]] = {
    "highlight": ("normal", "grid"),
    "normal": ("grid", "highlight"),
    "grid": ("normal", "highlight"),
}


# --- Validation Error ---


@dataclass(frozen=True)
class AllocationError:
    """Allocation error detail."""

    code: str
    message: str
    item_id: int | None = None


# --- Input Models ---


@dataclass(frozen=True)
class AllocateInput:
    """Input for allocating selected items into slots."""

    items: tuple[ContentItem, ...]
    selection_order: tuple[int, ...]


@dataclass(frozen=True)
class RecommendCriteria:
    """Recommendation options."""

    max_items: int = 21
    require_image: bool = False
    prioritize_recent: bool = True
    balance_topical_lines: bool = True


@dataclass(frozen=True)
class RecommendInput:
    """Input for recommending candidates."""

    candidates: tuple[ContentItem, ...]
    criteria: RecommendCriteria = field(default_factory=RecommendCriteria)


# --- Output Models ---


@dataclass(frozen=True)
class AllocateOutput:
    """Output from allocation."""

    categorized: dict[str, list[ContentItem]]
    overflow: list[ContentItem] = field(default_factory=list)
    errors: list[AllocationError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class RecommendOutput:
    """Output from recommendation."""

    items: list[ContentItem]
    success: bool = True


@dataclass(frozen=True)
class ContentStatistics:
    """Composition summary of a categorized newsletter."""

    total: int
    by_category: dict[str, int]
    by_topical_line: dict[str, int]
    with_images: int
    without_images: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "by_category": dict(self.by_category),
            "by_topical_line": dict(self.by_topical_line),
            "with_images": self.with_images,
            "without_images": self.without_images,
        }
