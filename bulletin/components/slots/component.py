"""
Slot allocator component.

Places selected content items into the three fixed-capacity display
categories (highlight, normal, grid), and recommends balanced candidate
sets for editors to choose from.

Invariants:
- Selection order is authoritative; storage order is ignored
- No category ever exceeds its limit
- An item that fits nowhere is reported, never dropped
- Items keep their relative selection order inside a category
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence

from bulletin.domain.entities import (
    SLOT_CATEGORIES,
    ContentItem,
    Newsletter,
    SlotCategory,
)
from bulletin.domain.errors import CapacityExceeded, ContentNotEligible
from bulletin.rules.models import Rules

from .models import (
    ALTERNATIVE_CATEGORIES,
    DEFAULT_LIMITS,
    AllocateInput,
    AllocateOutput,
    AllocationError,
    CategoryLimits,
    ContentStatistics,
    RecommendCriteria,
    RecommendInput,
    RecommendOutput,
)

UNASSIGNED_LINE = "Unassigned"
OTHER_LINE = "other"


# --- Pure Functions (Functional Core) ---


def sort_by_selection(
    items: Iterable[ContentItem],
    selection_order: Sequence[int],
) -> list[ContentItem]:
    """
    Reorder items to follow the caller's selection.

    Ids without a matching item are skipped, and so are items that were
    not selected. A repeated id keeps its first position only.
    """
    by_id = {item.id: item for item in items}
    unique = dict.fromkeys(selection_order)
    return [by_id[item_id] for item_id in unique if item_id in by_id]


def find_alternative_category(
    categorized: dict[str, list[ContentItem]],
    preferred: SlotCategory,
    limits: CategoryLimits = DEFAULT_LIMITS,
) -> SlotCategory | None:
    """First alternative with room, or None when every fallback is full."""
    for alternative in ALTERNATIVE_CATEGORIES[preferred]:
        if len(categorized[alternative]) < limits.limit_for(alternative):
            return alternative
    return None


def allocate(
    items: Iterable[ContentItem],
    selection_order: Sequence[int],
    limits: CategoryLimits = DEFAULT_LIMITS,
) -> dict[str, list[ContentItem]]:
    """
    Categorize selected items into display slots.

    Args:
        items: Candidate items (any order)
        selection_order: Selected item ids, in the editor's order
        limits: Category capacities

    Returns:
        Mapping category -> ordered items

    Raises:
        ContentNotEligible: a selected item is not published
        CapacityExceeded: at least one item fits no category; carries
            the partial allocation and every item that did not fit
    """
    selected = sort_by_selection(items, selection_order)
    for item in selected:
        if not item.is_published:
            raise ContentNotEligible(item.id, item.title)

    categorized: dict[str, list[ContentItem]] = {c: [] for c in SLOT_CATEGORIES}
    overflow: list[ContentItem] = []

    for item in selected:
        category: SlotCategory | None = item.preferred_category

        if len(categorized[category]) >= limits.limit_for(category):
            category = find_alternative_category(categorized, category, limits)

        if category is None:
            overflow.append(item)
            continue

        categorized[category].append(item)

    if overflow:
        raise CapacityExceeded(overflow, categorized)

    return categorized


def balance_by_topical_line(
    items: Sequence[ContentItem],
    max_items: int,
) -> list[ContentItem]:
    """
    Spread ``max_items`` evenly across topical lines.

    Lines are taken in first-seen order. Each line contributes
    ``max_items // lines`` items and the first ``max_items % lines``
    lines contribute one more. Short lines are not backfilled.
    """
    if not items or max_items <= 0:
        return []

    grouped: dict[str, list[ContentItem]] = {}
    for item in items:
        grouped.setdefault(item.topical_line or OTHER_LINE, []).append(item)

    per_line, remainder = divmod(max_items, len(grouped))

    selected: list[ContentItem] = []
    for index, line_items in enumerate(grouped.values()):
        limit = per_line + 1 if index < remainder else per_line
        selected.extend(line_items[:limit])

    return selected[:max_items]


def recommend(
    candidates: Iterable[ContentItem],
    criteria: RecommendCriteria | None = None,
) -> list[ContentItem]:
    """Pre-select candidates for a newsletter. Not a committed allocation."""
    criteria = criteria or RecommendCriteria()
    pool = list(candidates)

    if criteria.require_image:
        pool = [item for item in pool if item.has_image]

    if criteria.prioritize_recent:
        pool = sorted(pool, key=lambda item: item.created_at, reverse=True)

    if criteria.balance_topical_lines:
        return balance_by_topical_line(pool, criteria.max_items)

    return pool[: criteria.max_items]


def optimal_distribution(
    total_items: int,
    limits: CategoryLimits = DEFAULT_LIMITS,
) -> dict[str, int]:
    """Suggested per-category counts for ``total_items`` selections."""
    if total_items <= 3:
        return {"highlight": total_items, "normal": 0, "grid": 0}

    if total_items <= 6:
        return {"highlight": 3, "normal": total_items - 3, "grid": 0}

    if total_items <= 12:
        return {"highlight": 3, "normal": 6, "grid": total_items - 9}

    remaining = total_items - 3
    normal = min(limits.normal, math.ceil(remaining / 2))
    grid = min(limits.grid, remaining - normal)
    return {"highlight": 3, "normal": normal, "grid": grid}


def content_statistics(categorized: dict[str, list[ContentItem]]) -> ContentStatistics:
    total = 0
    by_category: dict[str, int] = {}
    by_line: dict[str, int] = {}
    with_images = 0

    for category, items in categorized.items():
        by_category[category] = len(items)
        total += len(items)
        for item in items:
            line = item.topical_line or UNASSIGNED_LINE
            by_line[line] = by_line.get(line, 0) + 1
            if item.has_image:
                with_images += 1

    return ContentStatistics(
        total=total,
        by_category=by_category,
        by_topical_line=by_line,
        with_images=with_images,
        without_images=total - with_images,
    )


def validate_content(newsletter: Newsletter) -> list[str]:
    """Pre-send content checks. Returns human-readable problems."""
    errors: list[str] = []

    if not newsletter.news_ids:
        errors.append("Newsletter has no news items")

    if not newsletter.html_content:
        errors.append("Newsletter HTML content has not been generated")

    if not newsletter.header_text.strip():
        errors.append("Newsletter header text is required")

    if not newsletter.categorized_news:
        errors.append("Newsletter has no categorized news items")
    elif not newsletter.has_categorized_content:
        errors.append("Newsletter must have at least one news item in any category")

    return errors


# --- Component Entry Points ---


def build_limits(rules: Rules | None) -> CategoryLimits:
    """Build category limits from rules."""
    if rules is None:
        return DEFAULT_LIMITS

    configured = rules.newsletter.category_limits
    return CategoryLimits(
        highlight=configured.highlight,
        normal=configured.normal,
        grid=configured.grid,
    )


def run_allocate(
    inp: AllocateInput,
    *,
    limits: CategoryLimits | None = None,
    rules: Rules | None = None,
) -> AllocateOutput:
    """
    Allocate selected items, reporting failures instead of raising.

    Args:
        inp: Items and selection order.
        limits: Explicit capacities (take precedence over rules).
        rules: Optional rules for capacities.

    Returns:
        AllocateOutput with the categorized items or errors.
    """
    effective = limits or build_limits(rules)

    try:
        categorized = allocate(inp.items, inp.selection_order, effective)
    except ContentNotEligible as e:
        return AllocateOutput(
            categorized={},
            errors=[AllocationError(e.code, str(e), item_id=e.item_id)],
            success=False,
        )
    except CapacityExceeded as e:
        return AllocateOutput(
            categorized=e.allocated,
            overflow=e.overflow,
            errors=[
                AllocationError(e.code, str(e), item_id=item.id) for item in e.overflow
            ],
            success=False,
        )

    return AllocateOutput(categorized=categorized)


def run_recommend(
    inp: RecommendInput,
    *,
    rules: Rules | None = None,
) -> RecommendOutput:
    criteria = inp.criteria
    if rules is not None and criteria.max_items > rules.newsletter.max_recommended:
        criteria = RecommendCriteria(
            max_items=rules.newsletter.max_recommended,
            require_image=criteria.require_image,
            prioritize_recent=criteria.prioritize_recent,
            balance_topical_lines=criteria.balance_topical_lines,
        )
    return RecommendOutput(items=recommend(inp.candidates, criteria))


def run(
    inp: AllocateInput | RecommendInput,
    *,
    limits: CategoryLimits | None = None,
    rules: Rules | None = None,
) -> AllocateOutput | RecommendOutput:
    """
    Main entry point for the slot allocator component.

    Dispatches to appropriate handler based on input type.
    """
    if isinstance(inp, AllocateInput):
        return run_allocate(inp, limits=limits, rules=rules)
    elif isinstance(inp, RecommendInput):
        return run_recommend(inp, rules=rules)
    else:
        raise ValueError(f"Unknown input type: {type(inp)}")
