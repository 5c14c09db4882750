"""
Slot allocator unit tests.

Tests for allocation, overflow cascading, recommendations and the
content summary helpers.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from bulletin.components.slots import (
    AllocateInput,
    CategoryLimits,
    RecommendCriteria,
    RecommendInput,
    allocate,
    balance_by_topical_line,
    build_limits,
    content_statistics,
    optimal_distribution,
    recommend,
    run,
    run_allocate,
    sort_by_selection,
    validate_content,
)
from bulletin.domain.entities import ContentItem, Newsletter
from bulletin.domain.errors import CapacityExceeded, ContentNotEligible
from bulletin.rules.models import Rules

BASE_TIME = datetime(2024, 6, 15, 12, 0, 0, tzinfo=UTC)


def make_item(
    item_id: int,
    affinity: str = "normal",
    line: str | None = "Oncology",
    status: str = "publish",
    image: str | None = None,
    age_days: int = 0,
) -> ContentItem:
    return ContentItem(
        id=item_id,
        title=f"Item {item_id}",
        display_affinity=affinity,
        topical_line=line,
        post_status=status,
        featured_image_url=image,
        created_at=BASE_TIME - timedelta(days=age_days),
    )


def ids(items: list[ContentItem]) -> list[int]:
    return [item.id for item in items]


# --- Fixtures ---


@pytest.fixture
def mixed_selection() -> list[ContentItem]:
    """3 highlight, 10 normal and 12 grid items, ids 1..25 in that order."""
    items = [make_item(i, "highlight") for i in range(1, 4)]
    items += [make_item(i, "normal") for i in range(4, 14)]
    items += [make_item(i, "grid") for i in range(14, 26)]
    return items


# --- Allocation ---


class TestAllocate:
    """Test allocate functionality."""

    def test_items_land_in_preferred_category(self) -> None:
        items = [make_item(1, "highlight"), make_item(2, "grid"), make_item(3)]

        result = allocate(items, [1, 2, 3])

        assert ids(result["highlight"]) == [1]
        assert ids(result["normal"]) == [3]
        assert ids(result["grid"]) == [2]

    def test_selection_order_wins_over_input_order(self) -> None:
        items = [make_item(1), make_item(2), make_item(3)]

        result = allocate(items, [3, 1, 2])

        assert ids(result["normal"]) == [3, 1, 2]

    def test_unknown_affinity_falls_back_to_normal(self) -> None:
        result = allocate([make_item(1, "sidebar")], [1])

        assert ids(result["normal"]) == [1]

    def test_full_highlight_overflows_to_normal(self) -> None:
        items = [make_item(i, "highlight") for i in range(1, 6)]

        result = allocate(items, [1, 2, 3, 4, 5])

        assert ids(result["highlight"]) == [1, 2, 3]
        assert ids(result["normal"]) == [4, 5]
        assert result["grid"] == []

    def test_full_normal_overflows_to_grid_before_highlight(self) -> None:
        limits = CategoryLimits(highlight=1, normal=1, grid=1)
        items = [make_item(1), make_item(2), make_item(3)]

        result = allocate(items, [1, 2, 3], limits)

        assert ids(result["normal"]) == [1]
        assert ids(result["grid"]) == [2]
        assert ids(result["highlight"]) == [3]

    def test_grid_overflow_prefers_normal(self) -> None:
        limits = CategoryLimits(highlight=1, normal=1, grid=1)
        items = [make_item(1, "grid"), make_item(2, "grid"), make_item(3, "grid")]

        result = allocate(items, [1, 2, 3], limits)

        assert ids(result["grid"]) == [1]
        assert ids(result["normal"]) == [2]
        assert ids(result["highlight"]) == [3]

    def test_unpublished_item_rejected(self) -> None:
        items = [make_item(1), make_item(2, status="draft")]

        with pytest.raises(ContentNotEligible) as exc:
            allocate(items, [1, 2])

        assert exc.value.item_id == 2

    def test_unselected_unpublished_item_ignored(self) -> None:
        items = [make_item(1), make_item(2, status="draft")]

        result = allocate(items, [1])

        assert ids(result["normal"]) == [1]

    def test_repeated_ids_placed_once(self) -> None:
        result = allocate([make_item(1, "highlight")], [1, 1, 1, 1])

        placed = [i for slot in result.values() for i in ids(slot)]
        assert placed == [1]
        assert ids(result["highlight"]) == [1]

    def test_repeated_ids_keep_first_position(self) -> None:
        items = [make_item(1), make_item(2)]

        assert ids(sort_by_selection(items, [2, 1, 2])) == [2, 1]

    def test_empty_selection_gives_empty_categories(self) -> None:
        result = allocate([], [])

        assert result == {"highlight": [], "normal": [], "grid": []}

    def test_unknown_ids_in_selection_are_skipped(self) -> None:
        result = allocate([make_item(1)], [99, 1])

        assert ids(result["normal"]) == [1]

    def test_mixed_selection_saturates_and_reports_overflow(
        self, mixed_selection: list[ContentItem]
    ) -> None:
        """25 selections fill all 21 slots and the last 4 grid items fail."""
        with pytest.raises(CapacityExceeded) as exc:
            allocate(mixed_selection, list(range(1, 26)))

        allocated = exc.value.allocated
        assert len(allocated["highlight"]) == 3
        assert len(allocated["normal"]) == 9
        assert len(allocated["grid"]) == 9
        # 10th normal item cascaded into grid ahead of the grid items
        assert allocated["grid"][0].id == 13
        assert ids(exc.value.overflow) == [22, 23, 24, 25]

    def test_no_item_lost_or_duplicated(
        self, mixed_selection: list[ContentItem]
    ) -> None:
        with pytest.raises(CapacityExceeded) as exc:
            allocate(mixed_selection, list(range(1, 26)))

        placed = [i for items in exc.value.allocated.values() for i in ids(items)]
        overflow = ids(exc.value.overflow)
        assert sorted(placed + overflow) == list(range(1, 26))
        assert len(set(placed)) == len(placed)

    def test_limits_never_exceeded(self) -> None:
        limits = CategoryLimits(highlight=2, normal=2, grid=2)
        items = [make_item(i, "highlight") for i in range(1, 10)]

        with pytest.raises(CapacityExceeded) as exc:
            allocate(items, list(range(1, 10)), limits)

        for category, placed in exc.value.allocated.items():
            assert len(placed) <= limits.limit_for(category)  # type: ignore[arg-type]
        assert len(exc.value.overflow) == 3


class TestRunAllocate:
    """Test run_allocate result wrapping."""

    def test_success(self) -> None:
        inp = AllocateInput(items=(make_item(1),), selection_order=(1,))

        out = run_allocate(inp)

        assert out.success
        assert ids(out.categorized["normal"]) == [1]
        assert out.errors == []

    def test_capacity_errors_reported_per_item(
        self, mixed_selection: list[ContentItem]
    ) -> None:
        inp = AllocateInput(
            items=tuple(mixed_selection), selection_order=tuple(range(1, 26))
        )

        out = run_allocate(inp)

        assert not out.success
        assert [e.item_id for e in out.errors] == [22, 23, 24, 25]
        assert all(e.code == "capacity_exceeded" for e in out.errors)
        assert len(out.categorized["grid"]) == 9

    def test_ineligible_item_reported(self) -> None:
        inp = AllocateInput(
            items=(make_item(1, status="private"),), selection_order=(1,)
        )

        out = run_allocate(inp)

        assert not out.success
        assert out.errors[0].code == "content_not_eligible"

    def test_limits_from_rules(self) -> None:
        rules = Rules.model_validate(
            {"newsletter": {"category_limits": {"highlight": 1, "normal": 1, "grid": 1}}}
        )
        items = tuple(make_item(i) for i in range(1, 4))

        out = run_allocate(AllocateInput(items=items, selection_order=(1, 2, 3)), rules=rules)

        assert out.success
        assert {k: len(v) for k, v in out.categorized.items()} == {
            "highlight": 1,
            "normal": 1,
            "grid": 1,
        }

    def test_run_dispatch_rejects_unknown_input(self) -> None:
        with pytest.raises(ValueError):
            run("not an input")  # type: ignore[arg-type]


def test_build_limits_defaults_without_rules() -> None:
    assert build_limits(None) == CategoryLimits(3, 9, 9)


def test_sort_by_selection_drops_unselected() -> None:
    items = [make_item(1), make_item(2), make_item(3)]

    assert ids(sort_by_selection(items, [3, 1])) == [3, 1]


# --- Recommendation ---


class TestRecommend:
    """Test recommend and topical balancing."""

    def test_balance_spreads_evenly(self) -> None:
        items = [make_item(i, line="A") for i in range(1, 6)]
        items += [make_item(i, line="B") for i in range(6, 11)]
        items += [make_item(i, line="C") for i in range(11, 16)]

        result = balance_by_topical_line(items, 7)

        # 7 // 3 = 2 each, first line gets the extra one
        assert ids(result) == [1, 2, 3, 6, 7, 11, 12]

    def test_balance_missing_line_grouped_together(self) -> None:
        items = [make_item(1, line=None), make_item(2, line="A"), make_item(3, line=None)]

        result = balance_by_topical_line(items, 4)

        assert ids(result) == [1, 3, 2]

    def test_balance_more_lines_than_slots(self) -> None:
        items = [make_item(i, line=f"L{i}") for i in range(1, 6)]

        result = balance_by_topical_line(items, 3)

        assert ids(result) == [1, 2, 3]

    def test_balance_empty(self) -> None:
        assert balance_by_topical_line([], 21) == []

    def test_recent_first(self) -> None:
        items = [make_item(1, age_days=3), make_item(2, age_days=1), make_item(3, age_days=2)]
        criteria = RecommendCriteria(balance_topical_lines=False)

        assert ids(recommend(items, criteria)) == [2, 3, 1]

    def test_require_image(self) -> None:
        items = [make_item(1, image="https://img/1.jpg"), make_item(2)]
        criteria = RecommendCriteria(require_image=True)

        assert ids(recommend(items, criteria)) == [1]

    def test_max_items_caps_result(self) -> None:
        items = [make_item(i, age_days=i) for i in range(1, 40)]

        result = recommend(items)

        assert len(result) == 21

    def test_rules_cap_max_items(self) -> None:
        rules = Rules.model_validate({"newsletter": {"max_recommended": 5}})
        items = tuple(make_item(i) for i in range(1, 20))

        out = run(RecommendInput(candidates=items), rules=rules)

        assert len(out.items) == 5  # type: ignore[union-attr]


# --- Distribution / statistics / validation ---


@pytest.mark.parametrize(
    "total,expected",
    [
        (0, {"highlight": 0, "normal": 0, "grid": 0}),
        (3, {"highlight": 3, "normal": 0, "grid": 0}),
        (5, {"highlight": 3, "normal": 2, "grid": 0}),
        (10, {"highlight": 3, "normal": 6, "grid": 1}),
        (15, {"highlight": 3, "normal": 6, "grid": 6}),
        (21, {"highlight": 3, "normal": 9, "grid": 9}),
        (30, {"highlight": 3, "normal": 9, "grid": 9}),
    ],
)
def test_optimal_distribution(total: int, expected: dict[str, int]) -> None:
    assert optimal_distribution(total) == expected


def test_content_statistics() -> None:
    categorized = {
        "highlight": [make_item(1, "highlight", image="https://img/1.jpg")],
        "normal": [make_item(2, line=None), make_item(3, line="Cardio")],
        "grid": [],
    }

    stats = content_statistics(categorized)

    assert stats.total == 3
    assert stats.by_category == {"highlight": 1, "normal": 2, "grid": 0}
    assert stats.by_topical_line == {"Oncology": 1, "Unassigned": 1, "Cardio": 1}
    assert stats.with_images == 1
    assert stats.without_images == 2
    assert stats.to_dict()["total"] == 3


class TestValidateContent:
    def test_complete_newsletter_is_valid(self) -> None:
        newsletter = Newsletter(
            number=7,
            header_text="June issue",
            news_ids=[1],
            categorized_news={"normal": [make_item(1)]},
            html_content="<html></html>",
        )

        assert validate_content(newsletter) == []

    def test_empty_newsletter_reports_every_problem(self) -> None:
        newsletter = Newsletter(number=7, header_text="  ")

        errors = validate_content(newsletter)

        assert len(errors) == 4

    def test_all_categories_empty(self) -> None:
        newsletter = Newsletter(
            number=7,
            header_text="June",
            news_ids=[1],
            categorized_news={"highlight": [], "normal": [], "grid": []},
            html_content="<p>x</p>",
        )

        assert validate_content(newsletter) == [
            "Newsletter must have at least one news item in any category"
        ]
