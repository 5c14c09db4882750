"""
Slot allocator component - display-slot allocation and recommendations.
"""

from bulletin.components.slots.component import (
    allocate,
    balance_by_topical_line,
    build_limits,
    content_statistics,
    find_alternative_category,
    optimal_distribution,
    recommend,
    run,
    run_allocate,
    run_recommend,
    sort_by_selection,
    validate_content,
)
from bulletin.components.slots.models import (
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

__all__ = [
    # Entry points
    "run",
    "run_allocate",
    "run_recommend",
    # Functional core
    "allocate",
    "balance_by_topical_line",
    "build_limits",
    "content_statistics",
    "find_alternative_category",
    "optimal_distribution",
    "recommend",
    "sort_by_selection",
    "validate_content",
    # Models
    "ALTERNATIVE_CATEGORIES",
    "DEFAULT_LIMITS",
    "AllocateInput",
    "AllocateOutput",
    "AllocationError",
    "CategoryLimits",
    "ContentStatistics",
    "RecommendCriteria",
    "RecommendInput",
    "RecommendOutput",
]
