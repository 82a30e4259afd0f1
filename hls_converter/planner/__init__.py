"""Quality selection and batch planning."""

from hls_converter.planner.ladder import (
    DEFAULT_MAX_RATIO,
    DEFAULT_MIN_RATIO,
    QUALITY_LADDER,
    QualityMode,
    closest_quality,
    get_quality,
    select_qualities,
)
from hls_converter.planner.strategy import (
    MAX_CONCURRENCY,
    MIN_CONCURRENCY,
    PLATFORM_CEILINGS,
    ExecutionStrategy,
    compute_concurrency,
    create_execution_strategy,
    normalize_platform,
)

__all__ = [
    # Ladder
    "DEFAULT_MAX_RATIO",
    "DEFAULT_MIN_RATIO",
    "QUALITY_LADDER",
    "QualityMode",
    "closest_quality",
    "get_quality",
    "select_qualities",
    # Strategy
    "MAX_CONCURRENCY",
    "MIN_CONCURRENCY",
    "PLATFORM_CEILINGS",
    "ExecutionStrategy",
    "compute_concurrency",
    "create_execution_strategy",
    "normalize_platform",
]
