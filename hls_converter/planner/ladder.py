"""
Quality ladder and per-video quality selection.

The ladder is static; selection narrows it for one source height and always
returns at least one profile.
"""

from enum import Enum
from typing import List, Sequence

from ..models import QualityProfile
from ..utils import get_logger

logger = get_logger(__name__)

QUALITY_LADDER: List[QualityProfile] = [
    QualityProfile("1080p", 1920, 1080, "5000k", "192k"),
    QualityProfile("720p", 1280, 720, "2500k", "128k"),
    QualityProfile("480p", 854, 480, "1000k", "128k"),
    QualityProfile("360p", 640, 360, "500k", "96k"),
]

DEFAULT_MIN_RATIO = 0.5
DEFAULT_MAX_RATIO = 1.0


class QualityMode(str, Enum):
    """Ladder selection mode."""

    EQUAL = "equal"  # single rung closest to the source
    ADAPTIVE_FILTERED = "adaptive-filtered"  # rungs within a ratio band of the source
    ADAPTIVE_ALL = "adaptive-all"  # every rung


def select_qualities(
    source_height: int,
    mode: QualityMode = QualityMode.EQUAL,
    min_ratio: float = DEFAULT_MIN_RATIO,
    max_ratio: float = DEFAULT_MAX_RATIO,
    ladder: Sequence[QualityProfile] = QUALITY_LADDER,
) -> List[QualityProfile]:
    """
    Select the output qualities for a source video.

    Args:
        source_height: Source height in pixels (0 when unknown)
        mode: Selection mode
        min_ratio: Lower bound of kept heights, relative to the source
        max_ratio: Upper bound of kept heights, relative to the source
        ladder: Candidate profiles, in ladder order

    Returns:
        Non-empty list of profiles. Equal mode returns one profile, the
        adaptive modes return profiles sorted by descending height.
    """
    if not ladder:
        raise ValueError("Quality ladder must not be empty")

    mode = QualityMode(mode)

    if mode == QualityMode.EQUAL:
        return [closest_quality(source_height, ladder)]

    by_height = sorted(ladder, key=lambda q: q.height, reverse=True)

    if mode == QualityMode.ADAPTIVE_ALL:
        return by_height

    # Unknown dimensions: no ratio band to filter with
    if source_height <= 0:
        logger.debug("Source height unknown, using the full ladder")
        return by_height

    min_height = source_height * min_ratio
    max_height = source_height * max_ratio
    selected = [q for q in by_height if min_height <= q.height <= max_height]

    if not selected:
        lowest = min(ladder, key=lambda q: q.height)
        logger.debug(
            f"No rung within {min_height:.0f}p-{max_height:.0f}p, falling back to {lowest.name}"
        )
        return [lowest]

    logger.debug(
        f"Quality range {min_height:.0f}p-{max_height:.0f}p (source {source_height}p): "
        f"{', '.join(q.name for q in selected)}"
    )
    return selected


def closest_quality(
    source_height: int, ladder: Sequence[QualityProfile] = QUALITY_LADDER
) -> QualityProfile:
    """Rung with the smallest height difference; the first one wins ties."""
    best = ladder[0]
    for quality in ladder[1:]:
        if abs(quality.height - source_height) < abs(best.height - source_height):
            best = quality
    return best


def get_quality(name: str, ladder: Sequence[QualityProfile] = QUALITY_LADDER) -> QualityProfile:
    """
    Look up a rung by name.

    Raises:
        KeyError: If no rung has that name
    """
    for quality in ladder:
        if quality.name == name:
            return quality
    raise KeyError(name)
