"""
Batch concurrency planning.

This module turns host resources into the number of videos converted side by
side. Each video still encodes all of its qualities at once, so the number of
encoder processes at any moment is roughly ``concurrency x ladder size``.
"""

import math
import os
import sys
from dataclasses import dataclass
from typing import Dict, Optional

import psutil

from ..utils import bytes_to_gb, get_logger

logger = get_logger(__name__)

MIN_CONCURRENCY = 1
MAX_CONCURRENCY = 8
MEMORY_PER_PROCESS_GB = 2

# Platforms that degrade under many concurrent encoder processes
PLATFORM_CEILINGS: Dict[str, int] = {
    "darwin": 3,
    "win32": 4,
}

_PLATFORM_ALIASES = {
    "macos": "darwin",
    "mac": "darwin",
    "osx": "darwin",
    "windows": "win32",
    "win": "win32",
}


def normalize_platform(platform_name: str) -> str:
    """Map "macOS"/"Windows" style names onto sys.platform identifiers."""
    key = platform_name.strip().lower()
    return _PLATFORM_ALIASES.get(key, key)


def compute_concurrency(cpu_count: int, free_mem_gb: float, platform_name: str) -> int:
    """
    Compute a safe batch size.

    Half the cores, capped by free memory (about 2GB per conversion), capped
    by a platform ceiling, then clamped to [1, 8].

    Args:
        cpu_count: Logical CPU count
        free_mem_gb: Free memory in GB
        platform_name: sys.platform style name ("darwin", "win32", "linux")

    Returns:
        Number of videos to convert concurrently
    """
    concurrency = cpu_count // 2
    concurrency = min(concurrency, math.floor(free_mem_gb / MEMORY_PER_PROCESS_GB))

    ceiling = PLATFORM_CEILINGS.get(normalize_platform(platform_name))
    if ceiling is not None:
        concurrency = min(concurrency, ceiling)

    return max(MIN_CONCURRENCY, min(concurrency, MAX_CONCURRENCY))


@dataclass
class ExecutionStrategy:
    """Resolved batch concurrency and the inputs it came from."""

    concurrency: int
    cpu_count: int
    free_mem_gb: float
    platform: str
    overridden: bool = False

    def __post_init__(self) -> None:
        """Validate concurrency values."""
        if self.concurrency < MIN_CONCURRENCY:
            self.concurrency = MIN_CONCURRENCY


def create_execution_strategy(max_concurrent: Optional[int] = None) -> ExecutionStrategy:
    """
    Create the execution strategy from the current host.

    Args:
        max_concurrent: Fixed batch size overriding the computed one

    Returns:
        ExecutionStrategy
    """
    cpu_count = os.cpu_count() or 1
    free_mem_gb = bytes_to_gb(psutil.virtual_memory().available)
    platform_name = sys.platform

    if max_concurrent is not None:
        concurrency = max_concurrent
        overridden = True
    else:
        concurrency = compute_concurrency(cpu_count, free_mem_gb, platform_name)
        overridden = False

    strategy = ExecutionStrategy(
        concurrency=concurrency,
        cpu_count=cpu_count,
        free_mem_gb=free_mem_gb,
        platform=platform_name,
        overridden=overridden,
    )

    logger.info(
        f"Resource allocation: {cpu_count} CPUs, {free_mem_gb:.1f}GB free "
        f"-> {strategy.concurrency} concurrent video(s)"
        + (" (configured)" if overridden else "")
    )
    return strategy
