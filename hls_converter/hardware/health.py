"""
Advisory system health checks run between conversion batches.

High CPU only produces a warning. Free disk space below the configured floor
tells the batch driver to stop scheduling further work.
"""

import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import psutil

from ..utils import bytes_to_gb, get_logger

logger = get_logger(__name__)


@dataclass
class HealthStatus:
    """One health sample."""

    free_disk_gb: Optional[float] = None
    cpu_percent: Optional[float] = None
    low_disk: bool = False
    high_cpu: bool = False

    @property
    def can_schedule(self) -> bool:
        """Further batches may start."""
        return not self.low_disk


class HealthMonitor:
    """Samples disk space and CPU load."""

    def __init__(self, min_free_disk_gb: float = 5.0, cpu_warning_percent: float = 90.0):
        """
        Initialize health monitor.

        Args:
            min_free_disk_gb: Free space floor in GB below which scheduling stops
            cpu_warning_percent: CPU utilisation that triggers a warning
        """
        self.min_free_disk_gb = min_free_disk_gb
        self.cpu_warning_percent = cpu_warning_percent
        # Prime the counter; the first non-blocking sample is always 0.0
        psutil.cpu_percent(interval=None)

    def check(self, path: Path) -> HealthStatus:
        """
        Sample free disk under ``path`` and current CPU load.

        A measurement that fails is logged and treated as healthy.

        Args:
            path: Directory whose file system receives the output

        Returns:
            HealthStatus for this sample
        """
        status = HealthStatus()

        try:
            status.free_disk_gb = bytes_to_gb(shutil.disk_usage(_existing_parent(path)).free)
        except OSError as e:
            logger.warning(f"Could not check free disk space for {path}: {e}")

        status.cpu_percent = psutil.cpu_percent(interval=None)

        if status.cpu_percent is not None and status.cpu_percent > self.cpu_warning_percent:
            status.high_cpu = True
            logger.warning(f"High CPU usage detected: {status.cpu_percent:.1f}%")

        if status.free_disk_gb is not None and status.free_disk_gb < self.min_free_disk_gb:
            status.low_disk = True
            logger.warning(f"Low disk space detected: {status.free_disk_gb:.1f}GB free")

        return status


def _existing_parent(path: Path) -> Path:
    """Closest existing ancestor of ``path`` (the output root may not exist yet)."""
    for candidate in [path, *path.parents]:
        if candidate.exists():
            return candidate
    return Path.cwd()
