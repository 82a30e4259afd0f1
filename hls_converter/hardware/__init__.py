"""Hardware capability detection and host health checks."""

from hls_converter.hardware.detector import (
    PREFERENCE_MAP,
    HardwareDetector,
    HardwareInfo,
    HardwareType,
    ProbeResult,
    get_hardware_detector,
    run_probe_command,
)
from hls_converter.hardware.health import HealthMonitor, HealthStatus

__all__ = [
    "PREFERENCE_MAP",
    "HardwareDetector",
    "HardwareInfo",
    "HardwareType",
    "ProbeResult",
    "get_hardware_detector",
    "run_probe_command",
    "HealthMonitor",
    "HealthStatus",
]
