"""
Hardware acceleration detection for video encoding.

This module probes the host for a usable hardware encoder. Probes run in a
fixed priority order (NVIDIA, Intel, AMD, VideoToolbox) and the first one
that succeeds wins; a host with no working accelerator gets ``NONE``.
Detection never raises: a missing vendor tool or a failed trial encode just
means that accelerator is absent.
"""

import asyncio
import platform
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

from ..utils import get_logger

logger = get_logger(__name__)


class HardwareType(str, Enum):
    """Hardware acceleration types (at most one is active)."""

    NONE = "none"  # CPU encoding
    NVIDIA = "nvidia"  # NVENC / CUDA
    INTEL = "intel"  # Quick Sync (QSV)
    AMD = "amd"  # AMF
    VIDEOTOOLBOX = "videotoolbox"  # Apple media engine

    @property
    def display_name(self) -> str:
        """Human-readable accelerator name."""
        return _DISPLAY_NAMES[self]


_DISPLAY_NAMES = {
    HardwareType.NONE: "CPU (software)",
    HardwareType.NVIDIA: "NVIDIA NVENC",
    HardwareType.INTEL: "Intel Quick Sync",
    HardwareType.AMD: "AMD AMF",
    HardwareType.VIDEOTOOLBOX: "Apple VideoToolbox",
}

# CLI / config preference -> forced capability
PREFERENCE_MAP: Dict[str, HardwareType] = {
    "nvidia": HardwareType.NVIDIA,
    "intel": HardwareType.INTEL,
    "amd": HardwareType.AMD,
    "videotoolbox": HardwareType.VIDEOTOOLBOX,
    "cpu-only": HardwareType.NONE,
}

# (returncode, combined stdout/stderr)
CommandRunner = Callable[[List[str], float], Awaitable[Tuple[int, str]]]


@dataclass
class ProbeResult:
    """Outcome of probing one accelerator."""

    hardware_type: HardwareType
    available: bool = False
    detail: str = ""
    error: Optional[str] = None


@dataclass
class HardwareInfo:
    """All probe results plus the selected capability."""

    capability: HardwareType
    probes: List[ProbeResult] = field(default_factory=list)
    platform: str = ""
    machine: str = ""

    @property
    def has_hardware_encoding(self) -> bool:
        """Check if a hardware accelerator was selected."""
        return self.capability != HardwareType.NONE

    @property
    def available_hardware_types(self) -> List[HardwareType]:
        """Accelerators whose probe succeeded, in priority order."""
        return [probe.hardware_type for probe in self.probes if probe.available]


async def run_probe_command(command: List[str], timeout: float) -> Tuple[int, str]:
    """
    Run a short probe command and capture its output.

    Args:
        command: Command and arguments
        timeout: Seconds before the process is killed

    Returns:
        Tuple of (returncode, combined output)

    Raises:
        OSError: If the executable cannot be started
        asyncio.TimeoutError: If the command exceeds the timeout
    """
    process = await asyncio.create_subprocess_exec(
        *command,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.STDOUT,
    )
    try:
        stdout, _ = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        raise
    return process.returncode or 0, stdout.decode(errors="replace") if stdout else ""


class HardwareDetector:
    """
    Detects the best available hardware encoder.

    Probes, in priority order:
    - NVIDIA: ``nvidia-smi`` lists a GPU and a trial ``h264_nvenc`` encode works
    - Intel: trial ``h264_qsv`` encode works
    - AMD: trial ``h264_amf`` encode works
    - VideoToolbox: macOS on Apple Silicon, or a trial ``h264_videotoolbox`` encode works
    """

    PRIORITY = [
        HardwareType.NVIDIA,  # Usually fastest
        HardwareType.INTEL,
        HardwareType.AMD,
        HardwareType.VIDEOTOOLBOX,
    ]

    TRIAL_ENCODERS = {
        HardwareType.NVIDIA: "h264_nvenc",
        HardwareType.INTEL: "h264_qsv",
        HardwareType.AMD: "h264_amf",
        HardwareType.VIDEOTOOLBOX: "h264_videotoolbox",
    }

    TRIAL_SOURCE = "testsrc=duration=1:size=320x240:rate=1"

    def __init__(
        self,
        ffmpeg_path: str = "ffmpeg",
        timeout: float = 10.0,
        runner: Optional[CommandRunner] = None,
        platform_name: Optional[str] = None,
        machine: Optional[str] = None,
    ):
        """
        Initialize hardware detector.

        Args:
            ffmpeg_path: FFmpeg executable used for trial encodes
            timeout: Timeout for each probe command in seconds
            runner: Command runner (injectable for tests)
            platform_name: Platform override ("darwin", "linux", "win32")
            machine: Machine architecture override ("arm64", "x86_64")
        """
        self.ffmpeg_path = ffmpeg_path
        self.timeout = timeout
        self._runner = runner or run_probe_command
        self.platform_name = platform_name or _current_platform()
        self.machine = (machine or platform.machine()).lower()
        self._cache: Optional[HardwareType] = None

    async def detect(self, prefer: str = "auto") -> HardwareType:
        """
        Select the active hardware capability.

        Args:
            prefer: "auto" to probe, or a forced accelerator
                    ("nvidia", "intel", "amd", "videotoolbox", "cpu-only")

        Returns:
            The selected HardwareType (NONE when nothing works)
        """
        forced = PREFERENCE_MAP.get(prefer.lower())
        if forced is not None:
            logger.info(f"Hardware acceleration forced: {forced.display_name}")
            return forced
        if prefer.lower() != "auto":
            logger.warning(f"Invalid hardware preference: {prefer}, probing instead")

        if self._cache is not None:
            logger.debug("Using cached hardware detection result")
            return self._cache

        logger.info("Detecting hardware acceleration capabilities...")

        capability = HardwareType.NONE
        for hw_type in self.PRIORITY:
            result = await self._probe(hw_type)
            if result.available:
                capability = hw_type
                break

        if capability == HardwareType.NONE:
            logger.info("No hardware acceleration detected, using CPU encoding")
        else:
            logger.info(f"Hardware acceleration: [green]{capability.display_name}[/green]")

        self._cache = capability
        return capability

    async def probe_all(self) -> HardwareInfo:
        """
        Run every probe, without stopping at the first success.

        Returns:
            HardwareInfo with each probe result and the selected capability
        """
        probes = [await self._probe(hw_type) for hw_type in self.PRIORITY]
        capability = next(
            (probe.hardware_type for probe in probes if probe.available), HardwareType.NONE
        )
        return HardwareInfo(
            capability=capability,
            probes=probes,
            platform=self.platform_name,
            machine=self.machine,
        )

    async def _probe(self, hw_type: HardwareType) -> ProbeResult:
        """Run one probe; any failure means "not available"."""
        try:
            if hw_type == HardwareType.NVIDIA:
                result = await self._probe_nvidia()
            elif hw_type == HardwareType.VIDEOTOOLBOX:
                result = await self._probe_videotoolbox()
            else:
                result = await self._trial_encode(hw_type)
        except asyncio.TimeoutError:
            result = ProbeResult(hw_type, error=f"probe timed out after {self.timeout}s")
        except Exception as e:
            result = ProbeResult(hw_type, error=str(e) or type(e).__name__)

        if result.available:
            logger.debug(f"✓ {hw_type.display_name} available {result.detail}")
        else:
            logger.debug(f"✗ {hw_type.display_name} not available: {result.error}")
        return result

    async def _probe_nvidia(self) -> ProbeResult:
        """Query nvidia-smi, then confirm NVENC works through FFmpeg."""
        returncode, output = await self._runner(
            ["nvidia-smi", "--query-gpu=name", "--format=csv,noheader,nounits"],
            self.timeout,
        )
        gpu_name = output.strip().splitlines()[0] if output.strip() else ""
        if returncode != 0 or not gpu_name:
            return ProbeResult(HardwareType.NVIDIA, error="nvidia-smi reported no GPU")

        result = await self._trial_encode(HardwareType.NVIDIA)
        result.detail = gpu_name
        return result

    async def _probe_videotoolbox(self) -> ProbeResult:
        """VideoToolbox only exists on macOS."""
        if self.platform_name != "darwin":
            return ProbeResult(HardwareType.VIDEOTOOLBOX, error="not macOS")

        if self.machine == "arm64":
            return ProbeResult(HardwareType.VIDEOTOOLBOX, available=True, detail="Apple Silicon")

        return await self._trial_encode(HardwareType.VIDEOTOOLBOX)

    async def _trial_encode(self, hw_type: HardwareType) -> ProbeResult:
        """Encode one synthetic frame with the accelerator's H.264 encoder."""
        encoder = self.TRIAL_ENCODERS[hw_type]
        command = [
            self.ffmpeg_path,
            "-hide_banner",
            "-loglevel",
            "error",
            "-f",
            "lavfi",
            "-i",
            self.TRIAL_SOURCE,
            "-frames:v",
            "1",
            "-c:v",
            encoder,
            "-f",
            "null",
            "-",
        ]
        returncode, output = await self._runner(command, self.timeout)
        if returncode == 0:
            return ProbeResult(hw_type, available=True, detail=encoder)

        lines = [line for line in output.strip().splitlines() if line.strip()]
        return ProbeResult(
            hw_type,
            error=lines[-1][:200] if lines else f"{encoder} trial encode failed",
        )

    def clear_cache(self) -> None:
        """Clear cached detection result."""
        self._cache = None


def _current_platform() -> str:
    """Return a sys.platform style identifier."""
    system = platform.system().lower()
    if system == "windows":
        return "win32"
    return system


# Global instance for easy access
_detector: Optional[HardwareDetector] = None


def get_hardware_detector(ffmpeg_path: str = "ffmpeg", timeout: float = 10.0) -> HardwareDetector:
    """
    Get global hardware detector instance.

    A different ffmpeg path than the cached detector's replaces it.

    Returns:
        HardwareDetector instance
    """
    global _detector
    if _detector is None or _detector.ffmpeg_path != ffmpeg_path:
        _detector = HardwareDetector(ffmpeg_path=ffmpeg_path, timeout=timeout)
    return _detector
