"""
Data models for source media.

A :class:`SourceVideo` is built once from prober output and never changed
afterwards.
"""

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class SourceVideo:
    """A discovered input video and its probed properties."""

    path: Path
    size: int = 0  # bytes
    duration: float = 0.0  # seconds
    width: int = 0
    height: int = 0
    codec: str = "unknown"

    @classmethod
    def unknown(cls, path: Path) -> "SourceVideo":
        """Placeholder used when the file's metadata cannot be read."""
        return cls(path=path)

    @property
    def name(self) -> str:
        """File name including extension."""
        return self.path.name

    @property
    def stem(self) -> str:
        """File name without extension (used as the output directory name)."""
        return self.path.stem

    @property
    def resolution(self) -> str:
        """Get resolution as string (e.g., '1920x1080')."""
        return f"{self.width}x{self.height}"

    @property
    def has_known_dimensions(self) -> bool:
        """Whether width/height came from the prober."""
        return self.width > 0 and self.height > 0
