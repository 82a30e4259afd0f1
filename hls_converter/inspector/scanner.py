"""
Source discovery.

Finds convertible videos below an input directory and maps existing output
directories back to the source video they were produced from.
"""

from pathlib import Path
from typing import Iterable, Optional, Sequence

from ..config import DEFAULT_SUPPORTED_FORMATS
from ..utils import get_logger

logger = get_logger(__name__)

# Never descended into during discovery
DEFAULT_SKIP_DIRS = ("hls",)

IGNORED_FILE_NAMES = {"Thumbs.db", ".DS_Store"}
IGNORED_SUFFIXES = (".tmp", ".temp")


def is_ignored_file(name: str) -> bool:
    """Hidden files, macOS resource forks and temporary files."""
    return (
        name.startswith(".")
        or name in IGNORED_FILE_NAMES
        or name.lower().endswith(IGNORED_SUFFIXES)
    )


def find_video_files(
    input_dir: Path,
    formats: Sequence[str] = DEFAULT_SUPPORTED_FORMATS,
    skip_dirs: Iterable[str] = DEFAULT_SKIP_DIRS,
    exclude: Optional[Path] = None,
) -> list[Path]:
    """
    Recursively find video files below a directory.

    Args:
        input_dir: Directory to scan
        formats: Accepted extensions (matched case-insensitively)
        skip_dirs: Directory names never descended into
        exclude: Directory excluded from the scan (e.g. an output root inside the input)

    Returns:
        Sorted list of video paths
    """
    extensions = {ext.lower() for ext in formats}
    skipped = set(skip_dirs)
    excluded = exclude.resolve() if exclude is not None else None
    videos: list[Path] = []

    def scan(directory: Path) -> None:
        try:
            entries = sorted(directory.iterdir())
        except OSError as e:
            logger.error(f"Error scanning directory {directory}: {e}")
            return

        for entry in entries:
            if entry.is_dir():
                if entry.name.startswith(".") or entry.name in skipped:
                    continue
                if excluded is not None and entry.resolve() == excluded:
                    continue
                scan(entry)
            elif entry.is_file():
                if is_ignored_file(entry.name):
                    continue
                if entry.suffix.lower() in extensions:
                    videos.append(entry)

    scan(input_dir)
    videos.sort()
    logger.info(f"Found {len(videos)} video file(s) in {input_dir}")
    return videos


def find_source_video(
    output_dir: Path,
    output_root: Path,
    input_dir: Path,
    formats: Sequence[str] = DEFAULT_SUPPORTED_FORMATS,
) -> Optional[Path]:
    """
    Locate the source video an output directory was produced from.

    The directory name is the source stem. Candidate directories are tried in
    order: the mirrored relative location below ``input_dir``, ``input_dir``
    itself, then its direct subdirectories. In each, the stem is matched as-is
    or lower-cased, and the extension case-insensitively; earlier formats win.

    Args:
        output_dir: Video output directory (contains ``master.m3u8``)
        output_root: Root of all output
        input_dir: Root of all sources
        formats: Extensions to try

    Returns:
        Source path, or None when nothing matches
    """
    stem = output_dir.name
    names = [stem] if stem == stem.lower() else [stem, stem.lower()]
    extensions = [ext.lower() for ext in formats]

    for directory in _candidate_dirs(output_dir, output_root, input_dir):
        try:
            entries = list(directory.iterdir())
        except OSError:
            continue

        matches = [
            entry
            for entry in entries
            if entry.stem in names and entry.suffix.lower() in extensions and entry.is_file()
        ]
        if matches:
            return min(
                matches,
                key=lambda p: (extensions.index(p.suffix.lower()), names.index(p.stem), p.name),
            )

    return None


def _candidate_dirs(output_dir: Path, output_root: Path, input_dir: Path) -> list[Path]:
    """Directories searched for a source, in priority order, without duplicates."""
    candidates: list[Path] = []

    try:
        relative_parent = output_dir.parent.relative_to(output_root)
        candidates.append(input_dir / relative_parent)
    except ValueError:
        pass

    candidates.append(input_dir)

    try:
        candidates.extend(
            sorted(
                entry
                for entry in input_dir.iterdir()
                if entry.is_dir() and not entry.name.startswith(".")
            )
        )
    except OSError as e:
        logger.warning(f"Could not list {input_dir}: {e}")

    unique: list[Path] = []
    for directory in candidates:
        if directory not in unique:
            unique.append(directory)
    return unique
