"""Process execution and conversion orchestration."""

from hls_converter.executor.batch import (
    BatchConverter,
    BatchPreview,
    PreviewEntry,
    install_hints,
)
from hls_converter.executor.orchestrator import (
    BatchRun,
    ConversionOrchestrator,
    TaskRunner,
    build_job_result,
)
from hls_converter.executor.subprocess import (
    AsyncFFmpegProcess,
    check_binary,
    run_ffmpeg_async,
)

__all__ = [
    "AsyncFFmpegProcess",
    "check_binary",
    "run_ffmpeg_async",
    "BatchRun",
    "ConversionOrchestrator",
    "TaskRunner",
    "build_job_result",
    "BatchConverter",
    "BatchPreview",
    "PreviewEntry",
    "install_hints",
]
