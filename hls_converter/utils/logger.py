"""
Logging utilities with Rich integration.

All modules log through children of the ``hls_converter`` logger, which is
configured once by :func:`setup_logger` with a Rich console handler and an
optional plain-text file handler.
"""

import inspect
import logging
import time
from functools import wraps
from pathlib import Path
from typing import Any, Callable, Optional, TypeVar, cast

from rich.console import Console
from rich.logging import RichHandler

F = TypeVar("F", bound=Callable[..., Any])

ROOT_LOGGER_NAME = "hls_converter"


def setup_logger(
    name: str = ROOT_LOGGER_NAME,
    level: str = "INFO",
    log_file: Optional[Path] = None,
    verbose: bool = False,
    console: Optional[Console] = None,
) -> logging.Logger:
    """
    Setup logger with Rich handler and optional file output.

    Calling this again replaces the previous handlers, so the CLI can
    reconfigure the level and console after import time.

    Args:
        name: Logger name (defaults to the package logger)
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path to log file
        verbose: Enable DEBUG output with source paths
        console: Rich console to use (creates new if None)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    log_level = logging.DEBUG if verbose else getattr(logging, level.upper(), logging.INFO)
    logger.setLevel(log_level)

    logger.handlers.clear()

    rich_handler = RichHandler(
        console=console or Console(stderr=True),
        rich_tracebacks=True,
        markup=True,
        show_time=True,
        show_path=verbose,
        omit_repeated_times=False,
        level=log_level,
    )
    rich_handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    logger.addHandler(rich_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
        file_handler.setLevel(log_level)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(file_handler)

    # Avoid duplicate lines through the root logger
    logger.propagate = False

    return logger


def log_performance(logger: Optional[logging.Logger] = None) -> Callable[[F], F]:
    """
    Decorator to log function execution time.

    Works for both plain and ``async`` functions.

    Args:
        logger: Logger instance to use (package logger if None)

    Returns:
        Decorator that logs elapsed time on success and failure
    """
    log = logger or logging.getLogger(ROOT_LOGGER_NAME)

    def decorator(func: F) -> F:
        @wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            start = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                log.error(
                    f"[red]{func.__name__}[/red] failed after "
                    f"{time.perf_counter() - start:.2f}s: {e}"
                )
                raise
            log.info(
                f"[cyan]{func.__name__}[/cyan] completed in {time.perf_counter() - start:.2f}s"
            )
            return result

        @wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            start = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                log.error(
                    f"[red]{func.__name__}[/red] failed after "
                    f"{time.perf_counter() - start:.2f}s: {e}"
                )
                raise
            log.info(
                f"[cyan]{func.__name__}[/cyan] completed in {time.perf_counter() - start:.2f}s"
            )
            return result

        if inspect.iscoroutinefunction(func):
            return cast(F, async_wrapper)
        return cast(F, sync_wrapper)

    return decorator


default_logger = setup_logger()


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """
    Get a logger instance.

    Module loggers created with ``get_logger(__name__)`` are named
    ``hls_converter.<module>`` and inherit the handlers configured on the
    package logger by :func:`setup_logger`.

    Args:
        name: Logger name (typically __name__ from the calling module)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
