"""
Structured logging configuration.

Call configure_logging() once at app startup.
"""
import logging
import sys


def configure_logging(level: int | str = logging.INFO) -> None:
    """Configure root logger with structured format."""
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    fmt = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
    logging.basicConfig(
        level=level,
        format=fmt,
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
    )
    # Suppress noisy third-party loggers
    logging.getLogger("redis").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
