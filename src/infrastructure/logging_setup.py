"""
infrastructure.logging_setup - Root logger configuration for entry points.

Library modules only ever call logging.getLogger(__name__); the CLI and
the API call configure_logging() once at startup.
"""

from __future__ import annotations

import logging

from rich.logging import RichHandler


def configure_logging(level: str = "INFO") -> None:
    """Route all log records through a Rich handler at *level*."""
    logging.basicConfig(
        level=level.upper(),
        format="%(name)s: %(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        force=True,
    )
    # Provider SDKs are chatty at INFO
    for noisy in ("httpx", "httpcore", "urllib3"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
