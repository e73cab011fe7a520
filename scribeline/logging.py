"""
scribeline.logging - Centralized logging configuration.

Log records go to stderr through rich, apart from the CLI output on stdout.
The HTTP client libraries used by the backends are noisy at INFO, so they
stay at WARNING unless verbose.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

logger = logging.getLogger("scribeline")

NOISY_LOGGERS = ("LiteLLM", "httpx", "httpcore", "urllib3", "google")


def configure_logging(verbose: bool = False) -> None:
    """Configure logging for the scribeline package.

    Args:
        verbose: If True, enable DEBUG level logging; otherwise WARNING level
    """
    level = logging.DEBUG if verbose else logging.WARNING
    handler = RichHandler(
        console=Console(stderr=True),
        show_time=verbose,
        show_path=False,
        markup=False,
    )
    logging.basicConfig(level=level, format="%(message)s", handlers=[handler])
    logger.setLevel(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.INFO if verbose else logging.WARNING)
