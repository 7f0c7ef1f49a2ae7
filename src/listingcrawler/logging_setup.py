from __future__ import annotations

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler


_LEVELS = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}


def setup_logging(level: str | int = "INFO", console: Optional[Console] = None) -> None:
    """Route all loggers through a single rich handler."""
    if isinstance(level, str):
        level = _LEVELS.get(level.upper(), logging.INFO)

    handler = RichHandler(
        console=console,
        show_path=False,
        rich_tracebacks=False,
        markup=False,
        log_time_format="[%X]",
    )
    logging.basicConfig(level=level, format="%(name)s: %(message)s", handlers=[handler], force=True)

    # asyncio and urllib3 are chatty at DEBUG.
    for noisy in ("asyncio", "urllib3"):
        logging.getLogger(noisy).setLevel(max(level, logging.INFO))
