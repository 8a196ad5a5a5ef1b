"""Logging setup for the command-line tool."""
from __future__ import annotations

import logging

from rich.logging import RichHandler

from .dashboard import console


def setup_logging(debug: bool = False) -> None:
    """Route all log records through rich; INFO with *debug*, else WARNING."""
    logging.basicConfig(
        level=logging.INFO if debug else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False, rich_tracebacks=True)],
        force=True,
    )

    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
