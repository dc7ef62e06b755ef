"""Console logging setup for the map-ban server."""

from __future__ import annotations

import logging

import fastapi
import uvicorn
from rich.console import Console
from rich.logging import RichHandler

console = Console(stderr=True)


def setup_logging(level: str = "INFO") -> None:
    """Route every logger, uvicorn's included, through a single rich handler."""
    handler = RichHandler(
        level=level,
        console=console,
        rich_tracebacks=True,
        tracebacks_suppress=[fastapi, uvicorn],
    )
    logging.basicConfig(level="NOTSET", format="%(message)s", datefmt="[%X]", handlers=[handler], force=True)
