"""Command-line entry point that restores state and serves the API."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

import uvicorn
from fastapi import FastAPI

from .api import create_app
from .config import BackendSettings, load_settings
from .errors import PersistenceError
from .logger import setup_logging
from .persistence import PersistenceManager

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None, settings: BackendSettings | None = None) -> argparse.Namespace:
    settings = settings if settings is not None else load_settings()
    parser = argparse.ArgumentParser(description="Map ban session server")
    parser.add_argument("--host", default=settings.host)
    parser.add_argument("--port", type=int, default=settings.port)
    parser.add_argument("--data-file", type=Path, default=settings.data_file)
    parser.add_argument("--log-level", default=settings.log_level, type=str.upper)
    return parser.parse_args(argv)


def build_app(data_file: Path | None = None, settings: BackendSettings | None = None) -> FastAPI:
    """Restore the snapshot and build the app; raises PersistenceError on a bad snapshot."""
    settings = settings if settings is not None else load_settings()
    persistence = PersistenceManager(data_file if data_file is not None else settings.data_file)
    registry, _catalog = persistence.restore()
    return create_app(registry=registry, persistence=persistence, allowed_origins=settings.allowed_origins)


def main(argv: list[str] | None = None) -> int:
    settings = load_settings()
    args = parse_args(argv, settings)
    setup_logging(args.log_level)

    try:
        app = build_app(data_file=args.data_file, settings=settings)
    except PersistenceError as exc:
        logger.critical("Refusing to start: %s", exc.detail)
        logger.critical("Move or repair the snapshot file before restarting; no sessions were discarded.")
        return 1

    logger.info("Starting server on %s:%d", args.host, args.port)
    uvicorn.run(app, host=args.host, port=args.port, log_config=None, log_level=args.log_level.lower())
    logger.info("Done.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
