"""Configuration helpers for backend runtime."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class BackendSettings:
    host: str
    port: int
    data_file: Path
    log_level: str
    allowed_origins: tuple[str, ...]


def load_settings() -> BackendSettings:
    port_raw = os.getenv("MAPBAN_PORT", "4000")
    origins_raw = os.getenv("MAPBAN_ALLOWED_ORIGINS", "*")
    return BackendSettings(
        host=os.getenv("MAPBAN_HOST", "127.0.0.1"),
        port=int(port_raw),
        data_file=Path(os.getenv("MAPBAN_DATA_FILE", "data.json")),
        log_level=os.getenv("MAPBAN_LOG_LEVEL", "INFO").upper(),
        allowed_origins=tuple(origin.strip() for origin in origins_raw.split(",") if origin.strip()),
    )
