"""Backend package for the map-ban session server."""

from .catalog import MapCatalog
from .config import BackendSettings, load_settings
from .engine import PHASE_TABLE, submit_choice
from .errors import (
    AuthorizationError,
    MapBanError,
    NotFoundError,
    OutOfSequenceError,
    PersistenceError,
    ShuttingDownError,
    ValidationError,
)
from .persistence import PersistenceManager
from .registry import SessionRegistry
from .security import generate_token

__all__ = [
    "AuthorizationError",
    "BackendSettings",
    "generate_token",
    "load_settings",
    "MapBanError",
    "MapCatalog",
    "NotFoundError",
    "OutOfSequenceError",
    "PersistenceError",
    "PersistenceManager",
    "PHASE_TABLE",
    "SessionRegistry",
    "ShuttingDownError",
    "submit_choice",
    "ValidationError",
]
