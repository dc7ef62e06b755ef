"""Snapshot and restore of the session registry and map catalog."""

from __future__ import annotations

import logging
import os
from pathlib import Path
import tempfile

from pydantic import BaseModel, ConfigDict, Field
import pydantic
from pydantic.alias_generators import to_camel

from mapban.backend.catalog import MapCatalog
from mapban.backend.errors import PersistenceError
from mapban.backend.models import MIN_POOL_SIZE, Session, session_problems
from mapban.backend.registry import SessionRegistry

logger = logging.getLogger(__name__)

SNAPSHOT_FORMAT_VERSION = 1


class SessionRecord(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    host_token: str
    orange_token: str
    blue_token: str
    orange_team_name: str
    blue_team_name: str
    map_pool: list[str]
    maps_chosen: list[str]
    current_phase: int
    created_at: str
    updated_at: str


class SnapshotDocument(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    format_version: int = Field(ge=1)
    catalog: list[str]
    sessions: list[SessionRecord]


class PersistenceManager:
    """Owns one snapshot file on disk."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def encode(self, registry: SessionRegistry, catalog: MapCatalog) -> bytes:
        document = SnapshotDocument(
            format_version=SNAPSHOT_FORMAT_VERSION,
            catalog=list(catalog),
            sessions=[SessionRecord(**vars(session)) for session in registry.export()],
        )
        return document.model_dump_json(by_alias=True, indent=2).encode("utf-8")

    def decode(self, data: bytes) -> tuple[SessionRegistry, MapCatalog]:
        try:
            document = SnapshotDocument.model_validate_json(data)
        except pydantic.ValidationError as exc:
            raise PersistenceError(f"Snapshot {self.path} is corrupt: {exc}") from exc

        if document.format_version != SNAPSHOT_FORMAT_VERSION:
            raise PersistenceError(
                f"Snapshot {self.path} has unsupported format version {document.format_version}"
            )

        catalog = MapCatalog.from_names(document.catalog)
        if len(catalog) < MIN_POOL_SIZE or any(not name.strip() for name in catalog):
            raise PersistenceError(
                f"Snapshot {self.path} has an unusable catalog: need at least {MIN_POOL_SIZE} non-blank maps"
            )
        sessions = [Session(**record.model_dump()) for record in document.sessions]
        problems = [
            f"session #{index}: {problem}"
            for index, session in enumerate(sessions)
            for problem in session_problems(session, catalog)
        ]
        if problems:
            raise PersistenceError(f"Snapshot {self.path} is inconsistent: {'; '.join(problems)}")

        try:
            registry = SessionRegistry.from_sessions(catalog, sessions)
        except RuntimeError as exc:
            raise PersistenceError(f"Snapshot {self.path} reuses tokens across sessions") from exc
        return registry, catalog

    def snapshot(self, registry: SessionRegistry, catalog: MapCatalog) -> bytes:
        """Write the snapshot through a temp file so the previous one survives a crash."""
        data = self.encode(registry, catalog)
        directory = self.path.parent
        temp_name: str | None = None
        try:
            directory.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                mode="wb", dir=directory, prefix=f".{self.path.name}.", suffix=".tmp", delete=False
            ) as handle:
                temp_name = handle.name
                handle.write(data)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(temp_name, self.path)
            _fsync_directory(directory)
        except OSError as exc:
            if temp_name is not None and os.path.exists(temp_name):
                os.unlink(temp_name)
            raise PersistenceError(f"Snapshot {self.path} could not be written: {exc}") from exc

        logger.info("Wrote snapshot %s with %d live sessions", self.path, len(registry))
        return data

    def restore(self) -> tuple[SessionRegistry, MapCatalog]:
        if not self.path.exists():
            logger.info("Snapshot %s not found; starting with the default catalog", self.path)
            catalog = MapCatalog.default()
            return SessionRegistry(catalog), catalog

        try:
            data = self.path.read_bytes()
        except OSError as exc:
            raise PersistenceError(f"Snapshot {self.path} could not be read: {exc}") from exc

        registry, catalog = self.decode(data)
        logger.info(
            "Restored %d live sessions and %d catalog maps from %s", len(registry), len(catalog), self.path
        )
        return registry, catalog


def _fsync_directory(directory: Path) -> None:
    """Persist the rename itself; only POSIX lets a directory be opened for fsync."""
    if os.name != "posix":
        return
    fd = os.open(directory, os.O_RDONLY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)
