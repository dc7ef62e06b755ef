"""Concurrent-safe storage of live map-ban sessions."""

from __future__ import annotations

from contextlib import contextmanager
import logging
import threading
from typing import Callable, Iterable, Iterator, TypeVar

from mapban.backend.catalog import MapCatalog
from mapban.backend.errors import NotFoundError, ShuttingDownError, ValidationError
from mapban.backend.models import CreatedSession, Session, pool_problems
from mapban.backend.security import generate_token, token_label
from mapban.backend.state import build_session

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SessionRegistry:
    """Maps every issued token to the Host-owned session it belongs to.

    Each session stores three alias entries (host, orange, blue) pointing at the
    host token; only the host entry holds state. The index lock guards the
    alias and session maps and is never held while a mutator runs. Mutators run
    under a per-session re-entrant lock, so different sessions never wait on
    each other.
    """

    def __init__(self, catalog: MapCatalog, token_factory: Callable[[], str] = generate_token) -> None:
        self.catalog = catalog
        self._token_factory = token_factory
        self._index_lock = threading.Lock()
        self._idle = threading.Condition(self._index_lock)
        self._sessions: dict[str, Session] = {}
        self._aliases: dict[str, str] = {}
        self._locks: dict[str, threading.RLock] = {}
        self._accepting = True
        self._in_flight = 0
        # Per-thread nesting depth, so a mutator that closes its own session is
        # not refused once draining has started.
        self._depth = threading.local()

    @classmethod
    def from_sessions(cls, catalog: MapCatalog, sessions: Iterable[Session]) -> SessionRegistry:
        registry = cls(catalog)
        for session in sessions:
            registry._insert(session.copy())
        return registry

    def __len__(self) -> int:
        with self._index_lock:
            return len(self._sessions)

    def create(self, orange_name: str, blue_name: str, map_pool: list[str]) -> CreatedSession:
        problems: list[str] = []
        if not orange_name.strip():
            problems.append("orangeTeamName: must not be blank")
        if not blue_name.strip():
            problems.append("blueTeamName: must not be blank")
        problems.extend(pool_problems(map_pool, self.catalog))
        if problems:
            raise ValidationError(problems)

        session = build_session(
            host_token=self._token_factory(),
            orange_token=self._token_factory(),
            blue_token=self._token_factory(),
            orange_team_name=orange_name,
            blue_team_name=blue_name,
            map_pool=map_pool,
        )
        with self._operation():
            self._insert(session)

        logger.info(
            "Created session %s: %r (orange) vs %r (blue), pool of %d maps",
            token_label(session.host_token),
            orange_name,
            blue_name,
            len(map_pool),
        )
        return CreatedSession(
            host_token=session.host_token,
            orange_token=session.orange_token,
            blue_token=session.blue_token,
            session=session.copy(),
        )

    def resolve_host(self, token: str) -> Session:
        """Return a copy of the Host session that any of its three tokens points at."""
        host_token, lock = self._lookup(token)
        with lock:
            with self._index_lock:
                session = self._sessions.get(host_token)
            if session is None:
                raise NotFoundError("Session not found")
            return session.copy()

    def with_session(self, token: str, mutator: Callable[[Session], T]) -> T:
        """Run ``mutator`` against the live Host session under its critical section."""
        with self._operation():
            host_token, lock = self._lookup(token)
            with lock:
                with self._index_lock:
                    session = self._sessions.get(host_token)
                if session is None:
                    raise NotFoundError("Session not found")
                return mutator(session)

    def close(self, host_token: str) -> None:
        """Remove the host, orange and blue entries of a session together."""
        with self._operation():
            resolved, lock = self._lookup(host_token)
            if resolved != host_token:
                raise NotFoundError("Session can only be closed by its host token")
            with lock:
                with self._index_lock:
                    session = self._sessions.pop(host_token, None)
                    if session is None:
                        raise NotFoundError("Session not found")
                    for token in session.tokens:
                        self._aliases.pop(token, None)
                    self._locks.pop(host_token, None)
        logger.info("Closed session %s", token_label(host_token))

    def drain(self, timeout: float | None = None) -> bool:
        """Stop accepting operations and wait for in-flight ones to finish."""
        with self._idle:
            self._accepting = False
            drained = self._idle.wait_for(lambda: self._in_flight == 0, timeout=timeout)
        if not drained:
            logger.warning("Registry drain timed out with operations still in flight")
        return drained

    @property
    def accepting(self) -> bool:
        with self._index_lock:
            return self._accepting

    def export(self) -> list[Session]:
        """Copy every live session, each read under its own critical section."""
        with self._index_lock:
            entries = [(host_token, self._locks[host_token]) for host_token in self._sessions]
        sessions: list[Session] = []
        for host_token, lock in entries:
            with lock:
                with self._index_lock:
                    session = self._sessions.get(host_token)
                if session is not None:
                    sessions.append(session.copy())
        return sessions

    def _insert(self, session: Session) -> None:
        tokens = session.tokens
        with self._index_lock:
            if len(set(tokens)) != len(tokens) or any(token in self._aliases for token in tokens):
                raise RuntimeError("Token collision while registering a session")
            self._locks[session.host_token] = threading.RLock()
            self._sessions[session.host_token] = session
            for token in tokens:
                self._aliases[token] = session.host_token

    def _lookup(self, token: str) -> tuple[str, threading.RLock]:
        with self._index_lock:
            host_token = self._aliases.get(token)
            lock = self._locks.get(host_token) if host_token is not None else None
        if host_token is None or lock is None:
            raise NotFoundError("Session not found")
        return host_token, lock

    @contextmanager
    def _operation(self) -> Iterator[None]:
        depth = getattr(self._depth, "value", 0)
        if depth == 0:
            with self._index_lock:
                if not self._accepting:
                    raise ShuttingDownError("Server is shutting down")
                self._in_flight += 1
        self._depth.value = depth + 1
        try:
            yield
        finally:
            self._depth.value = depth
            if depth == 0:
                with self._idle:
                    self._in_flight -= 1
                    if self._in_flight == 0:
                        self._idle.notify_all()
