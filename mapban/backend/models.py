"""Domain models for map-ban sessions and their persistence contracts."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum

from mapban.backend.catalog import MapCatalog
from mapban.backend.security import tokens_match


MIN_POOL_SIZE = 7
FINAL_PHASE = 7


class Role(str, Enum):
    HOST = "host"
    ORANGE = "orange"
    BLUE = "blue"


class MapAction(str, Enum):
    BAN = "ban"
    PICK = "pick"


@dataclass(frozen=True)
class PhaseRule:
    actor: Role
    action: MapAction


@dataclass
class Session:
    """Authoritative record of one map-ban, owned by the Host token.

    ``current_phase`` is the phase the session is waiting for; a freshly created
    session waits for phase 1.
    """

    host_token: str
    orange_token: str
    blue_token: str
    orange_team_name: str
    blue_team_name: str
    map_pool: list[str]
    maps_chosen: list[str] = field(default_factory=list)
    current_phase: int = 1
    created_at: str = ""
    updated_at: str = ""

    def token_for(self, role: Role) -> str:
        if role is Role.HOST:
            return self.host_token
        if role is Role.ORANGE:
            return self.orange_token
        return self.blue_token

    def role_of(self, token: str) -> Role | None:
        for role in Role:
            if tokens_match(token, self.token_for(role)):
                return role
        return None

    def team_name(self, role: Role) -> str:
        if role is Role.ORANGE:
            return self.orange_team_name
        if role is Role.BLUE:
            return self.blue_team_name
        return "Host"

    @property
    def tokens(self) -> tuple[str, str, str]:
        return (self.host_token, self.orange_token, self.blue_token)

    def copy(self) -> Session:
        return replace(self, map_pool=list(self.map_pool), maps_chosen=list(self.maps_chosen))


@dataclass(frozen=True)
class CreatedSession:
    host_token: str
    orange_token: str
    blue_token: str
    session: Session


@dataclass(frozen=True)
class ChoiceOutcome:
    phase: int
    rule: PhaseRule
    choice: str
    maps_chosen: list[str]
    result: list[str] | None = None

    @property
    def finished(self) -> bool:
        return self.result is not None


def pool_problems(map_pool: list[str], catalog: MapCatalog) -> list[str]:
    problems: list[str] = []
    if len(map_pool) < MIN_POOL_SIZE:
        problems.append(f"mapPool: at least {MIN_POOL_SIZE} maps required, found {len(map_pool)}")
    for name in catalog.unknown(map_pool):
        problems.append(f"mapPool: map not allowed: {name}")
    seen: set[str] = set()
    for name in map_pool:
        if name in seen:
            problems.append(f"mapPool: duplicate map: {name}")
        seen.add(name)
    return problems


def session_problems(session: Session, catalog: MapCatalog) -> list[str]:
    """List every invariant the session breaks; empty when it is consistent."""
    problems: list[str] = []
    if len(set(session.tokens)) != 3 or not all(session.tokens):
        problems.append("tokens must be three distinct non-empty strings")
    if not session.orange_team_name.strip():
        problems.append("orangeTeamName must not be blank")
    if not session.blue_team_name.strip():
        problems.append("blueTeamName must not be blank")
    problems.extend(pool_problems(session.map_pool, catalog))

    pool = set(session.map_pool)
    for name in session.maps_chosen:
        if name not in pool:
            problems.append(f"mapsChosen: map not in pool: {name}")
    if len(set(session.maps_chosen)) != len(session.maps_chosen):
        problems.append("mapsChosen: contains duplicates")
    if len(session.maps_chosen) >= FINAL_PHASE:
        problems.append("mapsChosen: session should already be closed")
    if session.current_phase != len(session.maps_chosen) + 1:
        problems.append(
            f"currentPhase {session.current_phase} does not follow {len(session.maps_chosen)} chosen maps"
        )
    return problems
