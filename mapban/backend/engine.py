"""Phase table and transition rules for the ban/pick protocol."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import TYPE_CHECKING

from mapban.backend.errors import AuthorizationError, OutOfSequenceError, ValidationError
from mapban.backend.models import FINAL_PHASE, ChoiceOutcome, MapAction, PhaseRule, Role, Session
from mapban.backend.security import token_label, tokens_match
from mapban.backend.state import utc_now_iso

if TYPE_CHECKING:
    from mapban.backend.registry import SessionRegistry

logger = logging.getLogger(__name__)


PHASE_TABLE: dict[int, PhaseRule] = {
    1: PhaseRule(Role.ORANGE, MapAction.BAN),
    2: PhaseRule(Role.BLUE, MapAction.BAN),
    3: PhaseRule(Role.ORANGE, MapAction.PICK),
    4: PhaseRule(Role.BLUE, MapAction.PICK),
    5: PhaseRule(Role.ORANGE, MapAction.BAN),
    6: PhaseRule(Role.BLUE, MapAction.BAN),
    7: PhaseRule(Role.HOST, MapAction.PICK),
}

# Positions in maps_chosen of the orange pick, the blue pick and the decider.
RESULT_INDICES = (2, 3, 6)


@dataclass(frozen=True)
class SessionProgress:
    bans: list[str]
    picks: list[str]
    next_actor: Role | None
    next_action: MapAction | None


def validate(session: Session, phase: int, token: str, choice: str) -> PhaseRule:
    """Check an action against the session, raising on the first failed rule."""
    if phase != session.current_phase:
        raise OutOfSequenceError(f"Phase {phase} submitted but session is at phase {session.current_phase}")

    rule = PHASE_TABLE[phase]
    if not tokens_match(token, session.token_for(rule.actor)):
        held = session.role_of(token)
        if held is None:
            raise AuthorizationError(f"Phase {phase} requires the {rule.actor.value} token")
        raise AuthorizationError(f"Phase {phase} requires the {rule.actor.value} token, not {held.value}")

    if choice not in session.map_pool:
        raise ValidationError(f"map not in pool: {choice}")
    if choice in session.maps_chosen:
        raise ValidationError(f"duplicate map: {choice}")
    return rule


def apply(session: Session, choice: str) -> ChoiceOutcome:
    phase = session.current_phase
    rule = PHASE_TABLE[phase]
    session.maps_chosen.append(choice)
    session.current_phase = phase + 1
    session.updated_at = utc_now_iso()

    result = None
    if phase == FINAL_PHASE:
        result = [session.maps_chosen[index] for index in RESULT_INDICES]
    return ChoiceOutcome(
        phase=phase,
        rule=rule,
        choice=choice,
        maps_chosen=list(session.maps_chosen),
        result=result,
    )


def submit_choice(registry: SessionRegistry, phase: int, token: str, choice: str) -> ChoiceOutcome:
    """Validate and apply one ban or pick inside the session's critical section.

    Completing the final phase closes the session before the critical section
    is released, so no other request can observe the finished session.
    """

    def mutate(session: Session) -> ChoiceOutcome:
        rule = validate(session, phase, token, choice)
        outcome = apply(session, choice)
        verb = "banned" if rule.action is MapAction.BAN else "picked"
        logger.info(
            "Session %s phase %d: %s %s %r",
            token_label(session.host_token),
            phase,
            session.team_name(rule.actor),
            verb,
            choice,
        )
        if outcome.finished:
            registry.close(session.host_token)
            logger.info("Session %s finished, maps played: %s", token_label(session.host_token), outcome.result)
        return outcome

    return registry.with_session(token, mutate)


def describe(session: Session) -> SessionProgress:
    """Split the chosen maps into bans and picks and name who acts next."""
    bans: list[str] = []
    picks: list[str] = []
    for phase, name in enumerate(session.maps_chosen, start=1):
        if PHASE_TABLE[phase].action is MapAction.BAN:
            bans.append(name)
        else:
            picks.append(name)

    rule = PHASE_TABLE.get(session.current_phase)
    return SessionProgress(
        bans=bans,
        picks=picks,
        next_actor=rule.actor if rule else None,
        next_action=rule.action if rule else None,
    )
