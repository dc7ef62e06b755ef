"""Decoding of inbound action descriptions into typed requests."""

from __future__ import annotations

from typing import Any, Union

import pydantic
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from mapban.backend.errors import ValidationError
from mapban.backend.models import FINAL_PHASE


class CreateSessionRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    orange_team_name: str = Field(min_length=1, max_length=200)
    blue_team_name: str = Field(min_length=1, max_length=200)
    map_pool: list[str]


class MapChoiceRequest(BaseModel):
    phase: int = Field(ge=1, le=FINAL_PHASE)
    token: str = Field(min_length=1)
    choice: str = Field(min_length=1)


Action = Union[CreateSessionRequest, MapChoiceRequest]


def decode_action(payload: dict[str, Any], header_phase: str | None = None) -> Action:
    """Decode then validate a request body, reporting every bad field at once.

    The phase is read from the body and falls back to the ``MapBan-Phase``
    header used by older clients.
    """
    raw_phase = payload.get("phase")
    phase = _decode_phase(raw_phase if raw_phase is not None else header_phase)
    try:
        if phase == 0:
            return CreateSessionRequest.model_validate(payload)
        return MapChoiceRequest.model_validate({**payload, "phase": phase})
    except pydantic.ValidationError as exc:
        raise ValidationError(_problems(exc)) from exc


def _decode_phase(raw: Any) -> int:
    if raw is None:
        raise ValidationError("phase: field required")
    if isinstance(raw, bool):
        raise ValidationError("phase: expected an integer")
    try:
        phase = int(raw)
    except (TypeError, ValueError):
        raise ValidationError("phase: expected an integer") from None
    if isinstance(raw, float) and raw != phase:
        raise ValidationError("phase: expected an integer")
    if not 0 <= phase <= FINAL_PHASE:
        raise ValidationError(f"phase: must be between 0 and {FINAL_PHASE}, found {phase}")
    return phase


def _problems(exc: pydantic.ValidationError) -> list[str]:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"]) or "body"
        problems.append(f"{location}: {error['msg']}")
    return problems
