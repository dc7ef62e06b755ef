import pytest

from mapban.backend.actions import CreateSessionRequest, MapChoiceRequest, decode_action
from mapban.backend.errors import ValidationError


def test_decode_phase_zero_builds_create_request(scenario_pool) -> None:
    action = decode_action(
        {"phase": 0, "orangeTeamName": "OrangeCo", "blueTeamName": "BlueCo", "mapPool": scenario_pool}
    )

    assert isinstance(action, CreateSessionRequest)
    assert action.orange_team_name == "OrangeCo"
    assert action.map_pool == scenario_pool


def test_decode_choice_reads_phase_from_header_when_body_has_none() -> None:
    action = decode_action({"token": "abc", "choice": "Bank"}, header_phase="3")

    assert isinstance(action, MapChoiceRequest)
    assert action.phase == 3
    assert action.choice == "Bank"


def test_decode_body_phase_wins_over_header() -> None:
    action = decode_action({"phase": 2, "token": "abc", "choice": "Bank"}, header_phase="5")

    assert action.phase == 2


def test_decode_collects_every_missing_field() -> None:
    with pytest.raises(ValidationError) as excinfo:
        decode_action({"phase": 0, "orangeTeamName": ""})

    problems = excinfo.value.problems
    assert len(problems) == 3
    assert any(problem.startswith("orangeTeamName:") for problem in problems)
    assert any(problem.startswith("blueTeamName:") for problem in problems)
    assert any(problem.startswith("mapPool:") for problem in problems)


def test_decode_choice_reports_token_and_choice_together() -> None:
    with pytest.raises(ValidationError) as excinfo:
        decode_action({"phase": 4})

    assert [problem.split(":")[0] for problem in excinfo.value.problems] == ["token", "choice"]


@pytest.mark.parametrize(
    ("payload", "message"),
    [
        ({}, "phase: field required"),
        ({"phase": "two"}, "phase: expected an integer"),
        ({"phase": True}, "phase: expected an integer"),
        ({"phase": 2.5}, "phase: expected an integer"),
        ({"phase": 8}, "phase: must be between 0 and 7, found 8"),
        ({"phase": -1}, "phase: must be between 0 and 7, found -1"),
    ],
)
def test_decode_rejects_bad_phase(payload, message) -> None:
    with pytest.raises(ValidationError) as excinfo:
        decode_action(payload)

    assert excinfo.value.problems == [message]


def test_decode_null_body_phase_falls_back_to_header() -> None:
    action = decode_action({"phase": None, "token": "abc", "choice": "Bank"}, header_phase="1")

    assert isinstance(action, MapChoiceRequest)
    assert action.phase == 1
