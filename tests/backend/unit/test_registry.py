import threading

import pytest

from mapban.backend.engine import submit_choice
from mapban.backend.errors import NotFoundError, OutOfSequenceError, ShuttingDownError, ValidationError
from mapban.backend.registry import SessionRegistry


def test_create_issues_three_distinct_tokens_resolving_to_one_session(registry, scenario_pool) -> None:
    created = registry.create(orange_name="OrangeCo", blue_name="BlueCo", map_pool=scenario_pool)

    tokens = {created.host_token, created.orange_token, created.blue_token}
    assert len(tokens) == 3
    resolved = [registry.resolve_host(token) for token in tokens]
    assert all(session == created.session for session in resolved)
    assert created.session.host_token == created.host_token
    assert len(registry) == 1


def test_create_reports_every_problem_in_one_error(registry) -> None:
    with pytest.raises(ValidationError) as excinfo:
        registry.create(orange_name=" ", blue_name="", map_pool=["Bank", "Bank", "Mirage"])

    assert excinfo.value.problems == [
        "orangeTeamName: must not be blank",
        "blueTeamName: must not be blank",
        "mapPool: at least 7 maps required, found 3",
        "mapPool: map not allowed: Mirage",
        "mapPool: duplicate map: Bank",
    ]
    assert len(registry) == 0


def test_resolve_host_returns_a_copy(registry, scenario_pool) -> None:
    created = registry.create(orange_name="OrangeCo", blue_name="BlueCo", map_pool=scenario_pool)

    copy = registry.resolve_host(created.orange_token)
    copy.maps_chosen.append("Bank")

    assert registry.resolve_host(created.host_token).maps_chosen == []


def test_resolve_host_rejects_unknown_token(registry) -> None:
    with pytest.raises(NotFoundError):
        registry.resolve_host("never-issued")


def test_close_removes_all_three_aliases(registry, scenario_pool) -> None:
    created = registry.create(orange_name="OrangeCo", blue_name="BlueCo", map_pool=scenario_pool)
    other = registry.create(orange_name="A", blue_name="B", map_pool=scenario_pool)

    registry.close(created.host_token)

    for token in (created.host_token, created.orange_token, created.blue_token):
        with pytest.raises(NotFoundError):
            registry.resolve_host(token)
    assert registry.resolve_host(other.blue_token).host_token == other.host_token
    assert len(registry) == 1


def test_close_requires_the_host_token(registry, scenario_pool) -> None:
    created = registry.create(orange_name="OrangeCo", blue_name="BlueCo", map_pool=scenario_pool)

    with pytest.raises(NotFoundError):
        registry.close(created.orange_token)

    assert registry.resolve_host(created.host_token).host_token == created.host_token


def test_with_session_mutations_are_visible_to_every_alias(registry, scenario_pool) -> None:
    created = registry.create(orange_name="OrangeCo", blue_name="BlueCo", map_pool=scenario_pool)

    registry.with_session(created.blue_token, lambda session: session.maps_chosen.append("Bank"))

    assert registry.resolve_host(created.orange_token).maps_chosen == ["Bank"]


def test_racing_submissions_for_same_phase_apply_exactly_once(registry, scenario_pool) -> None:
    created = registry.create(orange_name="OrangeCo", blue_name="BlueCo", map_pool=scenario_pool)
    barrier = threading.Barrier(len(scenario_pool))
    outcomes: list[str] = []
    outcomes_lock = threading.Lock()

    def submit(choice: str) -> None:
        barrier.wait()
        try:
            submit_choice(registry, phase=1, token=created.orange_token, choice=choice)
            result = "applied"
        except OutOfSequenceError:
            result = "out-of-sequence"
        with outcomes_lock:
            outcomes.append(result)

    threads = [threading.Thread(target=submit, args=(choice,)) for choice in scenario_pool]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=5)

    assert outcomes.count("applied") == 1
    assert outcomes.count("out-of-sequence") == len(scenario_pool) - 1
    session = registry.resolve_host(created.host_token)
    assert len(session.maps_chosen) == 1
    assert session.current_phase == 2


def test_sessions_do_not_block_each_other(registry, scenario_pool) -> None:
    first = registry.create(orange_name="A", blue_name="B", map_pool=scenario_pool)
    second = registry.create(orange_name="C", blue_name="D", map_pool=scenario_pool)
    inside = threading.Event()
    release = threading.Event()

    def hold(session) -> None:
        inside.set()
        release.wait(timeout=5)

    holder = threading.Thread(target=registry.with_session, args=(first.host_token, hold))
    holder.start()
    assert inside.wait(timeout=5)

    outcome = submit_choice(registry, phase=1, token=second.orange_token, choice="Bank")

    release.set()
    holder.join(timeout=5)
    assert outcome.maps_chosen == ["Bank"]


def test_drain_refuses_new_work_but_allows_reads(registry, scenario_pool) -> None:
    created = registry.create(orange_name="OrangeCo", blue_name="BlueCo", map_pool=scenario_pool)

    assert registry.drain(timeout=1) is True

    assert registry.accepting is False
    with pytest.raises(ShuttingDownError):
        registry.create(orange_name="A", blue_name="B", map_pool=scenario_pool)
    with pytest.raises(ShuttingDownError):
        submit_choice(registry, phase=1, token=created.orange_token, choice="Bank")
    assert registry.resolve_host(created.host_token).maps_chosen == []


def test_drain_waits_for_in_flight_critical_section(registry, scenario_pool) -> None:
    created = registry.create(orange_name="OrangeCo", blue_name="BlueCo", map_pool=scenario_pool)
    inside = threading.Event()
    release = threading.Event()

    def slow_append(session) -> None:
        inside.set()
        release.wait(timeout=5)
        session.maps_chosen.append("Bank")

    worker = threading.Thread(target=registry.with_session, args=(created.host_token, slow_append))
    worker.start()
    assert inside.wait(timeout=5)

    assert registry.drain(timeout=0.05) is False
    release.set()
    assert registry.drain(timeout=5) is True
    worker.join(timeout=5)

    assert registry.export()[0].maps_chosen == ["Bank"]


def test_create_refuses_colliding_tokens(catalog, scenario_pool) -> None:
    registry = SessionRegistry(catalog, token_factory=lambda: "same-token")

    with pytest.raises(RuntimeError):
        registry.create(orange_name="OrangeCo", blue_name="BlueCo", map_pool=scenario_pool)

    assert len(registry) == 0


def test_from_sessions_rebuilds_aliases(registry, catalog, scenario_pool) -> None:
    created = registry.create(orange_name="OrangeCo", blue_name="BlueCo", map_pool=scenario_pool)

    rebuilt = SessionRegistry.from_sessions(catalog, registry.export())

    assert rebuilt.export() == registry.export()
    assert rebuilt.resolve_host(created.blue_token).host_token == created.host_token
