"""State builders for new map-ban sessions."""

from __future__ import annotations

from datetime import datetime, timezone

from mapban.backend.models import Session


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def build_session(
    host_token: str,
    orange_token: str,
    blue_token: str,
    orange_team_name: str,
    blue_team_name: str,
    map_pool: list[str],
) -> Session:
    """Return a session that has completed phase 0 and waits for the first ban."""
    now = utc_now_iso()
    return Session(
        host_token=host_token,
        orange_token=orange_token,
        blue_token=blue_token,
        orange_team_name=orange_team_name,
        blue_team_name=blue_team_name,
        map_pool=list(map_pool),
        maps_chosen=[],
        current_phase=1,
        created_at=now,
        updated_at=now,
    )
