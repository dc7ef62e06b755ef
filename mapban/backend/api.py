"""FastAPI endpoints for the map-ban protocol."""

from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from typing import Any, AsyncIterator, Union

from fastapi import Body, Depends, FastAPI, Header, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from starlette.concurrency import run_in_threadpool

from .actions import CreateSessionRequest, decode_action
from .catalog import MapCatalog
from .engine import describe, submit_choice
from .errors import MapBanError, NotFoundError, PersistenceError, ValidationError
from .models import MapAction, Role, Session
from .persistence import PersistenceManager
from .registry import SessionRegistry

logger = logging.getLogger(__name__)


class SessionView(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    role: Role
    host_token: str | None = None
    orange_token: str | None = None
    blue_token: str | None = None
    orange_team_name: str
    blue_team_name: str
    map_pool: list[str]
    maps_chosen: list[str]
    bans: list[str]
    picks: list[str]
    current_phase: int
    next_actor: Role | None = None
    next_action: MapAction | None = None
    created_at: str
    updated_at: str


def build_view(session: Session, role: Role) -> SessionView:
    """Render a session for one role; only the host sees the team tokens."""
    progress = describe(session)
    tokens: dict[str, str] = {}
    if role is Role.HOST:
        tokens = {
            "host_token": session.host_token,
            "orange_token": session.orange_token,
            "blue_token": session.blue_token,
        }
    elif role is Role.ORANGE:
        tokens = {"orange_token": session.orange_token}
    else:
        tokens = {"blue_token": session.blue_token}
    return SessionView(
        role=role,
        **tokens,
        orange_team_name=session.orange_team_name,
        blue_team_name=session.blue_team_name,
        map_pool=list(session.map_pool),
        maps_chosen=list(session.maps_chosen),
        bans=progress.bans,
        picks=progress.picks,
        current_phase=session.current_phase,
        next_actor=progress.next_actor,
        next_action=progress.next_action,
        created_at=session.created_at,
        updated_at=session.updated_at,
    )


def create_app(
    registry: SessionRegistry | None = None,
    persistence: PersistenceManager | None = None,
    allowed_origins: tuple[str, ...] = ("*",),
) -> FastAPI:
    session_registry = registry if registry is not None else SessionRegistry(MapCatalog.default())

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        # uvicorn has stopped intake and finished in-flight requests by now.
        await run_in_threadpool(session_registry.drain)
        if persistence is None:
            return
        try:
            await run_in_threadpool(persistence.snapshot, session_registry, session_registry.catalog)
        except PersistenceError:
            logger.exception("Snapshot failed on shutdown; %d live sessions were not saved", len(session_registry))

    app = FastAPI(title="Map Ban API", version="0.3.0", lifespan=lifespan)
    app.state.registry = session_registry
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(allowed_origins),
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    def get_registry() -> SessionRegistry:
        return session_registry

    @app.exception_handler(MapBanError)
    async def handle_mapban_error(request: Request, exc: MapBanError) -> JSONResponse:
        if isinstance(exc, NotFoundError):
            logger.error("Unresolvable token on %s %s: %s", request.method, request.url.path, exc.detail)
        else:
            logger.info("Rejected %s %s: %s", request.method, request.url.path, exc.detail)
        content: dict[str, Any] = {"detail": exc.detail}
        if isinstance(exc, ValidationError):
            content["problems"] = exc.problems
        return JSONResponse(status_code=exc.status_code, content=content)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        problems = [
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
        ]
        return await handle_mapban_error(request, ValidationError(problems))

    @app.post(
        "/process",
        response_model=Union[SessionView, list[str]],
        response_model_exclude_none=True,
    )
    def process(
        payload: dict[str, Any] = Body(...),
        mapban_phase: str | None = Header(default=None),
        local_registry: SessionRegistry = Depends(get_registry),
    ) -> SessionView | list[str]:
        action = decode_action(payload, header_phase=mapban_phase)
        if isinstance(action, CreateSessionRequest):
            created = local_registry.create(
                orange_name=action.orange_team_name,
                blue_name=action.blue_team_name,
                map_pool=action.map_pool,
            )
            return build_view(created.session, Role.HOST)

        outcome = submit_choice(local_registry, phase=action.phase, token=action.token, choice=action.choice)
        if outcome.result is not None:
            return outcome.result
        return outcome.maps_chosen

    @app.get("/session", response_model=SessionView, response_model_exclude_none=True)
    def get_session(
        token: str = Query(min_length=1),
        local_registry: SessionRegistry = Depends(get_registry),
    ) -> SessionView:
        session = local_registry.resolve_host(token)
        role = session.role_of(token)
        if role is None:
            raise NotFoundError("Session not found")
        return build_view(session, role)

    return app
