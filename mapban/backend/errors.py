"""Error taxonomy shared by the registry, engine and transport layers."""

from __future__ import annotations


class MapBanError(Exception):
    """Base class for errors reported back to the caller."""

    status_code = 500

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class ValidationError(MapBanError):
    """Malformed input, unknown or duplicate map, or an undersized pool."""

    status_code = 400

    def __init__(self, problems: list[str] | str) -> None:
        if isinstance(problems, str):
            problems = [problems]
        self.problems = list(problems)
        super().__init__("; ".join(self.problems))


class AuthorizationError(MapBanError):
    """The token belongs to the session but not to the role the phase requires."""

    status_code = 403


class OutOfSequenceError(MapBanError):
    status_code = 409


class NotFoundError(MapBanError):
    """A token does not resolve to a live session.

    Issued tokens stay valid until phase 7 closes their session, so this is
    reported as a server-side fault.
    """

    status_code = 500


class ShuttingDownError(MapBanError):
    status_code = 503


class PersistenceError(MapBanError):
    """Snapshot could not be written, read or trusted."""
