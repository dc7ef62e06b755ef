"""Security helpers for token handling in the backend."""

from __future__ import annotations

import secrets


TOKEN_BYTES = 18


def generate_token() -> str:
    """Generate an unpadded URL-safe token for one session role."""
    return secrets.token_urlsafe(TOKEN_BYTES)


def tokens_match(presented: str, expected: str) -> bool:
    """Compare a presented token against an issued one in constant time."""
    return secrets.compare_digest(presented.encode("utf-8"), expected.encode("utf-8"))


def token_label(token: str) -> str:
    """Short prefix used to refer to a token in log lines."""
    return f"{token[:6]}…"
