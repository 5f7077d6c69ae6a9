# streamgate/core/exceptions.py
from __future__ import annotations

"""
StreamGate — Gateway Errors
===========================
One tagged error type for the whole delivery path. Each failure is described
by an `ErrorKind`, which fixes its HTTP status and its stable machine-readable
code; call sites only choose the kind and a human message.

Usage
-----
    raise GatewayError.invalid_segment_path()
    raise GatewayError.not_found("Video not found")

Rendering lives in `streamgate.core.exception_handlers`.
"""

from enum import Enum
from typing import Any, Dict, Optional

from fastapi import status

__all__ = ["ErrorKind", "GatewayError"]


class ErrorKind(str, Enum):
    INVALID_IDENTIFIER = "INVALID_IDENTIFIER"
    INVALID_SEGMENT_PATH = "INVALID_SEGMENT_PATH"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    UPSTREAM_INTEGRITY = "UPSTREAM_INTEGRITY_ERROR"
    UPSTREAM_UNAVAILABLE = "UPSTREAM_UNAVAILABLE"
    INTERNAL = "INTERNAL_ERROR"

    @property
    def code(self) -> str:
        return self.value


_STATUS: Dict[ErrorKind, int] = {
    ErrorKind.INVALID_IDENTIFIER: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_SEGMENT_PATH: status.HTTP_400_BAD_REQUEST,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.UPSTREAM_INTEGRITY: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorKind.UPSTREAM_UNAVAILABLE: status.HTTP_502_BAD_GATEWAY,
    ErrorKind.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

_TITLES: Dict[ErrorKind, str] = {
    ErrorKind.INVALID_IDENTIFIER: "Invalid Identifier",
    ErrorKind.INVALID_SEGMENT_PATH: "Invalid Segment Path",
    ErrorKind.FORBIDDEN: "Forbidden",
    ErrorKind.NOT_FOUND: "Not Found",
    ErrorKind.UPSTREAM_INTEGRITY: "Upstream Integrity Error",
    ErrorKind.UPSTREAM_UNAVAILABLE: "Upstream Unavailable",
    ErrorKind.INTERNAL: "Internal Server Error",
}


class GatewayError(Exception):
    """Tagged delivery error carrying `{kind, status_code, code, message}`.

    Attributes
    ----------
    kind : ErrorKind
        The failure category.
    status_code : int
        HTTP status derived from `kind`.
    code : str
        Stable machine-readable code derived from `kind`.
    message : str
        Client-safe message. Never include storage URLs or credentials.
    details : dict | None
        Optional non-sensitive context (logged, not rendered).
    """

    def __init__(self, kind: ErrorKind, message: str, *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.status_code: int = _STATUS[kind]
        self.code: str = kind.code
        self.title: str = _TITLES[kind]
        self.message = message
        self.details = details

    def __repr__(self) -> str:  # pragma: no cover
        return f"GatewayError(kind={self.kind.name}, message={self.message!r})"

    # ── Construction helpers ────────────────────────────────────────────────
    @classmethod
    def invalid_identifier(cls, message: str = "Invalid video ID format", **kw: Any) -> "GatewayError":
        return cls(ErrorKind.INVALID_IDENTIFIER, message, **kw)

    @classmethod
    def invalid_segment_path(cls, message: str = "Invalid segment path", **kw: Any) -> "GatewayError":
        return cls(ErrorKind.INVALID_SEGMENT_PATH, message, **kw)

    @classmethod
    def forbidden(cls, message: str = "You do not have access to this video", **kw: Any) -> "GatewayError":
        return cls(ErrorKind.FORBIDDEN, message, **kw)

    @classmethod
    def not_found(cls, message: str = "Video not found", **kw: Any) -> "GatewayError":
        return cls(ErrorKind.NOT_FOUND, message, **kw)

    @classmethod
    def upstream_integrity(cls, message: str = "Object store returned an empty or corrupt object", **kw: Any) -> "GatewayError":
        return cls(ErrorKind.UPSTREAM_INTEGRITY, message, **kw)

    @classmethod
    def upstream_unavailable(cls, message: str = "Object store unavailable", **kw: Any) -> "GatewayError":
        return cls(ErrorKind.UPSTREAM_UNAVAILABLE, message, **kw)

    @classmethod
    def internal(cls, message: str = "An unexpected error occurred.", **kw: Any) -> "GatewayError":
        return cls(ErrorKind.INTERNAL, message, **kw)
