# astrokernel/core/errors.py
"""
Error taxonomy for the engine.

Every failure carries a stable snake_case ``code`` (used by the HTTP layer and
by structured logs), a human message and an optional ``context`` bag.
"""
from __future__ import annotations

from typing import Any

__all__ = [
    "AstroError",
    "InvalidDate",
    "InvalidArgument",
    "UnknownBody",
    "InvalidHouseSystem",
    "UndefinedAtLatitude",
    "EphemerisUnavailable",
    "NotFound",
    "ConvergenceFailure",
]


class AstroError(RuntimeError):
    """Categorized error for engine callers."""
    code = "astro_error"

    def __init__(self, message: str, **context: Any):
        super().__init__(f"{self.code}: {message}")
        self.message = message
        self.context = context

    def to_dict(self) -> dict:
        out = {"error": self.code, "message": self.message}
        if self.context:
            out["context"] = {k: v for k, v in self.context.items()}
        return out


class InvalidDate(AstroError):
    code = "invalid_date"


class InvalidArgument(AstroError, ValueError):
    code = "invalid_argument"


class UnknownBody(AstroError):
    code = "unknown_body"


class InvalidHouseSystem(AstroError):
    code = "invalid_house_system"


class UndefinedAtLatitude(AstroError):
    code = "undefined_at_latitude"


class EphemerisUnavailable(AstroError):
    code = "ephemeris_unavailable"


class NotFound(AstroError):
    code = "not_found"


class ConvergenceFailure(AstroError):
    code = "convergence_failure"
