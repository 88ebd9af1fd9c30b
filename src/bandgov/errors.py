"""Typed error taxonomy for the governance engine.

Every guard violation surfaces as one of these. Each kind carries a
stable machine-readable ``kind`` string and an HTTP-like ``status_code``
so any transport (HTTP handler, RPC framing, the CLI) can map it
without inspecting the message.

Activity-log failures never appear here: they are reported to the
operational log and swallowed (see ``bandgov.persistence.activity_log``).
"""

from __future__ import annotations


class GovernanceError(Exception):
    """Base class for all errors raised by the governance engine."""

    kind: str = "INTERNAL_ERROR"
    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"code": self.kind, "message": self.message}


class ValidationError(GovernanceError, ValueError):
    """Missing or malformed input, invalid role, unusable tally inputs."""

    kind = "VALIDATION_ERROR"
    status_code = 400


class AuthenticationError(GovernanceError):
    """No caller identity, or the credential could not be resolved."""

    kind = "AUTHENTICATION_ERROR"
    status_code = 401


class AuthorizationError(GovernanceError):
    """Caller is not an active member or lacks the required permission."""

    kind = "AUTHORIZATION_ERROR"
    status_code = 403


class NotFoundError(GovernanceError):
    """Referenced band, member, proposal or log entry does not exist."""

    kind = "NOT_FOUND_ERROR"
    status_code = 404


class ConflictError(GovernanceError):
    """Transition attempted from a state that does not permit it."""

    kind = "CONFLICT_ERROR"
    status_code = 409


class InternalError(GovernanceError):
    """Persistence failure unrelated to any guard."""

    kind = "INTERNAL_ERROR"
    status_code = 500
