"""Caller identity and membership resolution.

Identity issuance (registration, sessions, token signing) belongs to an
external collaborator. This module only defines what the governance
engine consumes from it:

- an authenticated ``Identity`` (user_id, email) resolved from a bearer
  credential before any governance operation runs, and
- the caller's *active* Member record in the target band, with role,
  which every operation requires.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional, Protocol

from bandgov.errors import AuthenticationError, AuthorizationError, NotFoundError
from bandgov.models.organization import Band, Member
from bandgov.persistence.store import StoreSession


@dataclass(frozen=True)
class Identity:
    """An authenticated caller."""
    user_id: str
    email: str = ""


class Authenticator(Protocol):
    """Resolves a bearer credential to an Identity or raises AuthenticationError."""

    def authenticate(self, credential: Optional[str]) -> Identity: ...


class StaticTokenAuthenticator:
    """Authenticator backed by a fixed token → identity table.

    Suitable for the CLI, tests and single-operator deployments where
    tokens are provisioned out of band.
    """

    def __init__(self, tokens: Mapping[str, Identity]) -> None:
        self._tokens = dict(tokens)

    def authenticate(self, credential: Optional[str]) -> Identity:
        if not credential:
            raise AuthenticationError("No token provided")
        token = credential
        if token.lower().startswith("bearer "):
            token = token[7:].strip()
        identity = self._tokens.get(token)
        if identity is None:
            raise AuthenticationError("Invalid or expired token")
        return identity


def require_identity(caller: Optional[Identity]) -> Identity:
    if caller is None or not caller.user_id:
        raise AuthenticationError("Authentication required")
    return caller


class MembershipResolver:
    """Resolves (band, caller) to the caller's active Member record."""

    @staticmethod
    def resolve(tx: StoreSession, band_id: str, caller: Optional[Identity]) -> tuple[Band, Member]:
        """Return the band and the caller's active membership.

        Raises:
            AuthenticationError: No caller identity.
            NotFoundError: Band does not exist.
            AuthorizationError: Caller is not an active member of the band.
        """
        identity = require_identity(caller)
        if not band_id:
            raise NotFoundError("Band ID required")
        band = tx.get_band(band_id)
        if band is None:
            raise NotFoundError(f"Band not found: {band_id}")
        member = tx.find_member(band_id, identity.user_id)
        if member is None or not member.is_active:
            raise AuthorizationError("Not an active member of this band")
        return band, member
