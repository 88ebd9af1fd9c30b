"""Band and member data models.

A band holds its own governance configuration (quorum, approval
threshold, default voting period). A member belongs to exactly one band
and is both the unit of authorization (via its role) and the unit of
voting: one member, one vote, no weighting.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional


class MemberRole(str, enum.Enum):
    """Fixed role enumeration. Capabilities live in governance.permissions."""
    FOUNDER = "founder"
    GOVERNOR = "governor"
    STEWARD = "steward"
    MEMBER = "member"
    VOTING_MEMBER = "voting_member"
    OBSERVER = "observer"


class MemberStatus(str, enum.Enum):
    """Membership lifecycle.

    PENDING: invited, not yet accepted.
    ACTIVE: counts toward quorum and may act.
    REMOVED: deactivated; historical votes and log entries are retained.
    """
    PENDING = "pending"
    ACTIVE = "active"
    REMOVED = "removed"


@dataclass
class Band:
    """An organization whose members propose and vote.

    Invariants:
    - 0 <= quorum_percentage <= 100
    - 0 <= approval_threshold <= 100
    - voting_period_hours > 0
    """
    band_id: str
    name: str
    slug: str
    quorum_percentage: float
    approval_threshold: float
    voting_period_hours: float
    created_utc: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "band_id": self.band_id,
            "name": self.name,
            "slug": self.slug,
            "quorum_percentage": self.quorum_percentage,
            "approval_threshold": self.approval_threshold,
            "voting_period_hours": self.voting_period_hours,
            "created_utc": self.created_utc.isoformat(),
        }


@dataclass
class Member:
    """A user's role-bearing membership within one band.

    ``role`` is stored as a plain string: a value outside MemberRole can
    exist in storage and must fail every permission check.
    """
    member_id: str
    band_id: str
    user_id: str
    email: str
    role: str
    status: MemberStatus
    joined_utc: Optional[datetime] = None
    display_name: str = ""
    proposal_count: int = 0
    votes_cast: int = 0

    @property
    def is_active(self) -> bool:
        return self.status == MemberStatus.ACTIVE

    def to_dict(self) -> dict[str, Any]:
        return {
            "member_id": self.member_id,
            "band_id": self.band_id,
            "user_id": self.user_id,
            "email": self.email,
            "display_name": self.display_name,
            "role": self.role,
            "status": self.status.value,
            "joined_utc": self.joined_utc.isoformat() if self.joined_utc else None,
            "proposal_count": self.proposal_count,
            "votes_cast": self.votes_cast,
        }
