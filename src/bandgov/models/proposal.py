"""Proposal, vote and version data models.

Proposal lifecycle:
    DRAFT → IN_REVIEW → VOTING | NEEDS_REVISION
    NEEDS_REVISION → IN_REVIEW (resubmission)
    VOTING → APPROVED | REJECTED (terminal)

The vote counters on a Proposal are a cache of the Vote ledger:
votes_approve + votes_reject + votes_abstain always equals the number of
Vote records for that proposal. They are only ever changed in the same
transaction as the ledger row they mirror.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional


class ProposalState(str, enum.Enum):
    DRAFT = "draft"
    IN_REVIEW = "in_review"
    NEEDS_REVISION = "needs_revision"
    VOTING = "voting"
    APPROVED = "approved"
    REJECTED = "rejected"


class VoteChoice(str, enum.Enum):
    APPROVE = "approve"
    REJECT = "reject"
    ABSTAIN = "abstain"


class ReviewAction(str, enum.Enum):
    """What a reviewer decides for a proposal in review."""
    APPROVE = "approve"
    REQUEST_CHANGES = "request_changes"


class ReviewStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    NEEDS_CHANGES = "needs_changes"


# Textual fields that make up a proposal's substantive content.
CONTENT_FIELDS: tuple[str, ...] = (
    "title",
    "objective",
    "description",
    "rationale",
    "success_criteria",
    "financial_request",
    "budget_breakdown",
)

REQUIRED_CONTENT_FIELDS: tuple[str, ...] = (
    "title",
    "objective",
    "description",
    "rationale",
    "success_criteria",
)


@dataclass
class Proposal:
    """A governance item moving through review, voting and resolution."""
    proposal_id: str
    band_id: str
    creator_id: str
    title: str
    objective: str
    description: str
    rationale: str
    success_criteria: str
    state: ProposalState
    created_utc: datetime
    voting_ends_utc: datetime
    financial_request: Optional[str] = None
    budget_breakdown: Optional[str] = None
    state_changed_utc: Optional[datetime] = None
    voting_starts_utc: Optional[datetime] = None
    votes_approve: int = 0
    votes_reject: int = 0
    votes_abstain: int = 0
    reviewed_by: Optional[str] = None
    reviewed_utc: Optional[datetime] = None
    review_feedback: Optional[str] = None
    review_status: ReviewStatus = ReviewStatus.PENDING

    @property
    def total_votes(self) -> int:
        return self.votes_approve + self.votes_reject + self.votes_abstain

    def content(self) -> dict[str, Optional[str]]:
        """Return the substantive textual fields as a dict."""
        return {name: getattr(self, name) for name in CONTENT_FIELDS}

    def to_dict(self) -> dict[str, Any]:
        return {
            "proposal_id": self.proposal_id,
            "band_id": self.band_id,
            "creator_id": self.creator_id,
            **self.content(),
            "state": self.state.value,
            "created_utc": _iso(self.created_utc),
            "state_changed_utc": _iso(self.state_changed_utc),
            "voting_starts_utc": _iso(self.voting_starts_utc),
            "voting_ends_utc": _iso(self.voting_ends_utc),
            "votes_approve": self.votes_approve,
            "votes_reject": self.votes_reject,
            "votes_abstain": self.votes_abstain,
            "reviewed_by": self.reviewed_by,
            "reviewed_utc": _iso(self.reviewed_utc),
            "review_feedback": self.review_feedback,
            "review_status": self.review_status.value,
        }


@dataclass(frozen=True)
class ProposalVersion:
    """Immutable snapshot of a proposal's content.

    Numbered sequentially from 1. Never mutated or deleted.
    """
    version_id: str
    proposal_id: str
    version_number: int
    title: str
    objective: str
    description: str
    rationale: str
    success_criteria: str
    change_reason: str
    created_by: str
    created_utc: datetime
    financial_request: Optional[str] = None
    budget_breakdown: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "version_id": self.version_id,
            "proposal_id": self.proposal_id,
            "version_number": self.version_number,
            "title": self.title,
            "objective": self.objective,
            "description": self.description,
            "rationale": self.rationale,
            "success_criteria": self.success_criteria,
            "financial_request": self.financial_request,
            "budget_breakdown": self.budget_breakdown,
            "change_reason": self.change_reason,
            "created_by": self.created_by,
            "created_utc": _iso(self.created_utc),
        }


@dataclass
class Vote:
    """One member's vote on one proposal.

    Keyed by (proposal_id, member_id). Casting again updates this record
    in place instead of creating a second one.
    """
    vote_id: str
    proposal_id: str
    member_id: str
    choice: VoteChoice
    cast_utc: datetime
    comment: Optional[str] = None
    updated_utc: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "vote_id": self.vote_id,
            "proposal_id": self.proposal_id,
            "member_id": self.member_id,
            "vote": self.choice.value,
            "comment": self.comment,
            "cast_utc": _iso(self.cast_utc),
            "updated_utc": _iso(self.updated_utc),
        }


@dataclass(frozen=True)
class TallyResult:
    """Every intermediate quantity of a finalization, for transparency."""
    votes_approve: int
    votes_reject: int
    votes_abstain: int
    total_votes: int
    active_members: int
    participation_percentage: float
    quorum_percentage: float
    quorum_met: bool
    approval_rate: float
    approval_threshold: float
    approved: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "votes_approve": self.votes_approve,
            "votes_reject": self.votes_reject,
            "votes_abstain": self.votes_abstain,
            "total_votes": self.total_votes,
            "active_members": self.active_members,
            "participation_percentage": self.participation_percentage,
            "quorum_percentage": self.quorum_percentage,
            "quorum_met": self.quorum_met,
            "approval_rate": self.approval_rate,
            "approval_threshold": self.approval_threshold,
            "approved": self.approved,
        }


@dataclass
class ProposalDetail:
    """A proposal together with its vote ledger and version history."""
    proposal: Proposal
    votes: list[Vote] = field(default_factory=list)
    versions: list[ProposalVersion] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "proposal": self.proposal.to_dict(),
            "votes": [v.to_dict() for v in self.votes],
            "versions": [v.to_dict() for v in self.versions],
        }


@dataclass
class VoteOutcome:
    """Result of casting a vote: the stored vote and the resulting counters."""
    vote: Vote
    created: bool
    previous_choice: Optional[VoteChoice]
    counters: dict[str, int] = field(default_factory=dict)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None
