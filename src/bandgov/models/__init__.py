"""Band governance data models."""

from bandgov.models.activity import ActivityFilter, ActivityLogEntry, ActivityPage
from bandgov.models.organization import Band, Member, MemberRole, MemberStatus
from bandgov.models.proposal import (
    Proposal,
    ProposalDetail,
    ProposalState,
    ProposalVersion,
    ReviewAction,
    ReviewStatus,
    TallyResult,
    Vote,
    VoteChoice,
    VoteOutcome,
)

__all__ = [
    "ActivityFilter",
    "ActivityLogEntry",
    "ActivityPage",
    "Band",
    "Member",
    "MemberRole",
    "MemberStatus",
    "Proposal",
    "ProposalDetail",
    "ProposalState",
    "ProposalVersion",
    "ReviewAction",
    "ReviewStatus",
    "TallyResult",
    "Vote",
    "VoteChoice",
    "VoteOutcome",
]
