"""Finalization tally — quorum and approval-threshold computation.

    total_votes    = approve + reject + abstain
    participation  = total_votes / active_members * 100
    quorum_met     = participation >= quorum_percentage
    approval_rate  = approve / total_votes * 100   (0 when nobody voted)
    approved       = quorum_met and approval_rate >= approval_threshold

Abstentions count toward quorum but not toward approval.

The denominator is the band's active member count at finalize time,
not at the start of voting. A member who is deactivated after voting
still has their vote counted but no longer raises the quorum bar;
members added during the window raise it.

Arithmetic is done in Decimal so that boundary cases (exactly 50% vs a
50% quorum) compare exactly.
"""

from __future__ import annotations

from decimal import Decimal

from bandgov.errors import ValidationError
from bandgov.models.proposal import TallyResult


_HUNDRED = Decimal(100)


def compute_tally(
    votes_approve: int,
    votes_reject: int,
    votes_abstain: int,
    active_members: int,
    quorum_percentage: float,
    approval_threshold: float,
) -> TallyResult:
    """Compute the finalization outcome.

    Raises:
        ValidationError: If there are no active members (quorum is
            undefined) or any count is negative.
    """
    if active_members <= 0:
        raise ValidationError(
            "Cannot finalize: band has no active members to measure quorum against"
        )
    if min(votes_approve, votes_reject, votes_abstain) < 0:
        raise ValidationError("Vote counts must not be negative")

    total = votes_approve + votes_reject + votes_abstain
    participation = Decimal(total) * _HUNDRED / Decimal(active_members)
    quorum_met = participation >= Decimal(str(quorum_percentage))

    if total > 0:
        approval_rate = Decimal(votes_approve) * _HUNDRED / Decimal(total)
    else:
        approval_rate = Decimal(0)
    approved = quorum_met and approval_rate >= Decimal(str(approval_threshold))

    return TallyResult(
        votes_approve=votes_approve,
        votes_reject=votes_reject,
        votes_abstain=votes_abstain,
        total_votes=total,
        active_members=active_members,
        participation_percentage=float(participation),
        quorum_percentage=float(quorum_percentage),
        quorum_met=quorum_met,
        approval_rate=float(approval_rate),
        approval_threshold=float(approval_threshold),
        approved=approved,
    )
