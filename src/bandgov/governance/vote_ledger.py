"""Vote ledger arithmetic.

The proposal row carries denormalized counters (votes_approve,
votes_reject, votes_abstain) that mirror the vote table. This module
computes the counter adjustment for one cast; the store applies the
adjustment and the ledger write in a single transaction.
"""

from __future__ import annotations

from typing import Optional

from bandgov.errors import ValidationError
from bandgov.models.proposal import VoteChoice


COUNTER_COLUMNS: dict[VoteChoice, str] = {
    VoteChoice.APPROVE: "votes_approve",
    VoteChoice.REJECT: "votes_reject",
    VoteChoice.ABSTAIN: "votes_abstain",
}


def parse_choice(value: object) -> VoteChoice:
    """Parse a vote choice, raising ValidationError for anything else."""
    if isinstance(value, VoteChoice):
        return value
    try:
        return VoteChoice(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(c.value for c in VoteChoice)
        raise ValidationError(
            f"Invalid vote choice: {value!r}. Use one of: {allowed}"
        ) from None


def counter_delta(
    previous: Optional[VoteChoice],
    new: VoteChoice,
) -> dict[str, int]:
    """Return {counter_column: delta} for replacing *previous* with *new*.

    - First vote: +1 on the new choice.
    - Changed vote: -1 on the old choice, +1 on the new one.
    - Same choice again: no counter change.
    """
    if previous is None:
        return {COUNTER_COLUMNS[new]: 1}
    if previous == new:
        return {}
    return {COUNTER_COLUMNS[previous]: -1, COUNTER_COLUMNS[new]: 1}

