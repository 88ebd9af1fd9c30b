"""Proposal state machine — enforces valid lifecycle transitions.

Proposal lifecycle:
    DRAFT → IN_REVIEW                      (submit)
    IN_REVIEW → VOTING | NEEDS_REVISION    (review)
    NEEDS_REVISION → IN_REVIEW             (resubmit)
    VOTING → APPROVED | REJECTED           (finalize)

State semantics:
- DRAFT: created, editable, not yet visible to reviewers.
- IN_REVIEW: awaiting a reviewer holding approve_proposals.
- NEEDS_REVISION: reviewer requested changes; editable, may be resubmitted.
- VOTING: open for votes until voting_ends_utc.
- APPROVED / REJECTED: terminal, decided by the tally.

Fail-closed: any transition not listed is rejected. The administrative
override is the only path that bypasses this table, and it is handled
by the engine, not here.

Pure computation: validates transitions only. Side effects (persistence,
activity logging) are handled by the engine.
"""

from __future__ import annotations

from bandgov.errors import ConflictError
from bandgov.models.proposal import ProposalState


S = ProposalState

# Valid transitions: {from_state: {allowed_to_states}}
_TRANSITIONS: dict[ProposalState, set[ProposalState]] = {
    S.DRAFT: {S.IN_REVIEW},
    S.IN_REVIEW: {S.VOTING, S.NEEDS_REVISION},
    S.NEEDS_REVISION: {S.IN_REVIEW},
    S.VOTING: {S.APPROVED, S.REJECTED},
    # Terminal states have no outgoing transitions
    S.APPROVED: set(),
    S.REJECTED: set(),
}

# States in which a proposal's content may still be revised.
EDITABLE_STATES: frozenset[ProposalState] = frozenset({S.DRAFT, S.NEEDS_REVISION})


class ProposalStateMachine:
    """Validates proposal state transitions against the transition table."""

    @staticmethod
    def validate_transition(current: ProposalState, target: ProposalState) -> list[str]:
        """Check if a transition is valid. Returns errors (empty = OK)."""
        allowed = _TRANSITIONS.get(current, set())
        if target not in allowed:
            allowed_str = ", ".join(s.value for s in sorted(allowed, key=lambda x: x.value))
            return [
                f"Invalid proposal transition: {current.value} → {target.value}. "
                f"Allowed from {current.value}: [{allowed_str}]"
            ]
        return []

    @staticmethod
    def require_transition(current: ProposalState, target: ProposalState) -> None:
        """Raise ConflictError if the transition is not allowed."""
        errors = ProposalStateMachine.validate_transition(current, target)
        if errors:
            raise ConflictError(errors[0])

    @staticmethod
    def is_terminal(state: ProposalState) -> bool:
        return not _TRANSITIONS.get(state)

    @staticmethod
    def is_editable(state: ProposalState) -> bool:
        return state in EDITABLE_STATES

    @staticmethod
    def valid_transitions(state: ProposalState) -> set[ProposalState]:
        """Return the set of valid target states from the given state."""
        return set(_TRANSITIONS.get(state, set()))
