"""Tests for the proposal state machine — proves only listed transitions are valid."""

import pytest

from bandgov.errors import ConflictError
from bandgov.governance.state_machine import ProposalStateMachine
from bandgov.models.proposal import ProposalState

S = ProposalState


class TestValidTransitions:
    def test_draft_to_in_review(self) -> None:
        assert ProposalStateMachine.validate_transition(S.DRAFT, S.IN_REVIEW) == []

    def test_in_review_to_voting(self) -> None:
        assert ProposalStateMachine.validate_transition(S.IN_REVIEW, S.VOTING) == []

    def test_in_review_to_needs_revision(self) -> None:
        assert ProposalStateMachine.validate_transition(S.IN_REVIEW, S.NEEDS_REVISION) == []

    def test_needs_revision_to_in_review(self) -> None:
        assert ProposalStateMachine.validate_transition(S.NEEDS_REVISION, S.IN_REVIEW) == []

    def test_voting_to_outcomes(self) -> None:
        assert ProposalStateMachine.validate_transition(S.VOTING, S.APPROVED) == []
        assert ProposalStateMachine.validate_transition(S.VOTING, S.REJECTED) == []


class TestInvalidTransitions:
    def test_draft_straight_to_voting(self) -> None:
        errors = ProposalStateMachine.validate_transition(S.DRAFT, S.VOTING)
        assert len(errors) == 1
        assert "Invalid proposal transition" in errors[0]

    def test_voting_back_to_review(self) -> None:
        errors = ProposalStateMachine.validate_transition(S.VOTING, S.IN_REVIEW)
        assert len(errors) == 1

    def test_terminal_states_have_no_exits(self) -> None:
        for terminal in (S.APPROVED, S.REJECTED):
            for target in ProposalState:
                errors = ProposalStateMachine.validate_transition(terminal, target)
                assert len(errors) == 1, f"{terminal.value} → {target.value} should be invalid"

    def test_require_transition_raises_conflict(self) -> None:
        with pytest.raises(ConflictError):
            ProposalStateMachine.require_transition(S.APPROVED, S.VOTING)


class TestQueries:
    def test_is_terminal(self) -> None:
        assert ProposalStateMachine.is_terminal(S.APPROVED)
        assert ProposalStateMachine.is_terminal(S.REJECTED)
        assert not ProposalStateMachine.is_terminal(S.VOTING)

    def test_is_editable(self) -> None:
        assert ProposalStateMachine.is_editable(S.DRAFT)
        assert ProposalStateMachine.is_editable(S.NEEDS_REVISION)
        assert not ProposalStateMachine.is_editable(S.IN_REVIEW)
        assert not ProposalStateMachine.is_editable(S.VOTING)

    def test_valid_transitions_from_in_review(self) -> None:
        assert ProposalStateMachine.valid_transitions(S.IN_REVIEW) == {S.VOTING, S.NEEDS_REVISION}

    def test_valid_transitions_returns_copy(self) -> None:
        valid = ProposalStateMachine.valid_transitions(S.DRAFT)
        valid.add(S.APPROVED)
        assert ProposalStateMachine.valid_transitions(S.DRAFT) == {S.IN_REVIEW}
