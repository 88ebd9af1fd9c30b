"""Tests for the finalization tally.

Proves:
- Abstentions count toward quorum but not toward approval.
- Boundary values compare inclusively and exactly.
- Zero votes is a defined outcome; zero active members is an error.
"""

import pytest

from bandgov.errors import ValidationError
from bandgov.governance.tally import compute_tally


class TestTally:
    def test_approved_example(self) -> None:
        """10 active, quorum 50, threshold 50; 4 approve, 1 reject."""
        result = compute_tally(4, 1, 0, 10, 50, 50)
        assert result.total_votes == 5
        assert result.participation_percentage == 50.0
        assert result.quorum_met
        assert result.approval_rate == 80.0
        assert result.approved

    def test_seventy_five_threshold(self) -> None:
        assert compute_tally(4, 1, 0, 10, 50, 75).approved
        result = compute_tally(3, 1, 1, 10, 50, 75)
        assert result.approval_rate == 60.0
        assert not result.approved

    def test_raised_threshold_rejects(self) -> None:
        result = compute_tally(4, 1, 0, 10, 50, 85)
        assert result.quorum_met
        assert not result.approved

    def test_quorum_not_met(self) -> None:
        result = compute_tally(4, 0, 0, 10, 50, 50)
        assert result.participation_percentage == 40.0
        assert not result.quorum_met
        assert not result.approved

    def test_abstain_counts_for_quorum_not_approval(self) -> None:
        result = compute_tally(2, 1, 2, 10, 50, 50)
        assert result.quorum_met
        assert result.approval_rate == 40.0
        assert not result.approved

    def test_exact_threshold_is_inclusive(self) -> None:
        result = compute_tally(1, 1, 0, 4, 50, 50)
        assert result.participation_percentage == 50.0
        assert result.approval_rate == 50.0
        assert result.approved

    def test_thirds_compare_exactly(self) -> None:
        # 1 of 3 is 33.333...%; must not satisfy a 33.34 threshold.
        result = compute_tally(1, 2, 0, 3, 0, 33.34)
        assert not result.approved

    def test_zero_votes(self) -> None:
        result = compute_tally(0, 0, 0, 6, 0, 50)
        assert result.total_votes == 0
        assert result.approval_rate == 0.0
        assert result.quorum_met
        assert not result.approved

    def test_zero_active_members_raises(self) -> None:
        with pytest.raises(ValidationError, match="no active members"):
            compute_tally(0, 0, 0, 0, 50, 50)

    def test_negative_counts_rejected(self) -> None:
        with pytest.raises(ValidationError):
            compute_tally(-1, 0, 0, 5, 50, 50)

    def test_to_dict_exposes_every_quantity(self) -> None:
        data = compute_tally(4, 1, 0, 10, 50, 50).to_dict()
        assert set(data) == {
            "votes_approve", "votes_reject", "votes_abstain", "total_votes",
            "active_members", "participation_percentage", "quorum_percentage",
            "quorum_met", "approval_rate", "approval_threshold", "approved",
        }
