"""Tests for vote counter arithmetic."""

import pytest

from bandgov.errors import ValidationError
from bandgov.governance.vote_ledger import counter_delta, parse_choice
from bandgov.models.proposal import VoteChoice

V = VoteChoice


class TestParseChoice:
    def test_accepts_enum_and_strings(self) -> None:
        assert parse_choice(V.REJECT) is V.REJECT
        assert parse_choice("approve") is V.APPROVE
        assert parse_choice(" Abstain ") is V.ABSTAIN

    def test_rejects_unknown(self) -> None:
        with pytest.raises(ValidationError, match="Invalid vote choice"):
            parse_choice("maybe")


class TestCounterDelta:
    def test_first_vote(self) -> None:
        assert counter_delta(None, V.APPROVE) == {"votes_approve": 1}

    def test_same_choice_is_noop(self) -> None:
        assert counter_delta(V.REJECT, V.REJECT) == {}

    def test_changed_vote_moves_one(self) -> None:
        assert counter_delta(V.APPROVE, V.ABSTAIN) == {"votes_approve": -1, "votes_abstain": 1}

    def test_change_preserves_total(self) -> None:
        for old in VoteChoice:
            for new in VoteChoice:
                if old is not new:
                    assert sum(counter_delta(old, new).values()) == 0

