"""Concurrency tests against a file-backed store.

Proves:
- N distinct members voting at once yields exactly N ledger rows and
  counters summing to N.
- The same member racing themselves yields one ledger row.
- Racing finalizers: exactly one succeeds, the rest see ConflictError.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

from bandgov.errors import ConflictError
from bandgov.identity import Identity
from bandgov.service import BandGovernanceService

from conftest import PROPOSAL_FIELDS, FakeClock, SeededBand


def _voting_proposal(service: BandGovernanceService, band: SeededBand) -> str:
    engine = service.engine
    pid = engine.create_proposal(band.founder, band.band_id, **PROPOSAL_FIELDS).proposal_id
    engine.submit_proposal(band.founder, band.band_id, pid)
    engine.review_proposal(band.founder, band.band_id, pid, "approve")
    return pid


def _enroll(service: BandGovernanceService, band: SeededBand, count: int) -> list[Identity]:
    voters = []
    for i in range(count):
        identity = Identity(f"u-voter-{i}")
        service.registry.add_member(band.founder, band.band_id, identity.user_id, "", "voting_member")
        service.registry.accept_invitation(identity, band.band_id)
        voters.append(identity)
    return voters


class TestConcurrentVotes:
    def test_distinct_members(self, service: BandGovernanceService, band: SeededBand) -> None:
        voters = _enroll(service, band, 12)
        pid = _voting_proposal(service, band)
        choices = ["approve", "reject", "abstain"]

        def cast(i: int) -> None:
            service.engine.cast_vote(voters[i], band.band_id, pid, choices[i % 3])

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(cast, range(len(voters))))

        counts = service.engine.ledger_counts(pid)
        assert counts["ledger"] == {"approve": 4, "reject": 4, "abstain": 4}
        assert counts["counters"] == counts["ledger"]

    def test_same_member_racing(self, service: BandGovernanceService, band: SeededBand) -> None:
        pid = _voting_proposal(service, band)
        voter = band.members[0]
        choices = ["approve", "reject"] * 8

        def cast(choice: str) -> None:
            service.engine.cast_vote(voter, band.band_id, pid, choice)

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(cast, choices))

        counts = service.engine.ledger_counts(pid)
        assert sum(counts["ledger"].values()) == 1
        assert counts["counters"] == counts["ledger"]


class TestConcurrentFinalize:
    def test_exactly_one_finalize(self, service: BandGovernanceService, band: SeededBand, clock: FakeClock) -> None:
        pid = _voting_proposal(service, band)
        for voter in band.members:
            service.engine.cast_vote(voter, band.band_id, pid, "approve")
        clock.advance(hours=72)

        def finalize(_: int) -> str:
            try:
                service.engine.finalize_proposal(band.steward, band.band_id, pid)
            except ConflictError:
                return "conflict"
            return "ok"

        with ThreadPoolExecutor(max_workers=6) as pool:
            outcomes = list(pool.map(finalize, range(6)))

        assert outcomes.count("ok") == 1
        assert outcomes.count("conflict") == 5
        finalized = service.list_activity(band.founder, band.band_id, entity_type="proposal")
        assert [e["action"] for e in finalized.data["entries"]].count("finalize") == 1
