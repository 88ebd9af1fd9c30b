"""Shared fixtures: a controllable clock, a file-backed store, a seeded band."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from bandgov.config import GovernanceConfig
from bandgov.identity import Identity
from bandgov.persistence.store import GovernanceStore
from bandgov.service import BandGovernanceService


def _now() -> datetime:
    return datetime(2026, 2, 19, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that tests advance explicitly."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or _now()

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


@dataclass
class SeededBand:
    band_id: str
    founder: Identity
    steward: Identity
    members: list[Identity]
    observer: Identity
    member_ids: dict[str, str]


PROPOSAL_FIELDS = {
    "title": "Buy a tour van",
    "objective": "Own transport for the spring tour",
    "description": "Second-hand 9-seat van with roof rack",
    "rationale": "Renting costs more than owning over two tours",
    "success_criteria": "Van bought and insured before March 30",
}


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(tmp_path: Path) -> GovernanceStore:
    return GovernanceStore(tmp_path / "gov.sqlite3")


@pytest.fixture
def config() -> GovernanceConfig:
    return GovernanceConfig(
        default_quorum_percentage=50.0,
        default_approval_threshold=50.0,
        default_voting_period_hours=72.0,
    )


@pytest.fixture
def service(store: GovernanceStore, clock: FakeClock, config: GovernanceConfig) -> BandGovernanceService:
    return BandGovernanceService(config, store=store, clock=clock)


@pytest.fixture
def band(service: BandGovernanceService) -> SeededBand:
    """A band with a founder, a steward, three members and an observer, all active."""
    founder = Identity("u-founder", "founder@band.test")
    result = service.create_band(founder, "The Rust Belt", "rust-belt")
    assert result.success, result.errors
    band_id = result.data["band"]["band_id"]
    member_ids = {founder.user_id: result.data["member"]["member_id"]}

    def join(user_id: str, role: str) -> Identity:
        identity = Identity(user_id, f"{user_id}@band.test")
        added = service.add_member(founder, band_id, user_id, identity.email, role)
        assert added.success, added.errors
        accepted = service.accept_invitation(identity, band_id)
        assert accepted.success, accepted.errors
        member_ids[user_id] = accepted.data["member"]["member_id"]
        return identity

    steward = join("u-steward", "steward")
    members = [join(f"u-m{i}", "member") for i in range(3)]
    observer = join("u-observer", "observer")
    return SeededBand(
        band_id=band_id,
        founder=founder,
        steward=steward,
        members=members,
        observer=observer,
        member_ids=member_ids,
    )
