"""Tests for the activity log.

Proves:
- Append failures are swallowed and reported, never raised.
- Entries are hashed at creation and verifiable after storage.
- Queries page newest first and honour filters.
"""

from datetime import datetime, timedelta, timezone

import pytest

from bandgov.errors import NotFoundError, ValidationError
from bandgov.models.activity import ActivityFilter, ActivityLogEntry
from bandgov.models.organization import Band
from bandgov.persistence.activity_log import ActivityLog
from bandgov.persistence.store import GovernanceStore


def _now() -> datetime:
    return datetime(2026, 2, 19, 12, 0, 0, tzinfo=timezone.utc)


class _Ticker:
    def __init__(self) -> None:
        self.now = _now()

    def __call__(self) -> datetime:
        self.now = self.now + timedelta(seconds=1)
        return self.now


@pytest.fixture
def log(store: GovernanceStore) -> ActivityLog:
    with store.transaction() as tx:
        tx.insert_band(Band("band_1", "Band", "band", 50.0, 50.0, 72.0, _now()))
    return ActivityLog(store, clock=_Ticker(), default_limit=3, max_limit=5)


class _BrokenStore:
    def append_activity(self, entry: object) -> None:
        raise RuntimeError("disk full")


class TestRecord:
    def test_record_returns_stored_entry(self, log: ActivityLog) -> None:
        entry = log.record("band_1", "mem_1", "create", "created", "proposal", "prop_1", "Van")
        assert entry is not None
        assert entry.entry_id.startswith("log_")
        assert log.get("band_1", entry.entry_id) == entry

    def test_failure_is_swallowed(self) -> None:
        log = ActivityLog(_BrokenStore())  # type: ignore[arg-type]
        assert log.record("band_1", "mem_1", "vote", "voted", "proposal") is None

    def test_unknown_band_is_swallowed(self, log: ActivityLog) -> None:
        # Foreign key violation on append must not escape.
        assert log.record("band_missing", "mem_1", "vote", "voted", "proposal") is None

    def test_hash_survives_storage(self, log: ActivityLog) -> None:
        entry = log.record(
            "band_1", "mem_1", "update", "updated", "band", "band_1", "Band",
            context={"changes": {"quorum_percentage": {"from": 50.0, "to": 60.0}}},
        )
        stored = log.get("band_1", entry.entry_id)
        assert stored.entry_hash.startswith("sha256:")
        assert ActivityLog.verify(stored)

    def test_tampered_entry_fails_verification(self, log: ActivityLog) -> None:
        from dataclasses import replace

        entry = log.record("band_1", "mem_1", "vote", "voted 'approve' on", "proposal")
        forged = replace(entry, action_past="voted 'reject' on")
        assert not ActivityLog.verify(forged)

    def test_naive_timestamp_taken_as_utc(self) -> None:
        naive = ActivityLogEntry.create(
            "e1", "band_1", "mem_1", "vote", "voted", "proposal",
            timestamp_utc=_now().replace(tzinfo=None),
        )
        aware = ActivityLogEntry.create(
            "e1", "band_1", "mem_1", "vote", "voted", "proposal", timestamp_utc=_now(),
        )
        assert naive.timestamp_utc == aware.timestamp_utc == "2026-02-19T12:00:00.000000Z"
        assert naive.entry_hash == aware.entry_hash


class TestQuery:
    def _fill(self, log: ActivityLog) -> None:
        for i in range(4):
            log.record("band_1", "mem_1", "vote", "voted", "proposal", f"prop_{i}")
        log.record("band_1", "mem_2", "update", "updated", "band", "band_1")

    def test_newest_first_with_default_limit(self, log: ActivityLog) -> None:
        self._fill(log)
        page = log.query("band_1")
        assert page.total == 5
        assert page.limit == 3
        assert [e.entity_type for e in page.entries][0] == "band"
        stamps = [e.timestamp_utc for e in page.entries]
        assert stamps == sorted(stamps, reverse=True)

    def test_limit_is_clamped(self, log: ActivityLog) -> None:
        self._fill(log)
        assert log.query("band_1", limit=500).limit == 5

    def test_offset(self, log: ActivityLog) -> None:
        self._fill(log)
        page = log.query("band_1", limit=2, offset=4)
        assert len(page.entries) == 1
        assert page.entries[0].entity_id == "prop_0"

    def test_filters(self, log: ActivityLog) -> None:
        self._fill(log)
        assert log.query("band_1", ActivityFilter(entity_type="band")).total == 1
        assert log.query("band_1", ActivityFilter(actor_id="mem_1")).total == 4

    def test_time_range(self, log: ActivityLog) -> None:
        self._fill(log)
        start = _now() + timedelta(seconds=2)
        end = _now() + timedelta(seconds=3)
        page = log.query("band_1", ActivityFilter(start_utc=start, end_utc=end))
        assert page.total == 2

    def test_naive_time_range_is_utc(self, log: ActivityLog) -> None:
        self._fill(log)
        start = (_now() + timedelta(seconds=2)).replace(tzinfo=None)
        end = (_now() + timedelta(seconds=3)).replace(tzinfo=None)
        page = log.query("band_1", ActivityFilter(start_utc=start, end_utc=end))
        assert page.total == 2
        assert {e.timestamp_utc for e in page.entries} == {
            "2026-02-19T12:00:02.000000Z", "2026-02-19T12:00:03.000000Z",
        }

    def test_invalid_paging(self, log: ActivityLog) -> None:
        with pytest.raises(ValidationError):
            log.query("band_1", limit=0)
        with pytest.raises(ValidationError):
            log.query("band_1", offset=-1)

    def test_inverted_range(self, log: ActivityLog) -> None:
        with pytest.raises(ValidationError):
            log.query("band_1", ActivityFilter(start_utc=_now(), end_utc=_now() - timedelta(days=1)))

    def test_mixed_naive_and_aware_range(self, log: ActivityLog) -> None:
        self._fill(log)
        start = _now().replace(tzinfo=None)
        end = _now() + timedelta(seconds=1)
        assert log.query("band_1", ActivityFilter(start_utc=start, end_utc=end)).total == 1

    def test_get_missing(self, log: ActivityLog) -> None:
        with pytest.raises(NotFoundError):
            log.get("band_1", "log_nope")
