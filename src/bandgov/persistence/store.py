"""Governance store — SQLite persistence for bands, members, proposals,
versions, votes and the activity log.

Concurrency model:
- One short-lived connection per unit of work (no connection is shared
  between threads).
- Every state-changing unit of work runs inside ``transaction()``, which
  opens with BEGIN IMMEDIATE. SQLite admits one writer at a time, so a
  guard check and the write it protects can never interleave with
  another writer.
- Proposal writes are additionally compare-and-swap on the expected
  state (``UPDATE ... WHERE proposal_id = ? AND state = ?``); a write
  that matches no row raises ConflictError and rolls back.
- Reads that need no guarantees run in ``session()``.

sqlite3 errors never leave this module raw: integrity violations become
ConflictError, everything else InternalError.
"""

from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Iterator, Optional, Union

import structlog

from bandgov.errors import ConflictError, InternalError
from bandgov.models.activity import ActivityFilter, ActivityLogEntry, format_timestamp
from bandgov.models.organization import Band, Member, MemberStatus
from bandgov.models.proposal import (
    Proposal,
    ProposalState,
    ProposalVersion,
    ReviewStatus,
    Vote,
    VoteChoice,
)

logger = structlog.get_logger()


SCHEMA = """
CREATE TABLE IF NOT EXISTS bands (
    band_id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    slug TEXT NOT NULL UNIQUE,
    quorum_percentage REAL NOT NULL,
    approval_threshold REAL NOT NULL,
    voting_period_hours REAL NOT NULL,
    created_utc TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS members (
    member_id TEXT PRIMARY KEY,
    band_id TEXT NOT NULL REFERENCES bands(band_id) ON DELETE CASCADE,
    user_id TEXT NOT NULL,
    email TEXT NOT NULL,
    display_name TEXT NOT NULL DEFAULT '',
    role TEXT NOT NULL,
    status TEXT NOT NULL,
    joined_utc TEXT,
    proposal_count INTEGER NOT NULL DEFAULT 0,
    votes_cast INTEGER NOT NULL DEFAULT 0,
    UNIQUE (band_id, user_id)
);
CREATE INDEX IF NOT EXISTS idx_members_band_status ON members(band_id, status);

CREATE TABLE IF NOT EXISTS proposals (
    proposal_id TEXT PRIMARY KEY,
    band_id TEXT NOT NULL REFERENCES bands(band_id) ON DELETE CASCADE,
    creator_id TEXT NOT NULL REFERENCES members(member_id),
    title TEXT NOT NULL,
    objective TEXT NOT NULL,
    description TEXT NOT NULL,
    rationale TEXT NOT NULL,
    success_criteria TEXT NOT NULL,
    financial_request TEXT,
    budget_breakdown TEXT,
    state TEXT NOT NULL,
    created_utc TEXT NOT NULL,
    state_changed_utc TEXT,
    voting_starts_utc TEXT,
    voting_ends_utc TEXT NOT NULL,
    votes_approve INTEGER NOT NULL DEFAULT 0 CHECK (votes_approve >= 0),
    votes_reject INTEGER NOT NULL DEFAULT 0 CHECK (votes_reject >= 0),
    votes_abstain INTEGER NOT NULL DEFAULT 0 CHECK (votes_abstain >= 0),
    reviewed_by TEXT,
    reviewed_utc TEXT,
    review_feedback TEXT,
    review_status TEXT NOT NULL DEFAULT 'pending'
);
CREATE INDEX IF NOT EXISTS idx_proposals_band_state ON proposals(band_id, state);

CREATE TABLE IF NOT EXISTS proposal_versions (
    version_id TEXT PRIMARY KEY,
    proposal_id TEXT NOT NULL REFERENCES proposals(proposal_id) ON DELETE CASCADE,
    version_number INTEGER NOT NULL,
    title TEXT NOT NULL,
    objective TEXT NOT NULL,
    description TEXT NOT NULL,
    rationale TEXT NOT NULL,
    success_criteria TEXT NOT NULL,
    financial_request TEXT,
    budget_breakdown TEXT,
    change_reason TEXT NOT NULL,
    created_by TEXT NOT NULL,
    created_utc TEXT NOT NULL,
    UNIQUE (proposal_id, version_number)
);

CREATE TABLE IF NOT EXISTS votes (
    vote_id TEXT PRIMARY KEY,
    proposal_id TEXT NOT NULL REFERENCES proposals(proposal_id) ON DELETE CASCADE,
    member_id TEXT NOT NULL REFERENCES members(member_id),
    choice TEXT NOT NULL,
    comment TEXT,
    cast_utc TEXT NOT NULL,
    updated_utc TEXT,
    UNIQUE (proposal_id, member_id)
);

CREATE TABLE IF NOT EXISTS activity_log (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    entry_id TEXT NOT NULL UNIQUE,
    band_id TEXT NOT NULL REFERENCES bands(band_id) ON DELETE CASCADE,
    actor_id TEXT NOT NULL,
    actor_type TEXT NOT NULL,
    action TEXT NOT NULL,
    action_past TEXT NOT NULL,
    entity_type TEXT NOT NULL,
    entity_id TEXT,
    entity_name TEXT,
    context TEXT,
    timestamp_utc TEXT NOT NULL,
    entry_hash TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_activity_band_time ON activity_log(band_id, timestamp_utc);
"""

_PROPOSAL_UPDATABLE = frozenset({
    "title", "objective", "description", "rationale", "success_criteria",
    "financial_request", "budget_breakdown", "state", "state_changed_utc",
    "voting_starts_utc", "reviewed_by", "reviewed_utc", "review_feedback",
    "review_status",
})
_BAND_UPDATABLE = frozenset({
    "quorum_percentage", "approval_threshold", "voting_period_hours",
})


class GovernanceStore:
    """SQLite-backed durable storage with atomic conditional updates.

    Usage:
        store = GovernanceStore(data_dir / "bandgov.sqlite3")
        with store.transaction() as tx:
            proposal = tx.get_proposal(proposal_id)
            ...
            tx.update_proposal(proposal_id, expected_state, state=...)
    """

    def __init__(self, db_path: Union[str, Path], timeout_seconds: float = 30.0) -> None:
        self.db_path = Path(db_path)
        self._timeout = timeout_seconds
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.executescript(SCHEMA)
        logger.debug("governance_store_ready", db_path=str(self.db_path))

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = sqlite3.connect(
                str(self.db_path),
                timeout=self._timeout,
                isolation_level=None,
            )
        except sqlite3.Error as e:
            raise InternalError(f"Cannot open governance store: {e}") from e
        conn.row_factory = sqlite3.Row
        try:
            conn.execute("PRAGMA foreign_keys=ON")
            conn.execute(f"PRAGMA busy_timeout={int(self._timeout * 1000)}")
            yield conn
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Iterator[StoreSession]:
        """Exclusive read-modify-write unit of work.

        Commits on normal exit; rolls back on any exception, then
        re-raises it (sqlite3 errors translated).
        """
        with self._connect() as conn:
            try:
                conn.execute("BEGIN IMMEDIATE")
            except sqlite3.Error as e:
                raise InternalError(f"Cannot begin transaction: {e}") from e
            try:
                yield StoreSession(conn)
                conn.execute("COMMIT")
            except BaseException as e:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                if isinstance(e, sqlite3.IntegrityError):
                    raise ConflictError(f"Constraint violated: {e}") from e
                if isinstance(e, sqlite3.Error):
                    raise InternalError(f"Persistence failure: {e}") from e
                raise

    @contextmanager
    def session(self) -> Iterator[StoreSession]:
        """Read-only unit of work (consistent snapshot)."""
        with self._connect() as conn:
            try:
                conn.execute("BEGIN")
                yield StoreSession(conn)
            except sqlite3.Error as e:
                raise InternalError(f"Persistence failure: {e}") from e
            finally:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")

    # ------------------------------------------------------------------
    # Activity log (append-only, own transaction)
    # ------------------------------------------------------------------

    def append_activity(self, entry: ActivityLogEntry) -> None:
        with self.transaction() as tx:
            tx.insert_activity(entry)

    def query_activity(
        self,
        band_id: str,
        filters: ActivityFilter,
        limit: int,
        offset: int,
    ) -> tuple[list[ActivityLogEntry], int]:
        with self.session() as tx:
            return tx.query_activity(band_id, filters, limit, offset)

    def get_activity(self, band_id: str, entry_id: str) -> Optional[ActivityLogEntry]:
        with self.session() as tx:
            return tx.get_activity(band_id, entry_id)


class StoreSession:
    """SQL operations bound to one connection and one transaction."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def _one(self, sql: str, params: tuple[Any, ...]) -> Optional[sqlite3.Row]:
        return self._conn.execute(sql, params).fetchone()

    # -- bands ---------------------------------------------------------

    def insert_band(self, band: Band) -> None:
        self._conn.execute(
            "INSERT INTO bands (band_id, name, slug, quorum_percentage, "
            "approval_threshold, voting_period_hours, created_utc) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                band.band_id, band.name, band.slug, band.quorum_percentage,
                band.approval_threshold, band.voting_period_hours,
                _dt(band.created_utc),
            ),
        )

    def get_band(self, band_id: str) -> Optional[Band]:
        row = self._one("SELECT * FROM bands WHERE band_id = ?", (band_id,))
        return _band_from_row(row) if row else None

    def get_band_by_slug(self, slug: str) -> Optional[Band]:
        row = self._one("SELECT * FROM bands WHERE slug = ?", (slug,))
        return _band_from_row(row) if row else None

    def update_band(self, band_id: str, **values: Any) -> None:
        _check_columns(values, _BAND_UPDATABLE)
        if not values:
            return
        assignments = ", ".join(f"{k} = ?" for k in values)
        self._conn.execute(
            f"UPDATE bands SET {assignments} WHERE band_id = ?",
            (*values.values(), band_id),
        )

    # -- members -------------------------------------------------------

    def insert_member(self, member: Member) -> None:
        self._conn.execute(
            "INSERT INTO members (member_id, band_id, user_id, email, display_name, "
            "role, status, joined_utc, proposal_count, votes_cast) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                member.member_id, member.band_id, member.user_id, member.email,
                member.display_name, member.role, member.status.value,
                _dt(member.joined_utc), member.proposal_count, member.votes_cast,
            ),
        )

    def get_member(self, member_id: str) -> Optional[Member]:
        row = self._one("SELECT * FROM members WHERE member_id = ?", (member_id,))
        return _member_from_row(row) if row else None

    def find_member(self, band_id: str, user_id: str) -> Optional[Member]:
        row = self._one(
            "SELECT * FROM members WHERE band_id = ? AND user_id = ?",
            (band_id, user_id),
        )
        return _member_from_row(row) if row else None

    def list_members(self, band_id: str) -> list[Member]:
        rows = self._conn.execute(
            "SELECT * FROM members WHERE band_id = ? ORDER BY joined_utc, member_id",
            (band_id,),
        ).fetchall()
        return [_member_from_row(r) for r in rows]

    def count_active_members(self, band_id: str) -> int:
        row = self._one(
            "SELECT COUNT(*) FROM members WHERE band_id = ? AND status = ?",
            (band_id, MemberStatus.ACTIVE.value),
        )
        return int(row[0])

    def update_member(
        self,
        member_id: str,
        status: Optional[MemberStatus] = None,
        role: Optional[str] = None,
        joined_utc: Optional[datetime] = None,
    ) -> None:
        values: dict[str, Any] = {}
        if status is not None:
            values["status"] = status.value
        if role is not None:
            values["role"] = role
        if joined_utc is not None:
            values["joined_utc"] = _dt(joined_utc)
        if not values:
            return
        assignments = ", ".join(f"{k} = ?" for k in values)
        self._conn.execute(
            f"UPDATE members SET {assignments} WHERE member_id = ?",
            (*values.values(), member_id),
        )

    def increment_member_stat(self, member_id: str, column: str) -> None:
        if column not in ("proposal_count", "votes_cast"):
            raise ValueError(f"Not a member statistic: {column}")
        self._conn.execute(
            f"UPDATE members SET {column} = {column} + 1 WHERE member_id = ?",
            (member_id,),
        )

    # -- proposals -----------------------------------------------------

    def insert_proposal(self, proposal: Proposal) -> None:
        self._conn.execute(
            "INSERT INTO proposals (proposal_id, band_id, creator_id, title, objective, "
            "description, rationale, success_criteria, financial_request, "
            "budget_breakdown, state, created_utc, state_changed_utc, "
            "voting_starts_utc, voting_ends_utc, votes_approve, votes_reject, "
            "votes_abstain, reviewed_by, reviewed_utc, review_feedback, review_status) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                proposal.proposal_id, proposal.band_id, proposal.creator_id,
                proposal.title, proposal.objective, proposal.description,
                proposal.rationale, proposal.success_criteria,
                proposal.financial_request, proposal.budget_breakdown,
                proposal.state.value, _dt(proposal.created_utc),
                _dt(proposal.state_changed_utc), _dt(proposal.voting_starts_utc),
                _dt(proposal.voting_ends_utc), proposal.votes_approve,
                proposal.votes_reject, proposal.votes_abstain, proposal.reviewed_by,
                _dt(proposal.reviewed_utc), proposal.review_feedback,
                proposal.review_status.value,
            ),
        )

    def get_proposal(self, proposal_id: str) -> Optional[Proposal]:
        row = self._one("SELECT * FROM proposals WHERE proposal_id = ?", (proposal_id,))
        return _proposal_from_row(row) if row else None

    def list_proposals(
        self,
        band_id: str,
        state: Optional[ProposalState] = None,
    ) -> list[Proposal]:
        sql = "SELECT * FROM proposals WHERE band_id = ?"
        params: list[Any] = [band_id]
        if state is not None:
            sql += " AND state = ?"
            params.append(state.value)
        sql += " ORDER BY created_utc DESC, proposal_id DESC"
        return [_proposal_from_row(r) for r in self._conn.execute(sql, params).fetchall()]

    def update_proposal(
        self,
        proposal_id: str,
        expected_state: ProposalState,
        **values: Any,
    ) -> None:
        """Compare-and-swap update keyed on the proposal's current state.

        Raises ConflictError if the proposal is no longer in
        *expected_state*.
        """
        _check_columns(values, _PROPOSAL_UPDATABLE)
        encoded = {k: _encode(v) for k, v in values.items()}
        assignments = ", ".join(f"{k} = ?" for k in encoded)
        cursor = self._conn.execute(
            f"UPDATE proposals SET {assignments} "
            "WHERE proposal_id = ? AND state = ?",
            (*encoded.values(), proposal_id, expected_state.value),
        )
        if cursor.rowcount != 1:
            raise ConflictError(
                f"Proposal {proposal_id} is no longer in state {expected_state.value}"
            )

    def adjust_vote_counters(
        self,
        proposal_id: str,
        delta: dict[str, int],
    ) -> dict[str, int]:
        """Apply counter deltas while the proposal is still voting.

        Returns the resulting counters. Raises ConflictError if voting
        closed in the meantime.
        """
        if delta:
            _check_columns(delta, {"votes_approve", "votes_reject", "votes_abstain"})
            assignments = ", ".join(f"{k} = {k} + ?" for k in delta)
            cursor = self._conn.execute(
                f"UPDATE proposals SET {assignments} "
                "WHERE proposal_id = ? AND state = ?",
                (*delta.values(), proposal_id, ProposalState.VOTING.value),
            )
            if cursor.rowcount != 1:
                raise ConflictError(f"Proposal {proposal_id} is not open for voting")
        row = self._one(
            "SELECT votes_approve, votes_reject, votes_abstain FROM proposals "
            "WHERE proposal_id = ?",
            (proposal_id,),
        )
        return {k: int(row[k]) for k in ("votes_approve", "votes_reject", "votes_abstain")}

    # -- versions ------------------------------------------------------

    def insert_version(self, version: ProposalVersion) -> None:
        self._conn.execute(
            "INSERT INTO proposal_versions (version_id, proposal_id, version_number, "
            "title, objective, description, rationale, success_criteria, "
            "financial_request, budget_breakdown, change_reason, created_by, created_utc) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                version.version_id, version.proposal_id, version.version_number,
                version.title, version.objective, version.description,
                version.rationale, version.success_criteria,
                version.financial_request, version.budget_breakdown,
                version.change_reason, version.created_by, _dt(version.created_utc),
            ),
        )

    def next_version_number(self, proposal_id: str) -> int:
        row = self._one(
            "SELECT COALESCE(MAX(version_number), 0) FROM proposal_versions "
            "WHERE proposal_id = ?",
            (proposal_id,),
        )
        return int(row[0]) + 1

    def list_versions(self, proposal_id: str) -> list[ProposalVersion]:
        rows = self._conn.execute(
            "SELECT * FROM proposal_versions WHERE proposal_id = ? "
            "ORDER BY version_number DESC",
            (proposal_id,),
        ).fetchall()
        return [_version_from_row(r) for r in rows]

    # -- votes ---------------------------------------------------------

    def get_vote(self, proposal_id: str, member_id: str) -> Optional[Vote]:
        row = self._one(
            "SELECT * FROM votes WHERE proposal_id = ? AND member_id = ?",
            (proposal_id, member_id),
        )
        return _vote_from_row(row) if row else None

    def insert_vote(self, vote: Vote) -> None:
        self._conn.execute(
            "INSERT INTO votes (vote_id, proposal_id, member_id, choice, comment, "
            "cast_utc, updated_utc) VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                vote.vote_id, vote.proposal_id, vote.member_id, vote.choice.value,
                vote.comment, _dt(vote.cast_utc), _dt(vote.updated_utc),
            ),
        )

    def update_vote(
        self,
        vote_id: str,
        choice: VoteChoice,
        comment: Optional[str],
        updated_utc: datetime,
    ) -> None:
        self._conn.execute(
            "UPDATE votes SET choice = ?, comment = ?, updated_utc = ? WHERE vote_id = ?",
            (choice.value, comment, _dt(updated_utc), vote_id),
        )

    def list_votes(self, proposal_id: str) -> list[Vote]:
        rows = self._conn.execute(
            "SELECT * FROM votes WHERE proposal_id = ? ORDER BY cast_utc, vote_id",
            (proposal_id,),
        ).fetchall()
        return [_vote_from_row(r) for r in rows]

    def count_votes(self, proposal_id: str) -> dict[str, int]:
        """Count ledger rows per choice (the source of truth for counters)."""
        counts = {c.value: 0 for c in VoteChoice}
        for row in self._conn.execute(
            "SELECT choice, COUNT(*) AS n FROM votes WHERE proposal_id = ? GROUP BY choice",
            (proposal_id,),
        ):
            counts[row["choice"]] = int(row["n"])
        return counts

    # -- activity log --------------------------------------------------

    def insert_activity(self, entry: ActivityLogEntry) -> None:
        self._conn.execute(
            "INSERT INTO activity_log (entry_id, band_id, actor_id, actor_type, action, "
            "action_past, entity_type, entity_id, entity_name, context, "
            "timestamp_utc, entry_hash) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                entry.entry_id, entry.band_id, entry.actor_id, entry.actor_type,
                entry.action, entry.action_past, entry.entity_type, entry.entity_id,
                entry.entity_name,
                json.dumps(entry.context, sort_keys=True, default=str)
                if entry.context is not None else None,
                entry.timestamp_utc, entry.entry_hash,
            ),
        )

    def query_activity(
        self,
        band_id: str,
        filters: ActivityFilter,
        limit: int,
        offset: int,
    ) -> tuple[list[ActivityLogEntry], int]:
        where = ["band_id = ?"]
        params: list[Any] = [band_id]
        if filters.entity_type:
            where.append("entity_type = ?")
            params.append(filters.entity_type)
        if filters.actor_id:
            where.append("actor_id = ?")
            params.append(filters.actor_id)
        if filters.start_utc is not None:
            where.append("timestamp_utc >= ?")
            params.append(format_timestamp(filters.start_utc))
        if filters.end_utc is not None:
            where.append("timestamp_utc <= ?")
            params.append(format_timestamp(filters.end_utc))
        clause = " AND ".join(where)

        total = int(self._one(f"SELECT COUNT(*) FROM activity_log WHERE {clause}", tuple(params))[0])
        rows = self._conn.execute(
            f"SELECT * FROM activity_log WHERE {clause} "
            "ORDER BY timestamp_utc DESC, seq DESC LIMIT ? OFFSET ?",
            (*params, limit, offset),
        ).fetchall()
        return [_activity_from_row(r) for r in rows], total

    def get_activity(self, band_id: str, entry_id: str) -> Optional[ActivityLogEntry]:
        row = self._one(
            "SELECT * FROM activity_log WHERE band_id = ? AND entry_id = ?",
            (band_id, entry_id),
        )
        return _activity_from_row(row) if row else None


# ----------------------------------------------------------------------
# Row mapping
# ----------------------------------------------------------------------

def _check_columns(values: dict[str, Any], allowed: Any) -> None:
    unknown = set(values) - set(allowed)
    if unknown:
        raise ValueError(f"Columns not updatable: {sorted(unknown)}")


def _encode(value: Any) -> Any:
    if isinstance(value, datetime):
        return _dt(value)
    if isinstance(value, (ProposalState, ReviewStatus)):
        return value.value
    return value


def _dt(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _parse_dt(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _band_from_row(row: sqlite3.Row) -> Band:
    return Band(
        band_id=row["band_id"],
        name=row["name"],
        slug=row["slug"],
        quorum_percentage=row["quorum_percentage"],
        approval_threshold=row["approval_threshold"],
        voting_period_hours=row["voting_period_hours"],
        created_utc=_parse_dt(row["created_utc"]),
    )


def _member_from_row(row: sqlite3.Row) -> Member:
    return Member(
        member_id=row["member_id"],
        band_id=row["band_id"],
        user_id=row["user_id"],
        email=row["email"],
        display_name=row["display_name"],
        role=row["role"],
        status=MemberStatus(row["status"]),
        joined_utc=_parse_dt(row["joined_utc"]),
        proposal_count=row["proposal_count"],
        votes_cast=row["votes_cast"],
    )


def _proposal_from_row(row: sqlite3.Row) -> Proposal:
    return Proposal(
        proposal_id=row["proposal_id"],
        band_id=row["band_id"],
        creator_id=row["creator_id"],
        title=row["title"],
        objective=row["objective"],
        description=row["description"],
        rationale=row["rationale"],
        success_criteria=row["success_criteria"],
        financial_request=row["financial_request"],
        budget_breakdown=row["budget_breakdown"],
        state=ProposalState(row["state"]),
        created_utc=_parse_dt(row["created_utc"]),
        state_changed_utc=_parse_dt(row["state_changed_utc"]),
        voting_starts_utc=_parse_dt(row["voting_starts_utc"]),
        voting_ends_utc=_parse_dt(row["voting_ends_utc"]),
        votes_approve=row["votes_approve"],
        votes_reject=row["votes_reject"],
        votes_abstain=row["votes_abstain"],
        reviewed_by=row["reviewed_by"],
        reviewed_utc=_parse_dt(row["reviewed_utc"]),
        review_feedback=row["review_feedback"],
        review_status=ReviewStatus(row["review_status"]),
    )


def _version_from_row(row: sqlite3.Row) -> ProposalVersion:
    return ProposalVersion(
        version_id=row["version_id"],
        proposal_id=row["proposal_id"],
        version_number=row["version_number"],
        title=row["title"],
        objective=row["objective"],
        description=row["description"],
        rationale=row["rationale"],
        success_criteria=row["success_criteria"],
        financial_request=row["financial_request"],
        budget_breakdown=row["budget_breakdown"],
        change_reason=row["change_reason"],
        created_by=row["created_by"],
        created_utc=_parse_dt(row["created_utc"]),
    )


def _vote_from_row(row: sqlite3.Row) -> Vote:
    return Vote(
        vote_id=row["vote_id"],
        proposal_id=row["proposal_id"],
        member_id=row["member_id"],
        choice=VoteChoice(row["choice"]),
        comment=row["comment"],
        cast_utc=_parse_dt(row["cast_utc"]),
        updated_utc=_parse_dt(row["updated_utc"]),
    )


def _activity_from_row(row: sqlite3.Row) -> ActivityLogEntry:
    return ActivityLogEntry(
        entry_id=row["entry_id"],
        band_id=row["band_id"],
        actor_id=row["actor_id"],
        actor_type=row["actor_type"],
        action=row["action"],
        action_past=row["action_past"],
        entity_type=row["entity_type"],
        entity_id=row["entity_id"],
        entity_name=row["entity_name"],
        context=json.loads(row["context"]) if row["context"] is not None else None,
        timestamp_utc=row["timestamp_utc"],
        entry_hash=row["entry_hash"],
    )
