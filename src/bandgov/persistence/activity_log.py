"""Activity log — the band's append-only audit trail.

Every state-changing governance operation ends by recording an entry
here. Recording is best-effort by contract: an append that fails is
reported to the operational log and swallowed. It never raises to the
caller, never rolls back the operation that triggered it, and never
shares that operation's transaction. Nothing else in the system may
assume every action has a matching entry.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Optional

import structlog

from bandgov.errors import NotFoundError, ValidationError
from bandgov.models.activity import (
    ActivityFilter,
    ActivityLogEntry,
    ActivityPage,
    compute_entry_hash,
    format_timestamp,
)
from bandgov.models.proposal import Proposal, TallyResult
from bandgov.persistence.store import GovernanceStore

logger = structlog.get_logger()


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ActivityLog:
    """Best-effort writer and paginated reader for activity entries.

    Usage:
        log = ActivityLog(store)
        log.proposal_voted(band_id, member_id, proposal, "approve", "Looks good")
        page = log.query(band_id, ActivityFilter(entity_type="proposal"))
    """

    def __init__(
        self,
        store: GovernanceStore,
        clock: Callable[[], datetime] = _utc_now,
        default_limit: int = 50,
        max_limit: int = 200,
    ) -> None:
        self._store = store
        self._clock = clock
        self._default_limit = default_limit
        self._max_limit = max_limit

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def record(
        self,
        band_id: str,
        actor_id: str,
        action: str,
        action_past: str,
        entity_type: str,
        entity_id: Optional[str] = None,
        entity_name: Optional[str] = None,
        context: Optional[dict[str, Any]] = None,
        actor_type: str = "member",
    ) -> Optional[ActivityLogEntry]:
        """Append one entry. Returns it, or None if the append failed."""
        try:
            entry = ActivityLogEntry.create(
                entry_id=f"log_{uuid.uuid4().hex}",
                band_id=band_id,
                actor_id=actor_id,
                actor_type=actor_type,
                action=action,
                action_past=action_past,
                entity_type=entity_type,
                entity_id=entity_id,
                entity_name=entity_name,
                context=context,
                timestamp_utc=self._clock(),
            )
            self._store.append_activity(entry)
        except Exception as e:
            logger.error(
                "activity_log_append_failed",
                band_id=band_id,
                actor_id=actor_id,
                action=action,
                entity_type=entity_type,
                entity_id=entity_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return None
        return entry

    def proposal_created(self, band_id: str, actor_id: str, proposal: Proposal) -> Optional[ActivityLogEntry]:
        return self.record(
            band_id, actor_id, "create", "created", "proposal",
            proposal.proposal_id, proposal.title,
        )

    def proposal_submitted(self, band_id: str, actor_id: str, proposal: Proposal) -> Optional[ActivityLogEntry]:
        return self.record(
            band_id, actor_id, "submit", "submitted", "proposal",
            proposal.proposal_id, proposal.title,
        )

    def proposal_resubmitted(self, band_id: str, actor_id: str, proposal: Proposal) -> Optional[ActivityLogEntry]:
        return self.record(
            band_id, actor_id, "resubmit", "resubmitted", "proposal",
            proposal.proposal_id, proposal.title,
        )

    def proposal_reviewed(
        self,
        band_id: str,
        actor_id: str,
        proposal: Proposal,
        approved: bool,
        feedback: Optional[str] = None,
    ) -> Optional[ActivityLogEntry]:
        return self.record(
            band_id, actor_id,
            "approve" if approved else "request_changes",
            "approved" if approved else "requested changes on",
            "proposal", proposal.proposal_id, proposal.title,
            context={"approved": approved, "feedback": feedback},
        )

    def proposal_voted(
        self,
        band_id: str,
        actor_id: str,
        proposal: Proposal,
        vote: str,
        comment: Optional[str] = None,
        previous_vote: Optional[str] = None,
    ) -> Optional[ActivityLogEntry]:
        context: dict[str, Any] = {"vote": vote, "comment": comment}
        if previous_vote is not None:
            context["previous_vote"] = previous_vote
        return self.record(
            band_id, actor_id, "vote", f"voted '{vote}' on", "proposal",
            proposal.proposal_id, proposal.title, context=context,
        )

    def proposal_finalized(
        self,
        band_id: str,
        actor_id: str,
        proposal: Proposal,
        tally: TallyResult,
    ) -> Optional[ActivityLogEntry]:
        return self.record(
            band_id, actor_id, "finalize",
            "finalized as approved" if tally.approved else "finalized as rejected",
            "proposal", proposal.proposal_id, proposal.title,
            context={"approved": tally.approved, "results": tally.to_dict()},
        )

    def proposal_revised(
        self,
        band_id: str,
        actor_id: str,
        proposal: Proposal,
        version_number: int,
        changes: dict[str, Any],
        change_reason: str,
    ) -> Optional[ActivityLogEntry]:
        return self.record(
            band_id, actor_id, "update", "updated", "proposal",
            proposal.proposal_id, proposal.title,
            context={
                "version": version_number,
                "change_reason": change_reason,
                "changes": changes,
            },
        )

    def proposal_state_overridden(
        self,
        band_id: str,
        actor_id: str,
        proposal: Proposal,
        from_state: str,
        to_state: str,
    ) -> Optional[ActivityLogEntry]:
        return self.record(
            band_id, actor_id, "override_state", f"set state to '{to_state}' on",
            "proposal", proposal.proposal_id, proposal.title,
            context={"from": from_state, "to": to_state},
        )

    def band_created(self, band_id: str, actor_id: str, band_name: str) -> Optional[ActivityLogEntry]:
        return self.record(
            band_id, actor_id, "create", "created", "band", band_id, band_name,
        )

    def settings_updated(
        self,
        band_id: str,
        actor_id: str,
        band_name: str,
        changes: dict[str, Any],
    ) -> Optional[ActivityLogEntry]:
        return self.record(
            band_id, actor_id, "update", "updated governance settings of", "band",
            band_id, band_name, context={"changes": changes},
        )

    def member_added(
        self,
        band_id: str,
        actor_id: str,
        member_id: str,
        email: str,
        role: str,
    ) -> Optional[ActivityLogEntry]:
        return self.record(
            band_id, actor_id, "invite", "invited", "member",
            member_id, email, context={"role": role},
        )

    def member_joined(self, band_id: str, member_id: str, member_name: str) -> Optional[ActivityLogEntry]:
        return self.record(
            band_id, member_id, "join", "joined", "member", member_id, member_name,
        )

    def member_status_changed(
        self,
        band_id: str,
        actor_id: str,
        member_id: str,
        member_name: str,
        from_status: str,
        to_status: str,
    ) -> Optional[ActivityLogEntry]:
        return self.record(
            band_id, actor_id, "change_status", f"set status to '{to_status}' for",
            "member", member_id, member_name,
            context={"from": from_status, "to": to_status},
        )

    def member_role_changed(
        self,
        band_id: str,
        actor_id: str,
        member_id: str,
        member_name: str,
        from_role: str,
        to_role: str,
    ) -> Optional[ActivityLogEntry]:
        return self.record(
            band_id, actor_id, "change_role", f"set role to '{to_role}' for",
            "member", member_id, member_name,
            context={"from": from_role, "to": to_role},
        )

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def query(
        self,
        band_id: str,
        filters: Optional[ActivityFilter] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> ActivityPage:
        """Return one page of a band's entries, newest first."""
        filters = filters or ActivityFilter()
        if limit is None:
            limit = self._default_limit
        if limit <= 0:
            raise ValidationError(f"limit must be positive, got {limit}")
        if offset < 0:
            raise ValidationError(f"offset must not be negative, got {offset}")
        if (
            filters.start_utc is not None
            and filters.end_utc is not None
            and format_timestamp(filters.start_utc) > format_timestamp(filters.end_utc)
        ):
            raise ValidationError("start of time range is after its end")
        limit = min(limit, self._max_limit)
        entries, total = self._store.query_activity(band_id, filters, limit, offset)
        return ActivityPage(entries=entries, total=total, limit=limit, offset=offset)

    def get(self, band_id: str, entry_id: str) -> ActivityLogEntry:
        entry = self._store.get_activity(band_id, entry_id)
        if entry is None:
            raise NotFoundError(f"Activity log entry not found: {entry_id}")
        return entry

    @staticmethod
    def verify(entry: ActivityLogEntry) -> bool:
        """Recompute the entry hash; False means the entry was altered."""
        return compute_entry_hash(entry.canonical_fields()) == entry.entry_hash
