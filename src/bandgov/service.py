"""Band governance service — unified facade over the governance engine.

This is the primary interface for programmatic access. It wires the
subsystems together:
- Band registry (band creation, membership, settings)
- Proposal engine (create, revise, submit, review, vote, finalize)
- Activity log (best-effort audit trail, paginated queries)
- Persistence (SQLite governance store)

Every operation returns a ServiceResult. Typed governance errors become
``success=False`` with a stable ``error_kind``; anything unexpected
becomes INTERNAL_ERROR with a generic message. Stack detail is attached
only when the configuration enables diagnostics.
"""

from __future__ import annotations

import traceback
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Optional

import structlog

from bandgov.config import GovernanceConfig
from bandgov.errors import GovernanceError, InternalError
from bandgov.governance.engine import ProposalEngine
from bandgov.governance.registry import BandRegistry
from bandgov.identity import Authenticator, Identity
from bandgov.models.activity import ActivityFilter
from bandgov.persistence.activity_log import ActivityLog
from bandgov.persistence.store import GovernanceStore

logger = structlog.get_logger()


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ServiceResult:
    """Result of a service operation."""
    success: bool
    errors: list[str] = field(default_factory=list)
    data: dict[str, Any] = field(default_factory=dict)
    error_kind: Optional[str] = None
    status_code: int = 200

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"success": self.success, "data": self.data}
        if not self.success:
            out["error"] = {
                "code": self.error_kind,
                "message": "; ".join(self.errors),
            }
        return out


class BandGovernanceService:
    """Unified band governance facade.

    Usage:
        config = GovernanceConfig.load()
        service = BandGovernanceService(config)
        result = service.create_band(alice, "The Rust Belt", "rust-belt")
        band_id = result.data["band"]["band_id"]
        result = service.create_proposal(alice, band_id, title="...", ...)
    """

    def __init__(
        self,
        config: Optional[GovernanceConfig] = None,
        store: Optional[GovernanceStore] = None,
        clock: Callable[[], datetime] = _utc_now,
        authenticator: Optional[Authenticator] = None,
    ) -> None:
        self._config = config or GovernanceConfig()
        self._store = store or GovernanceStore(Path(self._config.db_path))
        self._activity = ActivityLog(
            self._store,
            clock=clock,
            default_limit=self._config.activity_page_default_limit,
            max_limit=self._config.activity_page_max_limit,
        )
        self._engine = ProposalEngine(self._store, self._activity, clock=clock)
        self._registry = BandRegistry(self._store, self._activity, self._config, clock=clock)
        self._authenticator = authenticator

    @property
    def engine(self) -> ProposalEngine:
        return self._engine

    @property
    def registry(self) -> BandRegistry:
        return self._registry

    @property
    def activity_log(self) -> ActivityLog:
        return self._activity

    # ------------------------------------------------------------------
    # Result plumbing
    # ------------------------------------------------------------------

    def _run(self, operation: str, fn: Callable[[], dict[str, Any]]) -> ServiceResult:
        try:
            data = fn()
        except GovernanceError as e:
            logger.info(
                "governance_operation_rejected",
                operation=operation, error_kind=e.kind, error=e.message,
            )
            data = {}
            if self._config.diagnostics and isinstance(e, InternalError):
                data["diagnostics"] = traceback.format_exc()
            return ServiceResult(
                success=False,
                errors=[e.message],
                data=data,
                error_kind=e.kind,
                status_code=e.status_code,
            )
        except Exception as e:
            logger.exception("governance_operation_failed", operation=operation)
            data = {}
            if self._config.diagnostics:
                data["diagnostics"] = traceback.format_exc()
            return ServiceResult(
                success=False,
                errors=["Internal error"],
                data=data,
                error_kind=InternalError.kind,
                status_code=InternalError.status_code,
            )
        return ServiceResult(success=True, data=data)

    def authenticate(self, credential: Optional[str]) -> ServiceResult:
        """Resolve a bearer credential to an identity via the configured authenticator."""
        def op() -> dict[str, Any]:
            if self._authenticator is None:
                raise InternalError("No authenticator configured")
            identity = self._authenticator.authenticate(credential)
            return {"user_id": identity.user_id, "email": identity.email}
        return self._run("authenticate", op)

    # ------------------------------------------------------------------
    # Bands and members
    # ------------------------------------------------------------------

    def create_band(
        self,
        caller: Optional[Identity],
        name: str,
        slug: str,
        quorum_percentage: Optional[float] = None,
        approval_threshold: Optional[float] = None,
        voting_period_hours: Optional[float] = None,
        display_name: str = "",
    ) -> ServiceResult:
        def op() -> dict[str, Any]:
            band, founder = self._registry.create_band(
                caller, name, slug,
                quorum_percentage=quorum_percentage,
                approval_threshold=approval_threshold,
                voting_period_hours=voting_period_hours,
                display_name=display_name,
            )
            return {"band": band.to_dict(), "member": founder.to_dict()}
        return self._run("create_band", op)

    def get_band(self, caller: Optional[Identity], band_id: str) -> ServiceResult:
        return self._run(
            "get_band",
            lambda: {"band": self._registry.get_band(caller, band_id).to_dict()},
        )

    def add_member(
        self,
        caller: Optional[Identity],
        band_id: str,
        user_id: str,
        email: str,
        role: str = "member",
        display_name: str = "",
    ) -> ServiceResult:
        def op() -> dict[str, Any]:
            member = self._registry.add_member(
                caller, band_id, user_id, email, role, display_name=display_name,
            )
            return {"member": member.to_dict()}
        return self._run("add_member", op)

    def accept_invitation(self, caller: Optional[Identity], band_id: str) -> ServiceResult:
        return self._run(
            "accept_invitation",
            lambda: {"member": self._registry.accept_invitation(caller, band_id).to_dict()},
        )

    def set_member_status(
        self,
        caller: Optional[Identity],
        band_id: str,
        member_id: str,
        status: str,
    ) -> ServiceResult:
        def op() -> dict[str, Any]:
            member = self._registry.set_member_status(caller, band_id, member_id, status)
            return {"member": member.to_dict()}
        return self._run("set_member_status", op)

    def change_member_role(
        self,
        caller: Optional[Identity],
        band_id: str,
        member_id: str,
        role: str,
    ) -> ServiceResult:
        def op() -> dict[str, Any]:
            member = self._registry.change_member_role(caller, band_id, member_id, role)
            return {"member": member.to_dict()}
        return self._run("change_member_role", op)

    def list_members(self, caller: Optional[Identity], band_id: str) -> ServiceResult:
        def op() -> dict[str, Any]:
            members = self._registry.list_members(caller, band_id)
            return {"members": [m.to_dict() for m in members]}
        return self._run("list_members", op)

    def update_settings(
        self,
        caller: Optional[Identity],
        band_id: str,
        quorum_percentage: Optional[float] = None,
        approval_threshold: Optional[float] = None,
        voting_period_hours: Optional[float] = None,
    ) -> ServiceResult:
        def op() -> dict[str, Any]:
            band = self._registry.update_settings(
                caller, band_id,
                quorum_percentage=quorum_percentage,
                approval_threshold=approval_threshold,
                voting_period_hours=voting_period_hours,
            )
            return {"band": band.to_dict()}
        return self._run("update_settings", op)

    # ------------------------------------------------------------------
    # Proposals
    # ------------------------------------------------------------------

    def create_proposal(
        self,
        caller: Optional[Identity],
        band_id: str,
        title: str,
        objective: str,
        description: str,
        rationale: str,
        success_criteria: str,
        financial_request: Optional[str] = None,
        budget_breakdown: Optional[str] = None,
        voting_period_hours: Optional[float] = None,
    ) -> ServiceResult:
        def op() -> dict[str, Any]:
            proposal = self._engine.create_proposal(
                caller, band_id,
                title=title,
                objective=objective,
                description=description,
                rationale=rationale,
                success_criteria=success_criteria,
                financial_request=financial_request,
                budget_breakdown=budget_breakdown,
                voting_period_hours=voting_period_hours,
            )
            return {"proposal": proposal.to_dict()}
        return self._run("create_proposal", op)

    def revise_proposal(
        self,
        caller: Optional[Identity],
        band_id: str,
        proposal_id: str,
        changes: dict[str, Any],
        change_reason: str,
    ) -> ServiceResult:
        def op() -> dict[str, Any]:
            proposal, version = self._engine.revise_proposal(
                caller, band_id, proposal_id, changes, change_reason,
            )
            return {"proposal": proposal.to_dict(), "version": version.to_dict()}
        return self._run("revise_proposal", op)

    def submit_proposal(self, caller: Optional[Identity], band_id: str, proposal_id: str) -> ServiceResult:
        return self._run(
            "submit_proposal",
            lambda: {"proposal": self._engine.submit_proposal(caller, band_id, proposal_id).to_dict()},
        )

    def resubmit_proposal(self, caller: Optional[Identity], band_id: str, proposal_id: str) -> ServiceResult:
        return self._run(
            "resubmit_proposal",
            lambda: {"proposal": self._engine.resubmit_proposal(caller, band_id, proposal_id).to_dict()},
        )

    def review_proposal(
        self,
        caller: Optional[Identity],
        band_id: str,
        proposal_id: str,
        action: str,
        feedback: Optional[str] = None,
    ) -> ServiceResult:
        def op() -> dict[str, Any]:
            proposal = self._engine.review_proposal(caller, band_id, proposal_id, action, feedback)
            return {"proposal": proposal.to_dict()}
        return self._run("review_proposal", op)

    def cast_vote(
        self,
        caller: Optional[Identity],
        band_id: str,
        proposal_id: str,
        choice: str,
        comment: Optional[str] = None,
    ) -> ServiceResult:
        def op() -> dict[str, Any]:
            outcome = self._engine.cast_vote(caller, band_id, proposal_id, choice, comment)
            return {
                "vote": outcome.vote.to_dict(),
                "created": outcome.created,
                "previous_vote": outcome.previous_choice.value if outcome.previous_choice else None,
                "counters": outcome.counters,
            }
        return self._run("cast_vote", op)

    def finalize_proposal(self, caller: Optional[Identity], band_id: str, proposal_id: str) -> ServiceResult:
        def op() -> dict[str, Any]:
            proposal, tally = self._engine.finalize_proposal(caller, band_id, proposal_id)
            return {"proposal": proposal.to_dict(), "results": tally.to_dict()}
        return self._run("finalize_proposal", op)

    def override_state(
        self,
        caller: Optional[Identity],
        band_id: str,
        proposal_id: str,
        state: str,
    ) -> ServiceResult:
        return self._run(
            "override_state",
            lambda: {"proposal": self._engine.override_state(caller, band_id, proposal_id, state).to_dict()},
        )

    def list_proposals(
        self,
        caller: Optional[Identity],
        band_id: str,
        state: Optional[str] = None,
    ) -> ServiceResult:
        def op() -> dict[str, Any]:
            proposals = self._engine.list_proposals(caller, band_id, state)
            return {"proposals": [p.to_dict() for p in proposals]}
        return self._run("list_proposals", op)

    def get_proposal(self, caller: Optional[Identity], band_id: str, proposal_id: str) -> ServiceResult:
        return self._run(
            "get_proposal",
            lambda: self._engine.get_proposal(caller, band_id, proposal_id).to_dict(),
        )

    # ------------------------------------------------------------------
    # Activity log
    # ------------------------------------------------------------------

    def list_activity(
        self,
        caller: Optional[Identity],
        band_id: str,
        entity_type: Optional[str] = None,
        actor_id: Optional[str] = None,
        start_utc: Optional[datetime] = None,
        end_utc: Optional[datetime] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> ServiceResult:
        def op() -> dict[str, Any]:
            filters = ActivityFilter(
                entity_type=entity_type,
                actor_id=actor_id,
                start_utc=start_utc,
                end_utc=end_utc,
            )
            page = self._engine.list_activity(caller, band_id, filters, limit, offset)
            return page.to_dict()
        return self._run("list_activity", op)

    def get_activity_entry(self, caller: Optional[Identity], band_id: str, entry_id: str) -> ServiceResult:
        def op() -> dict[str, Any]:
            entry = self._engine.get_activity_entry(caller, band_id, entry_id)
            return {"entry": entry.to_dict(), "verified": ActivityLog.verify(entry)}
        return self._run("get_activity_entry", op)
