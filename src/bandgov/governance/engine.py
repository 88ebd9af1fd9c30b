"""Proposal engine — guarded lifecycle operations.

Every operation follows the same shape:

1. Resolve the caller's active membership in the band.
2. Check the role grants the required permission (fail closed).
3. Inside one store transaction: load the proposal, check the
   transition guard, write with compare-and-swap on the expected state.
4. After the commit, record an activity log entry (best-effort).

Guard violations raise typed errors before anything is written.
Nothing outside this engine writes proposal state or vote counters.

Usage:
    engine = ProposalEngine(store, activity_log)
    proposal = engine.create_proposal(caller, band_id, title=..., ...)
    engine.submit_proposal(caller, band_id, proposal.proposal_id)
    engine.review_proposal(steward, band_id, proposal.proposal_id, "approve")
    engine.cast_vote(voter, band_id, proposal.proposal_id, "approve")
    proposal, tally = engine.finalize_proposal(steward, band_id, proposal.proposal_id)
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

import structlog

from bandgov.config import check_voting_period
from bandgov.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from bandgov.governance.permissions import Permission, has_permission, require_any
from bandgov.governance.state_machine import ProposalStateMachine
from bandgov.governance.tally import compute_tally
from bandgov.governance.vote_ledger import counter_delta, parse_choice
from bandgov.identity import Identity, MembershipResolver
from bandgov.models.activity import ActivityFilter, ActivityLogEntry, ActivityPage
from bandgov.models.proposal import (
    CONTENT_FIELDS,
    REQUIRED_CONTENT_FIELDS,
    Proposal,
    ProposalDetail,
    ProposalState,
    ProposalVersion,
    ReviewAction,
    ReviewStatus,
    TallyResult,
    Vote,
    VoteOutcome,
)
from bandgov.persistence.activity_log import ActivityLog
from bandgov.persistence.store import GovernanceStore, StoreSession

logger = structlog.get_logger()


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    stripped = str(value).strip()
    return stripped or None


def parse_state(value: object) -> ProposalState:
    if isinstance(value, ProposalState):
        return value
    try:
        return ProposalState(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(s.value for s in ProposalState)
        raise ValidationError(
            f"Invalid proposal state: {value!r}. Use one of: {allowed}"
        ) from None


def parse_review_action(value: object) -> ReviewAction:
    if isinstance(value, ReviewAction):
        return value
    try:
        return ReviewAction(str(value).strip().lower())
    except ValueError:
        raise ValidationError(
            f"Invalid review action: {value!r}. Use approve or request_changes"
        ) from None


class ProposalEngine:
    """Proposal lifecycle, vote ledger and finalization."""

    def __init__(
        self,
        store: GovernanceStore,
        activity_log: ActivityLog,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._store = store
        self._log = activity_log
        self._clock = clock
        self._sm = ProposalStateMachine()

    # ------------------------------------------------------------------
    # Creation and revision
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
    ) -> Proposal:
        """Create a DRAFT proposal and its version 1.

        voting_ends_utc is fixed here (now + voting period) and is not
        recomputed when review opens voting.
        """
        with self._store.transaction() as tx:
            band, member = MembershipResolver.resolve(tx, band_id, caller)
            require_any(member.role, Permission.CREATE_PROPOSALS)

            content = {
                "title": _clean(title),
                "objective": _clean(objective),
                "description": _clean(description),
                "rationale": _clean(rationale),
                "success_criteria": _clean(success_criteria),
                "financial_request": _clean(financial_request),
                "budget_breakdown": _clean(budget_breakdown),
            }
            missing = [f for f in REQUIRED_CONTENT_FIELDS if not content[f]]
            if missing:
                raise ValidationError(f"Missing required fields: {', '.join(missing)}")

            hours = check_voting_period(
                band.voting_period_hours if voting_period_hours is None else voting_period_hours
            )

            now = self._clock()
            proposal = Proposal(
                proposal_id=f"prop_{uuid.uuid4().hex[:12]}",
                band_id=band.band_id,
                creator_id=member.member_id,
                state=ProposalState.DRAFT,
                created_utc=now,
                state_changed_utc=now,
                voting_ends_utc=now + timedelta(hours=hours),
                **content,
            )
            tx.insert_proposal(proposal)
            tx.insert_version(self._snapshot(proposal, 1, "Initial version", member.member_id, now))
            tx.increment_member_stat(member.member_id, "proposal_count")

        logger.info(
            "proposal_created",
            band_id=band_id, proposal_id=proposal.proposal_id, creator_id=member.member_id,
        )
        self._log.proposal_created(band_id, member.member_id, proposal)
        return proposal

    def revise_proposal(
        self,
        caller: Optional[Identity],
        band_id: str,
        proposal_id: str,
        changes: dict[str, Any],
        change_reason: str,
    ) -> tuple[Proposal, ProposalVersion]:
        """Change a proposal's content while it is in DRAFT or NEEDS_REVISION.

        Only the creator, or a member holding approve_proposals, may
        revise. Each revision appends the next ProposalVersion.
        """
        with self._store.transaction() as tx:
            _, member = MembershipResolver.resolve(tx, band_id, caller)
            require_any(member.role, Permission.CREATE_PROPOSALS, Permission.APPROVE_PROPOSALS)
            proposal = self._load(tx, band_id, proposal_id)
            if (
                proposal.creator_id != member.member_id
                and not has_permission(member.role, Permission.APPROVE_PROPOSALS)
            ):
                raise AuthorizationError("Only the creator or a reviewer can revise a proposal")
            if not self._sm.is_editable(proposal.state):
                raise ConflictError(
                    f"Cannot revise a proposal in state {proposal.state.value}"
                )

            reason = _clean(change_reason)
            if not reason:
                raise ValidationError("change_reason is required")
            unknown = sorted(set(changes) - set(CONTENT_FIELDS))
            if unknown:
                raise ValidationError(f"Fields cannot be revised: {', '.join(unknown)}")

            diff: dict[str, Any] = {}
            updates: dict[str, Optional[str]] = {}
            for name, raw in changes.items():
                new_value = _clean(raw)
                if name in REQUIRED_CONTENT_FIELDS and not new_value:
                    raise ValidationError(f"{name} must not be empty")
                old_value = getattr(proposal, name)
                if new_value != old_value:
                    updates[name] = new_value
                    diff[name] = {"from": old_value, "to": new_value}
            if not updates:
                raise ValidationError("No content changes to record")

            now = self._clock()
            tx.update_proposal(proposal_id, proposal.state, **updates)
            for name, value in updates.items():
                setattr(proposal, name, value)
            version = self._snapshot(
                proposal, tx.next_version_number(proposal_id), reason, member.member_id, now,
            )
            tx.insert_version(version)

        self._log.proposal_revised(
            band_id, member.member_id, proposal, version.version_number, diff, reason,
        )
        return proposal, version

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def submit_proposal(
        self,
        caller: Optional[Identity],
        band_id: str,
        proposal_id: str,
    ) -> Proposal:
        """DRAFT → IN_REVIEW."""
        with self._store.transaction() as tx:
            _, member = MembershipResolver.resolve(tx, band_id, caller)
            require_any(member.role, Permission.CREATE_PROPOSALS)
            proposal = self._load(tx, band_id, proposal_id)
            if proposal.state != ProposalState.DRAFT:
                raise ConflictError(
                    f"Can only submit draft proposals (state: {proposal.state.value})"
                )
            self._sm.require_transition(proposal.state, ProposalState.IN_REVIEW)
            now = self._clock()
            tx.update_proposal(
                proposal_id, ProposalState.DRAFT,
                state=ProposalState.IN_REVIEW, state_changed_utc=now,
            )
            proposal = tx.get_proposal(proposal_id)

        logger.info("proposal_submitted", band_id=band_id, proposal_id=proposal_id)
        self._log.proposal_submitted(band_id, member.member_id, proposal)
        return proposal

    def resubmit_proposal(
        self,
        caller: Optional[Identity],
        band_id: str,
        proposal_id: str,
    ) -> Proposal:
        """NEEDS_REVISION → IN_REVIEW, guarded like the first submission."""
        with self._store.transaction() as tx:
            _, member = MembershipResolver.resolve(tx, band_id, caller)
            require_any(member.role, Permission.CREATE_PROPOSALS)
            proposal = self._load(tx, band_id, proposal_id)
            if proposal.state != ProposalState.NEEDS_REVISION:
                raise ConflictError(
                    "Can only resubmit proposals that need revision "
                    f"(state: {proposal.state.value})"
                )
            self._sm.require_transition(proposal.state, ProposalState.IN_REVIEW)
            tx.update_proposal(
                proposal_id, ProposalState.NEEDS_REVISION,
                state=ProposalState.IN_REVIEW,
                state_changed_utc=self._clock(),
                review_status=ReviewStatus.PENDING,
            )
            proposal = tx.get_proposal(proposal_id)

        logger.info("proposal_resubmitted", band_id=band_id, proposal_id=proposal_id)
        self._log.proposal_resubmitted(band_id, member.member_id, proposal)
        return proposal

    def review_proposal(
        self,
        caller: Optional[Identity],
        band_id: str,
        proposal_id: str,
        action: object,
        feedback: Optional[str] = None,
    ) -> Proposal:
        """IN_REVIEW → VOTING (approve) or NEEDS_REVISION (request_changes).

        Approval lands directly on VOTING and stamps voting_starts_utc.
        voting_ends_utc is left as set at creation, so voting may already
        be over; finalize handles that.
        """
        with self._store.transaction() as tx:
            _, member = MembershipResolver.resolve(tx, band_id, caller)
            require_any(member.role, Permission.APPROVE_PROPOSALS)
            review_action = parse_review_action(action)
            proposal = self._load(tx, band_id, proposal_id)
            if proposal.state != ProposalState.IN_REVIEW:
                raise ConflictError(
                    f"Proposal not under review (state: {proposal.state.value})"
                )

            now = self._clock()
            approved = review_action == ReviewAction.APPROVE
            values: dict[str, Any] = {
                "state_changed_utc": now,
                "reviewed_by": member.member_id,
                "reviewed_utc": now,
                "review_feedback": _clean(feedback),
            }
            if approved:
                target = ProposalState.VOTING
                values["voting_starts_utc"] = now
                values["review_status"] = ReviewStatus.APPROVED
            else:
                target = ProposalState.NEEDS_REVISION
                values["review_status"] = ReviewStatus.NEEDS_CHANGES
            self._sm.require_transition(proposal.state, target)
            tx.update_proposal(proposal_id, ProposalState.IN_REVIEW, state=target, **values)
            proposal = tx.get_proposal(proposal_id)

        logger.info(
            "proposal_reviewed",
            band_id=band_id, proposal_id=proposal_id, action=review_action.value,
        )
        self._log.proposal_reviewed(band_id, member.member_id, proposal, approved, _clean(feedback))
        return proposal

    def cast_vote(
        self,
        caller: Optional[Identity],
        band_id: str,
        proposal_id: str,
        choice: object,
        comment: Optional[str] = None,
    ) -> VoteOutcome:
        """Insert or update the caller's vote and adjust the counters.

        The ledger row and the counter adjustment are written in one
        transaction. Re-casting the same choice leaves the counters
        untouched but still updates the comment and is still logged.
        """
        with self._store.transaction() as tx:
            _, member = MembershipResolver.resolve(tx, band_id, caller)
            require_any(member.role, Permission.VOTE_PROPOSALS)
            vote_choice = parse_choice(choice)
            proposal = self._load(tx, band_id, proposal_id)
            if proposal.state != ProposalState.VOTING:
                raise ConflictError(
                    f"Proposal not open for voting (state: {proposal.state.value})"
                )
            now = self._clock()
            if now >= proposal.voting_ends_utc:
                raise ConflictError("Voting period has ended")

            text = _clean(comment)
            existing = tx.get_vote(proposal_id, member.member_id)
            previous = existing.choice if existing is not None else None
            if existing is None:
                vote = Vote(
                    vote_id=f"vote_{uuid.uuid4().hex[:12]}",
                    proposal_id=proposal_id,
                    member_id=member.member_id,
                    choice=vote_choice,
                    comment=text,
                    cast_utc=now,
                )
                tx.insert_vote(vote)
                tx.increment_member_stat(member.member_id, "votes_cast")
            else:
                tx.update_vote(existing.vote_id, vote_choice, text, now)
                vote = Vote(
                    vote_id=existing.vote_id,
                    proposal_id=proposal_id,
                    member_id=member.member_id,
                    choice=vote_choice,
                    comment=text,
                    cast_utc=existing.cast_utc,
                    updated_utc=now,
                )
            counters = tx.adjust_vote_counters(proposal_id, counter_delta(previous, vote_choice))

        logger.info(
            "vote_cast",
            band_id=band_id, proposal_id=proposal_id, member_id=member.member_id,
            choice=vote_choice.value, updated=previous is not None,
        )
        self._log.proposal_voted(
            band_id, member.member_id, proposal, vote_choice.value, text,
            previous_vote=previous.value if previous is not None else None,
        )
        return VoteOutcome(
            vote=vote,
            created=previous is None,
            previous_choice=previous,
            counters=counters,
        )

    def finalize_proposal(
        self,
        caller: Optional[Identity],
        band_id: str,
        proposal_id: str,
    ) -> tuple[Proposal, TallyResult]:
        """VOTING → APPROVED | REJECTED once the voting period is over.

        Raises:
            ConflictError: Not in VOTING, or voting has not ended yet
                (including a second finalize of the same proposal).
            ValidationError: The band has no active members.
        """
        with self._store.transaction() as tx:
            band, member = MembershipResolver.resolve(tx, band_id, caller)
            require_any(member.role, Permission.APPROVE_PROPOSALS)
            proposal = self._load(tx, band_id, proposal_id)
            if proposal.state != ProposalState.VOTING:
                raise ConflictError(
                    f"Proposal not in voting state (state: {proposal.state.value})"
                )
            now = self._clock()
            if now < proposal.voting_ends_utc:
                raise ConflictError("Voting period has not ended")

            tally = compute_tally(
                votes_approve=proposal.votes_approve,
                votes_reject=proposal.votes_reject,
                votes_abstain=proposal.votes_abstain,
                active_members=tx.count_active_members(band.band_id),
                quorum_percentage=band.quorum_percentage,
                approval_threshold=band.approval_threshold,
            )
            target = ProposalState.APPROVED if tally.approved else ProposalState.REJECTED
            self._sm.require_transition(proposal.state, target)
            tx.update_proposal(
                proposal_id, ProposalState.VOTING, state=target, state_changed_utc=now,
            )
            proposal = tx.get_proposal(proposal_id)

        logger.info(
            "proposal_finalized",
            band_id=band_id, proposal_id=proposal_id, state=proposal.state.value,
            total_votes=tally.total_votes, active_members=tally.active_members,
            quorum_met=tally.quorum_met, approval_rate=tally.approval_rate,
        )
        self._log.proposal_finalized(band_id, member.member_id, proposal, tally)
        return proposal, tally

    def override_state(
        self,
        caller: Optional[Identity],
        band_id: str,
        proposal_id: str,
        state: object,
    ) -> Proposal:
        """Administrative direct state write, bypassing transition guards.

        Requires approve_proposals. The write is still compare-and-swap
        on the state observed at read time, and it is still logged.
        """
        with self._store.transaction() as tx:
            _, member = MembershipResolver.resolve(tx, band_id, caller)
            require_any(member.role, Permission.APPROVE_PROPOSALS)
            target = parse_state(state)
            proposal = self._load(tx, band_id, proposal_id)
            previous = proposal.state
            tx.update_proposal(
                proposal_id, previous, state=target, state_changed_utc=self._clock(),
            )
            proposal = tx.get_proposal(proposal_id)

        logger.warning(
            "proposal_state_overridden",
            band_id=band_id, proposal_id=proposal_id,
            from_state=previous.value, to_state=target.value, actor_id=member.member_id,
        )
        self._log.proposal_state_overridden(
            band_id, member.member_id, proposal, previous.value, target.value,
        )
        return proposal

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_proposals(
        self,
        caller: Optional[Identity],
        band_id: str,
        state: object = None,
    ) -> list[Proposal]:
        """Band proposals newest first, optionally filtered by state."""
        with self._store.session() as tx:
            _, member = MembershipResolver.resolve(tx, band_id, caller)
            require_any(member.role, Permission.VIEW)
            wanted = parse_state(state) if state else None
            return tx.list_proposals(band_id, wanted)

    def get_proposal(
        self,
        caller: Optional[Identity],
        band_id: str,
        proposal_id: str,
    ) -> ProposalDetail:
        """A proposal with its votes and versions (newest version first)."""
        with self._store.session() as tx:
            _, member = MembershipResolver.resolve(tx, band_id, caller)
            require_any(member.role, Permission.VIEW)
            proposal = self._load(tx, band_id, proposal_id)
            return ProposalDetail(
                proposal=proposal,
                votes=tx.list_votes(proposal_id),
                versions=tx.list_versions(proposal_id),
            )

    def list_activity(
        self,
        caller: Optional[Identity],
        band_id: str,
        filters: Optional[ActivityFilter] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> ActivityPage:
        with self._store.session() as tx:
            _, member = MembershipResolver.resolve(tx, band_id, caller)
            require_any(member.role, Permission.VIEW)
        return self._log.query(band_id, filters, limit, offset)

    def get_activity_entry(
        self,
        caller: Optional[Identity],
        band_id: str,
        entry_id: str,
    ) -> ActivityLogEntry:
        with self._store.session() as tx:
            _, member = MembershipResolver.resolve(tx, band_id, caller)
            require_any(member.role, Permission.VIEW)
        return self._log.get(band_id, entry_id)

    def ledger_counts(self, proposal_id: str) -> dict[str, dict[str, int]]:
        """Counters next to ledger row counts, for consistency checks."""
        with self._store.session() as tx:
            proposal = tx.get_proposal(proposal_id)
            if proposal is None:
                raise NotFoundError(f"Proposal not found: {proposal_id}")
            ledger = tx.count_votes(proposal_id)
        return {
            "counters": {
                "approve": proposal.votes_approve,
                "reject": proposal.votes_reject,
                "abstain": proposal.votes_abstain,
            },
            "ledger": ledger,
        }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _load(tx: StoreSession, band_id: str, proposal_id: str) -> Proposal:
        proposal = tx.get_proposal(proposal_id)
        if proposal is None or proposal.band_id != band_id:
            raise NotFoundError(f"Proposal not found: {proposal_id}")
        return proposal

    @staticmethod
    def _snapshot(
        proposal: Proposal,
        number: int,
        reason: str,
        author_id: str,
        now: datetime,
    ) -> ProposalVersion:
        return ProposalVersion(
            version_id=f"ver_{uuid.uuid4().hex[:12]}",
            proposal_id=proposal.proposal_id,
            version_number=number,
            title=proposal.title,
            objective=proposal.objective,
            description=proposal.description,
            rationale=proposal.rationale,
            success_criteria=proposal.success_criteria,
            financial_request=proposal.financial_request,
            budget_breakdown=proposal.budget_breakdown,
            change_reason=reason,
            created_by=author_id,
            created_utc=now,
        )
