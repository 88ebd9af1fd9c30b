"""Band registry — band creation, membership and governance settings.

The registry owns the inputs the proposal engine reads: who is an
active member (the quorum denominator), what role each member holds
(the permission check) and the band's thresholds (the tally).

Rules:
- Whoever creates a band becomes its first member, active, as founder.
- Members are added as PENDING and count toward nothing until active.
- Only active members count toward quorum; removed members keep their
  historical votes and log entries.
- Roles are validated against the fixed role set on every write.
"""

from __future__ import annotations

import re
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Optional

import structlog

from bandgov.config import GovernanceConfig, check_voting_period
from bandgov.errors import ConflictError, NotFoundError, ValidationError
from bandgov.governance.permissions import Permission, is_valid_role, require_any
from bandgov.identity import Identity, MembershipResolver, require_identity
from bandgov.models.organization import Band, Member, MemberRole, MemberStatus
from bandgov.persistence.activity_log import ActivityLog
from bandgov.persistence.store import GovernanceStore, StoreSession

logger = structlog.get_logger()

_SLUG_RE = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _percentage(name: str, value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a number, got {value!r}") from None
    if not 0 <= number <= 100:
        raise ValidationError(f"{name} must be within 0-100, got {number}")
    return number


def _parse_status(value: object) -> MemberStatus:
    if isinstance(value, MemberStatus):
        return value
    try:
        return MemberStatus(str(value).strip().lower())
    except ValueError:
        raise ValidationError(f"Invalid member status: {value!r}") from None


class BandRegistry:
    """Creates bands and manages their members and settings.

    Usage:
        registry = BandRegistry(store, activity_log, config)
        band, founder = registry.create_band(identity, "The Rust Belt", "rust-belt")
        member = registry.add_member(identity, band.band_id, "u2", "b@x.org", "member")
        registry.accept_invitation(bob, band.band_id)
    """

    def __init__(
        self,
        store: GovernanceStore,
        activity_log: ActivityLog,
        config: Optional[GovernanceConfig] = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._store = store
        self._log = activity_log
        self._config = config or GovernanceConfig()
        self._clock = clock

    def create_band(
        self,
        caller: Optional[Identity],
        name: str,
        slug: str,
        quorum_percentage: Optional[float] = None,
        approval_threshold: Optional[float] = None,
        voting_period_hours: Optional[float] = None,
        display_name: str = "",
    ) -> tuple[Band, Member]:
        identity = require_identity(caller)
        name = (name or "").strip()
        slug = (slug or "").strip().lower()
        if not name:
            raise ValidationError("Band name is required")
        if not _SLUG_RE.match(slug):
            raise ValidationError(
                f"Invalid slug: {slug!r}. Use lowercase letters, digits and hyphens"
            )
        cfg = self._config
        now = self._clock()
        band = Band(
            band_id=f"band_{uuid.uuid4().hex[:12]}",
            name=name,
            slug=slug,
            quorum_percentage=_percentage(
                "quorum_percentage",
                cfg.default_quorum_percentage if quorum_percentage is None else quorum_percentage,
            ),
            approval_threshold=_percentage(
                "approval_threshold",
                cfg.default_approval_threshold if approval_threshold is None else approval_threshold,
            ),
            voting_period_hours=check_voting_period(
                cfg.default_voting_period_hours if voting_period_hours is None else voting_period_hours,
            ),
            created_utc=now,
        )
        founder = Member(
            member_id=f"mem_{uuid.uuid4().hex[:12]}",
            band_id=band.band_id,
            user_id=identity.user_id,
            email=identity.email,
            display_name=display_name or identity.email or identity.user_id,
            role=MemberRole.FOUNDER.value,
            status=MemberStatus.ACTIVE,
            joined_utc=now,
        )
        with self._store.transaction() as tx:
            if tx.get_band_by_slug(slug) is not None:
                raise ConflictError(f"Band slug already taken: {slug}")
            tx.insert_band(band)
            tx.insert_member(founder)

        logger.info("band_created", band_id=band.band_id, slug=slug, founder_id=founder.member_id)
        self._log.band_created(band.band_id, founder.member_id, band.name)
        self._log.member_joined(band.band_id, founder.member_id, founder.display_name)
        return band, founder

    def add_member(
        self,
        caller: Optional[Identity],
        band_id: str,
        user_id: str,
        email: str,
        role: str = MemberRole.MEMBER.value,
        display_name: str = "",
    ) -> Member:
        """Invite a user into the band as a PENDING member."""
        with self._store.transaction() as tx:
            _, actor = MembershipResolver.resolve(tx, band_id, caller)
            require_any(actor.role, Permission.MANAGE_MEMBERS)
            role = str(role).strip().lower()
            if not is_valid_role(role):
                raise ValidationError(f"Invalid role: {role!r}")
            user_id = (user_id or "").strip()
            if not user_id:
                raise ValidationError("user_id is required")
            if tx.find_member(band_id, user_id) is not None:
                raise ConflictError(f"User {user_id} is already a member of this band")
            member = Member(
                member_id=f"mem_{uuid.uuid4().hex[:12]}",
                band_id=band_id,
                user_id=user_id,
                email=(email or "").strip(),
                display_name=display_name or email or user_id,
                role=role,
                status=MemberStatus.PENDING,
            )
            tx.insert_member(member)

        logger.info("member_added", band_id=band_id, member_id=member.member_id, role=role)
        self._log.member_added(band_id, actor.member_id, member.member_id, member.email, role)
        return member

    def accept_invitation(self, caller: Optional[Identity], band_id: str) -> Member:
        """The invited user activates their own PENDING membership."""
        identity = require_identity(caller)
        with self._store.transaction() as tx:
            if tx.get_band(band_id) is None:
                raise NotFoundError(f"Band not found: {band_id}")
            member = tx.find_member(band_id, identity.user_id)
            if member is None:
                raise NotFoundError("No invitation for this user")
            if member.status != MemberStatus.PENDING:
                raise ConflictError(f"Invitation not pending (status: {member.status.value})")
            now = self._clock()
            tx.update_member(member.member_id, status=MemberStatus.ACTIVE, joined_utc=now)
            member = tx.get_member(member.member_id)

        self._log.member_joined(band_id, member.member_id, member.display_name)
        return member

    def set_member_status(
        self,
        caller: Optional[Identity],
        band_id: str,
        member_id: str,
        status: object,
    ) -> Member:
        """Activate or remove a member (manage_members)."""
        target = _parse_status(status)
        with self._store.transaction() as tx:
            _, actor = MembershipResolver.resolve(tx, band_id, caller)
            require_any(actor.role, Permission.MANAGE_MEMBERS)
            member = self._load_member(tx, band_id, member_id)
            previous = member.status
            if previous == target:
                raise ConflictError(f"Member already {target.value}")
            joined = self._clock() if target == MemberStatus.ACTIVE and member.joined_utc is None else None
            tx.update_member(member_id, status=target, joined_utc=joined)
            member = tx.get_member(member_id)

        logger.info(
            "member_status_changed",
            band_id=band_id, member_id=member_id,
            from_status=previous.value, to_status=target.value,
        )
        if previous == MemberStatus.PENDING and target == MemberStatus.ACTIVE:
            self._log.member_joined(band_id, member_id, member.display_name)
        else:
            self._log.member_status_changed(
                band_id, actor.member_id, member_id, member.display_name,
                previous.value, target.value,
            )
        return member

    def change_member_role(
        self,
        caller: Optional[Identity],
        band_id: str,
        member_id: str,
        role: str,
    ) -> Member:
        role = str(role).strip().lower()
        with self._store.transaction() as tx:
            _, actor = MembershipResolver.resolve(tx, band_id, caller)
            require_any(actor.role, Permission.MANAGE_MEMBERS)
            if not is_valid_role(role):
                raise ValidationError(f"Invalid role: {role!r}")
            member = self._load_member(tx, band_id, member_id)
            previous = member.role
            if previous == role:
                raise ConflictError(f"Member already has role {role}")
            tx.update_member(member_id, role=role)
            member = tx.get_member(member_id)

        self._log.member_role_changed(
            band_id, actor.member_id, member_id, member.display_name, previous, role,
        )
        return member

    def update_settings(
        self,
        caller: Optional[Identity],
        band_id: str,
        quorum_percentage: Optional[float] = None,
        approval_threshold: Optional[float] = None,
        voting_period_hours: Optional[float] = None,
    ) -> Band:
        """Change the band's thresholds (manage_settings).

        Proposals already in VOTING are finalized against the values in
        force at finalization time.
        """
        with self._store.transaction() as tx:
            band, actor = MembershipResolver.resolve(tx, band_id, caller)
            require_any(actor.role, Permission.MANAGE_SETTINGS)
            requested: dict[str, float] = {}
            if quorum_percentage is not None:
                requested["quorum_percentage"] = _percentage("quorum_percentage", quorum_percentage)
            if approval_threshold is not None:
                requested["approval_threshold"] = _percentage("approval_threshold", approval_threshold)
            if voting_period_hours is not None:
                requested["voting_period_hours"] = check_voting_period(voting_period_hours)
            changes = {
                k: {"from": getattr(band, k), "to": v}
                for k, v in requested.items()
                if getattr(band, k) != v
            }
            if not changes:
                raise ValidationError("No settings changes to apply")
            tx.update_band(band_id, **{k: c["to"] for k, c in changes.items()})
            band = tx.get_band(band_id)

        logger.info("band_settings_updated", band_id=band_id, changes=sorted(changes))
        self._log.settings_updated(band_id, actor.member_id, band.name, changes)
        return band

    def get_band(self, caller: Optional[Identity], band_id: str) -> Band:
        with self._store.session() as tx:
            band, actor = MembershipResolver.resolve(tx, band_id, caller)
            require_any(actor.role, Permission.VIEW)
            return band

    def list_members(self, caller: Optional[Identity], band_id: str) -> list[Member]:
        with self._store.session() as tx:
            _, actor = MembershipResolver.resolve(tx, band_id, caller)
            require_any(actor.role, Permission.VIEW)
            return tx.list_members(band_id)

    @staticmethod
    def _load_member(tx: StoreSession, band_id: str, member_id: str) -> Member:
        member = tx.get_member(member_id)
        if member is None or member.band_id != band_id:
            raise NotFoundError(f"Member not found: {member_id}")
        return member
