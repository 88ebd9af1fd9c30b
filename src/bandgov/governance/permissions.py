"""Permission model — static role → capability table.

Roles are defined purely by the set of capabilities they hold. The
table is data, not a class hierarchy, so the whole matrix can be
audited and unit-tested in isolation.

Fail-closed: an unrecognized role string holds no permissions, so every
check against it is denied. There is no default-allow path.

Two authorization primitives exist and are distinct:
- require_any: the role must grant at least one of the capabilities.
- require_all: the role must grant every one of them.
"""

from __future__ import annotations

import enum
from typing import Iterable

from bandgov.errors import AuthorizationError
from bandgov.models.organization import MemberRole


class Permission(str, enum.Enum):
    VIEW = "view"
    COMMENT = "comment"
    CREATE_PROPOSALS = "create_proposals"
    VOTE_PROPOSALS = "vote_proposals"
    VOTE_GOVERNANCE = "vote_governance"
    APPROVE_PROPOSALS = "approve_proposals"
    CREATE_PROJECTS = "create_projects"
    CREATE_TASKS = "create_tasks"
    TAKE_TASKS = "take_tasks"
    MANAGE_MEMBERS = "manage_members"
    MANAGE_SETTINGS = "manage_settings"


P = Permission

ROLE_PERMISSIONS: dict[MemberRole, frozenset[Permission]] = {
    MemberRole.FOUNDER: frozenset(Permission),
    MemberRole.GOVERNOR: frozenset({
        P.VIEW, P.COMMENT, P.CREATE_PROPOSALS, P.VOTE_PROPOSALS,
        P.VOTE_GOVERNANCE, P.APPROVE_PROPOSALS, P.CREATE_PROJECTS,
        P.CREATE_TASKS, P.TAKE_TASKS,
    }),
    MemberRole.STEWARD: frozenset({
        P.VIEW, P.COMMENT, P.CREATE_PROPOSALS, P.VOTE_PROPOSALS,
        P.APPROVE_PROPOSALS, P.CREATE_PROJECTS, P.CREATE_TASKS, P.TAKE_TASKS,
    }),
    MemberRole.MEMBER: frozenset({
        P.VIEW, P.COMMENT, P.CREATE_PROPOSALS, P.VOTE_PROPOSALS,
        P.CREATE_PROJECTS, P.CREATE_TASKS, P.TAKE_TASKS,
    }),
    MemberRole.VOTING_MEMBER: frozenset({
        P.VIEW, P.COMMENT, P.VOTE_PROPOSALS, P.TAKE_TASKS,
    }),
    MemberRole.OBSERVER: frozenset({P.VIEW}),
}

# Highest authority first.
ROLE_HIERARCHY: tuple[MemberRole, ...] = (
    MemberRole.FOUNDER,
    MemberRole.GOVERNOR,
    MemberRole.STEWARD,
    MemberRole.MEMBER,
    MemberRole.VOTING_MEMBER,
    MemberRole.OBSERVER,
)

_ROLE_NAMES: dict[MemberRole, str] = {
    MemberRole.FOUNDER: "Founder",
    MemberRole.GOVERNOR: "Governor",
    MemberRole.STEWARD: "Steward",
    MemberRole.MEMBER: "Member",
    MemberRole.VOTING_MEMBER: "Voting Member",
    MemberRole.OBSERVER: "Observer",
}

_ROLE_DESCRIPTIONS: dict[MemberRole, str] = {
    MemberRole.FOUNDER: "Full access including member and settings management",
    MemberRole.GOVERNOR: "Full governance voting and all operational permissions",
    MemberRole.STEWARD: "Moderate and approve proposals, create projects and tasks",
    MemberRole.MEMBER: "Create proposals, projects, tasks and vote on proposals",
    MemberRole.VOTING_MEMBER: "Vote on proposals, take tasks, and comment",
    MemberRole.OBSERVER: "View-only access",
}


def _parse_role(role: object) -> MemberRole | None:
    if isinstance(role, MemberRole):
        return role
    if not isinstance(role, str):
        return None
    try:
        return MemberRole(role)
    except ValueError:
        return None


def _parse_permission(permission: object) -> Permission | None:
    if isinstance(permission, Permission):
        return permission
    if not isinstance(permission, str):
        return None
    try:
        return Permission(permission)
    except ValueError:
        return None


def is_valid_role(role: object) -> bool:
    return _parse_role(role) is not None


def permissions_of(role: object) -> frozenset[Permission]:
    """Return the capability set of *role*; empty for unknown roles."""
    parsed = _parse_role(role)
    if parsed is None:
        return frozenset()
    return ROLE_PERMISSIONS[parsed]


def has_permission(role: object, permission: object) -> bool:
    """True only if *role* is recognized and grants *permission*."""
    parsed = _parse_permission(permission)
    if parsed is None:
        return False
    return parsed in permissions_of(role)


def has_any(role: object, permissions: Iterable[object]) -> bool:
    return any(has_permission(role, p) for p in permissions)


def has_all(role: object, permissions: Iterable[object]) -> bool:
    required = list(permissions)
    if not required:
        return is_valid_role(role)
    return all(has_permission(role, p) for p in required)


def require_any(role: object, *permissions: Permission) -> None:
    """Raise AuthorizationError unless *role* grants at least one permission."""
    if not is_valid_role(role):
        raise AuthorizationError(f"Unrecognized role: {role!r}")
    if not has_any(role, permissions):
        wanted = ", ".join(p.value for p in permissions)
        raise AuthorizationError(f"Role {role} requires one of: {wanted}")


def require_all(role: object, *permissions: Permission) -> None:
    """Raise AuthorizationError unless *role* grants every permission."""
    if not is_valid_role(role):
        raise AuthorizationError(f"Unrecognized role: {role!r}")
    missing = [p.value for p in permissions if not has_permission(role, p)]
    if missing:
        raise AuthorizationError(
            f"Role {role} is missing permission(s): {', '.join(missing)}"
        )


def is_at_least(role: object, minimum: object) -> bool:
    """Hierarchy check: founder > governor > steward > member > voting_member > observer."""
    parsed, floor = _parse_role(role), _parse_role(minimum)
    if parsed is None or floor is None:
        return False
    return ROLE_HIERARCHY.index(parsed) <= ROLE_HIERARCHY.index(floor)


def role_name(role: object) -> str:
    parsed = _parse_role(role)
    return _ROLE_NAMES[parsed] if parsed is not None else str(role)


def role_description(role: object) -> str:
    parsed = _parse_role(role)
    return _ROLE_DESCRIPTIONS[parsed] if parsed is not None else ""
