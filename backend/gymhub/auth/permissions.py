from __future__ import annotations

import enum
from typing import FrozenSet, Iterable, List, Mapping

from gymhub.core.errors import UnknownPermission
from gymhub.core.roles import Role, coerce_role, hierarchy_rank


class Permission(str, enum.Enum):
    # organization
    MANAGE_ORGANIZATION = "MANAGE_ORGANIZATION"
    VIEW_ORGANIZATION = "VIEW_ORGANIZATION"
    DELETE_ORGANIZATION = "DELETE_ORGANIZATION"

    # members
    MANAGE_MEMBERS = "MANAGE_MEMBERS"
    INVITE_MEMBERS = "INVITE_MEMBERS"
    REMOVE_MEMBERS = "REMOVE_MEMBERS"
    VIEW_MEMBERS = "VIEW_MEMBERS"

    # trainers (owner only)
    MANAGE_TRAINERS = "MANAGE_TRAINERS"
    ASSIGN_TRAINERS = "ASSIGN_TRAINERS"

    # users
    MANAGE_USERS = "MANAGE_USERS"
    VIEW_USERS = "VIEW_USERS"

    # workouts
    CREATE_WORKOUTS = "CREATE_WORKOUTS"
    EDIT_WORKOUTS = "EDIT_WORKOUTS"
    DELETE_WORKOUTS = "DELETE_WORKOUTS"
    VIEW_WORKOUTS = "VIEW_WORKOUTS"
    ASSIGN_WORKOUTS = "ASSIGN_WORKOUTS"

    # schedule
    MANAGE_SCHEDULE = "MANAGE_SCHEDULE"
    VIEW_SCHEDULE = "VIEW_SCHEDULE"

    # analytics & reports
    VIEW_ANALYTICS = "VIEW_ANALYTICS"
    VIEW_REPORTS = "VIEW_REPORTS"

    # billing
    MANAGE_BILLING = "MANAGE_BILLING"
    VIEW_BILLING = "VIEW_BILLING"

    # settings
    MANAGE_SETTINGS = "MANAGE_SETTINGS"
    VIEW_SETTINGS = "VIEW_SETTINGS"


class MemberAction(str, enum.Enum):
    VIEW = "view"
    EDIT = "edit"
    DELETE = "delete"
    MANAGE = "manage"


ROLE_PERMISSIONS: Mapping[Role, FrozenSet[Permission]] = {
    Role.OWNER: frozenset(Permission),
    Role.TRAINER: frozenset(
        {
            Permission.VIEW_ORGANIZATION,
            Permission.VIEW_MEMBERS,
            Permission.VIEW_USERS,
            Permission.CREATE_WORKOUTS,
            Permission.EDIT_WORKOUTS,
            Permission.DELETE_WORKOUTS,
            Permission.VIEW_WORKOUTS,
            Permission.ASSIGN_WORKOUTS,
            Permission.MANAGE_SCHEDULE,
            Permission.VIEW_SCHEDULE,
            Permission.VIEW_ANALYTICS,
            Permission.VIEW_SETTINGS,
        }
    ),
    Role.USER: frozenset(
        {
            Permission.VIEW_ORGANIZATION,
            Permission.VIEW_WORKOUTS,
            Permission.VIEW_SCHEDULE,
            Permission.VIEW_SETTINGS,
        }
    ),
}

# Roles a manager may invite, remove or re-assign. Not derived from rank:
# a TRAINER outranks USER but may not manage another TRAINER.
_MANAGEABLE_ROLES: Mapping[Role, FrozenSet[Role]] = {
    Role.OWNER: frozenset(Role),
    Role.TRAINER: frozenset({Role.USER}),
    Role.USER: frozenset(),
}

# Per-actor allow-list applied after the hierarchy check in can_perform_action.
# Keyed by (actor, target); OWNER is handled separately.
_ACTION_ALLOW_LIST: Mapping[tuple[Role, Role], FrozenSet[MemberAction]] = {
    (Role.TRAINER, Role.USER): frozenset({MemberAction.VIEW, MemberAction.EDIT}),
}


def parse_permission(value: object) -> Permission:
    if isinstance(value, Permission):
        return value
    if isinstance(value, str):
        try:
            return Permission(value.strip().upper())
        except ValueError:
            pass
    raise UnknownPermission(value)


def get_role_permissions(role: object) -> List[Permission]:
    """
    Permissions granted to ``role`` in declaration order.
    Unknown roles get an empty list.
    """
    r = coerce_role(role)
    if r is None:
        return []
    granted = ROLE_PERMISSIONS[r]
    return [p for p in Permission if p in granted]


def _grants(role: object) -> FrozenSet[Permission]:
    r = coerce_role(role)
    if r is None:
        return frozenset()
    return ROLE_PERMISSIONS[r]


def has_permission(role: object, permission: object) -> bool:
    grants = _grants(role)
    try:
        return parse_permission(permission) in grants
    except UnknownPermission:
        return False


def has_any_permission(role: object, permissions: Iterable[object]) -> bool:
    return any(has_permission(role, p) for p in permissions)


def has_all_permissions(role: object, permissions: Iterable[object]) -> bool:
    """AND semantics; an empty requirement is vacuously satisfied."""
    return all(has_permission(role, p) for p in permissions)


def hierarchy_at_least(actor_role: object, target_role: object) -> bool:
    if coerce_role(actor_role) is None or coerce_role(target_role) is None:
        return False
    return hierarchy_rank(actor_role) >= hierarchy_rank(target_role)


def can_manage_role(manager_role: object, target_role: object) -> bool:
    manager = coerce_role(manager_role)
    target = coerce_role(target_role)
    if manager is None or target is None:
        return False
    return target in _MANAGEABLE_ROLES[manager]


def can_perform_action(actor_role: object, target_role: object, action: object) -> bool:
    """
    Whether ``actor_role`` may ``action`` a member holding ``target_role``.

    Distinct from can_manage_role: this one gates per-action access to another
    member's record and requires the actor to rank at least as high as the target.
    """
    actor = coerce_role(actor_role)
    target = coerce_role(target_role)
    if actor is None or target is None:
        return False

    try:
        act = MemberAction(action)
    except ValueError:
        return False

    if not hierarchy_at_least(actor, target):
        return False

    if actor is Role.OWNER:
        return True

    return act in _ACTION_ALLOW_LIST.get((actor, target), frozenset())
