"""
Server-side enforcement pipeline.

    session -> resolve organization context -> evaluate requirement -> operation

The FastAPI dependencies in ``gymhub.api.deps`` are thin adapters over
``enforce``; anything that needs the same decision outside a route (jobs,
scripts, tests) calls ``enforce``/``guarded`` directly.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Tuple, TypeVar, Union

import structlog

from gymhub.auth.context import Membership, OrganizationContextResolver, OrganizationHints
from gymhub.auth.permissions import Permission, has_all_permissions, has_any_permission, parse_permission
from gymhub.core.errors import Forbidden, Unauthenticated
from gymhub.core.roles import Role, parse_role
from gymhub.core.security import SessionInfo, SubjectInfo

log = structlog.get_logger()

T = TypeVar("T")


@dataclass(frozen=True)
class RoleRequirement:
    roles: Tuple[Role, ...]

    def __post_init__(self) -> None:
        parsed = tuple(parse_role(r) for r in self.roles)
        if not parsed:
            raise ValueError("RoleRequirement needs at least one role")
        object.__setattr__(self, "roles", parsed)

    def is_met(self, role: Role) -> bool:
        return role in self.roles

    def describe(self) -> str:
        return "Required role: " + " or ".join(r.value for r in self.roles)


@dataclass(frozen=True)
class PermissionRequirement:
    permissions: Tuple[Permission, ...]
    require_all: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "permissions", tuple(parse_permission(p) for p in self.permissions))

    def is_met(self, role: Role) -> bool:
        if self.require_all:
            return has_all_permissions(role, self.permissions)
        return has_any_permission(role, self.permissions)

    def describe(self) -> str:
        names = [p.value for p in self.permissions]
        if self.require_all:
            return "Required all permissions: " + " and ".join(names)
        return "Required permission: " + " or ".join(names)


@dataclass(frozen=True)
class AllOf:
    """Stacked requirements evaluated against a single resolution."""

    requirements: Tuple["Requirement", ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "requirements", tuple(self.requirements))

    def is_met(self, role: Role) -> bool:
        return all(r.is_met(role) for r in self.requirements)

    def first_unmet(self, role: Role) -> Optional["Requirement"]:
        for r in self.requirements:
            if isinstance(r, AllOf):
                inner = r.first_unmet(role)
                if inner is not None:
                    return inner
            elif not r.is_met(role):
                return r
        return None

    def describe(self) -> str:
        return "; ".join(r.describe() for r in self.requirements)


Requirement = Union[RoleRequirement, PermissionRequirement, AllOf]


@dataclass(frozen=True)
class RBACContext:
    """What a protected operation gets once every guard step has passed."""

    subject: SubjectInfo
    session: SessionInfo
    organization_id: str
    role: Role
    member: Membership


def check_requirement(role: Role, requirement: Optional[Requirement]) -> None:
    """Raise Forbidden describing the first unmet part of ``requirement``."""
    if requirement is None:
        return
    if isinstance(requirement, AllOf):
        unmet = requirement.first_unmet(role)
        if unmet is not None:
            raise Forbidden(unmet.describe())
        return
    if not requirement.is_met(role):
        raise Forbidden(requirement.describe())


def authorize(ctx: RBACContext, requirement: Optional[Requirement]) -> RBACContext:
    """Evaluate ``requirement`` against an already-resolved context."""
    try:
        check_requirement(ctx.role, requirement)
    except Forbidden as exc:
        log.info(
            "rbac.denied",
            subject_id=ctx.subject.id,
            organization_id=ctx.organization_id,
            role=ctx.role.value,
            requirement=exc.requirement,
        )
        raise
    return ctx


async def enforce(
    session: Optional[SessionInfo],
    hints: OrganizationHints,
    resolver: OrganizationContextResolver,
    requirement: Optional[Requirement] = None,
) -> RBACContext:
    if session is None:
        raise Unauthenticated()

    # Only the session (never the client) can supply the active organization hint.
    hints = OrganizationHints(
        active_organization_id=session.active_organization_id,
        query_organization_id=hints.query_organization_id,
        path_organization_id=hints.path_organization_id,
    )
    member = await resolver.resolve(session.subject.id, hints)

    ctx = RBACContext(
        subject=session.subject,
        session=session,
        organization_id=member.organization_id,
        role=member.role,
        member=member,
    )
    return authorize(ctx, requirement)


async def guarded(
    operation: Callable[[RBACContext], Awaitable[T]],
    session: Optional[SessionInfo],
    hints: OrganizationHints,
    resolver: OrganizationContextResolver,
    requirement: Optional[Requirement] = None,
) -> T:
    """Run ``operation`` only if every guard step passes."""
    ctx = await enforce(session, hints, resolver, requirement)
    return await operation(ctx)
