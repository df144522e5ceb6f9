from __future__ import annotations

from typing import Callable, Union

from fastapi import Depends

from gymhub.api.deps.organization import require_organization_context
from gymhub.auth.guard import (
    PermissionRequirement,
    RBACContext,
    Requirement,
    RoleRequirement,
    authorize,
)
from gymhub.auth.permissions import Permission
from gymhub.core.roles import Role


def require(requirement: Requirement) -> Callable:
    """
    Dependency factory: resolve organization context (once per request), then
    evaluate ``requirement`` against the resolved role.
    """

    async def _checker(ctx: RBACContext = Depends(require_organization_context)) -> RBACContext:
        return authorize(ctx, requirement)

    return _checker


def require_role(*allowed_roles: Union[Role, str]) -> Callable:
    """
    Enforce membership role is one of ``allowed_roles``.
    Unknown role names fail here, at import time of the route module.
    """
    return require(RoleRequirement(allowed_roles))


def require_permission(*required: Union[Permission, str], require_all: bool = False) -> Callable:
    """
    Args:
      required: one or more permissions
      require_all: False => any listed permission passes; True => all are needed
    """
    return require(PermissionRequirement(required, require_all=require_all))


def require_all_permissions(*required: Union[Permission, str]) -> Callable:
    return require_permission(*required, require_all=True)
