"""
Presentation guards.

Each guard picks one of three branches from the mirror state: the loading
placeholder while the summary is not settled, the fallback when the
requirement is unmet (a failed fetch counts as unmet unless ``error`` is
given), otherwise the protected content. Content is whatever the caller
renders with (strings, widgets, callables); guards never inspect it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from gymhub.client.membership import PermissionArg, RoleArg
from gymhub.client.mirror import MembershipMirror, MirrorStatus


@dataclass
class _Guard:
    children: Any
    fallback: Any = None
    loading: Any = None
    error: Any = None

    def is_met(self, mirror: MembershipMirror) -> bool:
        raise NotImplementedError

    def render(self, mirror: MembershipMirror) -> Any:
        if mirror.is_loading:
            return self.loading
        if mirror.status is MirrorStatus.ERROR:
            return self.error if self.error is not None else self.fallback
        if not self.is_met(mirror):
            return self.fallback
        return self.children

    async def mount(self, mirror: MembershipMirror) -> Any:
        """Make sure the shared summary is loaded, then render."""
        await mirror.load()
        return self.render(mirror)


@dataclass
class RequireRole(_Guard):
    role: RoleArg = ()

    def is_met(self, mirror: MembershipMirror) -> bool:
        return mirror.has_role(self.role)


@dataclass
class RequirePermission(_Guard):
    permission: PermissionArg = ()
    require_all: bool = False

    def is_met(self, mirror: MembershipMirror) -> bool:
        return mirror.can(self.permission, require_all=self.require_all)
