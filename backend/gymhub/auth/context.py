"""
Organization context resolution.

Given an already-verified subject and the organization hints carried by a
request, produce the subject's Membership in exactly one organization. This is
the only path by which an operation learns the acting role.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol

import structlog

from gymhub.core.errors import MissingOrganizationContext, NotAMember
from gymhub.core.roles import Role

log = structlog.get_logger()


@dataclass(frozen=True)
class Membership:
    subject_id: str
    organization_id: str
    role: Role


@dataclass(frozen=True)
class OrganizationHints:
    """
    Candidate organization ids in precedence order:
    session active organization, ``organizationId`` query param,
    ``organizationId`` path param. The first non-empty one wins.
    """

    active_organization_id: Optional[str] = None
    query_organization_id: Optional[str] = None
    path_organization_id: Optional[str] = None

    def first(self) -> Optional[str]:
        for candidate in (
            self.active_organization_id,
            self.query_organization_id,
            self.path_organization_id,
        ):
            if candidate is None:
                continue
            value = str(candidate).strip()
            if value:
                return value
        return None


class MembershipStore(Protocol):
    async def find_membership(self, subject_id: str, organization_id: str) -> Optional[Membership]:
        ...


class OrganizationContextResolver:
    """
    Read-only and uncached: one store read per resolve() call. Callers thread
    the returned Membership through the rest of the request instead of
    resolving again.
    """

    def __init__(self, store: MembershipStore) -> None:
        self._store = store

    async def resolve(self, subject_id: str, hints: OrganizationHints) -> Membership:
        organization_id = hints.first()
        if organization_id is None:
            log.info("rbac.context_missing", subject_id=subject_id)
            raise MissingOrganizationContext()

        membership = await self._store.find_membership(subject_id, organization_id)
        if membership is None:
            log.info("rbac.not_a_member", subject_id=subject_id, organization_id=organization_id)
            raise NotAMember()

        log.debug(
            "rbac.context_resolved",
            subject_id=subject_id,
            organization_id=organization_id,
            role=membership.role.value,
        )
        return membership
