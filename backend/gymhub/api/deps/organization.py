from __future__ import annotations

from typing import Optional

from fastapi import Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from gymhub.api.deps.session import get_session_info
from gymhub.auth.context import MembershipStore, OrganizationContextResolver, OrganizationHints
from gymhub.auth.guard import RBACContext, enforce
from gymhub.core.security import SessionInfo
from gymhub.crud.member import SqlMembershipStore
from gymhub.db.session import get_db

ORGANIZATION_ID_PARAM = "organizationId"


def get_membership_store(db: AsyncSession = Depends(get_db)) -> MembershipStore:
    return SqlMembershipStore(db)


def get_resolver(store: MembershipStore = Depends(get_membership_store)) -> OrganizationContextResolver:
    return OrganizationContextResolver(store)


def get_organization_hints(
    request: Request,
    organization_id: Optional[str] = Query(default=None, alias=ORGANIZATION_ID_PARAM),
) -> OrganizationHints:
    """
    Request-supplied hints only. The session hint is added by enforce() from
    the verified session.
    """
    return OrganizationHints(
        query_organization_id=organization_id,
        path_organization_id=request.path_params.get(ORGANIZATION_ID_PARAM),
    )


async def require_organization_context(
    session: Optional[SessionInfo] = Depends(get_session_info),
    hints: OrganizationHints = Depends(get_organization_hints),
    resolver: OrganizationContextResolver = Depends(get_resolver),
) -> RBACContext:
    """
    Authenticate and resolve the organization context.

    FastAPI caches dependencies per request, so every role/permission guard on
    a route shares this single resolution.
    """
    return await enforce(session, hints, resolver)
