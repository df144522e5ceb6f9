# gymhub/api/v1/me.py
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from gymhub.api.deps.organization import require_organization_context
from gymhub.api.deps.session import get_session_info
from gymhub.auth.guard import RBACContext
from gymhub.auth.summary import build_membership_summary
from gymhub.core.errors import Unauthenticated
from gymhub.core.security import SessionInfo
from gymhub.crud.member import list_user_organizations
from gymhub.db.session import get_db
from gymhub.models.organization import Organization
from gymhub.schemas.membership import MembershipSummary, OrganizationOut, UserOrganizationOut

router = APIRouter(tags=["me"])


async def _summary(ctx: RBACContext, db: AsyncSession) -> MembershipSummary:
    organization = await db.get(Organization, ctx.organization_id)
    return build_membership_summary(ctx.subject, ctx.member, organization)


@router.get("/me/membership", response_model=MembershipSummary)
async def get_my_membership(
    ctx: RBACContext = Depends(require_organization_context),
    db: AsyncSession = Depends(get_db),
):
    """
    Membership summary for the active organization (session, else the
    ``organizationId`` query param). This is what client-side guards evaluate.
    """
    return await _summary(ctx, db)


@router.get("/organizations/{organizationId}/membership", response_model=MembershipSummary)
async def get_membership_in_organization(
    ctx: RBACContext = Depends(require_organization_context),
    db: AsyncSession = Depends(get_db),
):
    return await _summary(ctx, db)


@router.get("/me/organizations", response_model=List[UserOrganizationOut])
async def list_my_organizations(
    session: Optional[SessionInfo] = Depends(get_session_info),
    db: AsyncSession = Depends(get_db),
):
    """Every organization the caller belongs to, for organization switchers."""
    if session is None:
        raise Unauthenticated()

    rows = await list_user_organizations(db, session.subject.id)
    return [
        UserOrganizationOut(organization=OrganizationOut.model_validate(org), role=role)
        for org, role in rows
    ]
