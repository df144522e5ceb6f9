# gymhub/api/v1/gym.py
"""
Gym management routes. Every route resolves organization context first; the
acting role always comes from the resolved membership, never from the request.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from gymhub.api.deps.organization import require_organization_context
from gymhub.api.deps.permissions import require_permission, require_role
from gymhub.auth.guard import RBACContext
from gymhub.auth.permissions import Permission, can_manage_role
from gymhub.core.roles import Role
from gymhub.crud.member import count_members, get_member, list_members, role_distribution, to_membership
from gymhub.db.session import get_db
from gymhub.models.invitation import INVITATION_PENDING, Invitation
from gymhub.models.organization import Organization
from gymhub.models.user import User
from gymhub.models.workout import Workout
from gymhub.schemas.gym import (
    AdminStats,
    AdminStatsResponse,
    Analytics,
    AnalyticsResponse,
    InvitationOut,
    InviteCreate,
    InviteResponse,
    MemberList,
    MemberListItem,
    MessageResponse,
    RoleCount,
    RoleUpdate,
    RoleUpdateResponse,
    SettingsResponse,
    SettingsUpdate,
    WorkoutCreate,
    WorkoutList,
    WorkoutOut,
)
from gymhub.schemas.membership import MemberOut, OrganizationOut, SubjectOut

log = structlog.get_logger()

router = APIRouter(
    prefix="/gym",
    tags=["gym"],
    dependencies=[Depends(require_organization_context)],
)

INVITE_EXPIRY_DAYS = 7


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


async def _get_organization_or_404(db: AsyncSession, organization_id: str) -> Organization:
    organization = await db.get(Organization, organization_id)
    if organization is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Organization not found")
    return organization


# ---------------------------------------------------------
# Members
# ---------------------------------------------------------
@router.get("/members", response_model=MemberList)
async def list_organization_members(
    ctx: RBACContext = Depends(require_permission(Permission.VIEW_MEMBERS)),
    db: AsyncSession = Depends(get_db),
):
    members = await list_members(db, ctx.organization_id)
    return MemberList(members=[MemberListItem.model_validate(m) for m in members])


@router.post("/members/invite", response_model=InviteResponse, status_code=status.HTTP_201_CREATED)
async def invite_member(
    payload: InviteCreate,
    ctx: RBACContext = Depends(require_permission(Permission.INVITE_MEMBERS)),
    db: AsyncSession = Depends(get_db),
):
    if not can_manage_role(ctx.role, payload.role):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"{ctx.role.value} cannot invite members with role {payload.role.value}",
        )

    email = User.normalize_email(str(payload.email))

    existing_user = (await db.execute(select(User).where(User.email == email).limit(1))).scalar_one_or_none()
    if existing_user is not None and await get_member(db, ctx.organization_id, existing_user.id) is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User is already a member of this organization")

    pending_stmt = (
        select(Invitation)
        .where(Invitation.organization_id == ctx.organization_id)
        .where(Invitation.email == email)
        .where(Invitation.status == INVITATION_PENDING)
        .where(Invitation.expires_at > _utcnow())
        .limit(1)
    )
    if (await db.execute(pending_stmt)).scalar_one_or_none() is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="A pending invitation already exists for this email")

    invitation = Invitation(
        organization_id=ctx.organization_id,
        email=email,
        role=payload.role.value,
        status=INVITATION_PENDING,
        expires_at=_utcnow() + timedelta(days=INVITE_EXPIRY_DAYS),
        inviter_id=ctx.subject.id,
    )
    db.add(invitation)
    await db.commit()
    await db.refresh(invitation)

    log.info(
        "member.invited",
        organization_id=ctx.organization_id,
        inviter_id=ctx.subject.id,
        role=invitation.role,
    )
    return InviteResponse(invitation=InvitationOut.model_validate(invitation))


@router.delete("/members/{user_id}", response_model=MessageResponse)
async def remove_member(
    user_id: str,
    ctx: RBACContext = Depends(require_permission(Permission.REMOVE_MEMBERS)),
    db: AsyncSession = Depends(get_db),
):
    target = await get_member(db, ctx.organization_id, user_id)
    if target is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Member not found")

    if target.user_id == ctx.subject.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot remove yourself")

    if not can_manage_role(ctx.role, target.role):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"{ctx.role.value} cannot remove members with role {target.role}",
        )

    await db.delete(target)
    await db.commit()

    log.info("member.removed", organization_id=ctx.organization_id, user_id=user_id, by=ctx.subject.id)
    return MessageResponse(message="Member removed successfully")


@router.patch("/members/{user_id}/role", response_model=RoleUpdateResponse)
async def change_member_role(
    user_id: str,
    payload: RoleUpdate,
    ctx: RBACContext = Depends(require_permission(Permission.MANAGE_MEMBERS)),
    db: AsyncSession = Depends(get_db),
):
    target = await get_member(db, ctx.organization_id, user_id)
    if target is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Member not found")

    if target.user_id == ctx.subject.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot change your own role")

    # Both ends of the transition must be within the actor's authority.
    if not can_manage_role(ctx.role, target.role) or not can_manage_role(ctx.role, payload.role):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"{ctx.role.value} cannot change role {target.role} to {payload.role.value}",
        )

    previous = target.role
    target.role = payload.role.value
    await db.commit()

    log.info(
        "member.role_changed",
        organization_id=ctx.organization_id,
        user_id=user_id,
        previous=previous,
        role=target.role,
        by=ctx.subject.id,
    )
    m = to_membership(target)
    return RoleUpdateResponse(
        member=MemberOut(subject_id=m.subject_id, organization_id=m.organization_id, role=m.role),
    )


# ---------------------------------------------------------
# Workouts
# ---------------------------------------------------------
@router.get("/workouts", response_model=WorkoutList)
async def list_workouts(
    ctx: RBACContext = Depends(require_permission(Permission.VIEW_WORKOUTS)),
    db: AsyncSession = Depends(get_db),
):
    stmt = (
        select(Workout)
        .options(selectinload(Workout.user))
        .where(Workout.organization_id == ctx.organization_id)
        .order_by(Workout.created_at.desc())
    )
    # Plain members only see their own workouts.
    if ctx.role is Role.USER:
        stmt = stmt.where(Workout.user_id == ctx.subject.id)

    workouts = (await db.execute(stmt)).scalars().all()
    return WorkoutList(workouts=[WorkoutOut.model_validate(w) for w in workouts])


@router.post("/workouts", response_model=WorkoutOut, status_code=status.HTTP_201_CREATED)
async def create_workout(
    payload: WorkoutCreate,
    ctx: RBACContext = Depends(require_permission(Permission.CREATE_WORKOUTS)),
    db: AsyncSession = Depends(get_db),
):
    workout = Workout(
        organization_id=ctx.organization_id,
        user_id=ctx.subject.id,
        title=payload.title,
        content=payload.content,
    )
    db.add(workout)
    await db.commit()
    await db.refresh(workout)

    return WorkoutOut(
        id=workout.id,
        organization_id=workout.organization_id,
        title=workout.title,
        content=workout.content,
        user=SubjectOut(
            id=ctx.subject.id,
            email=ctx.subject.email,
            name=ctx.subject.name,
            image=ctx.subject.image,
        ),
        created_at=workout.created_at,
    )


# ---------------------------------------------------------
# Analytics
# ---------------------------------------------------------
@router.get("/analytics", response_model=AnalyticsResponse)
async def get_analytics(
    ctx: RBACContext = Depends(require_permission(Permission.VIEW_ANALYTICS)),
    db: AsyncSession = Depends(get_db),
):
    distribution = await role_distribution(db, ctx.organization_id)
    return AnalyticsResponse(
        analytics=Analytics(
            member_count=await count_members(db, ctx.organization_id),
            role_distribution=[RoleCount(role=r, count=c) for r, c in distribution],
        )
    )


# ---------------------------------------------------------
# Settings
# ---------------------------------------------------------
@router.get("/settings", response_model=SettingsResponse)
async def get_settings(
    ctx: RBACContext = Depends(require_permission(Permission.VIEW_SETTINGS)),
    db: AsyncSession = Depends(get_db),
):
    organization = await _get_organization_or_404(db, ctx.organization_id)
    return SettingsResponse(organization=OrganizationOut.model_validate(organization))


@router.put("/settings", response_model=SettingsResponse)
async def update_settings(
    payload: SettingsUpdate,
    ctx: RBACContext = Depends(require_permission(Permission.MANAGE_SETTINGS)),
    db: AsyncSession = Depends(get_db),
):
    organization = await _get_organization_or_404(db, ctx.organization_id)

    for key, value in payload.changes().items():
        setattr(organization, key, value)

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="slug is already taken")
    await db.refresh(organization)

    log.info("organization.settings_updated", organization_id=ctx.organization_id, by=ctx.subject.id)
    return SettingsResponse(
        organization=OrganizationOut.model_validate(organization),
        message="Settings updated successfully",
    )


# ---------------------------------------------------------
# Owner only
# ---------------------------------------------------------
@router.get("/admin/stats", response_model=AdminStatsResponse)
async def get_admin_stats(
    ctx: RBACContext = Depends(require_role(Role.OWNER)),
    db: AsyncSession = Depends(get_db),
):
    total_workouts = await db.execute(
        select(func.count(Workout.id)).where(Workout.organization_id == ctx.organization_id)
    )
    return AdminStatsResponse(
        stats=AdminStats(
            total_members=await count_members(db, ctx.organization_id),
            total_workouts=int(total_workouts.scalar() or 0),
        )
    )
