# gymhub/crud/member.py
from __future__ import annotations

from typing import List, Optional, Tuple

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from gymhub.auth.context import Membership
from gymhub.core.errors import UnknownRole
from gymhub.core.roles import Role, coerce_role, parse_role
from gymhub.models.member import Member
from gymhub.models.organization import Organization

log = structlog.get_logger()


def to_membership(row: Member) -> Membership:
    """Typed view of a member row. Raises UnknownRole for undeclared roles."""
    try:
        role = parse_role(row.role)
    except UnknownRole:
        log.warning(
            "member.unknown_role",
            user_id=row.user_id,
            organization_id=row.organization_id,
            role=row.role,
        )
        raise
    return Membership(subject_id=row.user_id, organization_id=row.organization_id, role=role)


class SqlMembershipStore:
    """MembershipStore backed by the members table, bound to one request's session."""

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def find_membership(self, subject_id: str, organization_id: str) -> Optional[Membership]:
        row = await get_member(self._db, organization_id, subject_id)
        if row is None:
            return None
        return to_membership(row)


async def get_member(db: AsyncSession, organization_id: str, user_id: str) -> Optional[Member]:
    stmt = (
        select(Member)
        .where(Member.organization_id == organization_id)
        .where(Member.user_id == user_id)
        .limit(1)
    )
    return (await db.execute(stmt)).scalar_one_or_none()


async def get_user_role_in_organization(db: AsyncSession, user_id: str, organization_id: str) -> Optional[Role]:
    """None when not a member or when the stored role is not a declared Role."""
    row = await get_member(db, organization_id, user_id)
    if row is None:
        return None
    return coerce_role(row.role)


async def is_organization_member(db: AsyncSession, user_id: str, organization_id: str) -> bool:
    return await get_member(db, organization_id, user_id) is not None


async def list_user_organizations(db: AsyncSession, user_id: str) -> List[Tuple[Organization, Role]]:
    """
    Every organization the user belongs to, with their role there.
    Rows holding an undeclared role are skipped (and logged).
    """
    stmt = (
        select(Member, Organization)
        .join(Organization, Organization.id == Member.organization_id)
        .where(Member.user_id == user_id)
        .order_by(Organization.created_at.desc())
    )
    out: List[Tuple[Organization, Role]] = []
    for member, organization in (await db.execute(stmt)).all():
        role = coerce_role(member.role)
        if role is None:
            log.warning(
                "member.unknown_role",
                user_id=member.user_id,
                organization_id=member.organization_id,
                role=member.role,
            )
            continue
        out.append((organization, role))
    return out


async def list_members(db: AsyncSession, organization_id: str) -> List[Member]:
    stmt = (
        select(Member)
        .options(selectinload(Member.user))
        .where(Member.organization_id == organization_id)
        .order_by(Member.created_at.asc())
    )
    return list((await db.execute(stmt)).scalars().all())


async def count_members(db: AsyncSession, organization_id: str) -> int:
    stmt = select(func.count(Member.id)).where(Member.organization_id == organization_id)
    res = await db.execute(stmt)
    return int(res.scalar() or 0)


async def role_distribution(db: AsyncSession, organization_id: str) -> List[Tuple[str, int]]:
    stmt = (
        select(Member.role, func.count(Member.id))
        .where(Member.organization_id == organization_id)
        .group_by(Member.role)
        .order_by(Member.role)
    )
    return [(role, int(count)) for role, count in (await db.execute(stmt)).all()]
