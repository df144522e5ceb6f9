from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from gymhub.auth.permissions import Permission
from gymhub.core.roles import Role
from gymhub.schemas.common import CamelModel


class SubjectOut(CamelModel):
    id: str
    email: str
    name: Optional[str] = None
    image: Optional[str] = None


class MemberOut(CamelModel):
    subject_id: str
    organization_id: str
    role: Role


class OrganizationOut(CamelModel):
    id: str
    name: str
    slug: Optional[str] = None
    logo: Optional[str] = None
    created_at: Optional[datetime] = None


class MembershipSummary(CamelModel):
    """
    What the client mirror evaluates against.

    ``permissions`` is exactly the role's table entry and ``can`` covers every
    declared Permission, granted or not.
    """

    subject: SubjectOut
    member: MemberOut
    organization: Optional[OrganizationOut] = None
    role: Role
    permissions: List[Permission]
    can: Dict[Permission, bool]


class UserOrganizationOut(CamelModel):
    organization: OrganizationOut
    role: Role
