from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import EmailStr, Field, HttpUrl, field_validator

from gymhub.core.errors import UnknownRole
from gymhub.core.roles import Role, parse_role
from gymhub.schemas.common import CamelModel
from gymhub.schemas.membership import MemberOut, OrganizationOut, SubjectOut


def _role_field(v: object) -> Role:
    try:
        return parse_role(v)
    except UnknownRole:
        allowed = ", ".join(r.value for r in Role)
        raise ValueError(f"role must be one of: {allowed}") from None


class MemberListItem(CamelModel):
    id: str
    user_id: str
    role: str
    user: SubjectOut
    created_at: datetime


class MemberList(CamelModel):
    members: List[MemberListItem]


class InviteCreate(CamelModel):
    email: EmailStr
    role: Role = Role.USER

    @field_validator("role", mode="before")
    @classmethod
    def validate_role(cls, v: object) -> Role:
        return _role_field(v)


class InvitationOut(CamelModel):
    id: str
    organization_id: str
    email: str
    role: Role
    status: str
    expires_at: datetime
    inviter_id: Optional[str] = None


class InviteResponse(CamelModel):
    invitation: InvitationOut
    message: str = "Invitation sent"


class RoleUpdate(CamelModel):
    role: Role

    @field_validator("role", mode="before")
    @classmethod
    def validate_role(cls, v: object) -> Role:
        return _role_field(v)


class RoleUpdateResponse(CamelModel):
    member: MemberOut
    message: str = "Role updated successfully"


class MessageResponse(CamelModel):
    message: str


class WorkoutCreate(CamelModel):
    title: str = Field(min_length=1, max_length=100)
    content: str = Field(min_length=1)


class WorkoutOut(CamelModel):
    id: str
    organization_id: str
    title: str
    content: str
    user: SubjectOut
    created_at: datetime


class WorkoutList(CamelModel):
    workouts: List[WorkoutOut]


class RoleCount(CamelModel):
    role: str
    count: int


class Analytics(CamelModel):
    member_count: int
    role_distribution: List[RoleCount]


class AnalyticsResponse(CamelModel):
    analytics: Analytics


class SettingsResponse(CamelModel):
    organization: OrganizationOut
    message: Optional[str] = None


class SettingsUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    slug: Optional[str] = Field(default=None, min_length=1, max_length=100)
    logo: Optional[HttpUrl] = None

    def changes(self) -> Dict[str, str]:
        data = self.model_dump(exclude_unset=True, exclude_none=True)
        if "logo" in data:
            data["logo"] = str(data["logo"])
        return data


class AdminStats(CamelModel):
    total_members: int
    total_workouts: int


class AdminStatsResponse(CamelModel):
    stats: AdminStats
