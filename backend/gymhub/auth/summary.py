from __future__ import annotations

from typing import Optional

from gymhub.auth.context import Membership
from gymhub.auth.permissions import Permission, get_role_permissions
from gymhub.core.security import SubjectInfo
from gymhub.models.organization import Organization
from gymhub.schemas.membership import MemberOut, MembershipSummary, OrganizationOut, SubjectOut


def build_membership_summary(
    subject: SubjectInfo,
    membership: Membership,
    organization: Optional[Organization],
) -> MembershipSummary:
    permissions = get_role_permissions(membership.role)
    granted = set(permissions)
    return MembershipSummary(
        subject=SubjectOut(id=subject.id, email=subject.email, name=subject.name, image=subject.image),
        member=MemberOut(
            subject_id=membership.subject_id,
            organization_id=membership.organization_id,
            role=membership.role,
        ),
        organization=OrganizationOut.model_validate(organization) if organization is not None else None,
        role=membership.role,
        permissions=permissions,
        can={p: p in granted for p in Permission},
    )
