from __future__ import annotations

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from gymhub.core.security import ACTIVE_ORG_CLAIM, SessionInfo, SubjectInfo, bearer_scheme, decode_access_token
from gymhub.db.session import get_db
from gymhub.models.user import User


async def get_session_info(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> Optional[SessionInfo]:
    """
    Session collaborator: the verified subject plus the organization they last
    switched to, or None when the request carries no usable session.
    """
    if credentials is None:
        return None

    claims = decode_access_token(credentials.credentials)
    if claims is None:
        return None

    user = await db.get(User, str(claims["sub"]))
    if user is None or not user.is_active:
        return None

    return SessionInfo(
        subject=SubjectInfo(id=user.id, email=user.email, name=user.name, image=user.image),
        active_organization_id=claims.get(ACTIVE_ORG_CLAIM) or None,
    )
