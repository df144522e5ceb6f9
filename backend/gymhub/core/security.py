from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from fastapi.security import HTTPBearer
from jose import JWTError, jwt

from gymhub.core.config import settings

# auto_error=False: a missing header is a "no session" answer, not a 403 from FastAPI.
bearer_scheme = HTTPBearer(auto_error=False)

ACTIVE_ORG_CLAIM = "active_org"


@dataclass(frozen=True)
class SubjectInfo:
    id: str
    email: str
    name: Optional[str] = None
    image: Optional[str] = None


@dataclass(frozen=True)
class SessionInfo:
    subject: SubjectInfo
    active_organization_id: Optional[str] = None


def _normalize_token(token: Optional[str]) -> str:
    """
    Tolerate copy-paste noise: surrounding whitespace or quotes and a
    duplicated 'Bearer ' prefix.
    """
    if token is None:
        return ""

    t = token.strip()
    if len(t) >= 2 and t[0] == t[-1] and t[0] in {'"', "'"}:
        t = t[1:-1].strip()
    if t.lower().startswith("bearer "):
        t = t[7:].strip()
    return t


def create_access_token(
    subject: str,
    *,
    active_organization_id: Optional[str] = None,
    expires_minutes: Optional[int] = None,
) -> str:
    now = datetime.now(timezone.utc)
    expire_dt = now + timedelta(minutes=expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    claims: dict[str, Any] = {
        "sub": str(subject),
        "exp": int(expire_dt.timestamp()),
        "iat": int(now.timestamp()),
    }
    if active_organization_id:
        claims[ACTIVE_ORG_CLAIM] = str(active_organization_id)

    return jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: Optional[str]) -> Optional[dict[str, Any]]:
    """
    Verified claims, or None when the token is empty, malformed, expired or
    signed with another key.
    """
    token = _normalize_token(token)
    if not token:
        return None

    try:
        claims = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            options={"require_sub": True, "require_exp": True},
        )
    except JWTError:
        return None

    if not claims.get("sub"):
        return None
    return claims
