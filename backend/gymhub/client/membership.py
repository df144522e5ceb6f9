"""
Client-side view of the server's authorization decision.

Everything here evaluates a server-computed MembershipSummary. The role to
permission table never leaves the server, so a client cannot disagree with
the guard by re-deriving grants on its own.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Union

import httpx
from pydantic import ValidationError

from gymhub.auth.permissions import Permission, parse_permission
from gymhub.core.errors import TransportFailure, UnknownPermission, UnknownRole
from gymhub.core.roles import Role, parse_role
from gymhub.schemas.membership import MembershipSummary

MEMBERSHIP_PATH = "/api/v1/me/membership"
DEFAULT_FAILURE_MESSAGE = "Failed to fetch membership"

PermissionArg = Union[Permission, str, Iterable[Union[Permission, str]]]
RoleArg = Union[Role, str, Iterable[Union[Role, str]]]


async def fetch_membership(http: httpx.AsyncClient, path: str = MEMBERSHIP_PATH) -> MembershipSummary:
    """
    Single idempotent read of the caller's membership summary.

    Raises TransportFailure for network errors, non-2xx responses (using the
    body's ``message`` when there is one) and malformed payloads.
    """
    try:
        response = await http.get(path)
    except httpx.HTTPError as exc:
        raise TransportFailure(f"{DEFAULT_FAILURE_MESSAGE}: {exc}") from exc

    if not response.is_success:
        message = DEFAULT_FAILURE_MESSAGE
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and isinstance(body.get("message"), str) and body["message"]:
            message = body["message"]
        raise TransportFailure(message, status_code=response.status_code)

    try:
        return MembershipSummary.model_validate(response.json())
    except (ValueError, ValidationError) as exc:
        raise TransportFailure("Malformed membership payload", status_code=response.status_code) from exc


def _as_list(value) -> list:
    if isinstance(value, (str, Permission, Role)):
        return [value]
    return list(value)


def has_role(roles: RoleArg, membership: Optional[MembershipSummary]) -> bool:
    if membership is None:
        return False

    for r in _as_list(roles):
        try:
            if parse_role(r) is membership.role:
                return True
        except UnknownRole:
            continue
    return False


def _can(membership: MembershipSummary, permission: Union[Permission, str]) -> bool:
    try:
        return membership.can.get(parse_permission(permission), False)
    except UnknownPermission:
        return False


def has_permission(
    permissions: PermissionArg,
    membership: Optional[MembershipSummary],
    *,
    require_all: bool = False,
) -> bool:
    """Same OR/AND semantics as the server evaluator, read off ``membership.can``."""
    if membership is None:
        return False

    targets = _as_list(permissions)
    if require_all:
        return all(_can(membership, p) for p in targets)
    return any(_can(membership, p) for p in targets)


def list_permissions(membership: Optional[MembershipSummary]) -> List[Permission]:
    if membership is None:
        return []
    return list(membership.permissions)
