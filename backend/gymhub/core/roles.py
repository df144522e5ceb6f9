# gymhub/core/roles.py

from __future__ import annotations

import enum
from typing import Mapping

from gymhub.core.errors import UnknownRole


class Role(str, enum.Enum):
    OWNER = "OWNER"      # gym owner / ultimate authority
    TRAINER = "TRAINER"  # runs workouts and schedules for users
    USER = "USER"        # gym member


# Strict total order; higher outranks lower. Used for hierarchy comparisons only,
# the permission table stays authoritative for capabilities.
ROLE_HIERARCHY: Mapping[Role, int] = {
    Role.OWNER: 3,
    Role.TRAINER: 2,
    Role.USER: 1,
}


def _normalize_role(value: object) -> str:
    if isinstance(value, Role):
        return value.value
    if not isinstance(value, str):
        return ""
    return value.strip().upper()


def parse_role(value: object) -> Role:
    """
    Validating parse for role strings coming from storage or request bodies.
    Raises UnknownRole instead of casting anything unrecognised.
    """
    try:
        return Role(_normalize_role(value))
    except ValueError:
        raise UnknownRole(value) from None


def coerce_role(value: object) -> Role | None:
    """Lenient variant for the evaluator: unknown -> None (fail closed)."""
    try:
        return parse_role(value)
    except UnknownRole:
        return None


def hierarchy_rank(role: object) -> int:
    r = coerce_role(role)
    if r is None:
        return 0
    return ROLE_HIERARCHY[r]
