# backend/gymhub/core/errors.py
"""
Authorization failure taxonomy.

Every AuthzError is terminal for the current operation. The API layer renders
them as ``{"message": ...}`` with the attached status code (see main.py).
"""

from __future__ import annotations

from typing import Optional

from fastapi import status


class AuthzError(Exception):
    status_code: int = status.HTTP_403_FORBIDDEN
    message: str = "Access denied"

    def __init__(self, message: Optional[str] = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class Unauthenticated(AuthzError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Unauthorized"


class MissingOrganizationContext(AuthzError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Organization ID is required"


class NotAMember(AuthzError):
    status_code = status.HTTP_403_FORBIDDEN
    message = "User is not a member of this organization"


class UnknownRole(AuthzError, ValueError):
    """A stored or supplied role string that is not a declared Role."""

    status_code = status.HTTP_403_FORBIDDEN
    message = "Membership role is not recognized"

    def __init__(self, value: object) -> None:
        self.value = value
        super().__init__()


class Forbidden(AuthzError):
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, requirement: str) -> None:
        self.requirement = requirement
        super().__init__(f"Access denied. {requirement}")


class UnknownPermission(ValueError):
    def __init__(self, value: object) -> None:
        self.value = value
        super().__init__(f"Unknown permission: {value!r}")


class TransportFailure(Exception):
    """A read against the server failed (non-2xx or network error)."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)
