"""Domain exceptions for role, privilege, group and user management.

Every exception carries the HTTP status and the ``error`` label used by the
API error handlers to build ``{error, message, status, timestamp}``.
"""
from __future__ import annotations
from typing import Optional


class UserManagementError(Exception):
    """Base class for all domain errors."""

    status = 500
    error = "Internal Server Error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"error": self.error, "message": self.message, "status": self.status}


class NotFoundError(UserManagementError):
    status = 404
    error = "Not Found"


class RoleNotFoundError(NotFoundError):
    error = "Role Not Found"


class PrivilegeNotFoundError(NotFoundError):
    error = "Privilege Not Found"


class GroupNotFoundError(NotFoundError):
    error = "Group Not Found"


class UserNotFoundError(NotFoundError):
    error = "User Not Found"


class InvalidOperationError(UserManagementError):
    """Well-formed request that breaks a business rule (kind mismatch, duplicate name)."""

    status = 400
    error = "Invalid Operation"


class RoleInUseError(UserManagementError):
    """Role deletion blocked by direct user members."""

    status = 409
    error = "Role In Use"


class ValidationError(UserManagementError):
    """Request payload failed field validation."""

    status = 400
    error = "Validation Failed"

    def __init__(self, field_errors: dict[str, str], message: str = "Please check the input fields"):
        self.field_errors = field_errors
        super().__init__(message)

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload["fieldErrors"] = self.field_errors
        return payload


class IdentityProviderUnavailableError(UserManagementError):
    """Keycloak could not be reached or answered with an unexpected error."""

    status = 502
    error = "Identity Provider Unavailable"

    def __init__(self, message: str, upstream_status: Optional[int] = None):
        self.upstream_status = upstream_status
        super().__init__(message)
