"""Input validation helpers for request payloads.

The ``parse_*`` functions turn a decoded JSON body into keyword arguments for
the services, collecting every field problem into one ``ValidationError``.
"""
from __future__ import annotations
from typing import Any, Optional

from .errors import ValidationError

EMAIL_MAX_LENGTH = 254
NAME_MAX_LENGTH = 128
ROLE_NAME_MAX_LENGTH = 255
GROUP_NAME_MAX_LENGTH = 255


def validate_email(email: str) -> str:
    """Validate email address.

    Args:
        email: Email address to validate

    Returns:
        Normalized email address

    Raises:
        ValueError: If email is invalid
    """
    email = email.strip().lower()
    if not email or "@" not in email:
        raise ValueError("Email must be valid")

    local, domain = email.rsplit("@", 1)
    if not local or not domain or "." not in domain:
        raise ValueError("Email must be valid")
    if len(email) > EMAIL_MAX_LENGTH:
        raise ValueError("Email exceeds maximum length")

    return email


def validate_name(name: str, field: str) -> str:
    """Validate first/last name fields.

    Args:
        name: Name to validate
        field: Field name for error messages (e.g., "First name")

    Returns:
        Trimmed name

    Raises:
        ValueError: If name is invalid
    """
    name = name.strip()
    if not name:
        raise ValueError(f"{field} is required")
    if len(name) > NAME_MAX_LENGTH:
        raise ValueError(f"{field} exceeds maximum length")

    # Prevent injection attacks
    if any(char in name for char in "<>\"'`;&|$"):
        raise ValueError(f"{field} contains invalid characters")

    return name


class _Fields:
    """Accumulates field errors while reading a payload."""

    def __init__(self, payload: Any):
        if not isinstance(payload, dict):
            raise ValidationError({"body": "Request body must be a JSON object"})
        self.payload = payload
        self.errors: dict[str, str] = {}

    def required_str(self, key: str, label: str, max_length: int) -> Optional[str]:
        value = self.payload.get(key)
        if not isinstance(value, str) or not value.strip():
            self.errors[key] = f"{label} is required"
            return None
        value = value.strip()
        if len(value) > max_length:
            self.errors[key] = f"{label} must not exceed {max_length} characters"
            return None
        return value

    def optional_str(self, key: str) -> Optional[str]:
        value = self.payload.get(key)
        if value is None:
            return None
        if not isinstance(value, str):
            self.errors[key] = "Must be a string"
            return None
        return value

    def optional_bool(self, key: str) -> Optional[bool]:
        value = self.payload.get(key)
        if value is None:
            return None
        if not isinstance(value, bool):
            self.errors[key] = "Must be a boolean"
            return None
        return value

    def id_list(self, key: str) -> Optional[list[str]]:
        value = self.payload.get(key)
        if value is None:
            return None
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            self.errors[key] = "Must be a list of string IDs"
            return None
        return value

    def email(self, key: str, required: bool) -> Optional[str]:
        value = self.payload.get(key)
        if value is None and not required:
            return None
        if not isinstance(value, str) or not value.strip():
            self.errors[key] = "Email is required"
            return None
        try:
            return validate_email(value)
        except ValueError as exc:
            self.errors[key] = str(exc)
            return None

    def name(self, key: str, label: str, required: bool) -> Optional[str]:
        value = self.payload.get(key)
        if value is None and not required:
            return None
        if not isinstance(value, str):
            self.errors[key] = f"{label} is required"
            return None
        try:
            return validate_name(value, label)
        except ValueError as exc:
            self.errors[key] = str(exc)
            return None

    def done(self, **values) -> dict:
        if self.errors:
            raise ValidationError(self.errors)
        return values


def parse_create_role(payload: Any) -> dict:
    fields = _Fields(payload)
    return fields.done(
        name=fields.required_str("roleName", "Role name", ROLE_NAME_MAX_LENGTH),
        description=fields.optional_str("description"),
        privilege_ids=fields.id_list("privilegeIds"),
    )


def parse_update_role(payload: Any) -> dict:
    fields = _Fields(payload)
    return fields.done(
        description=fields.optional_str("description"),
        privilege_ids_to_add=fields.id_list("privilegeIdsToAdd"),
        privilege_ids_to_remove=fields.id_list("privilegeIdsToRemove"),
    )


def parse_create_group(payload: Any) -> dict:
    fields = _Fields(payload)
    return fields.done(
        name=fields.required_str("groupName", "Group name", GROUP_NAME_MAX_LENGTH),
        user_ids=fields.id_list("userIds"),
    )


def parse_update_group_users(payload: Any) -> dict:
    fields = _Fields(payload)
    return fields.done(
        user_ids_to_add=fields.id_list("userIdsToAdd"),
        user_ids_to_remove=fields.id_list("userIdsToRemove"),
    )


def parse_update_group_roles_privileges(payload: Any) -> dict:
    fields = _Fields(payload)
    return fields.done(
        role_ids_to_add=fields.id_list("roleIdsToAdd"),
        role_ids_to_remove=fields.id_list("roleIdsToRemove"),
        privilege_ids_to_add=fields.id_list("privilegeIdsToAdd"),
        privilege_ids_to_remove=fields.id_list("privilegeIdsToRemove"),
    )


def parse_create_user(payload: Any) -> dict:
    fields = _Fields(payload)
    password = fields.payload.get("password")
    if not isinstance(password, str) or not password:
        fields.errors["password"] = "Password is required"
    return fields.done(
        email=fields.email("email", required=True),
        first_name=fields.name("firstName", "First name", required=True),
        last_name=fields.name("lastName", "Last name", required=True),
        password=password,
        enabled=fields.optional_bool("enabled"),
        email_verified=fields.optional_bool("emailVerified"),
        entity_code=fields.optional_str("entityCode"),
        country_code=fields.optional_str("countryCode"),
        role_ids=fields.id_list("roleIds"),
        group_ids=fields.id_list("groupIds"),
    )


def parse_update_user(payload: Any) -> dict:
    fields = _Fields(payload)
    return fields.done(
        email=fields.email("email", required=False),
        first_name=fields.name("firstName", "First name", required=False),
        last_name=fields.name("lastName", "Last name", required=False),
        enabled=fields.optional_bool("enabled"),
        email_verified=fields.optional_bool("emailVerified"),
        entity_code=fields.optional_str("entityCode"),
        country_code=fields.optional_str("countryCode"),
        role_ids_to_add=fields.id_list("roleIdsToAdd"),
        role_ids_to_remove=fields.id_list("roleIdsToRemove"),
        group_ids_to_add=fields.id_list("groupIdsToAdd"),
        group_ids_to_remove=fields.id_list("groupIdsToRemove"),
    )


def parse_id_list(payload: Any, key: str) -> list[str]:
    """Require ``key`` to hold a non-empty list of ids (edge endpoints)."""
    fields = _Fields(payload)
    ids = fields.id_list(key)
    if ids is None and key not in fields.errors:
        fields.errors[key] = "At least one ID is required"
    elif ids is not None and not ids:
        fields.errors[key] = "At least one ID is required"
    fields.done()
    return ids
