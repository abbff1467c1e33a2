"""Response models returned by the services.

Each model serializes to the camelCase JSON shape exposed by the REST API.
"""
from __future__ import annotations
import math
from dataclasses import dataclass, field
from typing import Any, Optional

from .catalog import CatalogEntry


@dataclass
class RoleDTO:
    id: str
    name: str
    display_name: str
    description: Optional[str] = None
    composite: bool = False

    @classmethod
    def from_entry(cls, entry: CatalogEntry) -> "RoleDTO":
        return cls(
            id=entry.id,
            name=entry.name,
            display_name=entry.display_name,
            description=entry.description,
            composite=entry.composite,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "displayName": self.display_name,
            "description": self.description,
            "composite": self.composite,
        }


@dataclass
class PrivilegeDTO:
    id: str
    name: str
    display_name: str
    description: Optional[str] = None

    @classmethod
    def from_entry(cls, entry: CatalogEntry) -> "PrivilegeDTO":
        return cls(id=entry.id, name=entry.name, display_name=entry.display_name, description=entry.description)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "displayName": self.display_name,
            "description": self.description,
        }


@dataclass
class GroupDTO:
    id: str
    name: str
    user_count: int = 0

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "userCount": self.user_count}


@dataclass
class GroupRolesPrivilegesDTO:
    roles: list[RoleDTO] = field(default_factory=list)
    privileges: list[PrivilegeDTO] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "roles": [role.to_dict() for role in self.roles],
            "privileges": [privilege.to_dict() for privilege in self.privileges],
        }


@dataclass
class UserRoleInfo:
    role_id: str
    role_name: str
    role_display_name: str

    def to_dict(self) -> dict:
        return {"roleId": self.role_id, "roleName": self.role_name, "roleDisplayName": self.role_display_name}


@dataclass
class UserGroupInfo:
    group_id: str
    group_name: str

    def to_dict(self) -> dict:
        return {"groupId": self.group_id, "groupName": self.group_name}


@dataclass
class UserDTO:
    id: str
    username: Optional[str] = None
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    enabled: bool = False
    email_verified: bool = False
    created_timestamp: Optional[int] = None
    attributes: Optional[dict[str, list[str]]] = None
    roles: Optional[list[UserRoleInfo]] = None
    groups: Optional[list[UserGroupInfo]] = None

    @classmethod
    def from_representation(cls, rep: dict, roles=None, groups=None) -> "UserDTO":
        return cls(
            id=rep.get("id"),
            username=rep.get("username"),
            email=rep.get("email"),
            first_name=rep.get("firstName"),
            last_name=rep.get("lastName"),
            enabled=bool(rep.get("enabled", False)),
            email_verified=bool(rep.get("emailVerified", False)),
            created_timestamp=rep.get("createdTimestamp"),
            attributes=rep.get("attributes"),
            roles=roles,
            groups=groups,
        )

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "enabled": self.enabled,
            "emailVerified": self.email_verified,
            "createdTimestamp": self.created_timestamp,
            "attributes": self.attributes,
        }
        payload["roles"] = [role.to_dict() for role in self.roles] if self.roles is not None else None
        payload["groups"] = [group.to_dict() for group in self.groups] if self.groups is not None else None
        return payload


@dataclass
class Pagination:
    current_page: int
    page_size: int
    total_items: int
    sort_by: str
    sort_order: str

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_items / self.page_size) if self.page_size else 0

    @property
    def has_next(self) -> bool:
        return self.current_page < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.current_page > 1

    def to_dict(self) -> dict:
        return {
            "currentPage": self.current_page,
            "pageSize": self.page_size,
            "totalItems": self.total_items,
            "totalPages": self.total_pages,
            "hasNext": self.has_next,
            "hasPrevious": self.has_previous,
            "sortBy": self.sort_by,
            "sortOrder": self.sort_order,
        }


@dataclass
class PaginatedResponse:
    data: list[UserDTO]
    pagination: Pagination

    def to_dict(self) -> dict:
        return {"data": [user.to_dict() for user in self.data], "pagination": self.pagination.to_dict()}
