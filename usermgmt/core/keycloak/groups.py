"""Keycloak group management operations."""
from __future__ import annotations
import logging
from typing import Optional

from .client import KeycloakClient, id_from_location
from .exceptions import KeycloakAPIError

logger = logging.getLogger(__name__)


class GroupsAPI:
    """Group lifecycle, membership listing and realm role mappings."""

    def __init__(self, client: KeycloakClient, realm: str):
        """Initialize group API.

        Args:
            client: Authenticated Keycloak client
            realm: Realm name
        """
        self.client = client
        self.realm = realm

    def _group_path(self, group_id: str) -> str:
        return f"/admin/realms/{self.realm}/groups/{group_id}"

    def list_groups(self) -> list[dict]:
        """Return all top-level groups."""
        resp = self.client.get(f"/admin/realms/{self.realm}/groups")
        return resp.json() or []

    def get_group(self, group_id: str) -> Optional[dict]:
        """Return the group representation or None when the id is unknown."""
        try:
            return self.client.get(self._group_path(group_id)).json()
        except KeycloakAPIError as exc:
            if exc.is_not_found:
                return None
            raise

    def create_group(self, group_name: str) -> tuple[int, str]:
        """Create a top-level group.

        Returns:
            (HTTP status, new group id parsed from the Location header)
        """
        resp = self.client.post(f"/admin/realms/{self.realm}/groups", json={"name": group_name})
        return resp.status_code, id_from_location(resp)

    def delete_group(self, group_id: str) -> None:
        self.client.delete(self._group_path(group_id))

    def get_members(self, group_id: str) -> list[dict]:
        """Retrieve all direct members of a group."""
        resp = self.client.get(f"{self._group_path(group_id)}/members")
        return resp.json() or []

    def get_realm_role_mappings(self, group_id: str) -> list[dict]:
        """Return the realm roles mapped directly onto the group."""
        resp = self.client.get(f"{self._group_path(group_id)}/role-mappings/realm")
        return resp.json() or []

    def add_realm_role_mappings(self, group_id: str, roles: list[dict]) -> None:
        self.client.post(f"{self._group_path(group_id)}/role-mappings/realm", json=roles)

    def remove_realm_role_mappings(self, group_id: str, roles: list[dict]) -> None:
        self.client.delete(f"{self._group_path(group_id)}/role-mappings/realm", json=roles)
