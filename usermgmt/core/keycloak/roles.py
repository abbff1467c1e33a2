"""Keycloak realm-role operations.

Keycloak addresses realm roles by *name* in every URL; ids only appear in
representations. Callers that hold ids must resolve them against the full
listing first (see ``usermgmt.core.catalog``).
"""
from __future__ import annotations
import logging
from typing import Optional
from urllib.parse import quote

from .client import KeycloakClient
from .exceptions import KeycloakAPIError

logger = logging.getLogger(__name__)


class RealmRolesAPI:
    """Realm-level role and composite management."""

    def __init__(self, client: KeycloakClient, realm: str):
        """Initialize role API.

        Args:
            client: Authenticated Keycloak client
            realm: Realm name
        """
        self.client = client
        self.realm = realm

    def _role_path(self, role_name: str) -> str:
        return f"/admin/realms/{self.realm}/roles/{quote(role_name, safe='')}"

    def list_roles(self) -> list[dict]:
        """Return every realm role (full representation, single request)."""
        resp = self.client.get(f"/admin/realms/{self.realm}/roles", params={"briefRepresentation": "false"})
        return resp.json() or []

    def get_role(self, role_name: str) -> Optional[dict]:
        """Return the role representation or None if no role has this name."""
        try:
            return self.client.get(self._role_path(role_name)).json()
        except KeycloakAPIError as exc:
            if exc.is_not_found:
                return None
            raise

    def create_role(self, role_name: str, description: Optional[str] = None, composite: bool = False) -> None:
        """Create a realm role.

        Raises:
            KeycloakAPIError: 409 when the name is already taken
        """
        payload = {"name": role_name, "description": description, "composite": composite}
        self.client.post(f"/admin/realms/{self.realm}/roles", json=payload)
        logger.debug("Realm role '%s' created", role_name)

    def update_role(self, role_name: str, representation: dict) -> None:
        self.client.put(self._role_path(role_name), json=representation)

    def delete_role(self, role_name: str) -> None:
        self.client.delete(self._role_path(role_name))

    def get_composites(self, role_name: str) -> list[dict]:
        """Return the direct composite (child) roles of a role."""
        resp = self.client.get(f"{self._role_path(role_name)}/composites")
        return resp.json() or []

    def add_composites(self, role_name: str, roles: list[dict]) -> None:
        self.client.post(f"{self._role_path(role_name)}/composites", json=roles)

    def remove_composites(self, role_name: str, roles: list[dict]) -> None:
        self.client.delete(f"{self._role_path(role_name)}/composites", json=roles)

    def get_user_members(self, role_name: str) -> list[dict]:
        """Return users holding the role *directly* (group inheritance excluded)."""
        resp = self.client.get(f"{self._role_path(role_name)}/users")
        return resp.json() or []
