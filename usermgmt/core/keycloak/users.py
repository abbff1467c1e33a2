"""Keycloak user management operations."""
from __future__ import annotations
import logging
from typing import Optional

from .client import KeycloakClient, id_from_location
from .exceptions import KeycloakAPIError

logger = logging.getLogger(__name__)


class UsersAPI:
    """User lifecycle, group membership and realm role mappings."""

    def __init__(self, client: KeycloakClient, realm: str):
        """Initialize user API.

        Args:
            client: Authenticated Keycloak client
            realm: Realm name
        """
        self.client = client
        self.realm = realm

    def _user_path(self, user_id: str) -> str:
        return f"/admin/realms/{self.realm}/users/{user_id}"

    def get_user(self, user_id: str) -> Optional[dict]:
        """Return the user representation or None when the id is unknown."""
        try:
            return self.client.get(self._user_path(user_id)).json()
        except KeycloakAPIError as exc:
            if exc.is_not_found:
                return None
            raise

    def create_user(self, representation: dict) -> str:
        """Create a user and return its id.

        Raises:
            KeycloakAPIError: 409 when username or email already exists
        """
        resp = self.client.post(f"/admin/realms/{self.realm}/users", json=representation)
        return id_from_location(resp)

    def update_user(self, user_id: str, representation: dict) -> None:
        self.client.put(self._user_path(user_id), json=representation)

    def delete_user(self, user_id: str) -> None:
        self.client.delete(self._user_path(user_id))

    def reset_password(self, user_id: str, password: str, temporary: bool = False) -> None:
        self.client.put(
            f"{self._user_path(user_id)}/reset-password",
            json={"type": "password", "temporary": temporary, "value": password},
        )

    def list_users(self, first: int, max_results: int, search: Optional[str] = None) -> list[dict]:
        """Page through users, optionally with Keycloak's server-side search.

        The search matches username, email, first and last name.
        """
        params = {"first": first, "max": max_results, "briefRepresentation": "false"}
        if search:
            params["search"] = search
        resp = self.client.get(f"/admin/realms/{self.realm}/users", params=params)
        return resp.json() or []

    def count_users(self, search: Optional[str] = None) -> int:
        params = {"search": search} if search else None
        resp = self.client.get(f"/admin/realms/{self.realm}/users/count", params=params)
        return int(resp.json())

    def join_group(self, user_id: str, group_id: str) -> None:
        self.client.put(f"{self._user_path(user_id)}/groups/{group_id}")

    def leave_group(self, user_id: str, group_id: str) -> None:
        self.client.delete(f"{self._user_path(user_id)}/groups/{group_id}")

    def get_groups(self, user_id: str) -> list[dict]:
        resp = self.client.get(f"{self._user_path(user_id)}/groups")
        return resp.json() or []

    def add_realm_roles(self, user_id: str, roles: list[dict]) -> None:
        self.client.post(f"{self._user_path(user_id)}/role-mappings/realm", json=roles)

    def remove_realm_roles(self, user_id: str, roles: list[dict]) -> None:
        self.client.delete(f"{self._user_path(user_id)}/role-mappings/realm", json=roles)

    def get_effective_realm_roles(self, user_id: str) -> list[dict]:
        """Return direct and inherited (group, composite) realm roles."""
        resp = self.client.get(f"{self._user_path(user_id)}/role-mappings/realm/composite")
        return resp.json() or []
