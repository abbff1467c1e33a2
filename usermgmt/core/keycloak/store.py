"""Facade bundling the realm-scoped Keycloak resource APIs."""
from __future__ import annotations

from .client import KeycloakClient
from .groups import GroupsAPI
from .roles import RealmRolesAPI
from .users import UsersAPI


class IdentityStoreClient:
    """Synchronous client for role/group/user administration in one realm.

    Usage:
        store = IdentityStoreClient.from_config(cfg)
        store.roles.list_roles()
        store.users.join_group(user_id, group_id)
    """

    def __init__(self, client: KeycloakClient, realm: str):
        self.client = client
        self.realm = realm
        self.roles = RealmRolesAPI(client, realm)
        self.groups = GroupsAPI(client, realm)
        self.users = UsersAPI(client, realm)

    @classmethod
    def from_config(cls, cfg) -> "IdentityStoreClient":
        """Build a lazily-authenticated store from an ``AppConfig``.

        The first request fetches the token, so constructing the store never
        touches the network.
        """
        client = KeycloakClient(cfg.keycloak_url, timeout=cfg.request_timeout)
        if cfg.uses_service_account:
            client.authenticate_service_account(
                cfg.keycloak_service_realm,
                cfg.keycloak_service_client_id,
                cfg.keycloak_service_client_secret,
                eager=False,
            )
        else:
            client.authenticate_admin(cfg.keycloak_admin, cfg.keycloak_admin_password, eager=False)
        return cls(client, cfg.keycloak_realm)
