"""Keycloak Admin API client library.

This package provides a modular, testable interface to the Keycloak Admin API
operations the user management service needs.

Architecture:
- client.py: HTTP client with authentication and auto-refresh
- roles.py: Realm roles, composites and direct role members
- groups.py: Group lifecycle, members and group role mappings
- users.py: User lifecycle, group membership and user role mappings
- store.py: IdentityStoreClient facade bundling the three resource APIs
- exceptions.py: Typed exceptions for error handling

Usage:
    from usermgmt.core.keycloak import KeycloakClient, IdentityStoreClient

    client = KeycloakClient("http://keycloak:8080")
    client.authenticate_service_account("demo", "user-management", "secret")

    store = IdentityStoreClient(client, "demo")
    roles = store.roles.list_roles()
"""
from .client import (
    KeycloakClient,
    REQUEST_TIMEOUT,
    id_from_location,
)
from .exceptions import (
    KeycloakError,
    KeycloakAPIError,
    KeycloakUnavailableError,
)
from .groups import GroupsAPI
from .roles import RealmRolesAPI
from .store import IdentityStoreClient
from .users import UsersAPI

__all__ = [
    # Client
    "KeycloakClient",
    "REQUEST_TIMEOUT",
    "id_from_location",

    # Exceptions
    "KeycloakError",
    "KeycloakAPIError",
    "KeycloakUnavailableError",

    # Resource APIs
    "RealmRolesAPI",
    "GroupsAPI",
    "UsersAPI",
    "IdentityStoreClient",
]
