"""Keycloak-specific exceptions for error handling."""


class KeycloakError(Exception):
    """Base exception for all Keycloak operations."""
    pass


class KeycloakAPIError(KeycloakError):
    """HTTP error from Keycloak Admin API.

    Attributes:
        status_code: HTTP status code
        message: Error message from response
        endpoint: API endpoint that failed
    """

    def __init__(self, status_code: int, message: str, endpoint: str):
        self.status_code = status_code
        self.message = message
        self.endpoint = endpoint
        super().__init__(f"[{status_code}] {endpoint}: {message}")

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404

    @property
    def is_conflict(self) -> bool:
        return self.status_code == 409


class KeycloakUnavailableError(KeycloakError):
    """Transport-level failure reaching Keycloak (connection refused, timeout, DNS).

    Never retried; surfaced to callers as a generic upstream failure.
    """

    def __init__(self, endpoint: str, cause: Exception):
        self.endpoint = endpoint
        self.cause = cause
        super().__init__(f"Keycloak unreachable at {endpoint}: {cause}")
