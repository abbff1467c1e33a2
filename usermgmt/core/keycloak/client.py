"""Low-level HTTP client for Keycloak Admin API.

Handles authentication, token management, and HTTP operations.
"""
from __future__ import annotations
import logging
from typing import Optional, Dict, Any, Tuple
from datetime import datetime, timedelta

import requests

from .exceptions import KeycloakAPIError, KeycloakUnavailableError

REQUEST_TIMEOUT = 5

# Refresh this many seconds before the advertised expiry
TOKEN_REFRESH_LEEWAY = 10

logger = logging.getLogger(__name__)


class KeycloakClient:
    """HTTP client for Keycloak Admin API with automatic token management.

    Features:
    - Automatic token refresh when expired
    - Centralized error handling (HTTP errors and transport failures)
    - Support for both admin and service account authentication

    Usage:
        client = KeycloakClient("http://keycloak:8080")
        client.authenticate_service_account("master", "automation-cli", "secret")
        response = client.get("/admin/realms/demo/roles")
    """

    def __init__(self, base_url: str, timeout: float = REQUEST_TIMEOUT):
        """Initialize Keycloak client.

        Args:
            base_url: Keycloak base URL (e.g. http://keycloak:8080)
            timeout: Per-request transport timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._token: Optional[str] = None
        self._token_expires_at: Optional[datetime] = None
        self._auth_method: Optional[str] = None
        self._auth_params: Dict[str, Any] = {}

    def authenticate_admin(self, username: str, password: str, realm: str = "master", eager: bool = True) -> Optional[str]:
        """Authenticate as admin user and store credentials for auto-refresh.

        Args:
            username: Admin username
            password: Admin password
            realm: Authentication realm (default: master)
            eager: Fetch the token now; otherwise on the first request

        Returns:
            Access token, or None when not eager
        """
        self._auth_method = "admin"
        self._auth_params = {"username": username, "password": password, "realm": realm}
        if eager:
            self._refresh_token()
        return self._token

    def authenticate_service_account(self, auth_realm: str, client_id: str, client_secret: str, eager: bool = True) -> Optional[str]:
        """Authenticate as service account and store credentials for auto-refresh.

        Args:
            auth_realm: Realm where service account client exists
            client_id: Service account client ID
            client_secret: Service account client secret
            eager: Fetch the token now; otherwise on the first request

        Returns:
            Access token, or None when not eager
        """
        self._auth_method = "service_account"
        self._auth_params = {
            "auth_realm": auth_realm,
            "client_id": client_id,
            "client_secret": client_secret,
        }
        if eager:
            self._refresh_token()
        return self._token

    @property
    def is_authenticated(self) -> bool:
        return self._auth_method is not None

    def _refresh_token(self) -> None:
        if self._auth_method == "admin":
            token, expires_in = self._get_admin_token(
                self._auth_params["username"],
                self._auth_params["password"],
                self._auth_params["realm"],
            )
        elif self._auth_method == "service_account":
            token, expires_in = self._get_service_account_token(
                self._auth_params["auth_realm"],
                self._auth_params["client_id"],
                self._auth_params["client_secret"],
            )
        else:
            raise KeycloakAPIError(401, "Not authenticated - call authenticate_admin or authenticate_service_account first", "")
        self._token = token
        self._token_expires_at = datetime.now() + timedelta(seconds=expires_in)
        logger.debug("Obtained %s token (expires in %ss)", self._auth_method, expires_in)

    def _ensure_authenticated(self) -> None:
        """Ensure we have a valid token, refreshing if necessary."""
        if not self._token or not self._token_expires_at:
            self._refresh_token()
            return

        if datetime.now() >= self._token_expires_at - timedelta(seconds=TOKEN_REFRESH_LEEWAY):
            self._refresh_token()

    def get(self, path: str, params: Optional[Dict] = None, **kwargs) -> requests.Response:
        """Execute GET request with automatic authentication.

        Args:
            path: API endpoint path (e.g., "/admin/realms/demo/users")
            params: Query parameters
            **kwargs: Additional arguments for requests.get

        Returns:
            Response object

        Raises:
            KeycloakAPIError: On HTTP error
            KeycloakUnavailableError: On transport failure
        """
        return self._send(requests.get, path, params=params, **kwargs)

    def post(self, path: str, json: Optional[Any] = None, data: Optional[Dict] = None, **kwargs) -> requests.Response:
        """Execute POST request with automatic authentication.

        Args:
            path: API endpoint path
            json: JSON payload
            data: Form data payload
            **kwargs: Additional arguments for requests.post

        Returns:
            Response object

        Raises:
            KeycloakAPIError: On HTTP error
            KeycloakUnavailableError: On transport failure
        """
        return self._send(requests.post, path, json=json, data=data, **kwargs)

    def put(self, path: str, json: Optional[Any] = None, **kwargs) -> requests.Response:
        """Execute PUT request with automatic authentication.

        Raises:
            KeycloakAPIError: On HTTP error
            KeycloakUnavailableError: On transport failure
        """
        return self._send(requests.put, path, json=json, **kwargs)

    def delete(self, path: str, json: Optional[Any] = None, **kwargs) -> requests.Response:
        """Execute DELETE request with automatic authentication.

        Role-mapping and composite removals carry a JSON body, hence ``json``.

        Raises:
            KeycloakAPIError: On HTTP error
            KeycloakUnavailableError: On transport failure
        """
        if json is not None:
            kwargs["json"] = json
        return self._send(requests.delete, path, **kwargs)

    def _send(self, method, path: str, **kwargs) -> requests.Response:
        self._ensure_authenticated()
        url = f"{self.base_url}{path}"
        headers = kwargs.pop("headers", {})
        headers["Authorization"] = f"Bearer {self._token}"

        try:
            resp = method(url, headers=headers, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            logger.error("Keycloak request failed: %s (%s)", path, exc)
            raise KeycloakUnavailableError(url, exc) from exc
        self._handle_error(resp)
        return resp

    def _get_admin_token(self, username: str, password: str, realm: str = "master") -> Tuple[str, int]:
        """Obtain an admin token via direct access grant."""
        url = f"{self.base_url}/realms/{realm}/protocol/openid-connect/token"
        data = {
            "grant_type": "password",
            "client_id": "admin-cli",
            "username": username,
            "password": password,
        }
        return self._request_token(url, data)

    def _get_service_account_token(self, auth_realm: str, client_id: str, client_secret: str) -> Tuple[str, int]:
        """Fetch a service account token using client credentials flow."""
        url = f"{self.base_url}/realms/{auth_realm}/protocol/openid-connect/token"
        data = {
            "grant_type": "client_credentials",
            "client_id": client_id,
            "client_secret": client_secret,
        }
        return self._request_token(url, data)

    def _request_token(self, url: str, data: Dict[str, str]) -> Tuple[str, int]:
        try:
            resp = requests.post(url, data=data, timeout=self.timeout)
        except requests.RequestException as exc:
            raise KeycloakUnavailableError(url, exc) from exc
        if resp.status_code != 200:
            raise KeycloakAPIError(resp.status_code, resp.text, url)
        payload = resp.json()
        # Conservative expiry when the server omits it
        return payload["access_token"], int(payload.get("expires_in") or 60)

    def _handle_error(self, resp: requests.Response) -> None:
        """Centralized error handling for HTTP responses.

        Args:
            resp: Response object to check

        Raises:
            KeycloakAPIError: If response status indicates error
        """
        if resp.status_code >= 400:
            raise KeycloakAPIError(resp.status_code, resp.text, resp.url)


def id_from_location(resp: requests.Response) -> str:
    """Extract the created resource id from a 201 ``Location`` header."""
    location = resp.headers.get("Location", "")
    return location.rstrip("/").rsplit("/", 1)[-1]
