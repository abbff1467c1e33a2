"""Settings loader with environment variable and Docker secrets integration."""
from __future__ import annotations
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

SECRETS_DIR = Path("/run/secrets")


def _load_secret_from_file(
    secret_name: str,
    env_var: str | None = None,
    environ: Optional[Mapping[str, str]] = None,
    secrets_dir: Path = SECRETS_DIR,
) -> str | None:
    """
    Load secret from /run/secrets (Docker secrets pattern).

    Priority:
    1. /run/secrets/{secret_name} (Docker secrets mount)
    2. Environment variable (fallback)

    Args:
        secret_name: Name of the secret file in /run/secrets
        env_var: Optional environment variable name to check as fallback
        environ: Mapping to read the fallback from (defaults to os.environ)
        secrets_dir: Directory holding mounted secrets

    Returns:
        Secret value or None if not found
    """
    environ = os.environ if environ is None else environ
    secret_file = secrets_dir / secret_name

    # Priority 1: Read from /run/secrets
    if secret_file.exists() and secret_file.is_file():
        try:
            secret_value = secret_file.read_text().strip()
            if secret_value:
                logger.info("[settings] Loaded %s from %s", secret_name, secrets_dir)
                return secret_value
        except OSError as e:
            logger.warning("[settings] Failed to read %s/%s: %s", secrets_dir, secret_name, e)

    # Priority 2: Fallback to environment variable
    if env_var:
        secret_value = environ.get(env_var)
        if secret_value:
            return secret_value

    return None


def _int_setting(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got '{raw}'") from None


@dataclass(frozen=True)
class AppConfig:
    """Application configuration container (immutable once loaded)."""
    # Keycloak
    keycloak_url: str = "http://localhost:8080"
    keycloak_realm: str = "demo"
    keycloak_service_realm: str = "demo"
    keycloak_service_client_id: str = "user-management"
    keycloak_service_client_secret: str = ""
    keycloak_admin: str = ""
    keycloak_admin_password: str = ""
    request_timeout: float = 5

    # Naming convention for the flat realm-role namespace
    role_prefix: str = "role_"
    privilege_prefix: str = "priv_"

    # Pagination
    default_page_size: int = 10
    max_page_size: int = 100

    # Local projection
    database_url: str = "sqlite:///usermgmt.db"

    log_level: str = "INFO"

    @property
    def uses_service_account(self) -> bool:
        return bool(self.keycloak_service_client_secret)

    def validate(self) -> None:
        """Reject configurations that would break the naming or paging invariants.

        Raises:
            ValueError: On the first inconsistent value
        """
        if not self.role_prefix or not self.privilege_prefix:
            raise ValueError("ROLE_PREFIX and PRIVILEGE_PREFIX must be non-empty")
        if self.role_prefix.startswith(self.privilege_prefix) or self.privilege_prefix.startswith(self.role_prefix):
            raise ValueError(
                f"ROLE_PREFIX '{self.role_prefix}' and PRIVILEGE_PREFIX '{self.privilege_prefix}' must be disjoint"
            )
        if self.default_page_size < 1 or self.max_page_size < 1:
            raise ValueError("Page sizes must be positive")
        if self.default_page_size > self.max_page_size:
            raise ValueError("DEFAULT_PAGE_SIZE must not exceed MAX_PAGE_SIZE")
        if not self.keycloak_url:
            raise ValueError("KEYCLOAK_URL is required")
        if not self.uses_service_account and not (self.keycloak_admin and self.keycloak_admin_password):
            raise ValueError(
                "Keycloak credentials missing: set KEYCLOAK_SERVICE_CLIENT_SECRET "
                "or KEYCLOAK_ADMIN/KEYCLOAK_ADMIN_PASSWORD"
            )


def load_settings(environ: Optional[Mapping[str, str]] = None, secrets_dir: Path = SECRETS_DIR) -> AppConfig:
    """Load application settings from environment and /run/secrets.

    Args:
        environ: Mapping to read from (defaults to os.environ)
        secrets_dir: Docker secrets mount point

    Raises:
        ValueError: If the resulting configuration is inconsistent
    """
    environ = os.environ if environ is None else environ

    keycloak_realm = environ.get("KEYCLOAK_REALM", "demo")

    service_client_secret = _load_secret_from_file(
        "keycloak_service_client_secret",
        "KEYCLOAK_SERVICE_CLIENT_SECRET",
        environ,
        secrets_dir,
    ) or ""
    admin_password = _load_secret_from_file(
        "keycloak_admin_password",
        "KEYCLOAK_ADMIN_PASSWORD",
        environ,
        secrets_dir,
    ) or ""

    try:
        request_timeout = float(environ.get("KEYCLOAK_REQUEST_TIMEOUT", "5"))
    except ValueError:
        raise ValueError("KEYCLOAK_REQUEST_TIMEOUT must be a number") from None

    cfg = AppConfig(
        keycloak_url=environ.get("KEYCLOAK_URL", "http://localhost:8080").rstrip("/"),
        keycloak_realm=keycloak_realm,
        keycloak_service_realm=environ.get("KEYCLOAK_SERVICE_REALM", keycloak_realm),
        keycloak_service_client_id=environ.get("KEYCLOAK_SERVICE_CLIENT_ID", "user-management"),
        keycloak_service_client_secret=service_client_secret,
        keycloak_admin=environ.get("KEYCLOAK_ADMIN", ""),
        keycloak_admin_password=admin_password,
        request_timeout=request_timeout,
        role_prefix=environ.get("ROLE_PREFIX", "role_"),
        privilege_prefix=environ.get("PRIVILEGE_PREFIX", "priv_"),
        default_page_size=_int_setting(environ, "DEFAULT_PAGE_SIZE", 10),
        max_page_size=_int_setting(environ, "MAX_PAGE_SIZE", 100),
        database_url=environ.get("DATABASE_URL", "sqlite:///usermgmt.db"),
        log_level=environ.get("LOG_LEVEL", "INFO").upper(),
    )
    cfg.validate()

    auth_label = "service-account" if cfg.uses_service_account else "admin"
    logger.info(
        "[settings] realm=%s; auth=%s; prefixes=%s/%s",
        cfg.keycloak_realm, auth_label, cfg.role_prefix, cfg.privilege_prefix,
    )
    return cfg
