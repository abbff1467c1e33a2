"""Flask application factory and bootstrap.

This module provides the create_app() factory function for initializing
the Flask application with all blueprints, services, and configuration.
"""
from __future__ import annotations
import logging
from typing import Optional

from flask import Flask
from sqlalchemy.orm import sessionmaker

from usermgmt.api import errors, groups, health, roles, users
from usermgmt.api.helpers.services import Services
from usermgmt.config import AppConfig, load_settings
from usermgmt.core.catalog import CatalogResolver, Naming
from usermgmt.core.database import init_db, make_engine, make_session_factory
from usermgmt.core.group_service import GroupService
from usermgmt.core.keycloak import IdentityStoreClient
from usermgmt.core.projection import ProjectionSync, UserProjectionStore
from usermgmt.core.role_service import RoleService
from usermgmt.core.user_service import UserService

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Application Factory
# ─────────────────────────────────────────────────────────────────────────────
def create_app(
    cfg: Optional[AppConfig] = None,
    store=None,
    session_factory: Optional[sessionmaker] = None,
    sync_observer=None,
) -> Flask:
    """Create and configure Flask application.

    Args:
        cfg: Settings (loaded from the environment when omitted)
        store: IdentityStoreClient or a compatible fake (built from cfg when omitted)
        session_factory: Projection sessions (engine from cfg.database_url when omitted)
        sync_observer: Optional callback receiving every projection SyncOutcome
    """
    # Load configuration
    cfg = cfg or load_settings()
    _configure_logging(cfg.log_level)

    app = Flask(__name__)

    # Store config for easy access in routes
    app.config["APP_CONFIG"] = cfg

    if session_factory is None:
        engine = make_engine(cfg.database_url)
        init_db(engine)
        session_factory = make_session_factory(engine)

    app.config["SERVICES"] = _build_services(cfg, store, session_factory, sync_observer)

    app.register_blueprint(health.bp)
    app.register_blueprint(roles.bp)
    app.register_blueprint(groups.bp)
    app.register_blueprint(users.bp)
    errors.register_error_handlers(app)

    logger.info("User management API ready (realm=%s, keycloak=%s)", cfg.keycloak_realm, cfg.keycloak_url)
    return app


def _build_services(cfg: AppConfig, store, session_factory: sessionmaker, sync_observer) -> Services:
    store = store or IdentityStoreClient.from_config(cfg)
    resolver = CatalogResolver(store.roles, Naming.from_config(cfg))
    projection_sync = ProjectionSync(UserProjectionStore(session_factory), observer=sync_observer)
    return Services(
        roles=RoleService(store, resolver),
        groups=GroupService(store, resolver),
        users=UserService(
            store,
            resolver,
            projection_sync,
            default_page_size=cfg.default_page_size,
            max_page_size=cfg.max_page_size,
        ),
        projection_sync=projection_sync,
        session_factory=session_factory,
    )


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
