"""Application factory wiring."""
from usermgmt.api.helpers.services import Services
from usermgmt.config import AppConfig
from usermgmt.core.keycloak import KeycloakClient
from usermgmt.flask_app import create_app


def test_create_app_builds_default_wiring_without_network():
    cfg = AppConfig(keycloak_service_client_secret="secret", database_url="sqlite://", max_page_size=30)

    app = create_app(cfg)

    services = app.config["SERVICES"]
    assert isinstance(services, Services)
    assert app.config["APP_CONFIG"] is cfg
    assert services.users.max_page_size == 30
    keycloak_client = services.roles.resolver.roles_api.client
    assert isinstance(keycloak_client, KeycloakClient)
    assert keycloak_client._token is None


def test_create_app_creates_projection_tables():
    cfg = AppConfig(keycloak_service_client_secret="secret", database_url="sqlite://")
    app = create_app(cfg)

    with app.test_client() as client:
        assert client.get("/ready").status_code == 200


def test_registered_routes(app):
    rules = {rule.rule for rule in app.url_map.iter_rules()}
    assert {
        "/health",
        "/ready",
        "/api/v1/roles",
        "/api/v1/roles/privileges",
        "/api/v1/roles/<role_id>/privileges",
        "/api/v1/groups/<group_id>/roles-privileges",
        "/api/v1/groups/<group_id>/users",
        "/api/v1/users/<user_id>/roles",
        "/api/v1/users/<user_id>/groups",
    } <= rules


def test_services_share_one_catalog_naming(app):
    services = app.config["SERVICES"]
    assert services.roles.naming is services.groups.naming is services.users.naming


def test_custom_prefixes_flow_into_services(store, session_factory, keycloak):
    cfg = AppConfig(keycloak_service_client_secret="secret", role_prefix="R_", privilege_prefix="P_")
    keycloak.add_role("R_ops")
    app = create_app(cfg, store=store, session_factory=session_factory)

    with app.test_client() as client:
        roles = client.get("/api/v1/roles").get_json()

    assert [r["displayName"] for r in roles] == ["ops"]

