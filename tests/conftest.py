"""Pytest shared fixtures: in-memory Keycloak, projection database, wired services."""
import copy
import itertools
import pathlib
import sys
import uuid

# Add project root to Python path
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest
import requests

from usermgmt.config import AppConfig
from usermgmt.core.catalog import CatalogResolver, Naming
from usermgmt.core.database import init_db, make_engine, make_session_factory
from usermgmt.core.group_service import GroupService
from usermgmt.core.keycloak.exceptions import KeycloakAPIError
from usermgmt.core.projection import ProjectionSync, UserProjectionStore
from usermgmt.core.role_service import RoleService
from usermgmt.core.user_service import UserService
from usermgmt.flask_app import create_app


# ─────────────────────────────────────────────────────────────────────────────
# Network Guard Rails
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture(autouse=True)
def _block_network(monkeypatch, request):
    """Fail loudly if a unit test reaches for the real network."""
    if request.node.get_closest_marker("integration"):
        return

    def _refuse(*args, **kwargs):
        raise AssertionError(f"Unexpected network call: {args[:1]}")

    for verb in ("get", "post", "put", "delete"):
        monkeypatch.setattr(requests, verb, _refuse)


# ─────────────────────────────────────────────────────────────────────────────
# In-memory Keycloak Admin API
# ─────────────────────────────────────────────────────────────────────────────
def _missing(kind: str, key: str):
    return KeycloakAPIError(404, f"{kind} not found", f"/fake/{kind}/{key}")


class FakeKeycloak:
    """Realm state shared by the fake resource APIs.

    Mirrors the Admin API semantics the services rely on: roles addressed by
    name, ids generated server side, 404/409 surfaced as KeycloakAPIError and
    effective roles expanded through groups and composites.
    """

    def __init__(self):
        self.roles = {}            # name -> representation
        self.composites = {}       # role name -> set of composite names
        self.groups = {}           # id -> representation
        self.group_members = {}    # group id -> set of user ids
        self.group_roles = {}      # group id -> set of role names
        self.users = {}            # id -> representation
        self.user_roles = {}       # user id -> set of role names
        self.passwords = {}
        self.calls = []
        self._clock = itertools.count(1_700_000_000_000, 1000)

        self.roles_api = FakeRolesAPI(self)
        self.groups_api = FakeGroupsAPI(self)
        self.users_api = FakeUsersAPI(self)

    # Seeding helpers
    def add_role(self, name, description=None):
        rep = {"id": str(uuid.uuid4()), "name": name, "description": description, "composite": False}
        self.roles[name] = rep
        self.composites.setdefault(name, set())
        return rep["id"]

    def add_group(self, name):
        group_id = str(uuid.uuid4())
        self.groups[group_id] = {"id": group_id, "name": name, "path": f"/{name}"}
        self.group_members[group_id] = set()
        self.group_roles[group_id] = set()
        return group_id

    def add_user(self, username, first_name=None, last_name=None, enabled=True):
        user_id = str(uuid.uuid4())
        self.users[user_id] = {
            "id": user_id,
            "username": username,
            "email": username if "@" in username else None,
            "firstName": first_name,
            "lastName": last_name,
            "enabled": enabled,
            "emailVerified": False,
            "createdTimestamp": next(self._clock),
            "attributes": {},
        }
        self.user_roles[user_id] = set()
        return user_id

    def role_id(self, name):
        return self.roles[name]["id"]

    def effective_role_names(self, user_id):
        names = set(self.user_roles.get(user_id, set()))
        for group_id, members in self.group_members.items():
            if user_id in members:
                names |= self.group_roles[group_id]
        pending = list(names)
        while pending:
            for child in self.composites.get(pending.pop(), set()):
                if child not in names:
                    names.add(child)
                    pending.append(child)
        return names

    def _role_reps(self, names):
        return [copy.deepcopy(self.roles[n]) for n in sorted(names) if n in self.roles]

    def _require_role(self, name):
        if name not in self.roles:
            raise _missing("roles", name)

    def _require_group(self, group_id):
        if group_id not in self.groups:
            raise _missing("groups", group_id)

    def _require_user(self, user_id):
        if user_id not in self.users:
            raise _missing("users", user_id)


class FakeRolesAPI:
    def __init__(self, kc: FakeKeycloak):
        self.kc = kc

    def list_roles(self):
        self.kc.calls.append("list_roles")
        return [copy.deepcopy(rep) for rep in self.kc.roles.values()]

    def get_role(self, role_name):
        rep = self.kc.roles.get(role_name)
        return copy.deepcopy(rep) if rep else None

    def create_role(self, role_name, description=None, composite=False):
        if role_name in self.kc.roles:
            raise KeycloakAPIError(409, "Role already exists", "/fake/roles")
        self.kc.add_role(role_name, description)
        self.kc.roles[role_name]["composite"] = composite

    def update_role(self, role_name, representation):
        self.kc._require_role(role_name)
        self.kc.roles[role_name]["description"] = representation.get("description")

    def delete_role(self, role_name):
        self.kc._require_role(role_name)
        del self.kc.roles[role_name]
        self.kc.composites.pop(role_name, None)
        for holders in (self.kc.user_roles, self.kc.group_roles):
            for names in holders.values():
                names.discard(role_name)

    def get_composites(self, role_name):
        self.kc._require_role(role_name)
        return self.kc._role_reps(self.kc.composites[role_name])

    def add_composites(self, role_name, roles):
        self.kc._require_role(role_name)
        self.kc.composites[role_name] |= {r["name"] for r in roles}
        self.kc.roles[role_name]["composite"] = True

    def remove_composites(self, role_name, roles):
        self.kc._require_role(role_name)
        self.kc.composites[role_name] -= {r["name"] for r in roles}
        self.kc.roles[role_name]["composite"] = bool(self.kc.composites[role_name])

    def get_user_members(self, role_name):
        self.kc._require_role(role_name)
        return [
            copy.deepcopy(self.kc.users[uid])
            for uid, names in self.kc.user_roles.items()
            if role_name in names
        ]


class FakeGroupsAPI:
    def __init__(self, kc: FakeKeycloak):
        self.kc = kc

    def list_groups(self):
        return [copy.deepcopy(g) for g in self.kc.groups.values()]

    def get_group(self, group_id):
        rep = self.kc.groups.get(group_id)
        return copy.deepcopy(rep) if rep else None

    def create_group(self, group_name):
        if any(g["name"] == group_name for g in self.kc.groups.values()):
            raise KeycloakAPIError(409, "Top level group named already exists", "/fake/groups")
        return 201, self.kc.add_group(group_name)

    def delete_group(self, group_id):
        self.kc._require_group(group_id)
        del self.kc.groups[group_id]
        del self.kc.group_members[group_id]
        del self.kc.group_roles[group_id]

    def get_members(self, group_id):
        self.kc._require_group(group_id)
        return [copy.deepcopy(self.kc.users[uid]) for uid in sorted(self.kc.group_members[group_id])]

    def get_realm_role_mappings(self, group_id):
        self.kc._require_group(group_id)
        return self.kc._role_reps(self.kc.group_roles[group_id])

    def add_realm_role_mappings(self, group_id, roles):
        self.kc._require_group(group_id)
        self.kc.group_roles[group_id] |= {r["name"] for r in roles}

    def remove_realm_role_mappings(self, group_id, roles):
        self.kc._require_group(group_id)
        self.kc.group_roles[group_id] -= {r["name"] for r in roles}


class FakeUsersAPI:
    def __init__(self, kc: FakeKeycloak):
        self.kc = kc

    def get_user(self, user_id):
        rep = self.kc.users.get(user_id)
        return copy.deepcopy(rep) if rep else None

    def create_user(self, representation):
        if any(u["username"] == representation.get("username") for u in self.kc.users.values()):
            raise KeycloakAPIError(409, "User exists with same username", "/fake/users")
        user_id = self.kc.add_user(representation["username"])
        rep = self.kc.users[user_id]
        rep.update({k: copy.deepcopy(v) for k, v in representation.items() if k != "id"})
        return user_id

    def update_user(self, user_id, representation):
        self.kc._require_user(user_id)
        self.kc.users[user_id].update(copy.deepcopy(representation))

    def delete_user(self, user_id):
        self.kc._require_user(user_id)
        del self.kc.users[user_id]
        self.kc.user_roles.pop(user_id, None)
        for members in self.kc.group_members.values():
            members.discard(user_id)

    def reset_password(self, user_id, password, temporary=False):
        self.kc._require_user(user_id)
        self.kc.passwords[user_id] = (password, temporary)

    def _matching(self, search):
        users = sorted(self.kc.users.values(), key=lambda u: u["createdTimestamp"])
        if not search:
            return users
        needle = search.lower()
        return [
            u for u in users
            if any(needle in (u.get(f) or "").lower() for f in ("username", "email", "firstName", "lastName"))
        ]

    def list_users(self, first, max_results, search=None):
        return [copy.deepcopy(u) for u in self._matching(search)[first:first + max_results]]

    def count_users(self, search=None):
        return len(self._matching(search))

    def join_group(self, user_id, group_id):
        self.kc._require_user(user_id)
        self.kc._require_group(group_id)
        self.kc.group_members[group_id].add(user_id)

    def leave_group(self, user_id, group_id):
        self.kc._require_user(user_id)
        self.kc._require_group(group_id)
        self.kc.group_members[group_id].discard(user_id)

    def get_groups(self, user_id):
        self.kc._require_user(user_id)
        return [
            copy.deepcopy(self.kc.groups[gid])
            for gid, members in self.kc.group_members.items()
            if user_id in members
        ]

    def add_realm_roles(self, user_id, roles):
        self.kc._require_user(user_id)
        self.kc.user_roles[user_id] |= {r["name"] for r in roles}

    def remove_realm_roles(self, user_id, roles):
        self.kc._require_user(user_id)
        self.kc.user_roles[user_id] -= {r["name"] for r in roles}

    def get_effective_realm_roles(self, user_id):
        self.kc._require_user(user_id)
        return self.kc._role_reps(self.kc.effective_role_names(user_id))


class FakeIdentityStore:
    """Same surface as IdentityStoreClient: ``.roles``, ``.groups``, ``.users``."""

    def __init__(self, kc: FakeKeycloak):
        self.kc = kc
        self.roles = kc.roles_api
        self.groups = kc.groups_api
        self.users = kc.users_api


# ─────────────────────────────────────────────────────────────────────────────
# Fixtures
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture()
def keycloak():
    """Realm seeded with two privileges and the built-in unmanaged roles."""
    kc = FakeKeycloak()
    kc.add_role("priv_read", "Read access")
    kc.add_role("priv_write", "Write access")
    kc.add_role("offline_access")
    kc.add_role("default-roles-demo")
    return kc


@pytest.fixture()
def store(keycloak):
    return FakeIdentityStore(keycloak)


@pytest.fixture()
def app_config():
    return AppConfig(keycloak_service_client_secret="test-secret", database_url="sqlite://")


@pytest.fixture()
def session_factory():
    engine = make_engine("sqlite://")
    init_db(engine)
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture()
def projection_store(session_factory):
    return UserProjectionStore(session_factory)


@pytest.fixture()
def sync_outcomes():
    return []


@pytest.fixture()
def projection_sync(projection_store, sync_outcomes):
    return ProjectionSync(projection_store, observer=sync_outcomes.append)


@pytest.fixture()
def resolver(store):
    return CatalogResolver(store.roles, Naming())


@pytest.fixture()
def role_service(store, resolver):
    return RoleService(store, resolver)


@pytest.fixture()
def group_service(store, resolver):
    return GroupService(store, resolver)


@pytest.fixture()
def user_service(store, resolver, projection_sync):
    return UserService(store, resolver, projection_sync, default_page_size=10, max_page_size=100)


@pytest.fixture()
def app(app_config, store, session_factory, sync_outcomes):
    flask_app = create_app(app_config, store=store, session_factory=session_factory, sync_observer=sync_outcomes.append)
    flask_app.config["TESTING"] = True
    return flask_app


@pytest.fixture()
def client(app):
    with app.test_client() as test_client:
        yield test_client


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (requires running Keycloak)"
    )
