"""Tests for kind discrimination and id resolution."""
import pytest

from usermgmt.core.catalog import Catalog, Kind, Naming, classify, classify_all
from usermgmt.core.errors import InvalidOperationError, PrivilegeNotFoundError, RoleNotFoundError


def test_kind_follows_prefix():
    naming = Naming()
    assert naming.kind_of("role_admin") is Kind.ROLE
    assert naming.kind_of("priv_read") is Kind.PRIVILEGE
    assert naming.kind_of("offline_access") is None
    assert naming.kind_of(None) is None


def test_ensure_role_prefix_is_idempotent():
    naming = Naming()
    assert naming.ensure_role_prefix("finance") == "role_finance"
    assert naming.ensure_role_prefix("role_finance") == "role_finance"


def test_classify_strips_prefix_for_display_name():
    entry = classify(Naming(), {"id": "1", "name": "priv_read", "description": "Read", "composite": False})
    assert entry.kind is Kind.PRIVILEGE
    assert entry.display_name == "read"
    assert entry.to_representation() == {"id": "1", "name": "priv_read"}


def test_unmanaged_realm_roles_are_dropped():
    reps = [{"id": "1", "name": "role_x"}, {"id": "2", "name": "default-roles-demo"}, {"id": "3", "name": "priv_y"}]
    assert [e.name for e in classify_all(Naming(), reps)] == ["role_x", "priv_y"]


def test_custom_naming():
    naming = Naming(role_prefix="R-", privilege_prefix="P-")
    assert naming.kind_of("R-ops") is Kind.ROLE
    assert naming.kind_of("role_ops") is None


@pytest.fixture()
def catalog():
    reps = [{"id": "r1", "name": "role_x"}, {"id": "p1", "name": "priv_read"}, {"id": "p2", "name": "priv_write"}]
    return Catalog(classify_all(Naming(), reps), Naming())


def test_roles_and_privileges_partition_catalog(catalog):
    roles, privileges = catalog.roles(), catalog.privileges()
    assert {e.id for e in roles} | {e.id for e in privileges} == {e.id for e in catalog}
    assert not {e.id for e in roles} & {e.id for e in privileges}


def test_resolve_preserves_order(catalog):
    assert [e.id for e in catalog.resolve(["p2", "r1"])] == ["p2", "r1"]


@pytest.mark.parametrize("bad_id", ["missing", "", "   ", None])
def test_resolve_unknown_or_blank_id(catalog, bad_id):
    with pytest.raises(RoleNotFoundError):
        catalog.resolve(["r1", bad_id])


def test_privilege_lookup_reports_privilege_not_found(catalog):
    with pytest.raises(PrivilegeNotFoundError, match="Privilege with ID 'nope' not found"):
        catalog.resolve(["nope"], Kind.PRIVILEGE)


def test_kind_mismatch_for_user_assignment(catalog):
    with pytest.raises(InvalidOperationError, match="Only roles"):
        catalog.resolve(["p1"], Kind.ROLE)


def test_kind_mismatch_for_privilege_composition(catalog):
    with pytest.raises(InvalidOperationError, match="not a privilege"):
        catalog.resolve(["r1"], Kind.PRIVILEGE)


def test_resolver_fetches_once_per_call(keycloak, resolver):
    rid = keycloak.add_role("role_ops")
    keycloak.calls.clear()

    catalog = resolver.fetch()
    resolver.resolve_by_ids([rid], catalog)
    resolver.resolve_by_ids_of_kind([rid], Kind.ROLE, catalog)
    assert keycloak.calls == ["list_roles"]

    resolver.resolve_by_ids([rid])
    assert keycloak.calls == ["list_roles", "list_roles"]
