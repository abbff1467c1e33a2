"""HTTP tests for /api/v1/users and the role/group edge endpoints."""
import pytest

NEW_USER = {
    "email": "Grace@Example.com",
    "firstName": "Grace",
    "lastName": "Hopper",
    "password": "c0bol-rocks",
}


@pytest.fixture()
def user_id(client):
    return client.post("/api/v1/users", json=NEW_USER).get_json()["user"]["id"]


def test_create_user(client, sync_outcomes):
    response = client.post("/api/v1/users", json=NEW_USER)

    assert response.status_code == 201
    user = response.get_json()["user"]
    assert user["username"] == "grace@example.com"
    assert user["roles"] == []
    assert [o.operation for o in sync_outcomes] == ["create"]


def test_create_user_field_errors(client):
    response = client.post("/api/v1/users", json={"email": "not-an-email", "firstName": "<b>"})

    assert response.status_code == 400
    assert set(response.get_json()["fieldErrors"]) == {"email", "firstName", "lastName", "password"}


def test_create_user_non_json_body(client):
    response = client.post("/api/v1/users", data="plain", content_type="text/plain")
    assert response.status_code == 400
    assert response.get_json()["fieldErrors"] == {"body": "Request body must be a JSON object"}


def test_duplicate_user_is_400(client, user_id):
    response = client.post("/api/v1/users", json=NEW_USER)
    assert response.status_code == 400
    assert "already exists" in response.get_json()["message"]


def test_list_users_paginated(client, user_id):
    payload = client.get("/api/v1/users?pageSize=5&pageNumber=1&sortBy=email&sortOrder=asc").get_json()

    assert [u["id"] for u in payload["data"]] == [user_id]
    assert payload["pagination"] == {
        "currentPage": 1,
        "pageSize": 5,
        "totalItems": 1,
        "totalPages": 1,
        "hasNext": False,
        "hasPrevious": False,
        "sortBy": "email",
        "sortOrder": "asc",
    }


def test_list_users_bad_page_size(client):
    response = client.get("/api/v1/users?pageSize=ten")
    assert response.status_code == 400
    assert "pageSize" in response.get_json()["fieldErrors"]


def test_get_update_delete_user(client, user_id, keycloak):
    assert client.get(f"/api/v1/users/{user_id}").get_json()["firstName"] == "Grace"

    response = client.put(f"/api/v1/users/{user_id}", json={"lastName": "Murray", "enabled": False})
    assert response.status_code == 200
    assert response.get_json()["user"]["lastName"] == "Murray"

    assert client.delete(f"/api/v1/users/{user_id}").status_code == 200
    assert client.get(f"/api/v1/users/{user_id}").status_code == 404


def test_role_edges(client, user_id, keycloak):
    role_id = keycloak.add_role("role_ops")

    assert client.post(f"/api/v1/users/{user_id}/roles", json={"roleIds": [role_id]}).status_code == 200
    roles = client.get(f"/api/v1/users/{user_id}").get_json()["roles"]
    assert roles == [{"roleId": role_id, "roleName": "role_ops", "roleDisplayName": "ops"}]

    assert client.delete(f"/api/v1/users/{user_id}/roles", json={"roleIds": [role_id]}).status_code == 200
    assert client.get(f"/api/v1/users/{user_id}").get_json()["roles"] == []


def test_privilege_edge_rejected(client, user_id, keycloak):
    response = client.post(f"/api/v1/users/{user_id}/roles", json={"roleIds": [keycloak.role_id("priv_read")]})
    assert response.status_code == 400
    assert response.get_json()["error"] == "Invalid Operation"


def test_group_edges(client, user_id, keycloak):
    group_id = keycloak.add_group("team")

    assert client.post(f"/api/v1/users/{user_id}/groups", json={"groupIds": [group_id]}).status_code == 200
    assert user_id in keycloak.group_members[group_id]

    assert client.delete(f"/api/v1/users/{user_id}/groups", json={"groupIds": [group_id]}).status_code == 200
    assert user_id not in keycloak.group_members[group_id]


def test_edge_requires_ids(client, user_id):
    response = client.post(f"/api/v1/users/{user_id}/groups", json={"groupIds": []})
    assert response.status_code == 400
    assert response.get_json()["fieldErrors"] == {"groupIds": "At least one ID is required"}
