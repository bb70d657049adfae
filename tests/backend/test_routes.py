"""
Tests for the generated entity REST routes.

These tests verify:
- Token handling (missing, invalid, without permission)
- The create / get / update / remove flow over HTTP
- list / find / count query parameters
- Error responses rendered from service errors
"""

import pytest


class TestAuthentication:
    """Tests for token checks on entity routes."""

    def test_missing_token_is_rejected(self, client):
        response = client.get("/accounts")

        assert response.status_code == 422

    def test_invalid_token_is_rejected(self, client):
        response = client.get("/accounts", params={"token": "not-a-jwt"})

        assert response.status_code == 401

    def test_missing_permission_is_forbidden(self, client, make_token):
        token = make_token(["accounts.list"])

        response = client.post("/accounts", params={"token": token}, json={"options": {}})

        assert response.status_code == 403
        body = response.json()
        assert body["type"] == "ERR_NO_PERMISSION"
        assert body["data"] == {"permission": "accounts.create"}


class TestEntityFlow:
    """Tests for the full lifecycle of an entity over HTTP."""

    def test_create_get_update_remove(self, client, admin_token):
        params = {"token": admin_token}

        created = client.post("/accounts", params=params, json={"options": {"name": "a"}})
        assert created.status_code == 201
        entity = created.json()
        assert entity["options"] == {"name": "a"}
        assert "updatedAt" not in entity
        assert "deletedAt" not in entity

        fetched = client.get(f"/accounts/{entity['id']}", params=params)
        assert fetched.status_code == 200
        assert fetched.json() == entity

        updated = client.patch(
            f"/accounts/{entity['id']}", params=params, json={"options": {"name": "b"}}
        )
        assert updated.status_code == 200
        assert updated.json()["options"] == {"name": "b"}
        assert updated.json()["updatedAt"] >= entity["createdAt"]

        removed = client.delete(f"/accounts/{entity['id']}", params=params)
        assert removed.status_code == 200
        assert removed.json() == {"id": entity["id"]}

        gone = client.get(f"/accounts/{entity['id']}", params=params)
        assert gone.status_code == 404
        assert gone.json()["type"] == "ENTITY_NOT_FOUND"

    def test_removed_entity_visible_without_scope(self, client, admin_token):
        params = {"token": admin_token}
        entity = client.post("/accounts", params=params, json={"options": {}}).json()
        client.delete(f"/accounts/{entity['id']}", params=params)

        response = client.get(
            f"/accounts/{entity['id']}",
            params={**params, "scope": "false", "fields": "id,deletedAt"},
        )

        assert response.status_code == 200
        assert set(response.json()) == {"id", "deletedAt"}

    def test_fields_selection_without_id(self, client, admin_token):
        """Selecting fields that leave out the id should still serialize."""
        params = {"token": admin_token}
        entity = client.post("/accounts", params=params, json={"options": {"name": "a"}}).json()

        fetched = client.get(f"/accounts/{entity['id']}", params={**params, "fields": "options"})
        found = client.get("/accounts/find", params={**params, "fields": "options"})
        page = client.get("/accounts", params={**params, "fields": "createdAt"})

        assert fetched.status_code == 200
        assert fetched.json() == {"options": {"name": "a"}}
        assert found.status_code == 200
        assert found.json() == [{"options": {"name": "a"}}]
        assert page.status_code == 200
        assert page.json()["rows"] == [{"createdAt": entity["createdAt"]}]

    def test_malformed_id_is_not_found(self, client, admin_token):
        response = client.get("/accounts/%25%25%25", params={"token": admin_token})

        assert response.status_code == 404

    def test_invalid_body_is_rejected(self, client, admin_token):
        response = client.post(
            "/accounts", params={"token": admin_token}, json={"options": "text"}
        )

        assert response.status_code == 422
        assert response.json()["type"] == "VALIDATION_ERROR"
        assert response.json()["data"][0]["field"] == "options"


class TestReadRoutes:
    """Tests for list, find and count routes."""

    @pytest.fixture
    def seeded(self, client, admin_token):
        for i in range(3):
            client.post("/accounts", params={"token": admin_token}, json={"options": {"n": i}})

    def test_list(self, client, admin_token, seeded):
        response = client.get(
            "/accounts",
            params={"token": admin_token, "page": 1, "pageSize": 2, "sort": "-options.n"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 3
        assert data["totalPages"] == 2
        assert data["pageSize"] == 2
        assert [row["options"]["n"] for row in data["rows"]] == [2, 1]

    def test_find_with_query(self, client, admin_token, seeded):
        response = client.get(
            "/accounts/find",
            params={"token": admin_token, "query": '{"options.n": {"$gte": 1}}', "limit": 5},
        )

        assert response.status_code == 200
        assert len(response.json()) == 2

    def test_count(self, client, admin_token, seeded):
        response = client.get("/accounts/count", params={"token": admin_token})

        assert response.status_code == 200
        assert response.json() == 3

    def test_invalid_page_size(self, client, admin_token):
        response = client.get("/accounts", params={"token": admin_token, "pageSize": 500})

        assert response.status_code == 422


class TestReferencedEntities:
    """Tests for sessions, which are scoped to an account."""

    def test_sessions_for_visible_account(self, client, admin_token):
        params = {"token": admin_token}
        account = client.post("/accounts", params=params, json={"options": {}}).json()
        client.post("/sessions", params=params, json={"account": account["id"], "options": {}})

        response = client.get("/sessions", params={**params, "account": account["id"]})

        assert response.status_code == 200
        assert response.json()["total"] == 1
        assert response.json()["rows"][0]["account"] == account["id"]

    def test_sessions_without_account_param(self, client, admin_token):
        response = client.get("/sessions", params={"token": admin_token})

        assert response.status_code == 422
        assert response.json()["data"] == [{"type": "required", "field": "account"}]

    def test_sessions_for_hidden_account(self, client, admin_token, make_token):
        account = client.post(
            "/accounts", params={"token": admin_token}, json={"options": {}}
        ).json()
        token = make_token(["sessions.list"])

        response = client.get("/sessions", params={"token": token, "account": account["id"]})

        assert response.status_code == 403
        assert response.json()["data"]["field"] == "account"
