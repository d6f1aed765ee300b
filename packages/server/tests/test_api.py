"""
HTTP integration tests: principals, error envelope and the main flows.
"""

from __future__ import annotations

import uuid
from unittest.mock import AsyncMock, patch

import pytest

from app.core.auth import create_refresh_token
from app.services.teams import TeamService
from app.services.tokens import TokenService

PETSTORE = {
    "openapi": "3.0.3",
    "info": {"title": "Petstore", "version": "1.0.0"},
    "paths": {"/pets": {"get": {"summary": "List pets"}}},
}

PETSTORE_YAML = """
openapi: 3.0.3
info:
  title: Petstore
paths:
  /pets:
    get:
      summary: List pets
"""


@pytest.fixture
async def alice(make_user):
    return await make_user("Alice")


@pytest.fixture
async def bob(make_user):
    return await make_user("Bob")


async def _workspace(client, headers, **body) -> dict:
    resp = await client.post("/api/v1/workspaces", json={"name": "Mine", **body}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


async def _collection(client, headers, workspace_id, name="Smoke") -> dict:
    resp = await client.post(
        f"/api/v1/workspaces/{workspace_id}/collections",
        json={"name": name, "data": {"requests": []}},
        headers=headers,
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

class TestPrincipalResolution:
    async def test_missing_credentials(self, client):
        resp = await client.get("/api/v1/workspaces")
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "UNAUTHENTICATED"

    async def test_garbage_bearer(self, client):
        resp = await client.get("/api/v1/workspaces", headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 401

    async def test_refresh_token_not_accepted_as_access(self, client, alice):
        token, _ = create_refresh_token(alice.id)
        resp = await client.get("/api/v1/users/me", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 401

    async def test_unknown_api_key(self, client):
        resp = await client.get("/api/v1/workspaces", headers={"X-API-Key": "nik_0000000_" + "0" * 64})
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "KEY_INVALID"

    async def test_me(self, client, alice, auth_headers):
        resp = await client.get("/api/v1/users/me", headers=auth_headers(alice))
        assert resp.status_code == 200
        assert resp.json()["email"] == alice.email

        resp = await client.patch("/api/v1/users/me", json={"name": "Alicia"}, headers=auth_headers(alice))
        assert resp.json()["name"] == "Alicia"


class TestSessionTokens:
    async def test_refresh_rotates(self, client, session, alice):
        pair = await TokenService(session).issue_pair(alice)
        resp = await client.post("/api/v1/auth/refresh", json={"refresh_token": pair.refresh_token})
        assert resp.status_code == 200
        assert resp.json()["refresh_token"] != pair.refresh_token

        again = await client.post("/api/v1/auth/refresh", json={"refresh_token": pair.refresh_token})
        assert again.status_code == 401

    async def test_logout(self, client, session, alice):
        pair = await TokenService(session).issue_pair(alice)
        resp = await client.post("/api/v1/auth/logout", json={"refresh_token": pair.refresh_token})
        assert resp.status_code == 200
        again = await client.post("/api/v1/auth/refresh", json={"refresh_token": pair.refresh_token})
        assert again.status_code == 401


# ---------------------------------------------------------------------------
# Workspaces and collections
# ---------------------------------------------------------------------------

class TestCollectionsAPI:
    async def test_versioned_update_flow(self, client, alice, auth_headers, broadcaster):
        headers = auth_headers(alice)
        ws = await _workspace(client, headers)
        c = await _collection(client, headers, ws["id"])
        assert c["version"] == 1
        broadcaster.collection_created.assert_called_once()

        url = f"/api/v1/workspaces/{ws['id']}/collections/{c['id']}"
        resp = await client.patch(url, json={"name": "Renamed", "version": 1}, headers=headers)
        assert resp.status_code == 200
        assert resp.json()["version"] == 2
        broadcaster.collection_updated.assert_called_once()

        stale = await client.patch(url, json={"name": "Stale", "expected_version": 1}, headers=headers)
        assert stale.status_code == 409
        error = stale.json()["error"]
        assert error["code"] == "VERSION_CONFLICT"
        assert error["current_version"] == 2

        current = await client.get(url, headers=headers)
        assert current.json()["name"] == "Renamed"

    async def test_no_fields(self, client, alice, auth_headers):
        headers = auth_headers(alice)
        ws = await _workspace(client, headers)
        c = await _collection(client, headers, ws["id"])
        resp = await client.patch(
            f"/api/v1/workspaces/{ws['id']}/collections/{c['id']}",
            json={"version": 1},
            headers=headers,
        )
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "NO_FIELDS_TO_UPDATE"

    async def test_missing_version_is_bad_request(self, client, alice, auth_headers):
        headers = auth_headers(alice)
        ws = await _workspace(client, headers)
        c = await _collection(client, headers, ws["id"])
        resp = await client.patch(
            f"/api/v1/workspaces/{ws['id']}/collections/{c['id']}",
            json={"name": "x"},
            headers=headers,
        )
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "BAD_REQUEST"

    async def test_other_users_workspace_is_hidden(self, client, alice, bob, auth_headers):
        ws = await _workspace(client, auth_headers(alice))
        resp = await client.get(f"/api/v1/workspaces/{ws['id']}/collections", headers=auth_headers(bob))
        assert resp.status_code == 404

    async def test_team_member_cannot_delete(self, client, session, alice, bob, auth_headers):
        teams = TeamService(session)
        team = await teams.create("Core", alice.id)
        await teams.add_member(team.id, bob.id)

        ws = await _workspace(client, auth_headers(alice), team_id=str(team.id))
        assert ws["type"] == "team"
        c = await _collection(client, auth_headers(bob), ws["id"])

        url = f"/api/v1/workspaces/{ws['id']}/collections/{c['id']}"
        assert (await client.delete(url, headers=auth_headers(bob))).status_code == 403
        assert (await client.delete(url, headers=auth_headers(alice))).status_code == 204

    async def test_workspace_rename_broadcasts(self, client, alice, auth_headers, broadcaster):
        headers = auth_headers(alice)
        ws = await _workspace(client, headers)
        resp = await client.patch(f"/api/v1/workspaces/{ws['id']}", json={"name": "New"}, headers=headers)
        assert resp.status_code == 200
        broadcaster.workspace_updated.assert_called_once()


# ---------------------------------------------------------------------------
# API keys and automation
# ---------------------------------------------------------------------------

class TestApiKeyPrincipal:
    async def _key(self, client, headers, workspace_id) -> str:
        resp = await client.post(
            f"/api/v1/workspaces/{workspace_id}/api-keys", json={"name": "CI"}, headers=headers
        )
        assert resp.status_code == 201, resp.text
        return resp.json()["key"]

    async def test_key_sees_only_its_workspace(self, client, alice, auth_headers):
        headers = auth_headers(alice)
        ws = await _workspace(client, headers)
        other = await _workspace(client, headers, name="Other")
        key = await self._key(client, headers, ws["id"])

        listed = await client.get("/api/v1/workspaces", headers={"X-API-Key": key})
        assert [w["id"] for w in listed.json()["data"]] == [ws["id"]]

        hidden = await client.get(
            f"/api/v1/workspaces/{other['id']}/collections", headers={"X-API-Key": key}
        )
        assert hidden.status_code == 404

    async def test_revoked_key(self, client, alice, auth_headers):
        headers = auth_headers(alice)
        ws = await _workspace(client, headers)
        key = await self._key(client, headers, ws["id"])
        keys = await client.get(f"/api/v1/workspaces/{ws['id']}/api-keys", headers=headers)
        key_id = keys.json()["data"][0]["id"]

        resp = await client.delete(f"/api/v1/workspaces/{ws['id']}/api-keys/{key_id}", headers=headers)
        assert resp.status_code == 204

        resp = await client.get("/api/v1/workspaces", headers={"X-API-Key": key})
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "KEY_REVOKED"

    async def test_automation_upsert(self, client, alice, auth_headers):
        headers = auth_headers(alice)
        ws = await _workspace(client, headers)
        key_headers = {"X-API-Key": await self._key(client, headers, ws["id"])}
        url = "/api/v1/automation/collections"

        created = await client.put(url, json={"name": "Pipeline", "spec": PETSTORE}, headers=key_headers)
        assert created.status_code == 201, created.text
        assert created.json()["created"] is True

        stored = await client.get(
            f"/api/v1/workspaces/{ws['id']}/collections/{created.json()['id']}", headers=headers
        )
        data = stored.json()["data"]
        assert data["name"] == "Petstore"
        assert data["items"][0]["url"] == "{{baseUrl}}/pets"

        forced = await client.put(url, json={"name": "Pipeline", "spec": PETSTORE}, headers=key_headers)
        assert forced.status_code == 200
        assert forced.json()["version"] == 2

        failed = await client.put(
            url, json={"name": "Pipeline", "resolution": "fail", "spec": PETSTORE}, headers=key_headers
        )
        assert failed.status_code == 409
        assert failed.json()["error"]["code"] == "ALREADY_EXISTS"

    async def test_automation_clone_uses_requested_name(self, client, alice, auth_headers):
        headers = auth_headers(alice)
        ws = await _workspace(client, headers)
        key_headers = {"X-API-Key": await self._key(client, headers, ws["id"])}
        url = "/api/v1/automation/collections"
        original = await client.put(url, json={"name": "Pipeline", "spec": PETSTORE}, headers=key_headers)

        renamed = await client.put(
            url,
            json={
                "collection_id": original.json()["id"],
                "name": "Nightly",
                "resolution": "clone",
                "spec": PETSTORE,
            },
            headers=key_headers,
        )
        assert renamed.status_code == 201
        assert renamed.json()["name"] == "Nightly (copy)"

        by_id = await client.put(
            url,
            json={"collection_id": original.json()["id"], "resolution": "clone", "spec": PETSTORE},
            headers=key_headers,
        )
        assert by_id.json()["name"] == "Pipeline (copy)"

    async def test_automation_yaml_body(self, client, alice, auth_headers):
        headers = auth_headers(alice)
        ws = await _workspace(client, headers)
        key_headers = {"X-API-Key": await self._key(client, headers, ws["id"])}

        resp = await client.put(
            "/api/v1/automation/collections",
            params={"name": "From YAML"},
            content=PETSTORE_YAML,
            headers={**key_headers, "Content-Type": "application/yaml"},
        )
        assert resp.status_code == 201, resp.text
        assert resp.json()["name"] == "From YAML"

        as_string = await client.put(
            "/api/v1/automation/collections",
            json={"name": "From YAML", "spec": PETSTORE_YAML},
            headers=key_headers,
        )
        assert as_string.status_code == 200
        assert as_string.json()["version"] == 2

    @pytest.mark.parametrize(
        "body, message",
        [
            ({"name": "x"}, "spec is required"),
            ({"name": "x", "spec": PETSTORE, "resolution": "merge"}, "resolution must be one of: force, clone, fail"),
            ({"spec": PETSTORE}, "name or collection_id is required"),
            ({"name": "x", "spec": "- not\n- a mapping"}, None),
        ],
    )
    async def test_automation_bad_requests(self, client, alice, auth_headers, body, message):
        headers = auth_headers(alice)
        ws = await _workspace(client, headers)
        key_headers = {"X-API-Key": await self._key(client, headers, ws["id"])}

        resp = await client.put("/api/v1/automation/collections", json=body, headers=key_headers)
        assert resp.status_code == 400
        if message is None:
            assert resp.json()["error"]["message"].startswith("invalid openapi spec")
        else:
            assert resp.json()["error"]["message"] == message

    async def test_automation_requires_api_key(self, client, alice, auth_headers):
        resp = await client.put(
            "/api/v1/automation/collections",
            json={"name": "x", "spec": PETSTORE},
            headers=auth_headers(alice),
        )
        assert resp.status_code == 401


# ---------------------------------------------------------------------------
# Teams and invites
# ---------------------------------------------------------------------------

class TestTeamsAPI:
    async def test_invite_accept_flow(self, client, alice, bob, auth_headers, broadcaster):
        team = (await client.post("/api/v1/teams", json={"name": "Core"}, headers=auth_headers(alice))).json()
        assert team["role"] == "owner"
        await _workspace(client, auth_headers(alice), team_id=team["id"])

        with patch("app.api.v1.teams.EmailService.send_team_invite", new=AsyncMock(return_value=False)):
            resp = await client.post(
                f"/api/v1/teams/{team['id']}/invites", json={"email": bob.email}, headers=auth_headers(alice)
            )
        assert resp.status_code == 201, resp.text
        invite_id = resp.json()["id"]

        mine = await client.get("/api/v1/invites", headers=auth_headers(bob))
        assert [i["id"] for i in mine.json()["data"]] == [invite_id]

        resp = await client.post(f"/api/v1/invites/{invite_id}/accept", headers=auth_headers(bob))
        assert resp.status_code == 200
        broadcaster.member_joined.assert_called_once()

        again = await client.post(f"/api/v1/invites/{invite_id}/accept", headers=auth_headers(bob))
        assert again.status_code == 404
        assert again.json()["error"]["code"] == "INVITE_NOT_FOUND"

    async def test_invite_unknown_email(self, client, alice, auth_headers):
        team = (await client.post("/api/v1/teams", json={"name": "Core"}, headers=auth_headers(alice))).json()
        resp = await client.post(
            f"/api/v1/teams/{team['id']}/invites",
            json={"email": "ghost@example.com"},
            headers=auth_headers(alice),
        )
        assert resp.status_code == 404

    async def test_owner_cannot_leave(self, client, alice, auth_headers):
        team = (await client.post("/api/v1/teams", json={"name": "Core"}, headers=auth_headers(alice))).json()
        resp = await client.delete(
            f"/api/v1/teams/{team['id']}/members/{alice.id}", headers=auth_headers(alice)
        )
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "CANNOT_REMOVE_OWNER"

    async def test_member_cannot_remove_others(self, client, session, alice, bob, make_user, auth_headers):
        carol = await make_user("Carol")
        teams = TeamService(session)
        team = await teams.create("Core", alice.id)
        await teams.add_member(team.id, bob.id)
        await teams.add_member(team.id, carol.id)

        resp = await client.delete(f"/api/v1/teams/{team.id}/members/{carol.id}", headers=auth_headers(bob))
        assert resp.status_code == 403

        resp = await client.delete(f"/api/v1/teams/{team.id}/members/{bob.id}", headers=auth_headers(bob))
        assert resp.status_code == 204

    async def test_non_member_sees_not_found(self, client, session, alice, bob, auth_headers):
        team = await TeamService(session).create("Core", alice.id)
        resp = await client.get(f"/api/v1/teams/{team.id}", headers=auth_headers(bob))
        assert resp.status_code == 404

    async def test_unknown_team(self, client, alice, auth_headers):
        resp = await client.get(f"/api/v1/teams/{uuid.uuid4()}", headers=auth_headers(alice))
        assert resp.status_code == 404


# ---------------------------------------------------------------------------
# Vault and templates
# ---------------------------------------------------------------------------

class TestVaultAPI:
    async def test_vault_flow(self, client, alice, auth_headers):
        headers = auth_headers(alice)
        ws = await _workspace(client, headers)
        base = f"/api/v1/workspaces/{ws['id']}/vault"

        assert (await client.get(base, headers=headers)).status_code == 404

        body = {"salt": "c2FsdA==", "verification": "dmVyaWZ5"}
        assert (await client.post(base, json=body, headers=headers)).status_code == 201
        dup = await client.post(base, json=body, headers=headers)
        assert dup.status_code == 409
        assert dup.json()["error"]["code"] == "ALREADY_EXISTS"

        item = await client.post(f"{base}/items", json={"data": "ciphertext"}, headers=headers)
        assert item.status_code == 201
        listed = await client.get(f"{base}/items", headers=headers)
        assert [i["id"] for i in listed.json()["data"]] == [item.json()["id"]]

        missing = await client.patch(f"{base}/items/{uuid.uuid4()}", json={"data": "x"}, headers=headers)
        assert missing.status_code == 404
        assert missing.json()["error"]["code"] == "ITEM_NOT_FOUND"


class TestTemplatesAPI:
    async def test_search(self, client, session, alice, auth_headers):
        from app.services.templates import TemplateService

        templates = TemplateService(session)
        petstore = await templates.create("Petstore", {"openapi": "3.0.0"})
        await templates.create("GitHub REST", {})

        resp = await client.get("/api/v1/templates", params={"q": "pet", "limit": 500}, headers=auth_headers(alice))
        assert resp.status_code == 200
        assert [t["name"] for t in resp.json()["data"]] == ["Petstore"]

        one = await client.get(f"/api/v1/templates/{petstore.id}", headers=auth_headers(alice))
        assert one.json()["data"] == {"openapi": "3.0.0"}
