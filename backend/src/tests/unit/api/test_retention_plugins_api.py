"""API tests for the retention plugin endpoints.

The service runs against in-memory fakes; only routing, auth and response
envelopes are exercised here.
"""

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from retainer.api.dependencies import get_jwt_manager, get_retention_plugin_service
from retainer.auth.context import JWTManager
from retainer.main import create_app
from retainer.services.retention_plugin_service import RetentionPluginService
from retainer.services.script_sync import ScriptSynchronizer
from tests.unit.services.fakes import (
    ORG_ID,
    OTHER_ORG_ID,
    PLUGIN_ID,
    FakeConfigStore,
    FakeScriptService,
    FakeSession,
    make_release,
)

SECRET = "api-test-secret"
PREFIX = "/api/v1"


def _headers(org_id: str = ORG_ID) -> dict[str, str]:
    token = jwt.encode({"org_id": org_id, "user_id": "user-1"}, SECRET, algorithm="HS256")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def store() -> FakeConfigStore:
    return FakeConfigStore([make_release("1.0.0", presets=1), make_release("2.0.0", presets=2)])


@pytest.fixture
def remote() -> FakeScriptService:
    return FakeScriptService()


@pytest.fixture
def client(store, remote):
    app = create_app()

    def service_override():
        return RetentionPluginService(FakeSession(store), store=store, synchronizer=ScriptSynchronizer(store, remote))

    app.dependency_overrides[get_retention_plugin_service] = service_override
    app.dependency_overrides[get_jwt_manager] = lambda: JWTManager(secret_key=SECRET, algorithm="HS256")
    return TestClient(app)


def _enable(client, version="1.0.0", **fields):
    return client.patch(
        f"{PREFIX}/org/retention/plugins/{PLUGIN_ID}",
        json={"enabled": True, "version": version, **fields},
        headers=_headers(),
    )


def test_requests_without_token_are_unauthenticated(client):
    response = client.get(f"{PREFIX}/org/retention/plugins")

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "AUTHENTICATION_ERROR"


def test_invalid_token_is_unauthenticated(client):
    response = client.get(f"{PREFIX}/org/retention/plugins", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


def test_list_plugins(client):
    response = client.get(f"{PREFIX}/plugins", params={"kind": "retention"}, headers=_headers())

    assert response.status_code == 200
    assert response.json()["data"][0]["latest_version"] == "2.0.0"


def test_enable_and_list_org_plugins(client, remote):
    response = _enable(client, configurations={"API-Key": "secret"})

    assert response.status_code == 200
    assert response.json()["data"]["transition"] == "enable"
    assert len(remote.scripts) == 1

    listed = client.get(f"{PREFIX}/org/retention/plugins", headers=_headers()).json()["data"]
    assert listed[0]["enabled_version"] == "1.0.0"

    config = client.get(f"{PREFIX}/org/retention/plugins/{PLUGIN_ID}", headers=_headers()).json()["data"]
    assert config["configurations"] == {"API-Key": "secret"}


def test_enable_without_version_is_bad_request(client):
    response = client.patch(
        f"{PREFIX}/org/retention/plugins/{PLUGIN_ID}", json={"enabled": True}, headers=_headers()
    )

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_unknown_request_field_rejected(client):
    response = client.patch(
        f"{PREFIX}/org/retention/plugins/{PLUGIN_ID}", json={"enabled": True, "colour": "red"}, headers=_headers()
    )
    assert response.status_code == 422


def test_upgrade_reports_propagation(client):
    _enable(client)
    response = client.patch(
        f"{PREFIX}/org/retention/plugins/{PLUGIN_ID}", json={"version": "2.0.0"}, headers=_headers()
    )

    body = response.json()["data"]
    assert body["transition"] == "upgrade"
    assert body["propagation"] == {"updated": [], "failed": {}}


def test_unknown_release_is_not_found(client):
    response = _enable(client, version="7.0.0")
    assert response.status_code == 404


def test_script_lifecycle(client, store, remote):
    _enable(client)

    created = client.post(
        f"{PREFIX}/org/retention/scripts",
        json={"plugin_id": PLUGIN_ID, "script_name": "mine", "contents": "-- export", "frequency_s": 600},
        headers=_headers(),
    )
    assert created.status_code == 201
    script_id = created.json()["data"]["id"]

    listed = client.get(f"{PREFIX}/org/retention/scripts", headers=_headers()).json()["data"]
    assert {s["script_id"] for s in listed} == set(remote.scripts)

    detail = client.get(f"{PREFIX}/org/retention/scripts/{script_id}", headers=_headers()).json()["data"]
    assert detail["contents"] == "-- export"

    updated = client.patch(
        f"{PREFIX}/org/retention/scripts/{script_id}", json={"enabled": False}, headers=_headers()
    )
    assert updated.status_code == 204
    assert remote.scripts[script_id].enabled is False

    deleted = client.delete(f"{PREFIX}/org/retention/scripts/{script_id}", headers=_headers())
    assert deleted.status_code == 204
    assert script_id not in store.scripts


def test_preset_delete_rejected(client, store):
    _enable(client)
    preset_id = next(iter(store.scripts))

    response = client.delete(f"{PREFIX}/org/retention/scripts/{preset_id}", headers=_headers())

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "PRESET_SCRIPT_IMMUTABLE"


def test_other_org_cannot_delete_script(client, store):
    _enable(client)
    created = client.post(
        f"{PREFIX}/org/retention/scripts",
        json={"plugin_id": PLUGIN_ID, "script_name": "mine", "contents": "--", "frequency_s": 60},
        headers=_headers(),
    )
    script_id = created.json()["data"]["id"]

    response = client.delete(f"{PREFIX}/org/retention/scripts/{script_id}", headers=_headers(OTHER_ORG_ID))

    assert response.status_code == 404
    assert script_id in store.scripts


def test_script_service_failure_is_internal_error(client, remote):
    remote.fail_create_after = 0

    response = _enable(client)

    assert response.status_code == 500
    error = response.json()["error"]
    assert error["code"] == "SCRIPT_SERVICE_ERROR"
    assert error["error_id"].startswith("ERR-")


def test_liveness(client):
    response = client.get(f"{PREFIX}/health/liveness")
    assert response.json()["data"]["alive"] is True
