"""Unit tests for ScriptServiceClient against an httpx.MockTransport."""

import json

import httpx
import pytest

from retainer.core.exceptions import ScriptServiceError, ScriptServiceNotFoundError
from retainer.services.script_service_client import ScriptServiceClient


def _client(handler) -> ScriptServiceClient:
    return ScriptServiceClient(base_url="http://scripts.test/", timeout=1.0, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_create_script_sends_camel_case_payload(auth_context):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"id": "script-1"})

    client = _client(handler)
    script_id = await client.create_script(
        auth_context, script="-- body", cluster_ids=["c1"], frequency_s=60, configs="doc"
    )
    await client.close()

    assert script_id == "script-1"
    assert seen["method"] == "POST"
    assert seen["url"] == "http://scripts.test/scripts"
    assert seen["auth"] == "bearer test-token"
    assert seen["body"] == {"script": "-- body", "clusterIds": ["c1"], "frequencyS": 60, "configs": "doc"}


@pytest.mark.asyncio
async def test_create_script_without_id_fails(auth_context):
    client = _client(lambda request: httpx.Response(200, json={}))
    with pytest.raises(ScriptServiceError):
        await client.create_script(auth_context, script="", cluster_ids=[], frequency_s=1, configs="")


@pytest.mark.asyncio
async def test_update_sends_only_provided_fields(auth_context):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(204)

    client = _client(handler)
    await client.update_script(auth_context, "script-1", configs="new-doc", enabled=False)

    assert seen == {"method": "PATCH", "path": "/scripts/script-1", "body": {"configs": "new-doc", "enabled": False}}


@pytest.mark.asyncio
async def test_delete_missing_script_raises_not_found(auth_context):
    client = _client(lambda request: httpx.Response(404, json={"error": "not found"}))
    with pytest.raises(ScriptServiceNotFoundError) as exc_info:
        await client.delete_script(auth_context, "gone")
    assert exc_info.value.remote_status_code == 404


@pytest.mark.asyncio
async def test_server_error_raises_script_service_error(auth_context):
    client = _client(lambda request: httpx.Response(503))
    with pytest.raises(ScriptServiceError) as exc_info:
        await client.delete_script(auth_context, "script-1")
    assert not isinstance(exc_info.value, ScriptServiceNotFoundError)
    assert exc_info.value.status_code == 500
    assert exc_info.value.remote_status_code == 503


@pytest.mark.asyncio
async def test_transport_error_raises_script_service_error(auth_context):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = _client(handler)
    with pytest.raises(ScriptServiceError, match="connection refused"):
        await client.get_script(auth_context, "script-1")


@pytest.mark.asyncio
async def test_get_script_parses_payload(auth_context):
    payload = {
        "script": {
            "id": "script-1",
            "script": "-- body",
            "frequencyS": 120,
            "enabled": False,
            "clusterIds": ["c1", "c2"],
            "configs": "doc",
        }
    }
    client = _client(lambda request: httpx.Response(200, json=payload))

    remote = await client.get_script(auth_context, "script-1")

    assert remote.id == "script-1"
    assert remote.frequency_s == 120
    assert remote.enabled is False
    assert remote.cluster_ids == ["c1", "c2"]


@pytest.mark.asyncio
async def test_get_scripts_batches_ids(auth_context):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"scripts": [{"id": "a"}, {"id": "b"}]})

    client = _client(handler)
    scripts = await client.get_scripts(auth_context, ["a", "b"])

    assert seen == {"path": "/scripts:batchGet", "body": {"ids": ["a", "b"]}}
    assert [s.id for s in scripts] == ["a", "b"]


@pytest.mark.asyncio
async def test_get_scripts_empty_makes_no_request(auth_context):
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    client = _client(handler)
    assert await client.get_scripts(auth_context, []) == []


@pytest.mark.asyncio
async def test_invalid_json_raises(auth_context):
    client = _client(lambda request: httpx.Response(200, content=b"not json"))
    with pytest.raises(ScriptServiceError, match="invalid JSON"):
        await client.get_script(auth_context, "script-1")
