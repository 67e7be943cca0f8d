"""
SSR-side toggle client: response mapping to MutationError kinds.
"""
from __future__ import annotations

import httpx
import pytest

from feature_client import BACKEND_REJECTED, NETWORK_ERROR, UNAUTHORIZED, MutationError, call_toggle_function  # type: ignore


pytestmark = pytest.mark.anyio("asyncio")

PATH = "/functions/v1/admin-toggle-center-feature"
PAYLOAD = {"centerId": "c1", "featureName": "finance", "isEnabled": False}


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://local")


async def _call(handler, token="tok"):
    async with _client(handler) as client:
        return await call_toggle_function(client, PATH, access_token=token, payload=PAYLOAD)


@pytest.mark.anyio
async def test_success_sends_bearer_and_payload():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers.get("authorization")
        seen["body"] = request.read()
        return httpx.Response(200, json={"success": True})

    assert await _call(handler) is None
    assert seen["auth"] == "Bearer tok"
    assert b'"featureName": "finance"' in seen["body"] or b'"featureName":"finance"' in seen["body"]


@pytest.mark.anyio
async def test_missing_token_is_unauthorized_without_request():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json={"success": True})

    with pytest.raises(MutationError) as excinfo:
        await _call(handler, token=None)
    assert excinfo.value.kind == UNAUTHORIZED
    assert calls == []


@pytest.mark.anyio
@pytest.mark.parametrize("status", [401, 403])
async def test_auth_statuses_are_unauthorized(status):
    with pytest.raises(MutationError) as excinfo:
        await _call(lambda r: httpx.Response(status, json={"success": False, "error": "unauthorized"}))
    assert excinfo.value.kind == UNAUTHORIZED
    assert excinfo.value.message == "You are not allowed to change this setting."


@pytest.mark.anyio
async def test_transport_failure_is_network_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(MutationError) as excinfo:
        await _call(handler)
    assert excinfo.value.kind == NETWORK_ERROR


@pytest.mark.anyio
async def test_rejection_carries_backend_error_code():
    with pytest.raises(MutationError) as excinfo:
        await _call(lambda r: httpx.Response(400, json={"success": False, "error": "invalid_feature"}))
    assert excinfo.value.kind == BACKEND_REJECTED
    assert excinfo.value.detail == "invalid_feature"
    assert excinfo.value.message == "The change was rejected: invalid_feature"


@pytest.mark.anyio
async def test_non_json_server_error_is_network_error():
    with pytest.raises(MutationError) as excinfo:
        await _call(lambda r: httpx.Response(502, text="bad gateway"))
    assert excinfo.value.kind == NETWORK_ERROR


def test_unknown_kind_is_rejected():
    with pytest.raises(ValueError):
        MutationError("kaboom")
