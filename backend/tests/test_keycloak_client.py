"""
Keycloak password grant and revoke: error mapping without network access.
"""
from __future__ import annotations

import pytest
import requests

from identity_access import keycloak_client as kc
from identity_access.keycloak_client import AuthClient, AuthError
from identity_access.oidc import OIDCConfig


CFG = OIDCConfig(base_url="http://kc:8080", realm="school-erp", client_id="erp-web", client_secret="s3cret")


class _Resp:
    def __init__(self, status_code: int, body=None):
        self.status_code = status_code
        self._body = body

    def json(self):
        if self._body is None:
            raise ValueError("no json")
        return self._body


def _patch_post(monkeypatch, response=None, exc=None):
    calls = []

    def fake_post(url, data, headers, timeout=10):
        calls.append({"url": url, "data": dict(data), "headers": dict(headers)})
        if exc is not None:
            raise exc
        return response

    monkeypatch.setattr(kc, "http_post", fake_post)
    return calls


def test_password_grant_posts_to_token_endpoint(monkeypatch: pytest.MonkeyPatch):
    calls = _patch_post(monkeypatch, _Resp(200, {"access_token": "a", "refresh_token": "r"}))
    body = AuthClient(CFG).password_grant(username="staff", password="pw")
    assert body["access_token"] == "a"
    assert calls[0]["url"] == "http://kc:8080/realms/school-erp/protocol/openid-connect/token"
    assert calls[0]["data"]["grant_type"] == "password"
    assert calls[0]["data"]["client_id"] == "erp-web"
    assert calls[0]["data"]["client_secret"] == "s3cret"


@pytest.mark.parametrize(
    "status, kind",
    [
        (400, "invalid_credentials"),
        (401, "invalid_credentials"),
        (429, "rate_limited"),
        (500, "network_error"),
        (502, "network_error"),
    ],
)
def test_password_grant_maps_status_codes(monkeypatch: pytest.MonkeyPatch, status, kind):
    _patch_post(monkeypatch, _Resp(status, {"error": "x"}))
    with pytest.raises(AuthError) as excinfo:
        AuthClient(CFG).password_grant(username="u", password="p")
    assert excinfo.value.kind == kind


def test_password_grant_transport_failure_is_network_error(monkeypatch: pytest.MonkeyPatch):
    _patch_post(monkeypatch, exc=requests.ConnectionError("down"))
    with pytest.raises(AuthError) as excinfo:
        AuthClient(CFG).password_grant(username="u", password="p")
    assert excinfo.value.kind == "network_error"
    assert "unreachable" in excinfo.value.message


def test_password_grant_without_access_token_is_network_error(monkeypatch: pytest.MonkeyPatch):
    _patch_post(monkeypatch, _Resp(200, {"token_type": "bearer"}))
    with pytest.raises(AuthError) as excinfo:
        AuthClient(CFG).password_grant(username="u", password="p")
    assert excinfo.value.kind == "network_error"


def test_auth_error_rejects_unknown_kind():
    with pytest.raises(ValueError):
        AuthError("teapot")


def test_revoke_is_best_effort(monkeypatch: pytest.MonkeyPatch):
    calls = _patch_post(monkeypatch, exc=requests.Timeout("slow"))
    AuthClient(CFG).revoke(refresh_token="r1")  # must not raise
    assert calls[0]["url"].endswith("/protocol/openid-connect/logout")
    assert calls[0]["data"]["refresh_token"] == "r1"


def test_revoke_without_token_does_not_call_idp(monkeypatch: pytest.MonkeyPatch):
    calls = _patch_post(monkeypatch, _Resp(204))
    AuthClient(CFG).revoke(refresh_token=None)
    assert calls == []
