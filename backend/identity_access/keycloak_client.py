"""
Keycloak client for password sign-in and sign-out.

This module is the auth collaborator of the session store: it performs the
Direct Grant (username/password) against the realm token endpoint and revokes
the refresh token on sign-out. It knows nothing about sessions or cookies.

Security: Never log credentials or tokens. Failures are reported as
`AuthError` with a coarse `kind` so callers cannot leak which part of the
credential check failed.
"""

from __future__ import annotations

from typing import Dict
import logging

import requests

from .oidc import OIDCConfig, http_post

logger = logging.getLogger("erp.identity_access")

INVALID_CREDENTIALS = "invalid_credentials"
NETWORK_ERROR = "network_error"
RATE_LIMITED = "rate_limited"

AUTH_ERROR_KINDS = frozenset({INVALID_CREDENTIALS, NETWORK_ERROR, RATE_LIMITED})

_MESSAGES = {
    INVALID_CREDENTIALS: "Invalid username or password.",
    NETWORK_ERROR: "The sign-in service is unreachable. Please try again.",
    RATE_LIMITED: "Too many sign-in attempts. Please wait a moment and try again.",
}


class AuthError(Exception):
    """Raised when sign-in fails. `kind` is one of AUTH_ERROR_KINDS."""

    def __init__(self, kind: str):
        if kind not in AUTH_ERROR_KINDS:
            raise ValueError(f"unknown auth error kind: {kind}")
        super().__init__(kind)
        self.kind = kind

    @property
    def message(self) -> str:
        return _MESSAGES[self.kind]


class AuthClient:
    """Authenticate against Keycloak using the Direct Grant."""

    def __init__(self, cfg: OIDCConfig) -> None:
        self.cfg = cfg

    def _client_fields(self) -> Dict[str, str]:
        fields = {"client_id": self.cfg.client_id}
        if self.cfg.client_secret:
            fields["client_secret"] = self.cfg.client_secret
        return fields

    def password_grant(self, *, username: str, password: str) -> Dict[str, str]:
        """Return the token response (access_token, refresh_token, expires_in).

        Raises AuthError:
            - rate_limited on HTTP 429
            - invalid_credentials on 400/401 (invalid_grant, disabled user)
            - network_error on transport failures, 5xx or malformed bodies
        """
        data = {
            "grant_type": "password",
            "username": username,
            "password": password,
            "scope": "openid",
            **self._client_fields(),
        }
        headers = {"Content-Type": "application/x-www-form-urlencoded"}
        try:
            r = http_post(self.cfg.token_endpoint, data=data, headers=headers)
        except requests.RequestException as exc:
            logger.warning("Password grant transport failure: %s", exc.__class__.__name__)
            raise AuthError(NETWORK_ERROR) from exc
        if r.status_code == 429:
            raise AuthError(RATE_LIMITED)
        if r.status_code in (400, 401, 403):
            raise AuthError(INVALID_CREDENTIALS)
        if r.status_code != 200:
            logger.warning("Password grant failed with status %s", r.status_code)
            raise AuthError(NETWORK_ERROR)
        try:
            body = r.json()
        except ValueError as exc:
            raise AuthError(NETWORK_ERROR) from exc
        if not isinstance(body, dict) or not body.get("access_token"):
            raise AuthError(NETWORK_ERROR)
        return body  # type: ignore[return-value]

    def revoke(self, *, refresh_token: str | None) -> None:
        """End the IdP session for a refresh token. Best-effort, never raises."""
        if not refresh_token:
            return
        data = {"refresh_token": refresh_token, **self._client_fields()}
        headers = {"Content-Type": "application/x-www-form-urlencoded"}
        try:
            r = http_post(self.cfg.logout_endpoint, data=data, headers=headers)
        except requests.RequestException as exc:
            logger.warning("IdP logout failed: %s", exc.__class__.__name__)
            return
        if r.status_code not in (200, 204):
            logger.warning("IdP logout returned status %s", r.status_code)
