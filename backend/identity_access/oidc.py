"""
OIDC endpoint configuration for the Keycloak realm.

Why: Keep the realm URL layout in one place so the password-grant client, the
token verifier and the sign-out call agree on endpoints.

Security: `base_url` is the internal (server-to-server) address. Tokens are
only ever exchanged server-side; the browser never sees them.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from typing import Dict

# Small indirection to ease monkeypatching in tests
import requests as http


def http_post(url: str, data: Dict[str, str], headers: Dict[str, str], timeout: int = 10):
    return http.post(url, data=data, headers=headers, timeout=timeout)


@dataclass(frozen=True)
class OIDCConfig:
    base_url: str  # internal base URL, e.g., http://keycloak:8080
    realm: str  # e.g., school-erp
    client_id: str  # e.g., erp-web
    client_secret: str | None = None

    @property
    def issuer(self) -> str:
        return f"{self.base_url}/realms/{self.realm}"

    @property
    def token_endpoint(self) -> str:
        return f"{self.issuer}/protocol/openid-connect/token"

    @property
    def logout_endpoint(self) -> str:
        return f"{self.issuer}/protocol/openid-connect/logout"

    @property
    def certs_endpoint(self) -> str:
        return f"{self.issuer}/protocol/openid-connect/certs"


def load_oidc_config() -> OIDCConfig:
    base_url = os.getenv("KC_BASE_URL", "http://localhost:8080").rstrip("/")
    realm = os.getenv("KC_REALM", "school-erp")
    client_id = os.getenv("KC_CLIENT_ID", "erp-web")
    secret = (os.getenv("KC_CLIENT_SECRET") or "").strip() or None
    return OIDCConfig(base_url=base_url, realm=realm, client_id=client_id, client_secret=secret)
