"""
JWT verification helpers for the identity_access bounded context.

Why: Keep cryptographic validation of access tokens outside the web adapter so
the privileged functions can re-verify a caller's bearer token without trusting
anything the browser (or the session record) claims about the caller's role.

Security: Validates the token signature with the realm's JWKS (RS256 only),
ensures issuer, authorized party and expiration are respected. The role and
tenant scope are read from the verified claims only.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple
import time

import requests
from jose import jwt
from jose.exceptions import JOSEError

from .domain import Identity, Role, primary_role
from .oidc import OIDCConfig


class TokenVerificationError(Exception):
    """Raised when an access token fails verification."""

    def __init__(self, code: str):
        super().__init__(code)
        self.code = code


@dataclass
class _CacheEntry:
    jwks: Dict[str, object]
    expires_at: float


class JWKSCache:
    """Very small in-memory cache for JWKS responses."""

    def __init__(self, ttl_seconds: int = 300):
        self.ttl_seconds = ttl_seconds
        self._entries: Dict[Tuple[str, str], _CacheEntry] = {}

    def _cache_key(self, cfg: OIDCConfig) -> Tuple[str, str]:
        return (cfg.base_url, cfg.realm)

    def get(self, cfg: OIDCConfig) -> Dict[str, object]:
        key = self._cache_key(cfg)
        now = time.time()
        entry = self._entries.get(key)
        if entry and entry.expires_at > now:
            return entry.jwks

        jwks = self._fetch(cfg)
        self._entries[key] = _CacheEntry(jwks=jwks, expires_at=now + self.ttl_seconds)
        return jwks

    def _fetch(self, cfg: OIDCConfig) -> Dict[str, object]:
        try:
            resp = requests.get(cfg.certs_endpoint, timeout=5)
        except requests.RequestException as exc:
            raise TokenVerificationError("jwks_fetch_failed") from exc
        if resp.status_code != 200:
            raise TokenVerificationError("jwks_fetch_failed")
        try:
            jwks = resp.json()
        except ValueError as exc:
            raise TokenVerificationError("jwks_invalid") from exc
        if not isinstance(jwks, dict) or "keys" not in jwks:
            raise TokenVerificationError("jwks_invalid")
        return jwks


JWKS_CACHE = JWKSCache()

MAX_CLOCK_SKEW_SECONDS = 5

def verify_access_token(
    *,
    token: str,
    cfg: OIDCConfig,
    cache: JWKSCache | None = None,
) -> Dict[str, object]:
    """Validate an access token using the realm JWKS and return its claims.

    Raises
    ------
    TokenVerificationError:
        When the token is invalid (signature, issuer, azp, expiry, kid).
    """
    if not token:
        raise TokenVerificationError("missing_token")
    cache = cache or JWKS_CACHE
    jwks = cache.get(cfg)
    try:
        header = jwt.get_unverified_header(token)
    except JOSEError as exc:
        raise TokenVerificationError("invalid_token") from exc
    kid = header.get("kid")
    if not kid:
        raise TokenVerificationError("missing_kid")
    key_dict = _find_key(jwks, kid)
    if not key_dict:
        raise TokenVerificationError("unknown_kid")

    try:
        claims = jwt.decode(
            token,
            key_dict,
            algorithms=["RS256"],
            issuer=cfg.issuer,
            options={
                "verify_signature": True,
                # Keycloak access tokens carry aud=account; the client is in azp.
                "verify_aud": False,
                "verify_exp": False,
                "verify_iat": False,
                "verify_nbf": False,
            },
        )
    except JOSEError as exc:
        raise TokenVerificationError("invalid_token") from exc

    if claims.get("azp") not in (None, cfg.client_id):
        raise TokenVerificationError("invalid_token")
    _validate_temporal_claims(claims)
    return claims


def identity_from_claims(claims: Dict[str, object]) -> Identity:
    """Build an Identity from verified claims.

    Behavior:
        - Role comes from `realm_access.roles` (highest priority wins).
        - `center_id` / `teacher_id` come from custom claims; admins carry none.
        - Raises TokenVerificationError("no_role") when no known role is present.
    """
    sub = claims.get("sub")
    if not isinstance(sub, str) or not sub:
        raise TokenVerificationError("missing_sub")
    realm_access = claims.get("realm_access")
    raw_roles = []
    if isinstance(realm_access, dict) and isinstance(realm_access.get("roles"), list):
        raw_roles = [r for r in realm_access["roles"] if isinstance(r, str)]
    role = primary_role(raw_roles)
    if role is None:
        raise TokenVerificationError("no_role")
    name = claims.get("name") or claims.get("preferred_username") or ""
    center_id = claims.get("center_id")
    teacher_id = claims.get("teacher_id")
    return Identity(
        id=sub,
        display_name=str(name),
        role=role,
        center_id=str(center_id) if center_id and role is not Role.ADMIN else None,
        teacher_id=str(teacher_id) if teacher_id else None,
    )


def _find_key(jwks: Dict[str, object], kid: str) -> Dict[str, object] | None:
    keys = jwks.get("keys")
    if not isinstance(keys, list):
        return None
    for key in keys:
        if isinstance(key, dict) and key.get("kid") == kid:
            return key
    return None


def _validate_temporal_claims(claims: Dict[str, object]) -> None:
    now = time.time()
    exp = claims.get("exp")
    if not isinstance(exp, (int, float)):
        raise TokenVerificationError("invalid_token")
    if exp + MAX_CLOCK_SKEW_SECONDS < now:
        raise TokenVerificationError("token_expired")

    iat = claims.get("iat")
    if isinstance(iat, (int, float)) and iat - MAX_CLOCK_SKEW_SECONDS > now:
        raise TokenVerificationError("invalid_token")

    nbf = claims.get("nbf")
    if isinstance(nbf, (int, float)) and nbf - MAX_CLOCK_SKEW_SECONDS > now:
        raise TokenVerificationError("invalid_token")
