"""
Configuration and startup security checks for School ERP.

Why: Feature flags gate what staff of a center may see, and the privileged
toggle functions write with a service role. An accidental insecure deployment
would undo both. This module provides a single guard that enforces minimal
production safety constraints without burdening local development.

Permissions: The caller needs no special privileges. The function simply reads
environment variables and raises `SystemExit` on fatal misconfiguration.
"""
from __future__ import annotations

import os


_DSN_KEYS = ("DATABASE_URL", "ACCESS_DATABASE_URL", "SERVICE_ROLE_DSN")


def _is_prod_like(env: str) -> bool:
    env_l = (env or "").lower()
    return env_l in {"prod", "production", "stage", "staging"}


def _must_be_https(url_value: str, var_name: str) -> None:
    if not url_value:
        return
    if url_value.strip().lower().startswith("http://"):
        raise SystemExit(
            f"Refusing to start: {var_name} must use https in production (got http)."
        )


def ensure_secure_config_on_startup() -> None:
    """Fail fast on insecure production configuration.

    Intent: Abort process startup when obviously insecure settings are detected
    in production/staging. Development remains permissive for convenience.

    Checks:
    - SERVICE_ROLE_DSN must be set (privileged flag writes need it).
    - No DSN may explicitly disable TLS.
    - Keycloak must be reached over https.
    - Sessions must be persisted in the database, not process memory.
    """

    env = os.getenv("ERP_ENV", "dev")
    if not _is_prod_like(env):
        return  # dev/test remain permissive

    # 1) Service role DSN for privileged writes
    service_dsn = (os.getenv("SERVICE_ROLE_DSN", "") or "").strip()
    if not service_dsn:
        raise SystemExit(
            "Refusing to start: SERVICE_ROLE_DSN is unset in production. Feature toggles cannot be persisted."
        )

    # 2) Postgres TLS: basic guard to avoid explicit disable
    for key in _DSN_KEYS:
        if "sslmode=disable" in (os.getenv(key, "") or ""):
            raise SystemExit(
                f"Refusing to start: {key} contains sslmode=disable in production. Use sslmode=require or verify TLS."
            )

    # 3) Keycloak endpoints must use HTTPS
    _must_be_https(os.getenv("KC_BASE_URL", ""), "KC_BASE_URL")

    # 4) Sessions must survive restarts and be shared between workers
    backend = (os.getenv("SESSIONS_BACKEND", "memory") or "").strip().lower()
    if backend != "db":
        raise SystemExit(
            "Refusing to start: SESSIONS_BACKEND must be 'db' in production/staging."
        )
