"""
Pytest configuration for backend tests.

Why: Force AnyIO to use the asyncio backend and keep the module-level
singletons of the web app (session records, access repository, flag cache,
auth collaborator) isolated per test.
"""
import os
import importlib
import sys
from pathlib import Path
import pytest

# Ensure modules in backend/ and backend/web are importable across tests
REPO_ROOT = Path(__file__).resolve().parents[2]
BACKEND_DIR = REPO_ROOT / "backend"
WEB_DIR = BACKEND_DIR / "web"
TESTS_DIR = BACKEND_DIR / "tests"
for p in (str(REPO_ROOT), str(BACKEND_DIR), str(WEB_DIR), str(TESTS_DIR)):
    if p not in sys.path:
        sys.path.insert(0, p)

# Live databases are never used by this suite; the in-memory adapters and the
# fake psycopg driver cover the SQL paths.
for _var in ("DATABASE_URL", "ACCESS_DATABASE_URL", "SERVICE_ROLE_DSN"):
    os.environ.pop(_var, None)
os.environ["SESSIONS_BACKEND"] = "memory"


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def _clear_env_toggles(monkeypatch: pytest.MonkeyPatch):
    """Keep env-driven behavior deterministic (dev env, no proxy trust)."""
    for var in ("ERP_ENV", "ERP_TRUST_PROXY", "APP_INTERNAL_BASE_URL", "FLAG_CACHE_TTL_SECONDS"):
        monkeypatch.delenv(var, raising=False)
    yield


@pytest.fixture(autouse=True)
def _reset_access_repo():
    """Give every test a fresh in-memory access repository and an empty cache."""
    try:
        import access_wiring  # type: ignore
        from access_control.repo import AccessRepo  # type: ignore
    except Exception:
        yield
        return
    access_wiring.set_repo(AccessRepo())
    yield
    access_wiring.set_repo(None)


@pytest.fixture(autouse=True)
def _reset_session_records_and_auth(monkeypatch: pytest.MonkeyPatch):
    """Reset SESSION_RECORDS, AUTH_CLIENT and the token verifier per test.

    Why:
        Tests monkeypatch these and some seed session records directly. All
        app tests import the web app as the flat `main` module, so patching
        that module is enough.
    """
    try:
        main = importlib.import_module("main")
        from identity_access.keycloak_client import AuthClient  # type: ignore
        from identity_access.stores import SessionRecordStore  # type: ignore
    except Exception:
        yield
        return
    monkeypatch.setattr(main, "SESSION_RECORDS", SessionRecordStore())
    monkeypatch.setattr(main, "AUTH_CLIENT", AuthClient(main.OIDC_CFG))
    main.SETTINGS.override_environment(None)
    yield
    main.SETTINGS.override_environment(None)
