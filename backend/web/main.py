"School ERP web app"
from __future__ import annotations

from pathlib import Path
import os
import logging
import json
from typing import Optional, Dict, Any, List, Tuple
from datetime import datetime, timezone
from urllib.parse import urlencode

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, RedirectResponse, JSONResponse, Response
from fastapi.staticfiles import StaticFiles

# Component Imports
from components import CenterFeatureMatrix, Component, Layout, TeacherFeatureList, TeacherTable

# Access control & identity
from access_control.domain import EMPTY_FLAGS, FlagSet
from access_control.features import CenterFeature, TeacherFeature
from access_control.guard import GuardOutcome, Placeholder, Redirect, Render, RouteGuard
from access_control.requirements import LOGIN_ROUTES, ROUTE_TABLE, RouteEntry, nav_entries_for
from access_control.resolver import Allow, authorize
from identity_access.domain import Identity, Role
from identity_access.keycloak_client import AuthClient
from identity_access.oidc import load_oidc_config
from identity_access.session import SessionStore
from identity_access.stores import SessionRecordStore
from identity_access.tokens import identity_from_claims, verify_access_token
import sys as _sys

import access_wiring
from feature_client import MutationError, call_toggle_function

# Ensure legacy imports consistently reference the same module instance.
if __name__ == "main":
    _sys.modules.setdefault("backend.web.main", _sys.modules[__name__])
elif __name__ == "backend.web.main":
    _sys.modules["main"] = _sys.modules[__name__]

def _should_load_dotenv() -> bool:
    """Decide if we should load a local .env file.

    - Never load under pytest to avoid contaminating test env.
    - Allow explicit opt-out/opt-in via ERP_ENABLE_DOTENV (default true
      outside pytest).
    """
    if "pytest" in _sys.modules or os.getenv("PYTEST_CURRENT_TEST"):
        return False
    flag = (os.getenv("ERP_ENABLE_DOTENV", "true") or "").strip().lower()
    return flag in ("1", "true", "yes")

try:
    from dotenv import load_dotenv
    if _should_load_dotenv():
        load_dotenv()
except ImportError:
    pass

# Minimal production safety checks (fail-fast on insecure config)
# Support both "flat" (Docker image) and package (repo test) layouts.
_cfg = None
try:
    import config as _cfg  # type: ignore
except ImportError:  # pragma: no cover
    from backend.web import config as _cfg  # type: ignore
_cfg.ensure_secure_config_on_startup()

# --- App & Settings Setup -------------------------------------------------------

class AuthSettings:
    def __init__(self) -> None:
        self._env_override: str | None = None

    @property
    def environment(self) -> str:
        if self._env_override is not None:
            return self._env_override
        return os.getenv("ERP_ENV", "dev").lower()

    def override_environment(self, env: str | None) -> None:
        """Override environment for tests (e.g., "prod"), or reset with None."""
        self._env_override = env

logger = logging.getLogger("erp.web")
SETTINGS = AuthSettings()
SESSION_COOKIE_NAME = "erp_session"
SESSION_TTL_SECONDS = 3600

app = FastAPI(title="School ERP", description="Role-based access and feature permissions", version="0.1.0")

# --- Static Files & Routers -----------------------------------------------------

static_dir = Path(__file__).parent / "static"
if static_dir.is_dir():
    app.mount("/static", StaticFiles(directory=str(static_dir)), name="static")

from routes.auth import auth_router
from routes.admin import admin_router
from routes.functions import functions_router
from routes.security import _is_same_origin

# --- OIDC & Session Setup -------------------------------------------------------

OIDC_CFG = load_oidc_config()
AUTH_CLIENT = AuthClient(OIDC_CFG)

def _under_pytest() -> bool:
    return "pytest" in _sys.modules or bool(os.getenv("PYTEST_CURRENT_TEST"))

if (not _under_pytest()) and os.getenv("SESSIONS_BACKEND", "memory").lower() == "db":
    try:
        from identity_access.stores_db import DBSessionRecordStore
        SESSION_RECORDS = DBSessionRecordStore()
    except RuntimeError as exc:
        logger.warning("DB session store unavailable, using memory: %s", exc)
        SESSION_RECORDS = SessionRecordStore()
else:
    SESSION_RECORDS = SessionRecordStore()


def verify_token_identity(token: str) -> Identity:
    """Turn a raw access token into an Identity (JWKS verification).

    Module-level so tests can monkeypatch it without a running Keycloak.
    """
    return identity_from_claims(verify_access_token(token=token, cfg=OIDC_CFG))


def _verify_token(token: str) -> Identity:
    # Looked up at call time so a monkeypatched verifier is honored.
    return verify_token_identity(token)


def _build_session_store(request: Request) -> SessionStore:
    return SessionStore(
        auth=AUTH_CLIENT,
        records=SESSION_RECORDS,
        session_id=request.cookies.get(SESSION_COOKIE_NAME),
        verify=_verify_token,
        ttl_seconds=SESSION_TTL_SECONDS,
    )


def _center_flags(center_id: Optional[str]) -> FlagSet:
    return access_wiring.FLAG_CACHE.center_flags(center_id)


def _teacher_flags(teacher_id: Optional[str]) -> FlagSet:
    return access_wiring.FLAG_CACHE.teacher_flags(teacher_id)


ROUTE_GUARD = RouteGuard(center_flags=_center_flags, teacher_flags=_teacher_flags)

# --- Auth Helpers & Middleware --------------------------------------------------

def _private_no_store() -> dict:
    return {"Cache-Control": "private, no-store"}

def _set_session_cookie(response: Response, value: str) -> None:
    # Hardened flags in every environment; Lax keeps top-level navigations working.
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=value,
        httponly=True,
        secure=True,
        samesite="lax",
        path="/",
        max_age=SESSION_TTL_SECONDS if SETTINGS.environment == "prod" else None,
    )

def _clear_session_cookie(response: Response) -> None:
    response.delete_cookie(SESSION_COOKIE_NAME, path="/", secure=True, httponly=True, samesite="lax")

def _is_session_free(path: str) -> bool:
    # Bearer-authenticated functions ignore the cookie; static and health need no session.
    return path.startswith(("/static/", "/functions/v1/")) or path in ("/health", "/favicon.ico")

def _is_public_path(path: str) -> bool:
    return path in LOGIN_ROUTES or path == "/auth/logout"

def _login_location(request: Request, login_path: str) -> str:
    from routes.auth import _is_inapp_path

    path = request.url.path
    if request.method == "GET" and path != "/" and _is_inapp_path(path):
        return f"{login_path}?{urlencode({'redirect': path})}"
    return login_path

def _guard_response(request: Request, outcome: GuardOutcome) -> Optional[Response]:
    """Translate a non-Render guard outcome into an HTTP response.

    Behavior:
        - `/api/...` paths get JSON: 401 unauthenticated, 403 forbidden.
        - HTMX requests get `HX-Redirect` (401 unauthenticated, 403 denied).
        - Full-page requests get `303 See Other`, so the denied URL never
          becomes a history entry.
        - Forbidden (denied on the role's own home route) renders a 403 page.
    """
    if isinstance(outcome, Render):
        return None
    path = request.url.path
    is_api = path.startswith("/api/")
    headers = _private_no_store()
    if isinstance(outcome, Placeholder):
        return HTMLResponse('<div class="loading" aria-busy="true"></div>', headers=headers)
    if isinstance(outcome, Redirect):
        unauthenticated = outcome.reason == "unauthenticated"
        if is_api:
            if unauthenticated:
                return JSONResponse({"error": "unauthenticated"}, status_code=401, headers={**headers, "Vary": "Origin"})
            return JSONResponse({"error": "forbidden", "reason": outcome.reason}, status_code=403, headers=headers)
        location = _login_location(request, outcome.location) if unauthenticated else outcome.location
        if "HX-Request" in request.headers:
            # Security: prevent intermediaries from caching unauthenticated HTMX responses
            headers.update({"HX-Redirect": location, "Vary": "HX-Request"})
            return Response(status_code=401 if unauthenticated else 403, headers=headers)
        return RedirectResponse(url=location, status_code=303, headers=headers)
    if is_api:
        return JSONResponse({"error": "forbidden", "reason": outcome.reason}, status_code=403, headers=headers)
    content = '<section class="card"><p>You do not have access to this page.</p></section>'
    return _layout_response(request, _page_layout(request, "Access denied", content), status_code=403)

@app.middleware("http")
async def auth_enforcement(request: Request, call_next):
    path = request.url.path
    if _is_session_free(path):
        return await call_next(request)

    store = _build_session_store(request)
    session = store.restore()
    stale_cookie = SESSION_COOKIE_NAME in request.cookies and not session.is_authenticated
    changes: list = []
    store.subscribe(changes.append)

    # Expose the store and minimal, read-only user context for downstream handlers.
    request.state.session_store = store
    request.state.user = session.identity.to_dict() if session.is_authenticated else None

    if not _is_public_path(path):
        outcome = ROUTE_GUARD.evaluate(path, session)
        denied = _guard_response(request, outcome)
        if denied is not None:
            if stale_cookie:
                _clear_session_cookie(denied)
            return denied
        request.state.route_entry = outcome.entry

    response = await call_next(request)
    if changes:
        if changes[-1].is_authenticated and store.session_id:
            _set_session_cookie(response, store.session_id)
        else:
            _clear_session_cookie(response)
    elif stale_cookie:
        _clear_session_cookie(response)
    return response

# --- Security Headers Middleware ----------------------------------------------

@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    if SETTINGS.environment == "prod":
        # Harden CSP in production: avoid 'unsafe-inline' to reduce XSS surface.
        csp = (
            "default-src 'self'; script-src 'self'; style-src 'self'; "
            "img-src 'self' data:; font-src 'self' data:; connect-src 'self';"
        )
    else:
        # Developer experience: allow inline for local SSR components.
        csp = (
            "default-src 'self'; script-src 'self' 'unsafe-inline'; style-src 'self' 'unsafe-inline'; "
            "img-src 'self' data:; font-src 'self' data:; connect-src 'self';"
        )
    response.headers.setdefault("Content-Security-Policy", csp)
    response.headers.setdefault("X-Frame-Options", "SAMEORIGIN")
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
    if SETTINGS.environment == "prod":
        response.headers.setdefault("Cross-Origin-Opener-Policy", "same-origin")
    response.headers.setdefault("Permissions-Policy", "geolocation=(), microphone=(), camera=()")
    # HSTS: always on (dev = prod)
    response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
    return response

# --- Rendering Helpers ------------------------------------------------------------

def _current_identity(request: Request) -> Optional[Identity]:
    store = getattr(request.state, "session_store", None)
    if store is None:
        return None
    return store.get_session().identity

def _nav_items(identity: Identity) -> List[Tuple[str, str]]:
    """Sidebar entries the identity may open, with feature flags applied."""
    center_flags = _center_flags(identity.center_id) if identity.center_id else EMPTY_FLAGS
    teacher_flags = (
        _teacher_flags(identity.teacher_id)
        if identity.role is Role.TEACHER and identity.teacher_id
        else EMPTY_FLAGS
    )
    return [
        (entry.path, entry.title)
        for entry in nav_entries_for(identity.role)
        if isinstance(authorize(identity, entry.requirement, center_flags, teacher_flags), Allow)
    ]

def _page_layout(request: Request, title: str, content: str) -> Layout:
    identity = _current_identity(request)
    return Layout(
        title=title,
        content=content,
        user=getattr(request.state, "user", None),
        current_path=request.url.path,
        nav_items=_nav_items(identity) if identity else [],
    )

def _layout_response(
    request: Request,
    layout: Layout,
    *,
    status_code: int = 200,
    headers: dict[str, str] | None = None,
) -> HTMLResponse:
    """Render Layout with HTMX-aware semantics and return an HTMLResponse.

    Why:
        Centralises the rule that HTMX navigation must only receive the main
        fragment plus a single out-of-band sidebar to keep the toggle JS happy.
    Parameters:
        request: FastAPI request carrying headers such as `HX-Request`.
        layout: Prepared Layout component with page title, content and user info.
        status_code: HTTP status code for the response (defaults to 200).
        headers: Optional header overrides (e.g., `Cache-Control`).
    Behavior:
        - Returns the fragment/OOB combination when `HX-Request` is present.
        - Otherwise renders the complete document including `<head>` and
          navigation.
        - Personalized pages default to `Cache-Control: private, no-store`.
    Permissions:
        None. The route guard has already decided before handlers run.
    """
    if request.headers.get("HX-Request"):
        body = layout.render_fragment()
    else:
        body = layout.render()
    response = HTMLResponse(content=body, status_code=status_code)
    is_personalized = bool(getattr(request.state, "user", None))
    if is_personalized and not (headers and "Cache-Control" in headers):
        response.headers["Cache-Control"] = "private, no-store"
    if headers:
        for key, value in headers.items():
            response.headers[key] = value
    return response

def _toast(message: str, kind: str) -> str:
    return json.dumps({"showMessage": {"message": message, "type": kind}})

# Outcome codes carried through a full-page PRG redirect. Only these keys are
# rendered; the query value itself never reaches the page.
_NOTICES: Dict[str, Tuple[str, str]] = {
    "updated": ("Setting updated.", "success"),
    "unauthorized": ("You are not allowed to change this setting.", "error"),
    "network_error": ("The change could not be saved. Please try again.", "error"),
    "backend_rejected": ("The change was rejected.", "error"),
}

def _notice_url(path: str, notice: str) -> str:
    return f"{path}?{urlencode({'notice': notice})}"

def _notice_banner(request: Request) -> str:
    found = _NOTICES.get(str(request.query_params.get("notice") or ""))
    if found is None:
        return ""
    message, kind = found
    role = "status" if kind == "success" else "alert"
    return f'<div class="alert alert-{kind}" role="{role}">{Component.escape(message)}</div>'

def _internal_api_client():
    """Create an ASGI client preloaded with Origin for in-process function calls.

    Uses APP_INTERNAL_BASE_URL, which defaults to http://local for in-process
    ASGITransport hops.
    """
    import httpx
    from httpx import ASGITransport
    base = (os.getenv("APP_INTERNAL_BASE_URL", "") or "").strip() or "http://local"
    origin = base.rstrip("/") or "http://local"
    return httpx.AsyncClient(transport=ASGITransport(app=app), base_url=base, headers={"Origin": origin})

# --- Module Pages -----------------------------------------------------------------

def _render_module_placeholder(entry: RouteEntry) -> str:
    return f"""
    <section class="card module-placeholder">
        <p>{Component.escape(entry.description)}</p>
        <p class="text-muted">This module is not available yet.</p>
    </section>
    """

def _make_module_page(entry: RouteEntry):
    async def module_page(request: Request):
        layout = _page_layout(request, entry.title, _render_module_placeholder(entry))
        return _layout_response(request, layout)
    module_page.__name__ = "module_page_" + (entry.path.strip("/").replace("/", "_").replace("-", "_") or "home")
    return module_page

# Pages with their own handlers below; every other HTML route renders a placeholder.
_DEDICATED_PAGES = {
    "/admin-dashboard",
    "/admin/feature-permissions",
    "/admin/feature-permissions/toggle",
    "/teachers",
    "/teachers/{teacher_id}/features",
    "/teachers/{teacher_id}/features/toggle",
}

for _entry in ROUTE_TABLE.values():
    if _entry.path in _DEDICATED_PAGES or _entry.path.startswith("/api/"):
        continue
    app.add_api_route(_entry.path, _make_module_page(_entry), methods=["GET"], response_class=HTMLResponse)

# --- Admin: Center Feature Permissions ------------------------------------------

def _load_center_matrix(notice: str | None = None) -> CenterFeatureMatrix:
    """Build the matrix from stored rows only (no optimistic state)."""
    try:
        centers = access_wiring.FLAG_CACHE.list_tenants()
        flags = access_wiring.FLAG_CACHE.list_flags()
    except Exception as exc:
        logger.warning("Loading feature matrix failed: %s", exc.__class__.__name__)
        return CenterFeatureMatrix([], {}, notice="Centers could not be loaded.")
    grouped: Dict[str, list] = {}
    for flag in flags:
        grouped.setdefault(flag.center_id, []).append(flag)
    flags_by_center = {cid: FlagSet.from_flags(rows) for cid, rows in grouped.items()}
    return CenterFeatureMatrix(centers, flags_by_center, notice=notice)

def _render_admin_overview(centers: list, disabled: Dict[str, int]) -> str:
    if not centers:
        return '<section class="card"><p class="text-muted">No centers yet.</p></section>'
    rows = "".join(
        f"<tr><th scope=\"row\">{Component.escape(c.name)}</th><td>{disabled.get(c.id, 0)}</td></tr>"
        for c in centers
    )
    return f"""
    <section class="card">
        <table class="admin-overview">
            <thead><tr><th scope="col">Center</th><th scope="col">Disabled features</th></tr></thead>
            <tbody>{rows}</tbody>
        </table>
        <p><a href="/admin/feature-permissions" hx-get="/admin/feature-permissions" hx-target="#main-content" hx-push-url="true">Manage feature permissions</a></p>
    </section>
    """

@app.get("/admin-dashboard", response_class=HTMLResponse)
async def admin_dashboard(request: Request):
    try:
        centers = access_wiring.FLAG_CACHE.list_tenants()
        flags = access_wiring.FLAG_CACHE.list_flags()
    except Exception as exc:
        logger.warning("Loading admin overview failed: %s", exc.__class__.__name__)
        centers, flags = [], []
    disabled: Dict[str, int] = {}
    for flag in flags:
        if not flag.is_enabled:
            disabled[flag.center_id] = disabled.get(flag.center_id, 0) + 1
    layout = _page_layout(request, "Admin Dashboard", _render_admin_overview(centers, disabled))
    return _layout_response(request, layout)

@app.get("/admin/feature-permissions", response_class=HTMLResponse)
async def admin_feature_permissions(request: Request):
    """Center x feature toggle grid. Admin only (route table)."""
    intro = '<p class="text-muted">Features without a stored setting are enabled.</p>'
    layout = _page_layout(request, "Feature Permissions", _notice_banner(request) + intro + _load_center_matrix().render())
    return _layout_response(request, layout)

@app.post("/admin/feature-permissions/toggle", response_class=HTMLResponse)
async def admin_feature_permissions_toggle(request: Request):
    """Toggle one center feature through the privileged function.

    Behavior:
        - Same-origin check (CSRF) before anything else.
        - The write goes to `/functions/v1/admin-toggle-center-feature` with
          the caller's own bearer token; the function decides.
        - HTMX: returns the matrix re-rendered from stored state plus an
          `HX-Trigger: showMessage` toast (success or error). On failure the
          prior state is therefore shown unchanged.
        - Full page: PRG back to the panel with `?notice=<outcome>`, shown
          there as a banner.
    """
    if not _is_same_origin(request):
        return HTMLResponse(content="CSRF Error", status_code=403)
    form = await request.form()
    payload = {
        "centerId": str(form.get("center_id") or ""),
        "featureName": str(form.get("feature_name") or ""),
        "isEnabled": str(form.get("is_enabled") or "").strip().lower() == "true",
    }
    store = request.state.session_store
    try:
        async with _internal_api_client() as client:
            await call_toggle_function(
                client, "/functions/v1/admin-toggle-center-feature",
                access_token=store.access_token, payload=payload,
            )
        toast, notice = _toast("Feature permission updated.", "success"), "updated"
    except MutationError as exc:
        logger.info("Center feature toggle failed: %s", exc.kind)
        toast, notice = _toast(exc.message, "error"), exc.kind

    if "HX-Request" not in request.headers:
        return RedirectResponse(url=_notice_url("/admin/feature-permissions", notice), status_code=303)
    headers = _private_no_store()
    headers["HX-Trigger"] = toast
    return HTMLResponse(_load_center_matrix().render(), headers=headers)

# --- Center Staff: Teacher Feature Permissions ------------------------------------

def _visible_teacher(identity: Identity, teacher_id: str):
    """Return the teacher if the caller may manage it (own center, or admin)."""
    try:
        teacher = access_wiring.get_repo().get_teacher(teacher_id)
    except Exception as exc:
        logger.warning("Teacher lookup failed: %s", exc.__class__.__name__)
        return None
    if teacher is None:
        return None
    if identity.role is not Role.ADMIN and teacher.center_id != identity.center_id:
        return None
    return teacher

def _teacher_not_found(request: Request) -> HTMLResponse:
    content = '<section class="card"><p>Teacher not found.</p></section>'
    return _layout_response(request, _page_layout(request, "Teacher Features", content), status_code=404)

@app.get("/teachers", response_class=HTMLResponse)
async def teachers_index(request: Request):
    identity = _current_identity(request)
    repo = access_wiring.get_repo()
    try:
        if identity.center_id:
            teachers = repo.list_teachers(center_id=identity.center_id)
        else:
            teachers = [t for c in repo.list_centers() for t in repo.list_teachers(center_id=c.id)]
    except Exception as exc:
        logger.warning("Listing teachers failed: %s", exc.__class__.__name__)
        teachers = []
    layout = _page_layout(request, "Teachers", TeacherTable(teachers).render())
    return _layout_response(request, layout)

@app.get("/teachers/{teacher_id}/features", response_class=HTMLResponse)
async def teacher_features_page(request: Request, teacher_id: str):
    """Teacher feature toggles for center staff of the teacher's own center."""
    teacher = _visible_teacher(_current_identity(request), teacher_id)
    if teacher is None:
        return _teacher_not_found(request)
    panel = TeacherFeatureList(teacher, access_wiring.FLAG_CACHE.teacher_flags(teacher.id))
    layout = _page_layout(request, "Teacher Features", _notice_banner(request) + panel.render())
    return _layout_response(request, layout)

@app.post("/teachers/{teacher_id}/features/toggle", response_class=HTMLResponse)
async def teacher_features_toggle(request: Request, teacher_id: str):
    """Toggle one teacher feature via `/functions/v1/center-toggle-teacher-feature`.

    Same contract as the admin toggle: stored state is re-rendered and the
    outcome is reported through an `HX-Trigger` toast.
    """
    if not _is_same_origin(request):
        return HTMLResponse(content="CSRF Error", status_code=403)
    identity = _current_identity(request)
    teacher = _visible_teacher(identity, teacher_id)
    if teacher is None:
        return _teacher_not_found(request)
    form = await request.form()
    payload = {
        "teacherId": teacher.id,
        "featureName": str(form.get("feature_name") or ""),
        "isEnabled": str(form.get("is_enabled") or "").strip().lower() == "true",
    }
    store = request.state.session_store
    try:
        async with _internal_api_client() as client:
            await call_toggle_function(
                client, "/functions/v1/center-toggle-teacher-feature",
                access_token=store.access_token, payload=payload,
            )
        toast, notice = _toast("Teacher feature updated.", "success"), "updated"
    except MutationError as exc:
        logger.info("Teacher feature toggle failed: %s", exc.kind)
        toast, notice = _toast(exc.message, "error"), exc.kind

    if "HX-Request" not in request.headers:
        return RedirectResponse(url=_notice_url(f"/teachers/{teacher.id}/features", notice), status_code=303)
    headers = _private_no_store()
    headers["HX-Trigger"] = toast
    panel = TeacherFeatureList(teacher, access_wiring.FLAG_CACHE.teacher_flags(teacher.id))
    return HTMLResponse(panel.render(), headers=headers)

# --- Other Routes & App Includes -----------------------------------------------

app.include_router(auth_router)
app.include_router(admin_router)
app.include_router(functions_router)

@app.get("/health")
async def health_check():
    # Minimal health endpoint used by orchestrators and tests.
    # Security: include no-store to avoid caching any runtime status.
    return JSONResponse({"status": "healthy"}, headers=_private_no_store())

@app.get("/api/me")
async def get_me(request: Request):
    """Identity of the caller plus effective permissions.

    `center_features` maps every center feature to its effective value for the
    caller's center (null for admins); `teacher_features` likewise for teachers.
    """
    store = request.state.session_store
    identity = store.get_session().identity
    body: Dict[str, Any] = identity.to_dict()
    body["expires_at"] = (
        datetime.fromtimestamp(store.expires_at, tz=timezone.utc).isoformat(timespec="seconds")
        if store.expires_at
        else None
    )
    body["center_features"] = None
    body["teacher_features"] = None
    if identity.center_id:
        flags = _center_flags(identity.center_id)
        body["center_features"] = {f.value: flags.is_enabled(f.value) for f in CenterFeature}
    if identity.role is Role.TEACHER and identity.teacher_id:
        flags = _teacher_flags(identity.teacher_id)
        body["teacher_features"] = {f.value: flags.is_enabled(f.value) for f in TeacherFeature}
    return JSONResponse(body, headers=_private_no_store())
