"""
Authentication-related FastAPI routes (router-only module).

Why:
    Keep the portal sign-in pages and sign-out in a dedicated router. The
    session itself is owned by the per-request `SessionStore` that the auth
    middleware in `main.py` builds; these handlers only drive its transitions.
    The middleware writes or clears the session cookie afterwards.

Notes:
    - This module imports `main` inside functions to reuse the layout helper
      without a circular import at module load.
    - Portal pages: `/login` (center staff and teachers), `/login-admin`,
      `/login-parent`. A portal that expects a role rejects identities of any
      other role with the generic invalid-credentials message.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse, Response

from access_control.requirements import PORTAL_ROLES, home_route_for
from components import Layout, LoginForm
from identity_access.domain import Role
from identity_access.keycloak_client import INVALID_CREDENTIALS, NETWORK_ERROR, RATE_LIMITED, AuthError

from .security import _is_same_origin


auth_router = APIRouter(tags=["Auth"])  # explicit paths, no prefix
logger = logging.getLogger("erp.web.auth")

# Single source of truth for allowed in-app redirect paths
# Disallow double slashes and path traversal (".."), allow dots in names
INAPP_PATH_PATTERN = re.compile(r"^(?!.*//)(?!.*\.\.)/[A-Za-z0-9._\-/]*$")
MAX_INAPP_REDIRECT_LEN = 256

_PORTAL_HEADINGS = {
    "/login": "Sign in",
    "/login-admin": "Administrator sign in",
    "/login-parent": "Parent sign in",
}

_LOGOUT_DESTINATIONS = {
    Role.ADMIN: "/login-admin",
    Role.PARENT: "/login-parent",
}

_AUTH_ERROR_STATUS = {
    INVALID_CREDENTIALS: 401,
    RATE_LIMITED: 429,
    NETWORK_ERROR: 503,
}


def _private_no_store() -> dict:
    return {"Cache-Control": "private, no-store"}


def _resolve_active_main(request: Request):
    """Return the active main module whose app matches the request.app.

    Tests may import the app as either `main` or `backend.web.main`. Prefer the
    module whose `app` object is identical to the ASGI app on the request.
    """
    import sys as _sys
    candidates = [m for m in (_sys.modules.get("main"), _sys.modules.get("backend.web.main")) if m]
    for m in candidates:
        if getattr(m, "app", None) is getattr(request, "app", None):
            return m
    if candidates:
        return candidates[0]
    import main as _main  # type: ignore
    return _main


def _is_inapp_path(value: str) -> bool:
    """Return True if value is an absolute in-app path, e.g., "/", "/homework".

    Why:
        Prevent open redirect vulnerabilities by only allowing internal paths
        without scheme/host or query fragments.
    Examples (accepted):
        "/", "/homework", "/teachers/t1/features"
    Examples (rejected):
        "homework" (not absolute), "https://evil.com", "/a?b", "/a#b", "/.."
    """
    if not value or not isinstance(value, str):
        return False
    if len(value) > MAX_INAPP_REDIRECT_LEN:
        return False
    return bool(INAPP_PATH_PATTERN.match(value))


def _safe_redirect(value: object) -> Optional[str]:
    return value if isinstance(value, str) and _is_inapp_path(value) else None


def _redirect(request: Request, location: str) -> Response:
    """303 for full-page requests, HX-Redirect for HTMX."""
    if request.headers.get("HX-Request"):
        headers = _private_no_store()
        headers["HX-Redirect"] = location
        return Response(status_code=200, headers=headers)
    return RedirectResponse(url=location, status_code=303, headers=_private_no_store())


def _render_login(
    request: Request,
    portal: str,
    *,
    username: str = "",
    error: Optional[str] = None,
    redirect: Optional[str] = None,
    status_code: int = 200,
) -> HTMLResponse:
    mod = _resolve_active_main(request)
    heading = _PORTAL_HEADINGS[portal]
    form = LoginForm(portal, heading=heading, username=username, error=error, redirect=redirect)
    if error and request.headers.get("HX-Request"):
        # HTMX swaps only 2xx responses; the form replaces itself.
        return HTMLResponse(form.render(), headers={**_private_no_store(), "HX-Reswap": "outerHTML"})
    others = " · ".join(
        f'<a href="{path}">{LoginForm.escape(label)}</a>'
        for path, label in _PORTAL_HEADINGS.items()
        if path != portal
    )
    content = f'{form.render()}<p class="login-portals text-muted">{others}</p>'
    layout = Layout(title=heading, content=content, user=None, show_nav=False, current_path=portal)
    return mod._layout_response(request, layout, status_code=status_code, headers=_private_no_store())


async def _login_page(request: Request, portal: str, redirect: Optional[str]) -> Response:
    store = getattr(request.state, "session_store", None)
    session = store.get_session() if store is not None else None
    if session is not None and session.is_authenticated:
        return _redirect(request, home_route_for(session.identity.role))
    return _render_login(request, portal, redirect=_safe_redirect(redirect))


async def _login_submit(request: Request, portal: str) -> Response:
    """Check credentials and sign in through the request's session store.

    Behavior:
        - Same-origin check first (CSRF); cross-site posts get 403 JSON.
        - Empty fields re-render the form (400) without calling the IdP.
        - AuthError re-renders the form with a user-facing message; the status
          reflects the kind (401 invalid credentials, 429 rate limited, 503
          network error).
        - Success redirects to the validated `redirect` field or the role's
          home route. The middleware attaches the session cookie.
    """
    if not _is_same_origin(request):
        return JSONResponse({"error": "csrf_violation"}, status_code=403, headers=_private_no_store())
    form = await request.form()
    username = str(form.get("username") or "").strip()
    password = str(form.get("password") or "")
    redirect = _safe_redirect(form.get("redirect"))
    if not username or not password:
        return _render_login(
            request, portal, username=username, redirect=redirect,
            error="Please enter your username and password.", status_code=400,
        )

    store = request.state.session_store
    try:
        identity = store.sign_in(username, password, expected_role=PORTAL_ROLES[portal])
    except AuthError as exc:
        logger.info("Sign-in failed on %s: %s", portal, exc.kind)
        return _render_login(
            request, portal, username=username, redirect=redirect,
            error=exc.message, status_code=_AUTH_ERROR_STATUS.get(exc.kind, 400),
        )
    logger.info("Signed in role %s on %s", identity.role.value, portal)
    return _redirect(request, redirect or home_route_for(identity.role))


@auth_router.get("/login", response_class=HTMLResponse)
async def login_page(request: Request, redirect: str | None = None):
    """Sign-in page for center staff and teachers. Public."""
    return await _login_page(request, "/login", redirect)


@auth_router.get("/login-admin", response_class=HTMLResponse)
async def login_admin_page(request: Request, redirect: str | None = None):
    return await _login_page(request, "/login-admin", redirect)


@auth_router.get("/login-parent", response_class=HTMLResponse)
async def login_parent_page(request: Request, redirect: str | None = None):
    return await _login_page(request, "/login-parent", redirect)


@auth_router.post("/login")
async def login_submit(request: Request):
    return await _login_submit(request, "/login")


@auth_router.post("/login-admin")
async def login_admin_submit(request: Request):
    return await _login_submit(request, "/login-admin")


@auth_router.post("/login-parent")
async def login_parent_submit(request: Request):
    return await _login_submit(request, "/login-parent")


@auth_router.post("/auth/logout")
async def auth_logout(request: Request):
    """
    Sign out: revoke the refresh token, delete the session record and return
    to the portal the user signed in from.

    Behavior:
        - Same-origin check (CSRF); a forged logout is refused with 403.
        - Works without a session too (idempotent), landing on `/login`.
        - The middleware expires the session cookie.
    Permissions:
        Public.
    """
    if not _is_same_origin(request):
        return JSONResponse({"error": "csrf_violation"}, status_code=403, headers=_private_no_store())
    store = request.state.session_store
    session = store.get_session()
    role = session.identity.role if session.is_authenticated else None
    store.sign_out()
    return _redirect(request, _LOGOUT_DESTINATIONS.get(role, "/login"))
