"""
Navigation component for School ERP.

Renders the sidebar for the signed-in role. The caller passes the already
filtered entries (role and feature flags applied), so hiding a link here is
purely cosmetic; the route guard still enforces access on every request.
"""

from typing import Any, Dict, List, Optional, Tuple

from .base import Component

NavItem = Tuple[str, str]  # (href, label)

_ROLE_LABELS = {
    "admin": "Administrator",
    "center_staff": "Center Staff",
    "teacher": "Teacher",
    "parent": "Parent",
}


class Navigation(Component):
    """Role-aware sidebar with HTMX links."""

    def __init__(
        self,
        user: Optional[Dict[str, Any]] = None,
        current_path: str = "/",
        items: Optional[List[NavItem]] = None,
    ):
        self.user = user
        self.current_path = current_path
        self.items = list(items or [])

    def render(self) -> str:
        return f"""
    <button class="sidebar-toggle" data-action="sidebar-toggle" aria-label="Toggle navigation">
        <span class="sidebar-toggle-icon">&#9776;</span>
    </button>
    {self.render_aside()}
    <div class="sidebar-overlay" data-action="sidebar-close"></div>"""

    def render_aside(self, oob: bool = False) -> str:
        """Render only the <aside> element (used for HTMX out-of-band swaps)."""
        oob_attr = ' hx-swap-oob="true"' if oob else ""
        if not self.user:
            links = self._link("/login", "Sign in", active=self.current_path == "/login")
            footer = ""
        else:
            active = self._active_href()
            links = "".join(self._link(href, label, active=href == active) for href, label in self.items)
            links += self._render_logout()
            footer = self._render_user()
        return f"""
    <aside class="sidebar" id="sidebar" aria-label="Sidebar"{oob_attr}>
        <nav class="sidebar-nav" role="navigation" aria-label="Main navigation">
            <div class="sidebar-header">
                <span class="sidebar-title">School ERP</span>
            </div>
            <div class="sidebar-items">{links}</div>
            {footer}
        </nav>
    </aside>"""

    def _active_href(self) -> Optional[str]:
        """Best prefix match, so `/teachers/t1/features` highlights `/teachers`."""
        path = self.current_path or "/"
        best: Optional[str] = None
        for href, _label in self.items:
            if href == path:
                return href
            if href != "/" and path.startswith(href + "/") and (best is None or len(href) > len(best)):
                best = href
        return best

    def _link(self, href: str, label: str, *, active: bool) -> str:
        attrs = self.attributes(
            href=href,
            hx_get=href,
            hx_target="#main-content",
            hx_push_url="true",
            class_=self.classes("sidebar-link", active=active),
            aria_current="page" if active else None,
        )
        return f'\n        <a {attrs}><span class="nav-text">{self.escape(label)}</span></a>'

    def _render_logout(self) -> str:
        # Full-page POST so the session cookie is cleared on a normal navigation.
        return """
        <form method="post" action="/auth/logout" class="sidebar-logout">
            <button type="submit" class="sidebar-link">Sign out</button>
        </form>"""

    def _render_user(self) -> str:
        data = self.user or {}
        role = _ROLE_LABELS.get(str(data.get("role", "")), "User")
        return f"""
            <div class="sidebar-footer">
                <div class="user-name">{self.escape(data.get("name", ""))}</div>
                <div class="user-role">{self.escape(role)}</div>
            </div>"""
