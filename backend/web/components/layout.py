"""
Layout component for School ERP.

Main wrapper that combines navigation and page content into a complete HTML
document, or into an HTMX fragment plus an out-of-band sidebar.
"""

from typing import Any, Dict, List, Optional

from .base import Component
from .navigation import Navigation, NavItem


class Layout(Component):
    def __init__(
        self,
        title: str,
        content: str,
        user: Optional[Dict[str, Any]] = None,
        show_nav: bool = True,
        current_path: str = "/",
        nav_items: Optional[List[NavItem]] = None,
    ):
        """
        Args:
            title: Page title (escaped)
            content: Main content HTML (pre-rendered components)
            user: Current user dict (`sub`, `name`, `role`) or None
            show_nav: Whether to render the sidebar
            current_path: Current URL path for active link highlighting
            nav_items: Visible navigation entries for the user
        """
        self.title = title
        self.content = content
        self.user = user
        self.show_nav = show_nav
        self.current_path = current_path
        self.nav_items = nav_items or []

    def _navigation(self) -> Navigation:
        return Navigation(self.user, self.current_path, self.nav_items)

    def render(self) -> str:
        nav_html = self._navigation().render() if self.show_nav else ""
        return f"""<!DOCTYPE html>
<html lang="en">
<head>
    {self._render_head()}
</head>
<body>
    <a href="#main-content" class="skip-link">Skip to main content</a>
    {nav_html}
    <div id="live-region" class="sr-only" role="status" aria-live="polite" aria-atomic="true"></div>
    <main id="main-content" class="main-content" role="main">
        {self._render_main_inner()}
    </main>
</body>
</html>"""

    def render_fragment(self) -> str:
        """Return the `<main>` children plus a single OOB sidebar for HTMX swaps."""
        main_inner = self._render_main_inner()
        if not self.show_nav:
            return main_inner
        return f"{main_inner}{self._navigation().render_aside(oob=True)}"

    def _render_head(self) -> str:
        return f"""
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{self.escape(self.title)} - School ERP</title>
    <link rel="stylesheet" href="/static/css/erp.css">
    <script src="/static/js/vendor/htmx.min.js"></script>
    <script src="/static/js/erp.js" defer></script>
    """

    def _render_main_inner(self) -> str:
        return f"""
        <h1 class="page-title">{self.escape(self.title)}</h1>
        {self.content}
        """
