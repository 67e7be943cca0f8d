"""
Login form component for the portal sign-in pages.
"""

from typing import Optional

from .base import Component


class LoginForm(Component):
    def __init__(
        self,
        action: str,
        *,
        heading: str,
        username: str = "",
        error: Optional[str] = None,
        redirect: Optional[str] = None,
    ):
        self.action = action
        self.heading = heading
        self.username = username
        self.error = error
        self.redirect = redirect

    def render(self) -> str:
        error_html = (
            f'<div class="alert alert-error" role="alert">{self.escape(self.error)}</div>'
            if self.error
            else ""
        )
        redirect_html = (
            f'<input type="hidden" name="redirect" value="{self.escape(self.redirect)}">'
            if self.redirect
            else ""
        )
        form_attrs = self.attributes(
            method="post",
            action=self.action,
            hx_post=self.action,
            hx_target="#login-card",
            hx_swap="outerHTML",
            class_="form login-form",
        )
        return f"""
<section class="card login-card" id="login-card">
    <h2>{self.escape(self.heading)}</h2>
    {error_html}
    <form {form_attrs}>
        {redirect_html}
        <label for="username">Username or email</label>
        <input id="username" name="username" type="text" autocomplete="username" required value="{self.escape(self.username)}">
        <label for="password">Password</label>
        <input id="password" name="password" type="password" autocomplete="current-password" required>
        <button type="submit" class="button button--primary">Sign in</button>
    </form>
</section>"""
