"""
Base component class for School ERP UI components.

Pages are rendered from small Python classes instead of templates; every
component escapes user-controlled text through `Component.escape`.
"""

from typing import Any, Optional
import html


class Component:
    """Base class for all server-rendered UI components."""

    def render(self) -> str:
        raise NotImplementedError("Subclasses must implement render()")

    @staticmethod
    def escape(text: Optional[Any]) -> str:
        """Escape HTML entities; None renders as an empty string."""
        return html.escape(str(text)) if text is not None else ""

    @staticmethod
    def classes(*args: str, **conditionals: bool) -> str:
        """Join CSS classes, adding each keyword class whose value is true.

        >>> Component.classes("toggle", on=True, off=False)
        'toggle on'
        """
        names = [a for a in args if a]
        names.extend(key.replace("_", "-") for key, value in conditionals.items() if value)
        return " ".join(names)

    @staticmethod
    def attributes(**attrs: Any) -> str:
        """Build an HTML attribute string.

        `class_` becomes `class`, inner underscores become hyphens
        (`hx_post` -> `hx-post`), True renders a bare attribute and
        False/None are dropped.
        """
        parts = []
        for key, value in attrs.items():
            if key.endswith("_"):
                key = key[:-1]
            else:
                key = key.replace("_", "-")
            if value is True:
                parts.append(key)
            elif value is not False and value is not None:
                parts.append(f'{key}="{html.escape(str(value))}"')
        return " ".join(parts)
