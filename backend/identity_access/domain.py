"""
Identity domain: roles and the authenticated identity.

Why:
- Centralize the closed set of roles so the resolver, the guard and the
  navigation cannot drift apart on role spelling.
- Keep terms aligned with the glossary (center = tenant, center staff = the
  person administering one center).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Role(str, Enum):
    ADMIN = "admin"
    CENTER_STAFF = "center_staff"
    TEACHER = "teacher"
    PARENT = "parent"


# Identity providers and older databases spell center staff as "center".
_ROLE_ALIASES = {
    "center": Role.CENTER_STAFF,
    "center-staff": Role.CENTER_STAFF,
}

ALLOWED_ROLES = frozenset(r.value for r in Role)


def parse_role(value: object) -> Optional[Role]:
    """Return the Role for a raw claim value, or None when it is not a known role."""
    if not isinstance(value, str):
        return None
    raw = value.strip().lower()
    if raw in _ROLE_ALIASES:
        return _ROLE_ALIASES[raw]
    try:
        return Role(raw)
    except ValueError:
        return None


# Priority when a token carries several realm roles.
ROLE_PRIORITY = (Role.ADMIN, Role.CENTER_STAFF, Role.TEACHER, Role.PARENT)


def primary_role(raw_roles: list[str]) -> Optional[Role]:
    parsed = {parse_role(r) for r in raw_roles}
    for role in ROLE_PRIORITY:
        if role in parsed:
            return role
    return None


@dataclass(frozen=True)
class Identity:
    """Who is logged in. Immutable for the lifetime of a session."""

    id: str
    display_name: str
    role: Role
    center_id: Optional[str] = None
    teacher_id: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("identity_id_missing")
        if not isinstance(self.role, Role):
            raise ValueError("identity_role_invalid")

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    def to_dict(self) -> dict:
        return {
            "sub": self.id,
            "name": self.display_name,
            "role": self.role.value,
            "center_id": self.center_id,
            "teacher_id": self.teacher_id,
        }


__all__ = ["Role", "ALLOWED_ROLES", "ROLE_PRIORITY", "Identity", "parse_role", "primary_role"]
