"""
Identity domain: role parsing and the Identity value object.
"""
from __future__ import annotations

import pytest

from identity_access.domain import Identity, Role, parse_role, primary_role


def test_parse_role_accepts_known_roles_and_aliases():
    assert parse_role("admin") is Role.ADMIN
    assert parse_role(" Teacher ") is Role.TEACHER
    assert parse_role("center") is Role.CENTER_STAFF
    assert parse_role("center-staff") is Role.CENTER_STAFF
    assert parse_role("center_staff") is Role.CENTER_STAFF


def test_parse_role_rejects_unknown_values():
    assert parse_role("superuser") is None
    assert parse_role("") is None
    assert parse_role(None) is None
    assert parse_role(42) is None


def test_primary_role_prefers_the_most_privileged_role():
    assert primary_role(["offline_access", "teacher", "admin"]) is Role.ADMIN
    assert primary_role(["parent", "center"]) is Role.CENTER_STAFF
    assert primary_role(["uma_authorization"]) is None


def test_identity_requires_an_id():
    with pytest.raises(ValueError):
        Identity(id="", display_name="Nobody", role=Role.PARENT)


def test_identity_is_immutable():
    ident = Identity(id="u1", display_name="Ada", role=Role.ADMIN)
    with pytest.raises(Exception):
        ident.role = Role.PARENT  # type: ignore[misc]


def test_identity_to_dict_exposes_scope_but_no_tokens():
    ident = Identity(id="u1", display_name="Tia", role=Role.TEACHER, center_id="c1", teacher_id="t1")
    assert ident.to_dict() == {
        "sub": "u1",
        "name": "Tia",
        "role": "teacher",
        "center_id": "c1",
        "teacher_id": "t1",
    }
    assert ident.is_admin is False
    assert Identity(id="a", display_name="", role=Role.ADMIN).is_admin is True
