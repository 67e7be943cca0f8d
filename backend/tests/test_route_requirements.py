"""
Static route table: lookups, login routing and home routes.
"""
from __future__ import annotations

from access_control.features import CenterFeature, TeacherFeature
from access_control.requirements import (
    HOME_ROUTES,
    ROUTE_TABLE,
    home_route_for,
    login_route_for,
    nav_entries_for,
    requirement_for,
    route_for,
)
from identity_access.domain import Role


def test_every_center_feature_guards_a_center_page():
    guarded = {e.requirement.center_feature for e in ROUTE_TABLE.values() if e.requirement.center_feature}
    assert guarded == set(CenterFeature)


def test_every_teacher_feature_guards_a_teacher_page():
    guarded = {e.requirement.teacher_feature for e in ROUTE_TABLE.values() if e.requirement.teacher_feature}
    assert guarded == set(TeacherFeature)


def test_home_routes_have_no_feature_requirement():
    for role, home in HOME_ROUTES.items():
        req = requirement_for(home)
        assert req is not None and req.role is role
        assert req.center_feature is None and req.teacher_feature is None


def test_home_route_for_each_role():
    assert home_route_for(Role.ADMIN) == "/admin-dashboard"
    assert home_route_for(Role.CENTER_STAFF) == "/"
    assert home_route_for(Role.TEACHER) == "/teacher"
    assert home_route_for(Role.PARENT) == "/parent-dashboard"


def test_login_route_is_chosen_by_path_prefix():
    assert login_route_for("/parent-dashboard") == "/login-parent"
    assert login_route_for("/parent-finance") == "/login-parent"
    assert login_route_for("/admin-dashboard") == "/login"
    assert login_route_for("/teacher/homework") == "/login"
    assert login_route_for("/") == "/login"


def test_route_for_matches_templates_and_trailing_slash():
    entry = route_for("/teachers/abc/features")
    assert entry is not None and entry.path == "/teachers/{teacher_id}/features"
    assert route_for("/finance/").path == "/finance"
    assert route_for("/teachers//features") is None
    assert route_for("/does-not-exist") is None


def test_nav_entries_are_role_specific_and_skip_hidden_pages():
    admin_paths = [e.path for e in nav_entries_for(Role.ADMIN)]
    assert admin_paths[0] == "/admin-dashboard"
    assert "/admin/feature-permissions/toggle" not in admin_paths
    assert "/" not in admin_paths

    staff_paths = [e.path for e in nav_entries_for(Role.CENTER_STAFF)]
    assert "/finance" in staff_paths and "/teachers" in staff_paths
    assert all("{" not in p for p in staff_paths)

    parent_paths = [e.path for e in nav_entries_for(Role.PARENT)]
    assert parent_paths == ["/parent-dashboard", "/parent-finance"]
