"""
Static route table: every protected path with its title and requirement.

Why:
- One declaration per path. The guard, the navigation and the page titles all
  read this table, so a page cannot be linked without also being guarded.
- Home routes never carry a feature requirement: a denial always redirects to
  the role's home, which therefore cannot be denied for a feature in turn.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from identity_access.domain import Role

from .features import CenterFeature, TeacherFeature


@dataclass(frozen=True)
class RouteRequirement:
    """`role=None` means any authenticated role."""

    role: Optional[Role] = None
    center_feature: Optional[CenterFeature] = None
    teacher_feature: Optional[TeacherFeature] = None


ANY_AUTHENTICATED = RouteRequirement()


@dataclass(frozen=True)
class RouteEntry:
    path: str
    title: str
    requirement: RouteRequirement
    description: str = ""
    in_nav: bool = True

    @property
    def is_template(self) -> bool:
        return "{" in self.path


def _center(path: str, title: str, feature: Optional[CenterFeature], description: str, **kw) -> RouteEntry:
    return RouteEntry(path, title, RouteRequirement(Role.CENTER_STAFF, center_feature=feature), description, **kw)


def _teacher(path: str, title: str, feature: Optional[TeacherFeature], description: str, **kw) -> RouteEntry:
    return RouteEntry(path, title, RouteRequirement(Role.TEACHER, teacher_feature=feature), description, **kw)


_ENTRIES: Tuple[RouteEntry, ...] = (
    # Center staff
    _center("/", "Dashboard", None, "Today at a glance for your center."),
    _center("/register", "Register Student", CenterFeature.REGISTER_STUDENT, "Enroll new students."),
    _center("/attendance", "Take Attendance", CenterFeature.TAKE_ATTENDANCE, "Mark today's attendance."),
    _center("/attendance-summary", "Attendance Summary", CenterFeature.ATTENDANCE_SUMMARY, "Attendance by class and month."),
    _center("/lesson-plans", "Lesson Plans", CenterFeature.LESSON_PLANS, "Plan lessons per class."),
    _center("/lesson-tracking", "Lesson Tracking", CenterFeature.LESSON_TRACKING, "Track chapters taught."),
    _center("/homework", "Homework", CenterFeature.HOMEWORK, "Assign and review homework."),
    _center("/activities", "Activities", CenterFeature.ACTIVITIES, "Preschool activities and events."),
    _center("/discipline", "Discipline", CenterFeature.DISCIPLINE, "Record discipline issues."),
    _center("/teachers", "Teachers", CenterFeature.TEACHERS, "Manage teachers and their features."),
    _center(
        "/teachers/{teacher_id}/features",
        "Teacher Features",
        CenterFeature.TEACHERS,
        "Enable or disable features for a teacher.",
        in_nav=False,
    ),
    _center(
        "/teachers/{teacher_id}/features/toggle",
        "Toggle Teacher Feature",
        CenterFeature.TEACHERS,
        "",
        in_nav=False,
    ),
    _center("/teacher-attendance", "Teacher Attendance", CenterFeature.TEACHER_ATTENDANCE, "Teacher check-in records."),
    _center("/tests", "Tests", CenterFeature.TESTS, "Tests and results."),
    _center("/student-report", "Student Report", CenterFeature.STUDENT_REPORT, "Per-student report."),
    _center("/ai-insights", "AI Insights", CenterFeature.AI_INSIGHTS, "Generated insights for your center."),
    _center("/records", "View Records", CenterFeature.VIEW_RECORDS, "Browse student records."),
    _center("/summary", "Summary", CenterFeature.SUMMARY, "Monthly summary."),
    _center("/finance", "Finance", CenterFeature.FINANCE, "Fees, invoices and expenses."),
    # Teachers
    _teacher("/teacher", "Teacher Dashboard", None, "Your classes today."),
    _teacher("/teacher/attendance", "Take Attendance", TeacherFeature.TAKE_ATTENDANCE, "Mark attendance for your class."),
    _teacher("/teacher/lesson-tracking", "Lesson Tracking", TeacherFeature.LESSON_TRACKING, "Track chapters taught."),
    _teacher("/teacher/homework", "Homework", TeacherFeature.HOMEWORK_MANAGEMENT, "Assign and review homework."),
    _teacher("/teacher/activities", "Activities", TeacherFeature.PRESCHOOL_ACTIVITIES, "Preschool activities."),
    _teacher("/teacher/discipline", "Discipline", TeacherFeature.DISCIPLINE_ISSUES, "Record discipline issues."),
    _teacher("/teacher/tests", "Tests", TeacherFeature.TEST_MANAGEMENT, "Tests and results."),
    _teacher("/teacher/student-report", "Student Report", TeacherFeature.STUDENT_REPORT_ACCESS, "Per-student report."),
    # Admin
    RouteEntry("/admin-dashboard", "Admin Dashboard", RouteRequirement(Role.ADMIN), "All centers at a glance."),
    RouteEntry("/admin/feature-permissions", "Feature Permissions", RouteRequirement(Role.ADMIN), "Enable or disable features per center."),
    RouteEntry("/admin/feature-permissions/toggle", "Toggle Center Feature", RouteRequirement(Role.ADMIN), in_nav=False),
    RouteEntry("/admin/finance", "Finance", RouteRequirement(Role.ADMIN), "Finance across centers."),
    RouteEntry("/admin/settings", "Settings", RouteRequirement(Role.ADMIN), "Application settings."),
    # Parents
    RouteEntry("/parent-dashboard", "Parent Dashboard", RouteRequirement(Role.PARENT), "Your child's day."),
    RouteEntry("/parent-finance", "Fees", RouteRequirement(Role.PARENT), "Invoices and payments."),
    # JSON API
    RouteEntry("/api/me", "Me", ANY_AUTHENTICATED, in_nav=False),
    RouteEntry("/api/admin/centers", "Centers", RouteRequirement(Role.ADMIN), in_nav=False),
    RouteEntry("/api/admin/feature-flags", "Feature Flags", RouteRequirement(Role.ADMIN), in_nav=False),
)


def _build_table(entries: Tuple[RouteEntry, ...]) -> Dict[str, RouteEntry]:
    table: Dict[str, RouteEntry] = {}
    for entry in entries:
        if entry.path in table:
            raise ValueError(f"duplicate route: {entry.path}")
        table[entry.path] = entry
    return table


ROUTE_TABLE: Dict[str, RouteEntry] = _build_table(_ENTRIES)

LOGIN_ROUTES = ("/login", "/login-admin", "/login-parent")

# Paths starting with a prefix send unauthenticated users to that login page.
_LOGIN_PREFIXES: Tuple[Tuple[str, str], ...] = (("/parent", "/login-parent"),)
DEFAULT_LOGIN_ROUTE = "/login"

HOME_ROUTES: Dict[Role, str] = {
    Role.ADMIN: "/admin-dashboard",
    Role.CENTER_STAFF: "/",
    Role.TEACHER: "/teacher",
    Role.PARENT: "/parent-dashboard",
}

# Portal pages and the role they sign in.
PORTAL_ROLES: Dict[str, Optional[Role]] = {
    "/login": None,
    "/login-admin": Role.ADMIN,
    "/login-parent": Role.PARENT,
}


def login_route_for(path: str) -> str:
    """Return the login page for an unauthenticated request, by path prefix only."""
    for prefix, login in _LOGIN_PREFIXES:
        if path == prefix or path.startswith(prefix):
            return login
    return DEFAULT_LOGIN_ROUTE


def home_route_for(role: Role) -> str:
    return HOME_ROUTES[role]


def _match_template(template: str, path: str) -> bool:
    t_parts = template.strip("/").split("/")
    p_parts = path.strip("/").split("/")
    if len(t_parts) != len(p_parts):
        return False
    for t, p in zip(t_parts, p_parts):
        if t.startswith("{") and t.endswith("}"):
            if not p:
                return False
            continue
        if t != p:
            return False
    return True


def route_for(path: str) -> Optional[RouteEntry]:
    """Return the table entry for a concrete path, if any."""
    normalized = path if path == "/" else path.rstrip("/")
    entry = ROUTE_TABLE.get(normalized)
    if entry is not None:
        return entry
    for candidate in ROUTE_TABLE.values():
        if candidate.is_template and _match_template(candidate.path, normalized):
            return candidate
    return None


def requirement_for(path: str) -> Optional[RouteRequirement]:
    entry = route_for(path)
    return entry.requirement if entry else None


def nav_entries_for(role: Role) -> list[RouteEntry]:
    """Navigation entries for a role, in table order (admin sees admin pages only)."""
    return [
        e for e in ROUTE_TABLE.values()
        if e.in_nav and e.requirement.role is role
    ]


def _check_home_routes() -> None:
    for home in HOME_ROUTES.values():
        req = requirement_for(home)
        if req is None or req.center_feature or req.teacher_feature:
            raise ValueError(f"home route must exist without a feature requirement: {home}")


_check_home_routes()
