"""
Fixed feature sets that can be toggled per center and per teacher.

Why: Feature names are stored as plain text in the permission tables. Keeping
the closed set in one place lets the resolver treat unknown names as "not
governed" and lets the admin panels render the same grid order everywhere.
"""
from __future__ import annotations

from enum import Enum
from typing import Optional


class CenterFeature(str, Enum):
    REGISTER_STUDENT = "register_student"
    TAKE_ATTENDANCE = "take_attendance"
    ATTENDANCE_SUMMARY = "attendance_summary"
    LESSON_PLANS = "lesson_plans"
    LESSON_TRACKING = "lesson_tracking"
    HOMEWORK = "homework"
    ACTIVITIES = "activities"
    DISCIPLINE = "discipline"
    TEACHERS = "teachers"
    TEACHER_ATTENDANCE = "teacher_attendance"
    TESTS = "tests"
    STUDENT_REPORT = "student_report"
    AI_INSIGHTS = "ai_insights"
    VIEW_RECORDS = "view_records"
    SUMMARY = "summary"
    FINANCE = "finance"


class TeacherFeature(str, Enum):
    TAKE_ATTENDANCE = "take_attendance"
    LESSON_TRACKING = "lesson_tracking"
    HOMEWORK_MANAGEMENT = "homework_management"
    PRESCHOOL_ACTIVITIES = "preschool_activities"
    DISCIPLINE_ISSUES = "discipline_issues"
    TEST_MANAGEMENT = "test_management"
    STUDENT_REPORT_ACCESS = "student_report_access"


CENTER_FEATURE_LABELS = {
    CenterFeature.REGISTER_STUDENT: "Register Student",
    CenterFeature.TAKE_ATTENDANCE: "Take Attendance",
    CenterFeature.ATTENDANCE_SUMMARY: "Attendance Summary",
    CenterFeature.LESSON_PLANS: "Lesson Plans",
    CenterFeature.LESSON_TRACKING: "Lesson Tracking",
    CenterFeature.HOMEWORK: "Homework",
    CenterFeature.ACTIVITIES: "Activities",
    CenterFeature.DISCIPLINE: "Discipline",
    CenterFeature.TEACHERS: "Teachers",
    CenterFeature.TEACHER_ATTENDANCE: "Teacher Attendance",
    CenterFeature.TESTS: "Tests",
    CenterFeature.STUDENT_REPORT: "Student Report",
    CenterFeature.AI_INSIGHTS: "AI Insights",
    CenterFeature.VIEW_RECORDS: "View Records",
    CenterFeature.SUMMARY: "Summary",
    CenterFeature.FINANCE: "Finance",
}

TEACHER_FEATURE_LABELS = {
    TeacherFeature.TAKE_ATTENDANCE: "Take Attendance",
    TeacherFeature.LESSON_TRACKING: "Lesson Tracking",
    TeacherFeature.HOMEWORK_MANAGEMENT: "Homework Management",
    TeacherFeature.PRESCHOOL_ACTIVITIES: "Preschool Activities",
    TeacherFeature.DISCIPLINE_ISSUES: "Discipline Issues",
    TeacherFeature.TEST_MANAGEMENT: "Test Management",
    TeacherFeature.STUDENT_REPORT_ACCESS: "Student Report Access",
}


def parse_center_feature(value: object) -> Optional[CenterFeature]:
    if isinstance(value, CenterFeature):
        return value
    try:
        return CenterFeature(str(value))
    except ValueError:
        return None


def parse_teacher_feature(value: object) -> Optional[TeacherFeature]:
    if isinstance(value, TeacherFeature):
        return value
    try:
        return TeacherFeature(str(value))
    except ValueError:
        return None
