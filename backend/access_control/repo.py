"""
In-memory access-control repository (dev and tests).

Mirrors the Postgres repository's method surface so the web layer can swap
implementations with `access_wiring.set_repo()`.
"""
from __future__ import annotations

from typing import Dict, List, Optional, Tuple
from uuid import uuid4

from .domain import Center, FeatureFlag, Teacher, TeacherFeatureFlag
from .features import parse_center_feature, parse_teacher_feature


class AccessRepo:
    def __init__(self) -> None:
        self.centers: Dict[str, Center] = {}
        self.teachers: Dict[str, Teacher] = {}
        self.center_flags: Dict[Tuple[str, str], bool] = {}
        self.teacher_flags: Dict[Tuple[str, str], bool] = {}

    # --- Seeding ---------------------------------------------------------
    def add_center(self, name: str, *, center_id: Optional[str] = None) -> Center:
        center = Center(id=center_id or str(uuid4()), name=name)
        self.centers[center.id] = center
        return center

    def add_teacher(self, center_id: str, name: str, *, teacher_id: Optional[str] = None) -> Teacher:
        if center_id not in self.centers:
            raise LookupError("center_not_found")
        teacher = Teacher(id=teacher_id or str(uuid4()), center_id=center_id, name=name)
        self.teachers[teacher.id] = teacher
        return teacher

    # --- Tenants ---------------------------------------------------------
    def list_centers(self) -> List[Center]:
        return sorted(self.centers.values(), key=lambda c: (c.name.lower(), c.id))

    def get_center(self, center_id: str) -> Optional[Center]:
        return self.centers.get(center_id)

    def list_teachers(self, *, center_id: str) -> List[Teacher]:
        return sorted(
            (t for t in self.teachers.values() if t.center_id == center_id),
            key=lambda t: (t.name.lower(), t.id),
        )

    def get_teacher(self, teacher_id: str) -> Optional[Teacher]:
        return self.teachers.get(teacher_id)

    # --- Flags -----------------------------------------------------------
    def list_center_flags(self, *, center_id: Optional[str] = None) -> List[FeatureFlag]:
        return [
            FeatureFlag(center_id=cid, feature_name=name, is_enabled=enabled)
            for (cid, name), enabled in sorted(self.center_flags.items())
            if center_id is None or cid == center_id
        ]

    def list_teacher_flags(self, *, teacher_id: str) -> List[TeacherFeatureFlag]:
        return [
            TeacherFeatureFlag(teacher_id=tid, feature_name=name, is_enabled=enabled)
            for (tid, name), enabled in sorted(self.teacher_flags.items())
            if tid == teacher_id
        ]

    def upsert_center_flag(self, *, center_id: str, feature_name: str, is_enabled: bool) -> FeatureFlag:
        if parse_center_feature(feature_name) is None:
            raise ValueError("invalid_feature")
        if center_id not in self.centers:
            raise LookupError("center_not_found")
        self.center_flags[(center_id, feature_name)] = bool(is_enabled)
        return FeatureFlag(center_id=center_id, feature_name=feature_name, is_enabled=bool(is_enabled))

    def upsert_teacher_flag(self, *, teacher_id: str, feature_name: str, is_enabled: bool) -> TeacherFeatureFlag:
        if parse_teacher_feature(feature_name) is None:
            raise ValueError("invalid_feature")
        if teacher_id not in self.teachers:
            raise LookupError("teacher_not_found")
        self.teacher_flags[(teacher_id, feature_name)] = bool(is_enabled)
        return TeacherFeatureFlag(teacher_id=teacher_id, feature_name=feature_name, is_enabled=bool(is_enabled))
