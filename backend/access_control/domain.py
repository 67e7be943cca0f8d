"""
Access-control domain: tenants, teachers and feature flags.

Invariants:
- A flag always has both key fields non-empty.
- A missing flag row means "enabled" (default-allow); only an explicit
  `is_enabled = false` row disables a feature.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, Mapping, Optional


@dataclass(frozen=True)
class Center:
    id: str
    name: str

    def to_dict(self) -> dict:
        return {"id": self.id, "center_name": self.name}


@dataclass(frozen=True)
class Teacher:
    id: str
    center_id: str
    name: str

    def to_dict(self) -> dict:
        return {"id": self.id, "center_id": self.center_id, "name": self.name}


@dataclass(frozen=True)
class FeatureFlag:
    center_id: str
    feature_name: str
    is_enabled: bool = True

    def __post_init__(self) -> None:
        if not (self.center_id or "").strip():
            raise ValueError("center_id_missing")
        if not (self.feature_name or "").strip():
            raise ValueError("feature_name_missing")

    def to_dict(self) -> dict:
        return {"center_id": self.center_id, "feature_name": self.feature_name, "is_enabled": self.is_enabled}


@dataclass(frozen=True)
class TeacherFeatureFlag:
    teacher_id: str
    feature_name: str
    is_enabled: bool = True

    def __post_init__(self) -> None:
        if not (self.teacher_id or "").strip():
            raise ValueError("teacher_id_missing")
        if not (self.feature_name or "").strip():
            raise ValueError("feature_name_missing")

    def to_dict(self) -> dict:
        return {"teacher_id": self.teacher_id, "feature_name": self.feature_name, "is_enabled": self.is_enabled}


@dataclass(frozen=True)
class FlagSet:
    """Flags of one center (or one teacher) keyed by feature name.

    `degraded` marks a set produced by a failed fetch; it behaves like an empty
    set (everything enabled) but must not be cached.
    """

    values: Mapping[str, bool] = field(default_factory=dict)
    degraded: bool = False

    @classmethod
    def from_flags(cls, flags: Iterable[FeatureFlag | TeacherFeatureFlag]) -> "FlagSet":
        values: Dict[str, bool] = {}
        for flag in flags:
            values[flag.feature_name] = bool(flag.is_enabled)
        return cls(values=values)

    def is_enabled(self, feature_name: str) -> bool:
        return self.values.get(feature_name, True)

    def row(self, feature_name: str) -> Optional[bool]:
        return self.values.get(feature_name)


EMPTY_FLAGS = FlagSet()


__all__ = ["Center", "Teacher", "FeatureFlag", "TeacherFeatureFlag", "FlagSet", "EMPTY_FLAGS"]
