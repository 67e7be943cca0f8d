"""
Role/permission resolver: the single allow/deny decision for every route.

Why:
- Pages never check roles or flags themselves; the guard asks `authorize` once
  per request with the route's static requirement.
- `authorize` is pure so it can be tested exhaustively without a database.

Behavior:
- Role mismatch denies. Admin additionally passes center-staff and admin
  requirements; teacher and parent pages stay closed to admin.
- Center features are looked up in the identity's center flags, teacher
  features in the teacher's own flags. A missing row means enabled; unknown
  feature names are not governed and therefore allowed.
- Flag loading fails open: fetch errors are logged and yield a degraded empty
  set. This keeps a flaky database from locking every center out, at the cost
  of briefly ignoring disabled features.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union
import logging

from identity_access.domain import Identity, Role

from .domain import EMPTY_FLAGS, FlagSet
from .features import parse_center_feature, parse_teacher_feature
from .requirements import RouteRequirement

logger = logging.getLogger("erp.access_control")


class DenyReason(str, Enum):
    WRONG_ROLE = "wrong_role"
    FEATURE_DISABLED = "feature_disabled"
    RESOLVER_ERROR = "resolver_error"


@dataclass(frozen=True)
class Allow:
    allowed = True


@dataclass(frozen=True)
class Deny:
    reason: DenyReason
    allowed = False


Decision = Union[Allow, Deny]

ALLOW = Allow()

_ADMIN_REACHABLE = frozenset({Role.ADMIN, Role.CENTER_STAFF})


def authorize(
    identity: Identity,
    requirement: RouteRequirement,
    center_flags: FlagSet = EMPTY_FLAGS,
    teacher_flags: FlagSet = EMPTY_FLAGS,
) -> Decision:
    """Decide whether `identity` may access a route with `requirement`."""
    if requirement.role is not None and identity.role is not requirement.role:
        if not (identity.is_admin and requirement.role in _ADMIN_REACHABLE):
            return Deny(DenyReason.WRONG_ROLE)

    if requirement.center_feature is not None and identity.center_id:
        feature = parse_center_feature(requirement.center_feature)
        if feature is not None and center_flags.row(feature.value) is False:
            return Deny(DenyReason.FEATURE_DISABLED)

    if requirement.teacher_feature is not None and identity.role is Role.TEACHER and identity.teacher_id:
        feature = parse_teacher_feature(requirement.teacher_feature)
        if feature is not None and teacher_flags.row(feature.value) is False:
            return Deny(DenyReason.FEATURE_DISABLED)

    return ALLOW


def load_center_flags(repo, center_id: Optional[str]) -> FlagSet:
    """Fetch the flags of one center; fail open on any fetch error."""
    if not center_id:
        return EMPTY_FLAGS
    try:
        return FlagSet.from_flags(repo.list_center_flags(center_id=center_id))
    except Exception as exc:
        logger.warning("Center flag fetch failed for center %s: %s", center_id, exc.__class__.__name__)
        return FlagSet(degraded=True)


def load_teacher_flags(repo, teacher_id: Optional[str]) -> FlagSet:
    """Fetch the flags of one teacher; fail open on any fetch error."""
    if not teacher_id:
        return EMPTY_FLAGS
    try:
        return FlagSet.from_flags(repo.list_teacher_flags(teacher_id=teacher_id))
    except Exception as exc:
        logger.warning("Teacher flag fetch failed for teacher %s: %s", teacher_id, exc.__class__.__name__)
        return FlagSet(degraded=True)


__all__ = ["Allow", "Deny", "DenyReason", "Decision", "authorize", "load_center_flags", "load_teacher_flags"]
