"""
Route guard: turns (path, session) into one of a small set of outcomes.

Why: The web middleware only translates outcomes into HTTP (303, HX-Redirect,
401/403 JSON). Keeping the decision framework-free makes the redirect rules
testable without a running app.

Behavior:
- `loading` session -> Placeholder (no redirect, no content).
- `unauthenticated` -> Redirect to the login page chosen by path prefix.
- `authenticated` -> resolver; Deny -> Redirect to the role's home route,
  Allow -> Render. A resolver error is a Deny (fail closed).
- A denial whose home route is the requested path itself becomes Forbidden,
  so a failing resolver can never produce a redirect loop.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Union
import logging

from identity_access.domain import Identity
from identity_access.session import Session, SessionState

from .domain import EMPTY_FLAGS, FlagSet
from .requirements import ANY_AUTHENTICATED, RouteEntry, home_route_for, login_route_for, route_for
from .resolver import Deny, DenyReason, authorize

logger = logging.getLogger("erp.access_control")


@dataclass(frozen=True)
class Render:
    identity: Identity
    entry: Optional[RouteEntry] = None


@dataclass(frozen=True)
class Placeholder:
    pass


@dataclass(frozen=True)
class Redirect:
    location: str
    reason: str


@dataclass(frozen=True)
class Forbidden:
    reason: str


GuardOutcome = Union[Render, Placeholder, Redirect, Forbidden]

FlagLoader = Callable[[Optional[str]], FlagSet]


def _no_flags(_key: Optional[str]) -> FlagSet:
    return EMPTY_FLAGS


class RouteGuard:
    """Evaluate protected requests against the static route table.

    Parameters
    ----------
    center_flags / teacher_flags:
        Callables returning the flag set for a center or teacher id (usually
        backed by `FlagCache`).
    """

    def __init__(self, *, center_flags: FlagLoader = _no_flags, teacher_flags: FlagLoader = _no_flags) -> None:
        self._center_flags = center_flags
        self._teacher_flags = teacher_flags

    def evaluate(self, path: str, session: Session) -> GuardOutcome:
        if session.state is SessionState.LOADING:
            return Placeholder()
        if session.state is SessionState.UNAUTHENTICATED or session.identity is None:
            return Redirect(location=login_route_for(path), reason="unauthenticated")

        identity = session.identity
        entry = route_for(path)
        requirement = entry.requirement if entry else ANY_AUTHENTICATED
        try:
            center_flags = self._center_flags(identity.center_id) if requirement.center_feature else EMPTY_FLAGS
            teacher_flags = self._teacher_flags(identity.teacher_id) if requirement.teacher_feature else EMPTY_FLAGS
            decision = authorize(identity, requirement, center_flags, teacher_flags)
        except Exception as exc:
            logger.error("Resolver failed for %s: %s", path, exc.__class__.__name__)
            decision = Deny(DenyReason.RESOLVER_ERROR)

        if isinstance(decision, Deny):
            home = home_route_for(identity.role)
            logger.info("Denied %s for role %s: %s", path, identity.role.value, decision.reason.value)
            if home == path:
                return Forbidden(reason=decision.reason.value)
            return Redirect(location=home, reason=decision.reason.value)
        return Render(identity=identity, entry=entry)


__all__ = ["RouteGuard", "GuardOutcome", "Render", "Placeholder", "Redirect", "Forbidden"]
