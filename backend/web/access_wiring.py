"""
Shared helper for wiring the access-control repository and flag cache.

Why:
    The route guard, the admin panel and the privileged toggle functions must
    all read and write the same repository, and invalidate the same cache. This
    module owns both singletons so routers do not import `main` for them.

Behavior:
    - `get_repo()` lazily builds the default repository: Postgres when a DSN is
      configured and the driver is installed, otherwise the in-memory repo
      (logged as a warning, since flags then live only in this process).
    - `set_repo()` lets tests and the app factory inject a repository; it also
      clears the flag cache so stale entries never outlive their source.

Security:
    The Postgres repo reads with the limited-role DSN and writes with
    SERVICE_ROLE_DSN; neither DSN is logged.
"""
from __future__ import annotations

import logging
import os
from typing import Any, Optional

from access_control.cache import FlagCache
from access_control.repo import AccessRepo
from access_control.repo_db import DBAccessRepo


logger = logging.getLogger("erp.web")

_REPO: Optional[Any] = None


def _build_default_repo() -> Any:
    dsn = (os.getenv("ACCESS_DATABASE_URL") or os.getenv("DATABASE_URL") or "").strip()
    if not dsn:
        logger.warning("No access DSN configured; using in-memory access repository")
        return AccessRepo()
    try:
        return DBAccessRepo(dsn=dsn)
    except RuntimeError as exc:
        logger.warning(
            "Access repository wiring fell back to memory: %s: %s", exc.__class__.__name__, str(exc)
        )
        return AccessRepo()


def get_repo() -> Any:
    global _REPO
    if _REPO is None:
        _REPO = _build_default_repo()
    return _REPO


def set_repo(repo: Optional[Any]) -> None:
    """Inject a repository (or reset to lazy default with None)."""
    global _REPO
    _REPO = repo
    FLAG_CACHE.clear()


FLAG_CACHE = FlagCache(get_repo)


__all__ = ["get_repo", "set_repo", "FLAG_CACHE"]
