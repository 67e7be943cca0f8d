"""
Small TTL cache for feature flags and the tenant list.

Why: Every guarded request needs the caller's flags. Reads are shared and only
the privileged toggle functions write, so entries are invalidated after a
successful write and never patched in place.

Behavior:
- Degraded (fail-open) flag sets are returned but not stored, so an outage is
  retried on the next request instead of being pinned for the TTL.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple
import os
import time

from .domain import Center, FeatureFlag, FlagSet
from .resolver import load_center_flags, load_teacher_flags


def _default_ttl() -> int:
    try:
        return max(0, int(os.getenv("FLAG_CACHE_TTL_SECONDS", "30")))
    except ValueError:
        return 30


@dataclass
class _CacheEntry:
    value: Any
    expires_at: float


class FlagCache:
    def __init__(self, repo_provider: Callable[[], Any], ttl_seconds: Optional[int] = None, clock=time.time):
        self._repo_provider = repo_provider
        self.ttl_seconds = _default_ttl() if ttl_seconds is None else ttl_seconds
        self._clock = clock
        self._entries: Dict[Tuple[str, str], _CacheEntry] = {}

    def _get(self, key: Tuple[str, str]) -> Any:
        entry = self._entries.get(key)
        if entry and entry.expires_at > self._clock():
            return entry.value
        self._entries.pop(key, None)
        return None

    def _put(self, key: Tuple[str, str], value: Any) -> None:
        if self.ttl_seconds <= 0:
            return
        self._entries[key] = _CacheEntry(value=value, expires_at=self._clock() + self.ttl_seconds)

    def center_flags(self, center_id: Optional[str]) -> FlagSet:
        if not center_id:
            return FlagSet()
        key = ("center", center_id)
        cached = self._get(key)
        if cached is not None:
            return cached
        flags = load_center_flags(self._repo_provider(), center_id)
        if not flags.degraded:
            self._put(key, flags)
        return flags

    def teacher_flags(self, teacher_id: Optional[str]) -> FlagSet:
        if not teacher_id:
            return FlagSet()
        key = ("teacher", teacher_id)
        cached = self._get(key)
        if cached is not None:
            return cached
        flags = load_teacher_flags(self._repo_provider(), teacher_id)
        if not flags.degraded:
            self._put(key, flags)
        return flags

    def list_tenants(self) -> List[Center]:
        key = ("tenants", "*")
        cached = self._get(key)
        if cached is not None:
            return cached
        centers = list(self._repo_provider().list_centers())
        self._put(key, centers)
        return centers

    def list_flags(self) -> List[FeatureFlag]:
        key = ("center_flags", "*")
        cached = self._get(key)
        if cached is not None:
            return cached
        flags = list(self._repo_provider().list_center_flags())
        self._put(key, flags)
        return flags

    def invalidate_center(self, center_id: str) -> None:
        self._entries.pop(("center", center_id), None)
        self._entries.pop(("center_flags", "*"), None)

    def invalidate_teacher(self, teacher_id: str) -> None:
        self._entries.pop(("teacher", teacher_id), None)

    def clear(self) -> None:
        self._entries.clear()
