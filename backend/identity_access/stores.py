"""
In-memory session record store for development and tests.

Why: Keep the authenticated identity and its tokens server-side and opaque to
the client. Production deployments use `stores_db.DBSessionRecordStore`.

Security: Cookies carry only an opaque session id. Identity and tokens stay
server-side.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional
import secrets
import time

from .domain import Identity, parse_role


def _now() -> int:
    return int(time.time())


@dataclass
class SessionRecord:
    session_id: str
    sub: str
    role: str
    name: str
    center_id: Optional[str] = None
    teacher_id: Optional[str] = None
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_at: Optional[int] = None

    def to_identity(self) -> Identity:
        """Rebuild the Identity; raises ValueError when the stored role is unknown."""
        role = parse_role(self.role)
        if role is None:
            raise ValueError("identity_role_invalid")
        return Identity(
            id=self.sub,
            display_name=self.name,
            role=role,
            center_id=self.center_id,
            teacher_id=self.teacher_id,
        )


class SessionRecordStore:
    def __init__(self):
        self._data: Dict[str, SessionRecord] = {}

    def create(
        self,
        *,
        identity: Identity,
        access_token: Optional[str] = None,
        refresh_token: Optional[str] = None,
        ttl_seconds: int = 3600,
    ) -> SessionRecord:
        sid = secrets.token_urlsafe(24)
        rec = SessionRecord(
            session_id=sid,
            sub=identity.id,
            role=identity.role.value,
            name=identity.display_name,
            center_id=identity.center_id,
            teacher_id=identity.teacher_id,
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=_now() + ttl_seconds,
        )
        self._data[sid] = rec
        return rec

    def get(self, session_id: str) -> Optional[SessionRecord]:
        rec = self._data.get(session_id)
        if not rec:
            return None
        if rec.expires_at and rec.expires_at < _now():
            self._data.pop(session_id, None)
            return None
        return rec

    def delete(self, session_id: str) -> None:
        self._data.pop(session_id, None)
