"""
Database-backed session record store for production use (Postgres).

Why: In-memory sessions are not durable and do not scale across instances. This
store persists session records in Postgres while keeping the cookie opaque.

Security:
- Intended to be used with the service role connection string; the limited
  application role must not access the `app_sessions` table.
- Only the opaque `session_id` is set in the cookie; identity and tokens stay
  server-side.

Note: Selected via `SESSIONS_BACKEND=db`. Tests use the in-memory store or a
fake psycopg driver.
"""
from __future__ import annotations

from typing import Optional
import os
import re
import time

try:
    import psycopg
    from psycopg import sql
    HAVE_PSYCOPG = True
except ImportError:  # pragma: no cover - optional dependency in dev
    psycopg = None  # type: ignore
    sql = None  # type: ignore
    HAVE_PSYCOPG = False

from .domain import Identity
from .stores import SessionRecord

_TABLE_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,62}(?:\.[A-Za-z_][A-Za-z0-9_]{0,62})?$")

_COLUMNS = "session_id, sub, role, name, center_id, teacher_id, access_token, refresh_token"


def _now() -> int:
    return int(time.time())


class DBSessionRecordStore:
    """Postgres-backed session record store.

    Parameters
    ----------
    dsn:
        Psycopg3 connection string (service role).
    table:
        Table name, optionally schema-qualified. Defaults to `public.app_sessions`.
    """

    def __init__(self, dsn: str | None = None, table: str = "public.app_sessions") -> None:
        if not HAVE_PSYCOPG:
            raise RuntimeError("psycopg3 is required for DBSessionRecordStore")
        self._dsn = dsn or os.getenv("SERVICE_ROLE_DSN") or os.getenv("DATABASE_URL", "")
        if not self._dsn:
            raise RuntimeError("No database DSN provided for DBSessionRecordStore")
        if not _TABLE_RE.match(table or ""):
            raise ValueError("Invalid table name")
        self._table = table

    def _table_ident(self):
        if "." in self._table:
            schema, name = self._table.split(".", 1)
        else:
            schema, name = "public", self._table
        if sql is None:
            return f"{schema}.{name}"
        return sql.Identifier(schema, name)

    def _stmt(self, template: str):
        ident = self._table_ident()
        if sql is None or isinstance(ident, str):
            return template.format(table=ident)
        return sql.SQL(template).format(table=ident)

    def create(
        self,
        *,
        identity: Identity,
        access_token: Optional[str] = None,
        refresh_token: Optional[str] = None,
        ttl_seconds: int = 3600,
    ) -> SessionRecord:
        expires_at = _now() + ttl_seconds
        stmt = self._stmt(
            "insert into {table} (session_id, sub, role, name, center_id, teacher_id, "
            "access_token, refresh_token, expires_at) "
            "values (gen_random_uuid()::text, %s, %s, %s, %s, %s, %s, %s, to_timestamp(%s)) "
            "returning session_id"
        )
        with psycopg.connect(self._dsn, autocommit=True) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    stmt,
                    (
                        identity.id,
                        identity.role.value,
                        identity.display_name,
                        identity.center_id,
                        identity.teacher_id,
                        access_token,
                        refresh_token,
                        expires_at,
                    ),
                )
                row = cur.fetchone()
        sid = str(row[0]) if row else ""
        return SessionRecord(
            session_id=sid,
            sub=identity.id,
            role=identity.role.value,
            name=identity.display_name,
            center_id=identity.center_id,
            teacher_id=identity.teacher_id,
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=expires_at,
        )

    def get(self, session_id: str) -> Optional[SessionRecord]:
        stmt = self._stmt(
            "select " + _COLUMNS + ", extract(epoch from expires_at)::bigint "
            "from {table} where session_id = %s and expires_at > now()"
        )
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(stmt, (session_id,))
                row = cur.fetchone()
        if not row:
            return None
        return SessionRecord(
            session_id=row[0],
            sub=row[1],
            role=row[2],
            name=row[3] or "",
            center_id=row[4],
            teacher_id=row[5],
            access_token=row[6],
            refresh_token=row[7],
            expires_at=int(row[8]) if row[8] is not None else None,
        )

    def delete(self, session_id: str) -> None:
        stmt = self._stmt("delete from {table} where session_id = %s")
        with psycopg.connect(self._dsn, autocommit=True) as conn:
            with conn.cursor() as cur:
                cur.execute(stmt, (session_id,))
