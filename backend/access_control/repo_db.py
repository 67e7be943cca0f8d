"""
Postgres-backed repository for centers, teachers and feature flags.

Security:
- Reads use the limited application DSN (`DATABASE_URL`).
- Flag writes use the service-role DSN (`SERVICE_ROLE_DSN`). They are reached
  only from the privileged functions, which verify the caller's bearer token
  before calling in.

Design:
- Minimal psycopg3 usage; each call opens a short-lived connection.
- Upserts rely on the unique (center_id, feature_name) and
  (teacher_id, feature_name) constraints.
"""
from __future__ import annotations

from typing import List, Optional
import os

try:
    import psycopg
    HAVE_PSYCOPG = True
except ImportError:  # pragma: no cover - optional in some dev envs
    psycopg = None  # type: ignore
    HAVE_PSYCOPG = False

from .domain import Center, FeatureFlag, Teacher, TeacherFeatureFlag
from .features import parse_center_feature, parse_teacher_feature


def _read_dsn() -> str:
    for key in ("ACCESS_DATABASE_URL", "DATABASE_URL"):
        dsn = os.getenv(key)
        if dsn:
            return dsn
    raise RuntimeError("Database DSN unavailable for DBAccessRepo")


class DBAccessRepo:
    def __init__(self, dsn: Optional[str] = None, service_dsn: Optional[str] = None) -> None:
        """Initialize with a limited-role DSN for reads and a service DSN for writes.

        Behavior:
            - Raises RuntimeError when psycopg or the read DSN is unavailable.
            - Writes fail with RuntimeError("service_dsn_missing") when no
              service DSN is configured; reads keep working.
        """
        if not HAVE_PSYCOPG:
            raise RuntimeError("psycopg3 is required for DBAccessRepo")
        self._dsn = dsn or _read_dsn()
        self._service_dsn = service_dsn or os.getenv("SERVICE_ROLE_DSN") or ""

    # --- Tenants ---------------------------------------------------------
    def list_centers(self) -> List[Center]:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute("select id::text, center_name from public.centers order by center_name, id")
                rows = cur.fetchall() or []
        return [Center(id=r[0], name=r[1] or "") for r in rows]

    def get_center(self, center_id: str) -> Optional[Center]:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute("select id::text, center_name from public.centers where id::text = %s", (center_id,))
                row = cur.fetchone()
        return Center(id=row[0], name=row[1] or "") if row else None

    def list_teachers(self, *, center_id: str) -> List[Teacher]:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "select id::text, center_id::text, name from public.teachers "
                    "where center_id::text = %s order by name, id",
                    (center_id,),
                )
                rows = cur.fetchall() or []
        return [Teacher(id=r[0], center_id=r[1], name=r[2] or "") for r in rows]

    def get_teacher(self, teacher_id: str) -> Optional[Teacher]:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "select id::text, center_id::text, name from public.teachers where id::text = %s",
                    (teacher_id,),
                )
                row = cur.fetchone()
        return Teacher(id=row[0], center_id=row[1], name=row[2] or "") if row else None

    # --- Flags -----------------------------------------------------------
    def list_center_flags(self, *, center_id: Optional[str] = None) -> List[FeatureFlag]:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                if center_id is None:
                    cur.execute(
                        "select center_id::text, feature_name, is_enabled from public.center_feature_permissions "
                        "order by center_id, feature_name"
                    )
                else:
                    cur.execute(
                        "select center_id::text, feature_name, is_enabled from public.center_feature_permissions "
                        "where center_id::text = %s order by feature_name",
                        (center_id,),
                    )
                rows = cur.fetchall() or []
        return [FeatureFlag(center_id=r[0], feature_name=r[1], is_enabled=bool(r[2])) for r in rows]

    def list_teacher_flags(self, *, teacher_id: str) -> List[TeacherFeatureFlag]:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "select teacher_id::text, feature_name, is_enabled from public.teacher_feature_permissions "
                    "where teacher_id::text = %s order by feature_name",
                    (teacher_id,),
                )
                rows = cur.fetchall() or []
        return [TeacherFeatureFlag(teacher_id=r[0], feature_name=r[1], is_enabled=bool(r[2])) for r in rows]

    def _write_dsn(self) -> str:
        if not self._service_dsn:
            raise RuntimeError("service_dsn_missing")
        return self._service_dsn

    def upsert_center_flag(self, *, center_id: str, feature_name: str, is_enabled: bool) -> FeatureFlag:
        if parse_center_feature(feature_name) is None:
            raise ValueError("invalid_feature")
        with psycopg.connect(self._write_dsn()) as conn:
            with conn.cursor() as cur:
                cur.execute("select 1 from public.centers where id::text = %s", (center_id,))
                if cur.fetchone() is None:
                    raise LookupError("center_not_found")
                cur.execute(
                    """
                    insert into public.center_feature_permissions (center_id, feature_name, is_enabled)
                    values (%s, %s, %s)
                    on conflict (center_id, feature_name)
                    do update set is_enabled = excluded.is_enabled, updated_at = now()
                    returning center_id::text, feature_name, is_enabled
                    """,
                    (center_id, feature_name, bool(is_enabled)),
                )
                row = cur.fetchone()
                conn.commit()
        return FeatureFlag(center_id=row[0], feature_name=row[1], is_enabled=bool(row[2]))

    def upsert_teacher_flag(self, *, teacher_id: str, feature_name: str, is_enabled: bool) -> TeacherFeatureFlag:
        if parse_teacher_feature(feature_name) is None:
            raise ValueError("invalid_feature")
        with psycopg.connect(self._write_dsn()) as conn:
            with conn.cursor() as cur:
                cur.execute("select 1 from public.teachers where id::text = %s", (teacher_id,))
                if cur.fetchone() is None:
                    raise LookupError("teacher_not_found")
                cur.execute(
                    """
                    insert into public.teacher_feature_permissions (teacher_id, feature_name, is_enabled)
                    values (%s, %s, %s)
                    on conflict (teacher_id, feature_name)
                    do update set is_enabled = excluded.is_enabled, updated_at = now()
                    returning teacher_id::text, feature_name, is_enabled
                    """,
                    (teacher_id, feature_name, bool(is_enabled)),
                )
                row = cur.fetchone()
                conn.commit()
        return TeacherFeatureFlag(teacher_id=row[0], feature_name=row[1], is_enabled=bool(row[2]))
