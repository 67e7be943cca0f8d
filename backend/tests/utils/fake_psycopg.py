"""
Lightweight psycopg stand-in for unit tests.

Provides two installers:
- ``install_fake_psycopg`` patches a module so ``psycopg.connect`` talks to an
  in-memory session table (subset of SQL used by DBSessionRecordStore).
- ``install_fake_access_db`` does the same for DBAccessRepo (centers, teachers
  and both feature-permission tables).
"""
from __future__ import annotations

from dataclasses import dataclass, field
import time
import types
from typing import Any, Dict, List, Optional, Tuple


@dataclass
class _Record:
    sub: str
    role: str
    name: str
    center_id: Optional[str]
    teacher_id: Optional[str]
    access_token: Optional[str]
    refresh_token: Optional[str]
    expires_at: int


class _FakeCursor:
    def __init__(self, store: Dict[str, _Record], now_func) -> None:
        self._store = store
        self._row = None
        self._now = now_func

    def execute(self, sql: str, params: tuple | list) -> None:
        sql_low = str(sql or "").lower().strip()
        if sql_low.startswith("insert into"):
            sub, role, name, center_id, teacher_id, access_token, refresh_token, expires_at = params
            sid = f"fake-{len(self._store) + 1}-{int(self._now() * 1000)}"
            self._store[sid] = _Record(
                sub=sub,
                role=role,
                name=name,
                center_id=center_id,
                teacher_id=teacher_id,
                access_token=access_token,
                refresh_token=refresh_token,
                expires_at=int(expires_at),
            )
            self._row = (sid,)
        elif sql_low.startswith("select"):
            sid = params[0]
            rec = self._store.get(str(sid))
            if rec and rec.expires_at > int(self._now()):
                self._row = (
                    sid,
                    rec.sub,
                    rec.role,
                    rec.name,
                    rec.center_id,
                    rec.teacher_id,
                    rec.access_token,
                    rec.refresh_token,
                    rec.expires_at,
                )
            else:
                self._row = None
        elif sql_low.startswith("delete"):
            self._store.pop(str(params[0]), None)
            self._row = None
        else:
            raise AssertionError(f"Unexpected SQL in fake psycopg: {sql}")

    def fetchone(self):
        return self._row

    def fetchall(self):
        return []

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


class _FakeConn:
    def __init__(self, store: Dict[str, _Record], now_func) -> None:
        self._store = store
        self._now = now_func

    def cursor(self):
        return _FakeCursor(self._store, self._now)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


def install_fake_psycopg(monkeypatch, target_module, now_func=time.time):
    """
    Patch ``target_module`` so psycopg operations go against an in-memory store.

    Returns the mutable dictionary acting as the backing store.
    """
    fake_store: Dict[str, _Record] = {}

    def fake_connect(dsn: str, autocommit: bool | None = None):
        return _FakeConn(fake_store, now_func)

    monkeypatch.setattr(target_module, "HAVE_PSYCOPG", True, raising=False)
    monkeypatch.setattr(target_module, "psycopg", types.SimpleNamespace(connect=fake_connect), raising=False)
    # Plain string statements; the store formats the table name itself.
    monkeypatch.setattr(target_module, "sql", None, raising=False)
    return fake_store


# --- Access control tables -------------------------------------------------


@dataclass
class FakeAccessDB:
    """Backing tables plus a log of (dsn, statement) pairs."""

    centers: Dict[str, str] = field(default_factory=dict)
    teachers: Dict[str, Tuple[str, str]] = field(default_factory=dict)
    center_flags: Dict[Tuple[str, str], bool] = field(default_factory=dict)
    teacher_flags: Dict[Tuple[str, str], bool] = field(default_factory=dict)
    statements: List[Tuple[str, str]] = field(default_factory=list)
    commits: int = 0


class _AccessCursor:
    def __init__(self, db: FakeAccessDB, dsn: str) -> None:
        self._db = db
        self._dsn = dsn
        self._row: Any = None
        self._rows: List[tuple] = []

    def execute(self, sql: str, params: tuple | list = ()) -> None:
        db = self._db
        text = " ".join(str(sql).lower().split())
        db.statements.append((self._dsn, text))
        self._row, self._rows = None, []
        if text.startswith("select 1 from public.centers"):
            self._row = (1,) if params[0] in db.centers else None
        elif text.startswith("select 1 from public.teachers"):
            self._row = (1,) if params[0] in db.teachers else None
        elif "from public.centers order by" in text:
            self._rows = sorted(((cid, name) for cid, name in db.centers.items()), key=lambda r: (r[1], r[0]))
        elif "from public.centers where" in text:
            cid = params[0]
            self._row = (cid, db.centers[cid]) if cid in db.centers else None
        elif "from public.teachers where center_id" in text:
            self._rows = sorted(
                ((tid, cid, name) for tid, (cid, name) in db.teachers.items() if cid == params[0]),
                key=lambda r: (r[2], r[0]),
            )
        elif "from public.teachers where id" in text:
            tid = params[0]
            self._row = (tid, *db.teachers[tid]) if tid in db.teachers else None
        elif text.startswith("select") and "public.center_feature_permissions" in text:
            self._rows = [
                (cid, name, enabled)
                for (cid, name), enabled in sorted(db.center_flags.items())
                if not params or cid == params[0]
            ]
        elif text.startswith("select") and "public.teacher_feature_permissions" in text:
            self._rows = [
                (tid, name, enabled)
                for (tid, name), enabled in sorted(db.teacher_flags.items())
                if tid == params[0]
            ]
        elif text.startswith("insert into public.center_feature_permissions"):
            cid, name, enabled = params
            db.center_flags[(cid, name)] = bool(enabled)
            self._row = (cid, name, bool(enabled))
        elif text.startswith("insert into public.teacher_feature_permissions"):
            tid, name, enabled = params
            db.teacher_flags[(tid, name)] = bool(enabled)
            self._row = (tid, name, bool(enabled))
        else:
            raise AssertionError(f"Unexpected SQL in fake access db: {sql}")

    def fetchone(self):
        return self._row

    def fetchall(self):
        return list(self._rows)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


class _AccessConn:
    def __init__(self, db: FakeAccessDB, dsn: str) -> None:
        self._db = db
        self._dsn = dsn

    def cursor(self):
        return _AccessCursor(self._db, self._dsn)

    def commit(self) -> None:
        self._db.commits += 1

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


def install_fake_access_db(monkeypatch, target_module) -> FakeAccessDB:
    """Patch ``target_module`` (access_control.repo_db) onto an in-memory database."""
    db = FakeAccessDB()

    def fake_connect(dsn: str, autocommit: bool | None = None):
        return _AccessConn(db, dsn)

    monkeypatch.setattr(target_module, "HAVE_PSYCOPG", True, raising=False)
    monkeypatch.setattr(target_module, "psycopg", types.SimpleNamespace(connect=fake_connect), raising=False)
    return db


__all__ = ["install_fake_psycopg", "install_fake_access_db", "FakeAccessDB"]
