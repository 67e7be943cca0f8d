"""
Unit-style tests for DBSessionRecordStore using a fake psycopg driver.

Rationale: Keep CI/self-contained runs green without a real Postgres.
We simulate the subset of psycopg used by the store to validate SQL flow
and row mapping. No network or external DB required.
"""

from __future__ import annotations

import time

import pytest

from identity_access import stores_db
from identity_access.stores_db import DBSessionRecordStore
from identity_access.session import SessionStore

from utils.fake_auth import TEACHER_7, FakeAuthClient, token_verifier
from utils.fake_psycopg import install_fake_psycopg


def test_create_get_delete_roundtrip(monkeypatch: pytest.MonkeyPatch):
    backing = install_fake_psycopg(monkeypatch, stores_db)
    store = DBSessionRecordStore(dsn="postgresql://service@db/erp")

    rec = store.create(identity=TEACHER_7, access_token="a", refresh_token="r", ttl_seconds=60)
    assert rec.session_id in backing

    loaded = store.get(rec.session_id)
    assert loaded is not None
    assert loaded.to_identity() == TEACHER_7
    assert loaded.access_token == "a" and loaded.refresh_token == "r"
    assert loaded.expires_at == rec.expires_at

    store.delete(rec.session_id)
    assert store.get(rec.session_id) is None


def test_expired_rows_are_not_returned(monkeypatch: pytest.MonkeyPatch):
    now = [time.time()]
    install_fake_psycopg(monkeypatch, stores_db, now_func=lambda: now[0])
    store = DBSessionRecordStore(dsn="postgresql://service@db/erp")
    rec = store.create(identity=TEACHER_7, ttl_seconds=10)
    now[0] += 3600
    assert store.get(rec.session_id) is None


def test_requires_dsn(monkeypatch: pytest.MonkeyPatch):
    install_fake_psycopg(monkeypatch, stores_db)
    monkeypatch.delenv("SERVICE_ROLE_DSN", raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    with pytest.raises(RuntimeError):
        DBSessionRecordStore()


def test_rejects_unsafe_table_name(monkeypatch: pytest.MonkeyPatch):
    install_fake_psycopg(monkeypatch, stores_db)
    with pytest.raises(ValueError):
        DBSessionRecordStore(dsn="postgresql://x", table="app_sessions; drop table x")


def test_session_store_restores_from_db_records(monkeypatch: pytest.MonkeyPatch):
    install_fake_psycopg(monkeypatch, stores_db)
    records = DBSessionRecordStore(dsn="postgresql://service@db/erp")
    login = SessionStore(auth=FakeAuthClient(), records=records, verify=token_verifier())
    login.restore()
    login.sign_in("teacher-sub-1", "password")

    later = SessionStore(auth=FakeAuthClient(), records=records, session_id=login.session_id, verify=token_verifier())
    session = later.restore()
    assert session.is_authenticated
    assert session.identity == TEACHER_7
