"""
/api/me: identity of the caller plus effective feature permissions.
"""
from __future__ import annotations

from datetime import datetime

import pytest

import access_wiring  # type: ignore
import main  # type: ignore
from access_control.features import CenterFeature, TeacherFeature

from utils.fake_auth import ADMIN, STAFF_7, TEACHER_7, make_client, seed_session


pytestmark = pytest.mark.anyio("asyncio")


@pytest.fixture(autouse=True)
def _flags():
    repo = access_wiring.get_repo()
    repo.add_center("North", center_id="center-7")
    repo.add_teacher("center-7", "Tia", teacher_id="t-1")
    repo.upsert_center_flag(center_id="center-7", feature_name="finance", is_enabled=False)
    repo.upsert_teacher_flag(teacher_id="t-1", feature_name="test_management", is_enabled=False)


@pytest.mark.anyio
async def test_me_for_center_staff():
    sid = seed_session(main, STAFF_7)
    async with make_client(main, sid) as client:
        r = await client.get("/api/me")
    assert r.status_code == 200
    body = r.json()
    assert body["sub"] == "staff-7"
    assert body["role"] == "center_staff"
    assert body["center_id"] == "center-7"
    assert set(body["center_features"]) == {f.value for f in CenterFeature}
    assert body["center_features"]["finance"] is False
    assert body["center_features"]["homework"] is True
    assert body["teacher_features"] is None
    assert datetime.fromisoformat(body["expires_at"]).tzinfo is not None
    assert r.headers.get("Cache-Control") == "private, no-store"
    assert "access_token" not in body and "refresh_token" not in body


@pytest.mark.anyio
async def test_me_for_teacher_includes_teacher_features():
    sid = seed_session(main, TEACHER_7)
    async with make_client(main, sid) as client:
        r = await client.get("/api/me")
    body = r.json()
    assert body["teacher_id"] == "t-1"
    assert set(body["teacher_features"]) == {f.value for f in TeacherFeature}
    assert body["teacher_features"]["test_management"] is False
    assert body["teacher_features"]["homework_management"] is True


@pytest.mark.anyio
async def test_me_for_admin_has_no_tenant_scope():
    sid = seed_session(main, ADMIN)
    async with make_client(main, sid) as client:
        r = await client.get("/api/me")
    body = r.json()
    assert body["role"] == "admin"
    assert body["center_id"] is None
    assert body["center_features"] is None
    assert body["teacher_features"] is None
