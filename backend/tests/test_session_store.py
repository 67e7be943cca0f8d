"""
Observable session store: state machine, subscribers and persistence.

Requirements:
- `loading` resolves exactly once via restore() and is never re-entered.
- sign_in persists a record and notifies subscribers with `authenticated`.
- Failures (bad credentials, wrong portal) leave the store unauthenticated.
- sign_out revokes the refresh token and deletes the record.
"""
from __future__ import annotations

import pytest

from identity_access.domain import Role
from identity_access.keycloak_client import INVALID_CREDENTIALS, NETWORK_ERROR, AuthError
from identity_access.session import Session, SessionState, SessionStore
from identity_access.stores import SessionRecordStore
from identity_access.tokens import TokenVerificationError

from utils.fake_auth import ADMIN, PARENT_7, STAFF_7, FakeAuthClient, token_verifier


def _store(records=None, session_id=None, auth=None):
    return SessionStore(
        auth=auth or FakeAuthClient(),
        records=records or SessionRecordStore(),
        session_id=session_id,
        verify=token_verifier(),
    )


def test_session_invariants():
    with pytest.raises(ValueError):
        Session(SessionState.AUTHENTICATED)
    with pytest.raises(ValueError):
        Session(SessionState.UNAUTHENTICATED, ADMIN)
    assert Session.authenticated(ADMIN).is_authenticated


def test_new_store_starts_loading_and_restores_once():
    store = _store()
    assert store.get_session().state is SessionState.LOADING
    assert store.restore().state is SessionState.UNAUTHENTICATED
    with pytest.raises(RuntimeError):
        store.restore()


def test_restore_with_valid_record_is_authenticated():
    records = SessionRecordStore()
    rec = records.create(identity=STAFF_7, access_token="token-staff-7", refresh_token="r")
    store = _store(records=records, session_id=rec.session_id)
    session = store.restore()
    assert session.is_authenticated
    assert session.identity == STAFF_7
    assert store.access_token == "token-staff-7"
    assert store.session_id == rec.session_id


def test_restore_with_unknown_cookie_is_unauthenticated():
    store = _store(session_id="does-not-exist")
    assert store.restore().state is SessionState.UNAUTHENTICATED
    assert store.access_token is None


def test_restore_with_expired_record_is_unauthenticated():
    records = SessionRecordStore()
    rec = records.create(identity=STAFF_7, ttl_seconds=-10)
    store = _store(records=records, session_id=rec.session_id)
    assert store.restore().state is SessionState.UNAUTHENTICATED


def test_restore_discards_record_with_unknown_role():
    records = SessionRecordStore()
    rec = records.create(identity=STAFF_7)
    rec.role = "janitor"
    store = _store(records=records, session_id=rec.session_id)
    assert store.restore().state is SessionState.UNAUTHENTICATED


def test_sign_in_persists_record_and_notifies_subscribers_in_order():
    records = SessionRecordStore()
    store = _store(records=records)
    store.restore()
    seen = []
    store.subscribe(lambda s: seen.append(("first", s.state)))
    store.subscribe(lambda s: seen.append(("second", s.state)))

    identity = store.sign_in("staff-7", "password")

    assert identity == STAFF_7
    assert seen == [("first", SessionState.AUTHENTICATED), ("second", SessionState.AUTHENTICATED)]
    rec = records.get(store.session_id)
    assert rec is not None and rec.sub == "staff-7" and rec.center_id == "center-7"
    assert rec.refresh_token == "refresh-staff-7"


def test_unsubscribe_stops_notifications():
    store = _store()
    seen = []
    unsubscribe = store.subscribe(seen.append)
    unsubscribe()
    store.restore()
    assert seen == []


def test_sign_in_with_bad_password_raises_and_stays_unauthenticated():
    store = _store()
    store.restore()
    with pytest.raises(AuthError) as excinfo:
        store.sign_in("staff-7", "wrong")
    assert excinfo.value.kind == INVALID_CREDENTIALS
    assert store.get_session().state is SessionState.UNAUTHENTICATED
    assert store.session_id is None


def test_sign_in_on_wrong_portal_is_invalid_credentials_and_revokes():
    auth = FakeAuthClient()
    store = _store(auth=auth)
    store.restore()
    with pytest.raises(AuthError) as excinfo:
        store.sign_in("staff-7", "password", expected_role=Role.ADMIN)
    assert excinfo.value.kind == INVALID_CREDENTIALS
    assert auth.revoked == ["refresh-staff-7"]
    assert not store.get_session().is_authenticated


def test_sign_in_maps_unverifiable_token_to_network_error():
    def broken_verify(_token):
        raise TokenVerificationError("jwks_fetch_failed")

    store = SessionStore(auth=FakeAuthClient(), records=SessionRecordStore(), verify=broken_verify)
    store.restore()
    with pytest.raises(AuthError) as excinfo:
        store.sign_in("staff-7", "password")
    assert excinfo.value.kind == NETWORK_ERROR


def test_sign_in_maps_roleless_token_to_invalid_credentials():
    def roleless(_token):
        raise TokenVerificationError("no_role")

    store = SessionStore(auth=FakeAuthClient(), records=SessionRecordStore(), verify=roleless)
    store.restore()
    with pytest.raises(AuthError) as excinfo:
        store.sign_in("staff-7", "password")
    assert excinfo.value.kind == INVALID_CREDENTIALS


def test_sign_in_replaces_an_existing_session_record():
    records = SessionRecordStore()
    old = records.create(identity=STAFF_7)
    store = _store(records=records, session_id=old.session_id)
    store.restore()
    store.sign_in("parent-1", "password")
    assert records.get(old.session_id) is None
    assert store.get_session().identity == PARENT_7


def test_sign_out_revokes_and_deletes_record():
    records = SessionRecordStore()
    auth = FakeAuthClient()
    rec = records.create(identity=STAFF_7, refresh_token="refresh-staff-7")
    store = _store(records=records, session_id=rec.session_id, auth=auth)
    store.restore()
    seen = []
    store.subscribe(seen.append)

    store.sign_out()

    assert auth.revoked == ["refresh-staff-7"]
    assert records.get(rec.session_id) is None
    assert [s.state for s in seen] == [SessionState.UNAUTHENTICATED]
    assert store.get_session().identity is None


def test_sign_out_without_session_is_a_noop():
    auth = FakeAuthClient()
    store = _store(auth=auth)
    store.restore()
    store.sign_out()
    assert auth.revoked == []
    assert store.get_session().state is SessionState.UNAUTHENTICATED


class _ShortLivedTokens(FakeAuthClient):
    def __init__(self, expires_in):
        super().__init__()
        self.expires_in = expires_in

    def password_grant(self, *, username: str, password: str):
        tokens = super().password_grant(username=username, password=password)
        tokens["expires_in"] = self.expires_in
        return tokens


def test_sign_in_record_does_not_outlive_access_token():
    import time

    store = _store(auth=_ShortLivedTokens(300))
    store.restore()
    store.sign_in("admin-1", "password")
    remaining = store.expires_at - int(time.time())
    assert 0 < remaining <= 300


def test_sign_in_without_expires_in_uses_session_ttl():
    import time

    store = _store(auth=_ShortLivedTokens(None))
    store.restore()
    store.sign_in("admin-1", "password")
    remaining = store.expires_at - int(time.time())
    assert 300 < remaining <= 3600


def test_record_expired_with_its_token_restores_unauthenticated():
    records = SessionRecordStore()
    store = _store(records=records, auth=_ShortLivedTokens(300))
    store.restore()
    store.sign_in("admin-1", "password")
    records.get(store.session_id).expires_at -= 301
    later = _store(records=records, session_id=store.session_id)
    assert later.restore().state is SessionState.UNAUTHENTICATED
