"""
Observable session store: the single source of truth for "who is logged in".

Why:
- One object owns the auth state of a request; the route guard, the navigation
  and the JSON endpoints read it instead of re-deriving identity on their own.
- Keeps the state machine explicit so a session can never be `authenticated`
  without an Identity.

Behavior:
- State machine: `loading -> {authenticated, unauthenticated}` exactly once via
  `restore()`, then `authenticated <-> unauthenticated` through `sign_in` /
  `sign_out`. `loading` is never re-entered.
- Subscribers are called synchronously, in registration order, with the new
  Session on every transition.

Security: The cookie holds only the opaque record id; tokens live in the record
store and are never handed to templates.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Protocol
import logging

from .domain import Identity, Role
from .keycloak_client import INVALID_CREDENTIALS, NETWORK_ERROR, AuthError
from .stores import SessionRecord
from .tokens import TokenVerificationError, identity_from_claims, verify_access_token

logger = logging.getLogger("erp.identity_access")


class SessionState(str, Enum):
    LOADING = "loading"
    AUTHENTICATED = "authenticated"
    UNAUTHENTICATED = "unauthenticated"


@dataclass(frozen=True)
class Session:
    state: SessionState
    identity: Optional[Identity] = None

    def __post_init__(self) -> None:
        if self.state is SessionState.AUTHENTICATED and self.identity is None:
            raise ValueError("authenticated_session_requires_identity")
        if self.state is not SessionState.AUTHENTICATED and self.identity is not None:
            raise ValueError("identity_requires_authenticated_session")

    @classmethod
    def loading(cls) -> "Session":
        return cls(SessionState.LOADING)

    @classmethod
    def unauthenticated(cls) -> "Session":
        return cls(SessionState.UNAUTHENTICATED)

    @classmethod
    def authenticated(cls, identity: Identity) -> "Session":
        return cls(SessionState.AUTHENTICATED, identity)

    @property
    def is_authenticated(self) -> bool:
        return self.state is SessionState.AUTHENTICATED


Listener = Callable[[Session], None]


class AuthCollaborator(Protocol):
    def password_grant(self, *, username: str, password: str) -> Dict[str, str]: ...

    def revoke(self, *, refresh_token: str | None) -> None: ...


class RecordStore(Protocol):
    def create(self, *, identity: Identity, access_token: Optional[str] = None,
               refresh_token: Optional[str] = None, ttl_seconds: int = 3600) -> SessionRecord: ...

    def get(self, session_id: str) -> Optional[SessionRecord]: ...

    def delete(self, session_id: str) -> None: ...


class SessionStore:
    """Per-request session store over a persistent record store.

    Parameters
    ----------
    auth:
        Auth collaborator (password grant + revoke), usually `AuthClient`.
    records:
        Persistent record store (`SessionRecordStore` or `DBSessionRecordStore`).
    session_id:
        Opaque id from the session cookie, if any.
    verify:
        Callable turning a raw access token into an Identity. Defaults to JWKS
        verification against the auth collaborator's realm.
    ttl_seconds:
        Upper bound for the lifetime of new session records. A shorter
        `expires_in` from the token response wins.
    """

    def __init__(
        self,
        *,
        auth: AuthCollaborator,
        records: RecordStore,
        session_id: Optional[str] = None,
        verify: Optional[Callable[[str], Identity]] = None,
        ttl_seconds: int = 3600,
    ) -> None:
        self._auth = auth
        self._records = records
        self._verify = verify or self._verify_with_jwks
        self._ttl_seconds = ttl_seconds
        self._session = Session.loading()
        self._record: Optional[SessionRecord] = None
        self._cookie_session_id = session_id
        self._listeners: List[Listener] = []

    # --- reads -----------------------------------------------------------
    def get_session(self) -> Session:
        return self._session

    @property
    def session_id(self) -> Optional[str]:
        return self._record.session_id if self._record else None

    @property
    def access_token(self) -> Optional[str]:
        return self._record.access_token if self._record else None

    @property
    def expires_at(self) -> Optional[int]:
        return self._record.expires_at if self._record else None

    # --- observers -------------------------------------------------------
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _transition(self, session: Session) -> None:
        self._session = session
        for listener in list(self._listeners):
            listener(session)

    # --- transitions -----------------------------------------------------
    def restore(self) -> Session:
        """Resolve `loading` from the persisted record, exactly once."""
        if self._session.state is not SessionState.LOADING:
            raise RuntimeError("session_already_restored")
        record = None
        if self._cookie_session_id:
            try:
                record = self._records.get(self._cookie_session_id)
            except Exception as exc:
                logger.warning("Session record lookup failed: %s", exc.__class__.__name__)
                record = None
        identity = None
        if record is not None:
            try:
                identity = record.to_identity()
            except ValueError:
                logger.warning("Discarding session record with invalid identity")
        if identity is None:
            self._transition(Session.unauthenticated())
        else:
            self._record = record
            self._transition(Session.authenticated(identity))
        return self._session

    def sign_in(self, username: str, password: str, *, expected_role: Optional[Role] = None) -> Identity:
        """Authenticate with the auth collaborator and persist a new record.

        Raises AuthError (invalid_credentials, network_error, rate_limited).
        A portal that expects another role gets `invalid_credentials`.
        """
        try:
            tokens = self._auth.password_grant(username=username, password=password)
            try:
                identity = self._verify(tokens.get("access_token", ""))
            except TokenVerificationError as exc:
                kind = INVALID_CREDENTIALS if exc.code == "no_role" else NETWORK_ERROR
                raise AuthError(kind) from exc
            if expected_role is not None and identity.role is not expected_role:
                self._auth.revoke(refresh_token=tokens.get("refresh_token"))
                raise AuthError(INVALID_CREDENTIALS)
        except AuthError:
            self._drop_current()
            if self._session.state is SessionState.LOADING:
                self._transition(Session.unauthenticated())
            raise
        self._drop_current(notify=False)
        self._record = self._records.create(
            identity=identity,
            access_token=tokens.get("access_token"),
            refresh_token=tokens.get("refresh_token"),
            ttl_seconds=self._record_ttl(tokens),
        )
        self._transition(Session.authenticated(identity))
        return identity

    def sign_out(self) -> None:
        """Clear the identity, revoke the refresh token and delete the record."""
        record = self._record
        if record is not None:
            self._auth.revoke(refresh_token=record.refresh_token)
        elif self._cookie_session_id:
            self._records.delete(self._cookie_session_id)
        self._drop_current()
        if self._session.state is SessionState.LOADING:
            self._transition(Session.unauthenticated())

    def _record_ttl(self, tokens: Dict[str, str]) -> int:
        """The record must not outlive the access token it carries."""
        try:
            expires_in = int(tokens.get("expires_in") or 0)
        except (TypeError, ValueError):
            expires_in = 0
        if expires_in <= 0:
            return self._ttl_seconds
        return min(self._ttl_seconds, expires_in)

    def _drop_current(self, *, notify: bool = True) -> None:
        if self._record is not None:
            self._records.delete(self._record.session_id)
            self._record = None
        if self._session.state is SessionState.AUTHENTICATED and notify:
            self._transition(Session.unauthenticated())

    def _verify_with_jwks(self, token: str) -> Identity:
        cfg = getattr(self._auth, "cfg")
        return identity_from_claims(verify_access_token(token=token, cfg=cfg))


__all__ = ["Session", "SessionState", "SessionStore", "Listener"]
