"""
SSR-side client for the privileged feature toggle functions.

Why:
    The admin panel and the teacher feature panel never write flags directly.
    They call the same function endpoints an external client would, with the
    caller's own access token as bearer, so the function's role check is the
    single place where mutation rights are decided.

Behavior:
    `call_toggle_function` returns None on success and raises `MutationError`
    otherwise. The caller re-renders from stored state in both cases; there is
    no optimistic update and no retry.
"""
from __future__ import annotations

from typing import Any, Optional
import logging

import httpx


logger = logging.getLogger("erp.web")

UNAUTHORIZED = "unauthorized"
NETWORK_ERROR = "network_error"
BACKEND_REJECTED = "backend_rejected"

_MESSAGES = {
    UNAUTHORIZED: "You are not allowed to change this setting.",
    NETWORK_ERROR: "The change could not be saved. Please try again.",
}


class MutationError(Exception):
    """Failed flag mutation. `kind` is unauthorized, network_error or backend_rejected."""

    def __init__(self, kind: str, detail: Optional[str] = None):
        if kind not in (UNAUTHORIZED, NETWORK_ERROR, BACKEND_REJECTED):
            raise ValueError(f"unknown mutation error kind: {kind}")
        super().__init__(kind if detail is None else f"{kind}: {detail}")
        self.kind = kind
        self.detail = detail

    @property
    def message(self) -> str:
        if self.kind == BACKEND_REJECTED:
            return f"The change was rejected: {self.detail or 'unknown error'}"
        return _MESSAGES[self.kind]


async def call_toggle_function(
    client: httpx.AsyncClient,
    path: str,
    *,
    access_token: Optional[str],
    payload: dict[str, Any],
) -> None:
    """POST `payload` to a toggle function with the caller's bearer token."""
    if not access_token:
        raise MutationError(UNAUTHORIZED)
    try:
        resp = await client.post(path, json=payload, headers={"Authorization": f"Bearer {access_token}"})
    except httpx.HTTPError as exc:
        logger.warning("Toggle function unreachable: %s", exc.__class__.__name__)
        raise MutationError(NETWORK_ERROR) from exc

    if resp.status_code in (401, 403):
        raise MutationError(UNAUTHORIZED)
    try:
        body = resp.json()
    except ValueError:
        body = None
    if not isinstance(body, dict):
        raise MutationError(NETWORK_ERROR if resp.status_code >= 500 else BACKEND_REJECTED, f"http_{resp.status_code}")
    if resp.status_code == 200 and body.get("success") is True:
        return None
    raise MutationError(BACKEND_REJECTED, str(body.get("error") or f"http_{resp.status_code}"))


__all__ = ["MutationError", "call_toggle_function", "UNAUTHORIZED", "NETWORK_ERROR", "BACKEND_REJECTED"]
