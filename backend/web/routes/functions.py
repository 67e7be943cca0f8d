"""
Privileged feature-flag mutation functions.

Why:
    Flag writes must not trust anything the browser claims about its role. These
    endpoints are the only writers of the flag tables: they verify the bearer
    access token themselves (signature, issuer, expiry) and derive the caller's
    role and center from the verified claims.

Contract:
    POST /functions/v1/admin-toggle-center-feature
        body: {centerId, featureName, isEnabled}  (snake_case also accepted)
        caller: admin only
    POST /functions/v1/center-toggle-teacher-feature
        body: {teacherId, featureName, isEnabled}
        caller: admin, or center staff of the teacher's own center
    Response: {"success": true} or {"success": false, "error": "<code>"}
        401 unauthenticated, 403 unauthorized, 400 invalid_request /
        invalid_feature, 404 not_found, 500 storage_error.

Security:
    The session cookie is ignored here; only the Authorization header counts.
    Tokens and claims are never logged.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from access_control.features import parse_center_feature, parse_teacher_feature
from identity_access.domain import Identity, Role
from identity_access.oidc import load_oidc_config
from identity_access.tokens import TokenVerificationError, identity_from_claims, verify_access_token

import access_wiring


functions_router = APIRouter(tags=["Functions"])
logger = logging.getLogger("erp.web.functions")


def verify_bearer_identity(token: str) -> Identity:
    """Verify an access token against the realm JWKS and return its Identity.

    Tests monkeypatch this attribute to avoid network access.
    """
    claims = verify_access_token(token=token, cfg=load_oidc_config())
    return identity_from_claims(claims)


def _result(success: bool, error: Optional[str] = None, status_code: int = 200) -> JSONResponse:
    body: dict[str, Any] = {"success": success}
    if error:
        body["error"] = error
    return JSONResponse(body, status_code=status_code, headers={"Cache-Control": "private, no-store"})


def _bearer_token(request: Request) -> Optional[str]:
    raw = request.headers.get("authorization") or ""
    scheme, _, value = raw.partition(" ")
    if scheme.lower() != "bearer" or not value.strip():
        return None
    return value.strip()


def _caller(request: Request) -> Identity | JSONResponse:
    token = _bearer_token(request)
    if token is None:
        return _result(False, "unauthenticated", 401)
    try:
        return verify_bearer_identity(token)
    except TokenVerificationError as exc:
        logger.info("Rejected bearer token: %s", exc.code)
        return _result(False, "unauthenticated", 401)


async def _payload(request: Request) -> Optional[dict]:
    try:
        data = await request.json()
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


def _field(payload: dict, camel: str, snake: str) -> Any:
    return payload.get(camel, payload.get(snake))


def _parse_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    return None


@functions_router.post("/functions/v1/admin-toggle-center-feature")
async def admin_toggle_center_feature(request: Request):
    """Enable or disable one center feature. Admin only."""
    caller = _caller(request)
    if isinstance(caller, JSONResponse):
        return caller
    if caller.role is not Role.ADMIN:
        logger.info("Center toggle refused for role %s", caller.role.value)
        return _result(False, "unauthorized", 403)

    payload = await _payload(request)
    if payload is None:
        return _result(False, "invalid_request", 400)
    center_id = _field(payload, "centerId", "center_id")
    feature_name = _field(payload, "featureName", "feature_name")
    is_enabled = _parse_bool(_field(payload, "isEnabled", "is_enabled"))
    if not isinstance(center_id, str) or not center_id.strip() or not isinstance(feature_name, str) or is_enabled is None:
        return _result(False, "invalid_request", 400)
    if parse_center_feature(feature_name) is None:
        return _result(False, "invalid_feature", 400)

    try:
        access_wiring.get_repo().upsert_center_flag(
            center_id=center_id, feature_name=feature_name, is_enabled=is_enabled
        )
    except LookupError:
        return _result(False, "not_found", 404)
    except ValueError:
        return _result(False, "invalid_feature", 400)
    except Exception as exc:
        logger.error("Center flag upsert failed: %s", exc.__class__.__name__)
        return _result(False, "storage_error", 500)

    access_wiring.FLAG_CACHE.invalidate_center(center_id)
    logger.info("Center feature %s set to %s for center %s", feature_name, is_enabled, center_id)
    return _result(True)


@functions_router.post("/functions/v1/center-toggle-teacher-feature")
async def center_toggle_teacher_feature(request: Request):
    """Enable or disable one teacher feature.

    Permissions:
        Center staff of the teacher's own center. Admins may toggle any teacher.
    """
    caller = _caller(request)
    if isinstance(caller, JSONResponse):
        return caller
    if caller.role not in (Role.ADMIN, Role.CENTER_STAFF):
        logger.info("Teacher toggle refused for role %s", caller.role.value)
        return _result(False, "unauthorized", 403)

    payload = await _payload(request)
    if payload is None:
        return _result(False, "invalid_request", 400)
    teacher_id = _field(payload, "teacherId", "teacher_id")
    feature_name = _field(payload, "featureName", "feature_name")
    is_enabled = _parse_bool(_field(payload, "isEnabled", "is_enabled"))
    if not isinstance(teacher_id, str) or not teacher_id.strip() or not isinstance(feature_name, str) or is_enabled is None:
        return _result(False, "invalid_request", 400)
    if parse_teacher_feature(feature_name) is None:
        return _result(False, "invalid_feature", 400)

    repo = access_wiring.get_repo()
    try:
        teacher = repo.get_teacher(teacher_id)
    except Exception as exc:
        logger.error("Teacher lookup failed: %s", exc.__class__.__name__)
        return _result(False, "storage_error", 500)
    if caller.role is Role.CENTER_STAFF and (teacher is None or teacher.center_id != caller.center_id):
        # Missing and foreign teachers look alike to center staff.
        return _result(False, "unauthorized", 403)
    if teacher is None:
        return _result(False, "not_found", 404)

    try:
        repo.upsert_teacher_flag(teacher_id=teacher_id, feature_name=feature_name, is_enabled=is_enabled)
    except LookupError:
        return _result(False, "not_found", 404)
    except ValueError:
        return _result(False, "invalid_feature", 400)
    except Exception as exc:
        logger.error("Teacher flag upsert failed: %s", exc.__class__.__name__)
        return _result(False, "storage_error", 500)

    access_wiring.FLAG_CACHE.invalidate_teacher(teacher_id)
    logger.info("Teacher feature %s set to %s for teacher %s", feature_name, is_enabled, teacher_id)
    return _result(True)
