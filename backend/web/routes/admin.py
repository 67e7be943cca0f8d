"""
Admin read API: centers and center feature flags as JSON.

Permissions:
    Admin only. The route guard enforces the role from the static route table
    before these handlers run; they do not repeat the check.
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

import access_wiring


admin_router = APIRouter(tags=["Admin"])
logger = logging.getLogger("erp.web")


def _private_no_store() -> dict:
    return {"Cache-Control": "private, no-store"}


@admin_router.get("/api/admin/centers")
async def list_centers(request: Request):
    """Return all centers as `[{id, center_name}]`, sorted by name."""
    try:
        centers = access_wiring.FLAG_CACHE.list_tenants()
    except Exception as exc:
        logger.warning("Listing centers failed: %s", exc.__class__.__name__)
        return JSONResponse({"error": "backend_error"}, status_code=503, headers=_private_no_store())
    return JSONResponse([c.to_dict() for c in centers], headers=_private_no_store())


@admin_router.get("/api/admin/feature-flags")
async def list_feature_flags(request: Request, center_id: str | None = None):
    """Return stored center flag rows, optionally for one center.

    Only stored rows are returned; a feature without a row is enabled. An
    unknown `center_id` is a 404 rather than an empty list.
    """
    try:
        if center_id and access_wiring.get_repo().get_center(center_id) is None:
            return JSONResponse({"error": "not_found"}, status_code=404, headers=_private_no_store())
        flags = access_wiring.FLAG_CACHE.list_flags()
    except Exception as exc:
        logger.warning("Listing feature flags failed: %s", exc.__class__.__name__)
        return JSONResponse({"error": "backend_error"}, status_code=503, headers=_private_no_store())
    if center_id:
        flags = [f for f in flags if f.center_id == center_id]
    return JSONResponse([f.to_dict() for f in flags], headers=_private_no_store())
