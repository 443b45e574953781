"""Liveness and readiness.

  /health  always 200 while the process answers; ``status`` says
           whether a dependency is impaired
  /ready   503 when the control plane cannot be reached, so the load
           balancer stops routing here until it recovers
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Response, status

from lms.api.dependencies import get_control_plane, get_registry
from lms.db.control_plane import ControlPlane
from lms.db.redis import redis_pool
from lms.db.tenancy import TenantRegistry

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


async def _control_plane_ok(cp: ControlPlane) -> bool:
    try:
        return await cp.ping()
    except Exception:
        logger.warning("Control plane ping failed", exc_info=True)
        return False


@router.get("/health")
async def health(
    cp: Annotated[ControlPlane, Depends(get_control_plane)],
    registry: Annotated[TenantRegistry, Depends(get_registry)],
) -> dict:
    checks: dict[str, str] = {}
    overall = "ok"

    if await _control_plane_ok(cp):
        checks["control_plane"] = "ok"
    else:
        checks["control_plane"] = "degraded"
        overall = "degraded"

    if redis_pool is not None:
        try:
            await redis_pool.ping()  # type: ignore[misc]
            checks["redis"] = "ok"
        except Exception:
            checks["redis"] = "degraded"
            overall = "degraded"
    else:
        checks["redis"] = "not_configured"

    return {
        "status": overall,
        "checks": checks,
        "tenants_cached": registry.cached_count(),
    }


@router.get("/ready")
async def ready(cp: Annotated[ControlPlane, Depends(get_control_plane)]) -> Response:
    if await _control_plane_ok(cp):
        return Response(status_code=status.HTTP_200_OK)
    return Response(status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
