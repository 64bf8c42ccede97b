"""
Health check endpoints.
"""
from fastapi import APIRouter
from fastapi.responses import JSONResponse
from typing import Dict, Any
from datetime import datetime, timezone
import platform

import structlog

from mixplanner.config.settings import settings
from mixplanner.model.domains import available_domains, resolve
from mixplanner.model.response_model import evaluate
from mixplanner.utils.exceptions import MixPlannerException

router = APIRouter()
logger = structlog.get_logger()


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _check_domains() -> Dict[str, str]:
    """Evaluate every registered domain at its default plan."""
    results = {}
    for name in available_domains():
        domain = resolve(name)
        try:
            evaluate(domain, {**domain.default_spend_vector(), **domain.default_auxiliary_inputs()})
            results[name] = "ok"
        except MixPlannerException as e:
            logger.error("Domain self-check failed", domain=name, error=str(e))
            results[name] = f"error: {e}"
    return results


@router.get("/")
async def health_check() -> Dict[str, Any]:
    return {
        "status": "healthy",
        "timestamp": _now(),
        "environment": settings.env.value,
        "version": settings.api.version
    }


@router.get("/detailed")
async def detailed_health_check() -> Dict[str, Any]:
    """Health plus the planning defaults the API fills in for omitted fields."""
    return {
        "status": "healthy",
        "timestamp": _now(),
        "environment": settings.env.value,
        "version": settings.api.version,
        "system": {
            "python_version": platform.python_version()
        },
        "configuration": {
            "domains": available_domains(),
            "default_domain": settings.forecast.default_domain,
            "default_horizon_periods": settings.forecast.default_horizon_periods,
            "default_grid_step_pct": settings.optimization.default_grid_step_pct,
            "optimizer_max_workers": settings.optimization.max_workers
        }
    }


@router.get("/ready")
async def readiness_check():
    """Ready once every registered domain evaluates its default plan."""
    checks = _check_domains()
    ready = all(result == "ok" for result in checks.values())
    return JSONResponse(
        status_code=200 if ready else 503,
        content={"status": "ready" if ready else "not ready", "domains": checks}
    )


@router.get("/live")
async def liveness_check() -> Dict[str, str]:
    return {"status": "alive"}
