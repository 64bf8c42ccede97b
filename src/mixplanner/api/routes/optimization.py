"""
Budget optimization endpoints.
"""
from fastapi import APIRouter
from typing import Any, Dict, Optional
import asyncio
import structlog

from mixplanner.api.schemas import (
    RecommendationRequest,
    RecommendationResponse,
    SweepResponse,
    candidate_to_schema,
    forecast_to_schema,
)
from mixplanner.config.settings import settings
from mixplanner.forecast.builder import build
from mixplanner.model.response_curves import generate_response_curve
from mixplanner.optimization.optimizer import GridSearchOptimizer

router = APIRouter()
logger = structlog.get_logger()


def _create_optimizer(request: RecommendationRequest) -> GridSearchOptimizer:
    horizon = request.horizon_periods
    if horizon is None:
        horizon = settings.forecast.default_horizon_periods
    step = request.channel_grid_step_pct
    if step is None:
        step = settings.optimization.default_grid_step_pct
    auxiliary_step = request.auxiliary_grid_step
    if auxiliary_step is None:
        auxiliary_step = settings.optimization.default_auxiliary_grid_step

    return GridSearchOptimizer(
        request.domain or settings.forecast.default_domain,
        horizon_periods=horizon,
        channel_grid_step_pct=step,
        auxiliary_grid_step=auxiliary_step,
        max_workers=settings.optimization.max_workers
    )


@router.post("/recommend", response_model=RecommendationResponse)
async def recommend_allocation(request: RecommendationRequest) -> RecommendationResponse:
    """
    Recommend the television/digital split with the highest forecast gross profit.

    The recommendation is the best point of the evaluated grid, returned with
    its full forecast so the client can apply it to its inputs directly.
    """
    optimizer = _create_optimizer(request)
    logger.info("Starting grid search", domain=optimizer.domain.name, total_budget=request.total_budget)

    best = await asyncio.to_thread(optimizer.recommend, request.total_budget, request.auxiliary)
    forecast = build(optimizer.domain, best.spend, best.auxiliary, optimizer.horizon_periods, optimizer.variation)

    return RecommendationResponse(
        domain=optimizer.domain.name,
        total_budget=request.total_budget,
        recommendation=candidate_to_schema(best),
        forecast=forecast_to_schema(forecast)
    )


@router.post("/sweep", response_model=SweepResponse)
async def sweep_allocations(request: RecommendationRequest) -> SweepResponse:
    """Score every grid point, in grid order, for charting profit against the split."""
    optimizer = _create_optimizer(request)
    candidates = await asyncio.to_thread(optimizer.sweep, request.total_budget, request.auxiliary)

    return SweepResponse(
        domain=optimizer.domain.name,
        total_budget=request.total_budget,
        candidates=[candidate_to_schema(candidate) for candidate in candidates]
    )


@router.get("/response-curve/{domain}/{channel}")
async def get_channel_response_curve(
    domain: str,
    channel: str,
    horizon_periods: Optional[int] = None,
    max_spend: Optional[float] = None,
    num_points: Optional[int] = None
) -> Dict[str, Any]:
    """Gross profit response curve of one channel around the domain's default plan."""
    if horizon_periods is None:
        horizon_periods = settings.forecast.default_horizon_periods
    if num_points is None:
        num_points = settings.optimization.curve_resolution

    curve = await asyncio.to_thread(
        generate_response_curve,
        domain,
        channel,
        horizon_periods=horizon_periods,
        max_spend=max_spend,
        num_points=num_points
    )

    return {
        "domain": domain,
        "horizon_periods": horizon_periods,
        "response_curve": curve.to_dict()
    }
