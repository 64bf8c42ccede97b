"""
Forecast endpoints.
"""
from fastapi import APIRouter
import structlog

from mixplanner.api.schemas import ForecastRequest, ForecastResponse, forecast_to_schema
from mixplanner.config.settings import settings
from mixplanner.forecast.builder import build

router = APIRouter()
logger = structlog.get_logger()


@router.post("/", response_model=ForecastResponse)
async def run_forecast(request: ForecastRequest) -> ForecastResponse:
    """
    Build the per-period forecast for a spend plan.

    Args:
        request: Domain, campaign spend, auxiliary inputs and horizon

    Returns:
        Per-period metric snapshots and their totals
    """
    horizon = request.horizon_periods
    if horizon is None:
        horizon = settings.forecast.default_horizon_periods

    domain = request.domain or settings.forecast.default_domain

    series = build(domain, request.spend, request.auxiliary, horizon)

    logger.info(
        "Forecast served",
        domain=series.domain,
        horizon_periods=series.horizon_periods,
        gross_profit=series.aggregate["grossProfit"]
    )
    return forecast_to_schema(series)
