"""
Pydantic schemas for API request/response validation.

Requests only check shapes and types. Value ranges (negative spend, zero
horizon, grid steps) are left to the engine so that its InvalidInputError
reaches the client unchanged.
"""
from pydantic import BaseModel, Field
from typing import Dict, List, Optional

from mixplanner.forecast.builder import ForecastSeries
from mixplanner.model.domains import DomainParameters
from mixplanner.optimization.optimizer import AllocationCandidate


class ForecastRequest(BaseModel):
    domain: Optional[str] = Field(None, description="Domain name, e.g. 'skincare' (server default if omitted)")
    spend: Dict[str, float] = Field(..., description="Campaign-total spend by channel")
    auxiliary: Dict[str, float] = Field(default_factory=dict, description="Non-monetary inputs, e.g. organicPosts")
    horizon_periods: Optional[int] = Field(None, description="Forecast horizon in days")


class RecommendationRequest(BaseModel):
    domain: Optional[str] = Field(None, description="Domain name (server default if omitted)")
    total_budget: float = Field(..., description="Total budget to split between television and digital")
    auxiliary: Dict[str, float] = Field(default_factory=dict, description="Fixed non-monetary inputs")
    horizon_periods: Optional[int] = Field(None, description="Forecast horizon in days")
    channel_grid_step_pct: Optional[float] = Field(None, description="Split grid step in percentage points")
    auxiliary_grid_step: Optional[float] = Field(None, description="Step for jointly optimizing the auxiliary input")


class PeriodSnapshotSchema(BaseModel):
    period: int = Field(..., description="0-based period index")
    metrics: Dict[str, float] = Field(..., description="Metric values for the period")


class ForecastResponse(BaseModel):
    domain: str
    horizon_periods: int
    periods: List[PeriodSnapshotSchema]
    aggregate: Dict[str, float] = Field(..., description="Per-metric totals over the horizon")
    margin_rate: float = Field(..., description="Aggregate gross profit / aggregate sales")


class AllocationCandidateSchema(BaseModel):
    spend: Dict[str, float]
    auxiliary: Dict[str, float]
    gross_profit: float
    digital_share_pct: float
    grid_index: int


class RecommendationResponse(BaseModel):
    domain: str
    total_budget: float
    recommendation: AllocationCandidateSchema
    forecast: ForecastResponse


class SweepResponse(BaseModel):
    domain: str
    total_budget: float
    candidates: List[AllocationCandidateSchema]


class DomainSummarySchema(BaseModel):
    name: str
    label: str
    description: str
    channels: List[str]
    auxiliary_limits: Dict[str, float]
    metrics: List[str]
    margin_mode: str
    default_spend: Dict[str, float]
    default_auxiliary: Dict[str, float]


def forecast_to_schema(series: ForecastSeries) -> ForecastResponse:
    return ForecastResponse(
        domain=series.domain,
        horizon_periods=series.horizon_periods,
        periods=[PeriodSnapshotSchema(period=index, metrics=dict(snapshot)) for index, snapshot in series.periods],
        aggregate=dict(series.aggregate),
        margin_rate=series.margin_rate
    )


def candidate_to_schema(candidate: AllocationCandidate) -> AllocationCandidateSchema:
    return AllocationCandidateSchema(
        spend=dict(candidate.spend),
        auxiliary=dict(candidate.auxiliary),
        gross_profit=candidate.gross_profit,
        digital_share_pct=candidate.digital_share_pct,
        grid_index=candidate.grid_index
    )


def domain_to_schema(domain: DomainParameters) -> DomainSummarySchema:
    return DomainSummarySchema(
        name=domain.name,
        label=domain.label,
        description=domain.description,
        channels=list(domain.channels),
        auxiliary_limits=dict(domain.auxiliary_limits),
        metrics=list(domain.output_metrics),
        margin_mode=domain.margin.mode.value,
        default_spend=domain.default_spend_vector(),
        default_auxiliary=domain.default_auxiliary_inputs()
    )
