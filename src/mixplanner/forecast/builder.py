"""
Forecast builder for the mix planner.

Expands a fixed spend configuration over a discrete horizon into a per-period
metric series and reduces it to period totals.
"""
import math
from dataclasses import dataclass
from numbers import Integral
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

import pandas as pd
import structlog

from mixplanner.model.domains import GROSS_PROFIT, SALES, resolve
from mixplanner.model.response_model import (
    DomainLike,
    MetricSnapshot,
    SpendVector,
    check_inputs,
    evaluate,
    saturation_effects,
    validate_spend,
)
from mixplanner.utils.exceptions import ConfigurationError, InvalidInputError

logger = structlog.get_logger()


@dataclass(frozen=True)
class PeriodicVariation:
    """Deterministic multiplicative wobble applied to each period.

    ``factor(i) = 1 + amplitude * sin(2*pi*i / cycle)
                    + weekly_amplitude * ((i mod 7) - 3) / 3``
    """
    amplitude: float = 0.04
    cycle: float = 14.0
    weekly_amplitude: float = 0.02

    def __post_init__(self):
        if self.cycle <= 0:
            raise ConfigurationError(f"Variation cycle must be > 0, got {self.cycle}")
        if self.amplitude < 0 or self.weekly_amplitude < 0:
            raise ConfigurationError("Variation amplitudes must be >= 0")
        if self.amplitude + self.weekly_amplitude >= 1:
            raise ConfigurationError("Variation amplitudes must sum to less than 1")

    def factor(self, period: int) -> float:
        seasonal = self.amplitude * math.sin(2 * math.pi * period / self.cycle)
        weekly = self.weekly_amplitude * ((period % 7) - 3) / 3.0
        return 1.0 + seasonal + weekly


DEFAULT_VARIATION = PeriodicVariation()
NO_VARIATION = PeriodicVariation(amplitude=0.0, weekly_amplitude=0.0)


@dataclass(frozen=True)
class ForecastSeries:
    """Per-period metric snapshots plus their element-wise total.

    Snapshots are stored as read-only mappings; copy them with ``dict()``
    before changing values.
    """
    domain: str
    horizon_periods: int
    periods: Tuple[Tuple[int, Mapping[str, float]], ...]
    aggregate: Mapping[str, float]

    def __post_init__(self):
        object.__setattr__(self, "periods", tuple(
            (index, MappingProxyType(dict(snapshot))) for index, snapshot in self.periods
        ))
        object.__setattr__(self, "aggregate", MappingProxyType(dict(self.aggregate)))

    def __len__(self) -> int:
        return len(self.periods)

    @property
    def metrics(self) -> List[str]:
        return list(self.aggregate)

    @property
    def margin_rate(self) -> float:
        """Effective gross margin over the whole horizon."""
        sales = self.aggregate.get(SALES, 0.0)
        if sales <= 0:
            return 0.0
        return self.aggregate.get(GROSS_PROFIT, 0.0) / sales

    def metric(self, name: str) -> List[float]:
        return [snapshot.get(name, 0.0) for _, snapshot in self.periods]

    def to_frame(self) -> pd.DataFrame:
        """One row per period, one column per metric."""
        index = pd.Index([period for period, _ in self.periods], name="period")
        frame = pd.DataFrame([dict(snapshot) for _, snapshot in self.periods], index=index)
        return frame.reindex(columns=self.metrics).fillna(0.0)


def aggregate_snapshots(snapshots: Iterable[MetricSnapshot]) -> MetricSnapshot:
    """Per-metric sum; a metric missing from a snapshot counts as 0."""
    totals: MetricSnapshot = {}
    for snapshot in snapshots:
        for metric, value in snapshot.items():
            totals[metric] = totals.get(metric, 0.0) + value
    return totals


def combine_inputs(spend: SpendVector,
                   auxiliary: Optional[SpendVector] = None,
                   domain: Optional[DomainLike] = None) -> Dict[str, float]:
    """Merge validated channel spend and auxiliary inputs into one vector.

    With a domain, names it does not model are rejected.
    """
    combined = validate_spend(spend, "spend")
    extra = validate_spend(auxiliary, "auxiliary")
    if domain is not None:
        params = resolve(domain)
        check_inputs(params, combined, "spend")
        check_inputs(params, extra, "auxiliary")
    for name, value in extra.items():
        if name in combined:
            raise InvalidInputError(f"{name!r} is given both as spend and as auxiliary input", "auxiliary")
        combined[name] = value
    return combined


def check_horizon(horizon_periods) -> int:
    if isinstance(horizon_periods, bool) or not isinstance(horizon_periods, Integral):
        raise InvalidInputError(
            f"horizon_periods must be an integer, got {horizon_periods!r}", "horizon_periods"
        )
    if horizon_periods <= 0:
        raise InvalidInputError(
            f"horizon_periods must be > 0, got {horizon_periods}", "horizon_periods"
        )
    return int(horizon_periods)


def build(domain: DomainLike,
          spend: SpendVector,
          auxiliary: Optional[SpendVector] = None,
          horizon_periods: int = 30,
          variation: PeriodicVariation = DEFAULT_VARIATION) -> ForecastSeries:
    """
    Build a forecast for a fixed spend configuration.

    Campaign totals are amortized evenly over the horizon. Saturation is a
    function of campaign-level scale, so the saturation scalars are computed
    once from the totals; the per-period amounts only drive the linear terms.

    Args:
        domain: Registered domain name or DomainParameters
        spend: Campaign-total channel spend
        auxiliary: Non-monetary inputs such as posts per week
        horizon_periods: Number of periods (days) to forecast
        variation: Deterministic per-period wobble

    Returns:
        ForecastSeries of length ``horizon_periods``

    Raises:
        UnknownDomainError: if the domain name is not registered
        InvalidInputError: on a non-positive horizon or negative inputs
    """
    params = resolve(domain)
    horizon = check_horizon(horizon_periods)
    totals = combine_inputs(spend, auxiliary, params)

    effects = saturation_effects(params, totals)
    per_period = {name: amount / horizon for name, amount in totals.items()}
    base = evaluate(params, per_period, effects=effects)

    periods = []
    for index in range(horizon):
        factor = variation.factor(index)
        periods.append((index, {metric: value * factor for metric, value in base.items()}))

    aggregate = aggregate_snapshots(snapshot for _, snapshot in periods)

    logger.debug(
        "Forecast built",
        domain=params.name,
        horizon_periods=horizon,
        sales=aggregate[SALES],
        gross_profit=aggregate[GROSS_PROFIT]
    )

    return ForecastSeries(
        domain=params.name,
        horizon_periods=horizon,
        periods=tuple(periods),
        aggregate=aggregate
    )
