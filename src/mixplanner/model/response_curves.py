"""
Response curve generation for the mix planner.

This module sweeps one input over a range of levels, holding the rest of the
plan fixed, and reports how forecast gross profit responds.
"""
import math
from dataclasses import dataclass
from numbers import Integral, Real
from typing import Any, Dict, Optional

import numpy as np

from mixplanner.forecast.builder import DEFAULT_VARIATION, PeriodicVariation, build
from mixplanner.model.domains import GROSS_PROFIT, SALES, resolve
from mixplanner.model.response_model import DomainLike, SpendVector, validate_spend
from mixplanner.utils.exceptions import InvalidInputError

DEFAULT_SPEND_MULTIPLIER = 3.0


@dataclass
class ResponseCurve:
    channel: str
    spend_levels: np.ndarray
    gross_profit: np.ndarray
    sales: np.ndarray
    marginal_profit: np.ndarray
    current_spend: float
    saturation_point: Dict[str, float]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "channel": self.channel,
            "spend_levels": self.spend_levels.tolist(),
            "gross_profit": self.gross_profit.tolist(),
            "sales": self.sales.tolist(),
            "marginal_profit": self.marginal_profit.tolist(),
            "current_spend": self.current_spend,
            "saturation_point": self.saturation_point,
        }


def _find_saturation_point(spend_levels: np.ndarray, profits: np.ndarray) -> Dict[str, float]:
    """Level where the curve bends hardest (most negative second difference)."""
    if len(profits) < 3:
        return {"spend": float(spend_levels[-1]), "gross_profit": float(profits[-1])}

    second_derivative = np.gradient(np.gradient(profits))
    index = int(np.argmin(second_derivative))
    return {"spend": float(spend_levels[index]), "gross_profit": float(profits[index])}


def _default_max_spend(params, channel: str, current: float) -> float:
    if current > 0:
        return current * DEFAULT_SPEND_MULTIPLIER
    if channel in params.auxiliary_inputs:
        return params.auxiliary_limit(channel)
    scales = [edge.scale for edge in params.edges if edge.source == channel and edge.scale]
    return max(scales) * DEFAULT_SPEND_MULTIPLIER


def generate_response_curve(domain: DomainLike,
                            channel: str,
                            base_spend: Optional[SpendVector] = None,
                            auxiliary: Optional[SpendVector] = None,
                            horizon_periods: int = 30,
                            max_spend: Optional[float] = None,
                            num_points: int = 50,
                            variation: PeriodicVariation = DEFAULT_VARIATION) -> ResponseCurve:
    """
    Generate the gross profit response curve of one channel.

    Args:
        domain: Registered domain name or DomainParameters
        channel: Monetary channel or auxiliary input to sweep
        base_spend: Plan to hold fixed (domain defaults if None)
        auxiliary: Auxiliary inputs to hold fixed (domain defaults if None)
        horizon_periods: Forecast horizon for every point
        max_spend: Upper end of the sweep (auto-calculated if None)
        num_points: Number of points in the curve

    Returns:
        ResponseCurve with profit, sales and marginal profit per level
    """
    params = resolve(domain)
    if channel not in params.inputs:
        raise InvalidInputError(f"Domain {params.name!r} has no input {channel!r}", "channel")
    if isinstance(num_points, bool) or not isinstance(num_points, Integral) or num_points < 2:
        raise InvalidInputError(f"num_points must be an integer >= 2, got {num_points!r}", "num_points")

    spend = validate_spend(params.default_spend_vector() if base_spend is None else base_spend, "spend")
    if auxiliary is None:
        aux = {name: value for name, value in params.default_auxiliary_inputs().items() if name not in spend}
    else:
        aux = validate_spend(auxiliary, "auxiliary")

    # Auxiliary inputs carried in the plan are swept from the auxiliary side.
    for name in params.auxiliary_inputs:
        if name not in spend:
            continue
        if name in aux:
            raise InvalidInputError(f"{name!r} is given both as spend and as auxiliary input", "auxiliary")
        aux[name] = spend.pop(name)

    holder = aux if channel in params.auxiliary_inputs else spend
    current = holder.get(channel, 0.0)

    if max_spend is None:
        max_spend = _default_max_spend(params, channel, current)
    if isinstance(max_spend, bool) or not isinstance(max_spend, Real) or not 0 < max_spend < math.inf:
        raise InvalidInputError(f"max_spend must be > 0, got {max_spend!r}", "max_spend")

    spend_levels = np.linspace(0.0, float(max_spend), num_points)
    profits = np.zeros(num_points)
    sales = np.zeros(num_points)

    for i, level in enumerate(spend_levels):
        holder[channel] = float(level)
        forecast = build(params, spend, aux, horizon_periods, variation)
        profits[i] = forecast.aggregate[GROSS_PROFIT]
        sales[i] = forecast.aggregate[SALES]

    marginal_profit = np.gradient(profits, spend_levels)

    return ResponseCurve(
        channel=channel,
        spend_levels=spend_levels,
        gross_profit=profits,
        sales=sales,
        marginal_profit=marginal_profit,
        current_spend=current,
        saturation_point=_find_saturation_point(spend_levels, profits)
    )
