"""
Response model for the mix planner.

Maps a channel spend vector to funnel metrics using saturating
(diminishing-returns) transforms. The metric graph comes entirely from the
domain's DomainParameters; this module only walks it.
"""
import math
from numbers import Real
from typing import Dict, Mapping, Optional, Tuple, Union

import numpy as np

from mixplanner.model.domains import (
    DomainParameters,
    EdgeKind,
    GROSS_PROFIT,
    ORGANIC_POSTS,
    SALES,
    resolve,
)
from mixplanner.utils.exceptions import InvalidInputError

SpendVector = Mapping[str, float]
MetricSnapshot = Dict[str, float]
SaturationEffects = Dict[Tuple[str, float], float]
DomainLike = Union[str, DomainParameters]

# Input names the UI layer is known to send for canonical channel ids
INPUT_ALIASES = {"posts": ORGANIC_POSTS}


def saturate(x, k: float):
    """
    Diminishing-returns transform ``1 - exp(-x / k)``.

    Bounded in [0, 1), strictly increasing and concave in ``x``. Accepts a
    scalar (returns float) or an array-like (returns ndarray).

    Raises:
        InvalidInputError: if ``k`` is not positive or any ``x`` is negative
            or not finite.
    """
    if isinstance(k, bool) or not isinstance(k, Real) or not k > 0:
        raise InvalidInputError(f"Saturation scale must be > 0, got {k!r}", "scale")
    try:
        values = np.asarray(x, dtype=float)
    except (TypeError, ValueError):
        raise InvalidInputError(f"Saturation input must be numeric, got {x!r}", "spend") from None
    if not np.all(np.isfinite(values)) or np.any(values < 0):
        raise InvalidInputError(f"Saturation input must be finite and >= 0, got {x!r}", "spend")

    result = 1.0 - np.exp(-values / k)
    if result.ndim == 0:
        return float(result)
    return result


def validate_spend(spend: Optional[SpendVector], field: str = "spend") -> Dict[str, float]:
    """Check a spend (or auxiliary) mapping and return a clean float copy.

    Aliased keys are mapped onto their canonical channel id.
    """
    if spend is None:
        return {}
    if not isinstance(spend, Mapping):
        raise InvalidInputError(f"{field} must be a mapping of channel to amount", field)

    cleaned: Dict[str, float] = {}
    for key, value in spend.items():
        channel = INPUT_ALIASES.get(key, key)
        if isinstance(value, bool) or not isinstance(value, Real):
            raise InvalidInputError(f"{field}[{key!r}] must be a number, got {value!r}", field)
        amount = float(value)
        if not math.isfinite(amount) or amount < 0:
            raise InvalidInputError(
                f"{field}[{key!r}] must be a finite non-negative number, got {value!r}", field
            )
        if channel in cleaned:
            raise InvalidInputError(f"{field} sets {channel!r} more than once", field)
        cleaned[channel] = amount
    return cleaned


def check_inputs(params: DomainParameters, amounts: Mapping[str, float], field: str = "spend") -> None:
    """Reject input names the domain does not model."""
    unknown = sorted(name for name in amounts if name not in params.inputs)
    if unknown:
        raise InvalidInputError(
            f"Domain {params.name!r} has no input(s) {unknown}; expected one of {list(params.inputs)}", field
        )


def saturation_effects(domain: DomainLike, spend: SpendVector) -> SaturationEffects:
    """Saturation scalar for every (input, scale) pair the domain's edges read."""
    params = resolve(domain)
    amounts = validate_spend(spend)
    check_inputs(params, amounts)

    effects: SaturationEffects = {}
    for edge in params.edges:
        if edge.kind != EdgeKind.SATURATING:
            continue
        for key in (edge.effect_key, edge.gate_key):
            if key is not None and key not in effects:
                channel, scale = key
                effects[key] = saturate(amounts.get(channel, 0.0), scale)
    return effects


def margin_rate(domain: DomainLike, spend: SpendVector) -> float:
    """Gross margin fraction the domain applies to ``spend``."""
    params = resolve(domain)
    amounts = validate_spend(spend)
    check_inputs(params, amounts)
    return params.margin.rate_for(amounts, params.channels)


def _lookup_effect(effects: SaturationEffects, key: Tuple[str, float]) -> float:
    try:
        return effects[key]
    except KeyError:
        raise InvalidInputError(f"No saturation effect supplied for {key[0]!r} at scale {key[1]}", "effects") from None


def evaluate(domain: DomainLike,
             spend: SpendVector,
             effects: Optional[SaturationEffects] = None) -> MetricSnapshot:
    """
    Evaluate the domain's metric graph for one spend vector.

    Args:
        domain: Registered domain name or DomainParameters
        spend: Channel amounts (monetary channels and auxiliary intensities)
        effects: Precomputed saturation scalars. When omitted they are derived
            from ``spend`` itself; the forecast builder passes campaign-level
            effects here while ``spend`` holds the per-period amounts that
            drive the linear terms.

    Returns:
        Mapping of every declared metric plus ``grossProfit``.
    """
    params = resolve(domain)
    amounts = validate_spend(spend)
    check_inputs(params, amounts)
    if effects is None:
        effects = saturation_effects(params, amounts)

    values: MetricSnapshot = {}
    for metric in params.metrics:
        total = 0.0
        for edge in params.edges_for(metric):
            if edge.kind == EdgeKind.CONVERSION:
                total += edge.coefficient * values[edge.source]
                continue

            term = edge.coefficient * _lookup_effect(effects, edge.effect_key)
            if edge.gate is not None:
                term *= _lookup_effect(effects, edge.gate_key)
            total += term + edge.linear * amounts.get(edge.source, 0.0)
        values[metric] = total

    values[GROSS_PROFIT] = values[SALES] * params.margin.rate_for(amounts, params.channels)
    return values
