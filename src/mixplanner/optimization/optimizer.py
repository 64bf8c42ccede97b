"""
Budget allocation optimizer for the mix planner.
Exhaustive grid search over television/digital splits, optionally jointly with
an auxiliary input level such as organic posts per week.
"""
import math
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from numbers import Integral, Real
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple

import structlog

from mixplanner.forecast.builder import DEFAULT_VARIATION, PeriodicVariation, build, check_horizon
from mixplanner.model.domains import DIGITAL, GROSS_PROFIT, TELEVISION, resolve
from mixplanner.model.response_model import DomainLike, SpendVector, validate_spend
from mixplanner.utils.exceptions import ConfigurationError, InvalidInputError

logger = structlog.get_logger()

# (channel spend, auxiliary inputs, digital share %)
GridPoint = Tuple[Dict[str, float], Dict[str, float], float]


@dataclass(frozen=True)
class AllocationCandidate:
    """A channel split, the auxiliary levels it was scored with and its profit.

    ``spend`` and ``auxiliary`` are read-only mappings.
    """
    spend: Mapping[str, float]
    gross_profit: float
    digital_share_pct: float
    auxiliary: Mapping[str, float] = field(default_factory=dict)
    grid_index: int = -1  # -1 marks the unevaluated seed

    def __post_init__(self):
        object.__setattr__(self, "spend", MappingProxyType(dict(self.spend)))
        object.__setattr__(self, "auxiliary", MappingProxyType(dict(self.auxiliary)))

    @property
    def television(self) -> float:
        return self.spend.get(TELEVISION, 0.0)

    @property
    def digital(self) -> float:
        return self.spend.get(DIGITAL, 0.0)

    @property
    def inputs(self) -> Dict[str, float]:
        """Spend and auxiliary inputs as a single vector."""
        return {**self.spend, **self.auxiliary}


def _check_budget(total_budget) -> float:
    if isinstance(total_budget, bool) or not isinstance(total_budget, Real):
        raise InvalidInputError(f"total_budget must be a number, got {total_budget!r}", "total_budget")
    budget = float(total_budget)
    if not math.isfinite(budget) or budget < 0:
        raise InvalidInputError(f"total_budget must be a finite number >= 0, got {total_budget!r}", "total_budget")
    return budget


def _check_step(step, upper: float, name: str) -> float:
    if isinstance(step, bool) or not isinstance(step, Real):
        raise InvalidInputError(f"{name} must be a number, got {step!r}", name)
    value = float(step)
    if not (math.isfinite(value) and 0 < value <= upper):
        raise InvalidInputError(f"{name} must be in (0, {upper:g}], got {step!r}", name)
    return value


def _stepped_range(step: float, limit: float) -> List[float]:
    """0, step, 2*step, ... capped at ``limit``, with ``limit`` always last."""
    count = int(math.floor(limit / step + 1e-9))
    levels = [min(k * step, limit) for k in range(count + 1)]
    if levels[-1] < limit:
        levels.append(limit)
    return levels


class GridSearchOptimizer:
    """
    Recommends the television/digital split that maximizes forecast gross profit.

    Every candidate on a discrete grid is run through the forecast builder for
    the full horizon and scored by its aggregate gross profit. The returned
    candidate is the best point of the evaluated grid only; it is not a
    continuous optimum, and a finer step can only match or improve it when the
    coarse grid is a subset of the fine one.
    """

    def __init__(self,
                 domain: DomainLike,
                 horizon_periods: int = 30,
                 channel_grid_step_pct: float = 5.0,
                 auxiliary_grid_step: Optional[float] = None,
                 variation: PeriodicVariation = DEFAULT_VARIATION,
                 max_workers: Optional[int] = None):
        self.domain = resolve(domain)
        if set(self.domain.channels) != {TELEVISION, DIGITAL}:
            raise ConfigurationError(
                f"Domain {self.domain.name!r} must split budget between {TELEVISION} and {DIGITAL}"
            )

        self.horizon_periods = check_horizon(horizon_periods)
        self.channel_grid_step_pct = _check_step(channel_grid_step_pct, 100.0, "channel_grid_step_pct")

        self.auxiliary_name = None
        self.auxiliary_grid_step = None
        if auxiliary_grid_step is not None:
            if not self.domain.auxiliary_inputs:
                raise InvalidInputError(
                    f"Domain {self.domain.name!r} has no auxiliary input to optimize", "auxiliary_grid_step"
                )
            self.auxiliary_name = self.domain.auxiliary_inputs[0]
            limit = self.domain.auxiliary_limit(self.auxiliary_name)
            self.auxiliary_grid_step = _check_step(auxiliary_grid_step, limit, "auxiliary_grid_step")

        if max_workers is not None and (
                isinstance(max_workers, bool) or not isinstance(max_workers, Integral) or max_workers < 1):
            raise InvalidInputError(f"max_workers must be a positive integer, got {max_workers!r}", "max_workers")

        self.variation = variation
        self.max_workers = max_workers

    def split_grid(self) -> List[float]:
        """Digital share percentages in ascending order."""
        return _stepped_range(self.channel_grid_step_pct, 100.0)

    def auxiliary_grid(self) -> List[float]:
        """Auxiliary levels in ascending order, empty when not optimized."""
        if self.auxiliary_name is None:
            return []
        return _stepped_range(self.auxiliary_grid_step, self.domain.auxiliary_limit(self.auxiliary_name))

    def grid(self, total_budget: float, auxiliary: Optional[SpendVector] = None) -> List[GridPoint]:
        """All candidate points in sweep order: split outer, auxiliary inner."""
        budget = _check_budget(total_budget)
        fixed_auxiliary = validate_spend(auxiliary, "auxiliary")
        auxiliary_levels = self.auxiliary_grid() or [None]

        points = []
        for share in self.split_grid():
            digital = budget * (share / 100.0)
            spend = {TELEVISION: budget - digital, DIGITAL: digital}
            for level in auxiliary_levels:
                candidate_auxiliary = dict(fixed_auxiliary)
                if level is not None:
                    candidate_auxiliary[self.auxiliary_name] = level
                points.append((spend, candidate_auxiliary, share))
        return points

    def _score(self, spend: Dict[str, float], auxiliary: Dict[str, float]) -> float:
        forecast = build(self.domain, spend, auxiliary, self.horizon_periods, self.variation)
        return forecast.aggregate[GROSS_PROFIT]

    def sweep(self, total_budget: float, auxiliary: Optional[SpendVector] = None) -> List[AllocationCandidate]:
        """Score every grid point. Results come back in grid order."""
        points = self.grid(total_budget, auxiliary)
        profits: List[float] = [0.0] * len(points)

        if self.max_workers and self.max_workers > 1 and len(points) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                futures = {
                    executor.submit(self._score, spend, point_auxiliary): index
                    for index, (spend, point_auxiliary, _) in enumerate(points)
                }
                for future in as_completed(futures):
                    profits[futures[future]] = future.result()
        else:
            for index, (spend, point_auxiliary, _) in enumerate(points):
                profits[index] = self._score(spend, point_auxiliary)

        return [
            AllocationCandidate(
                spend=dict(spend),
                gross_profit=profit,
                digital_share_pct=share,
                auxiliary=dict(point_auxiliary),
                grid_index=index
            )
            for index, ((spend, point_auxiliary, share), profit) in enumerate(zip(points, profits))
        ]

    def recommend(self, total_budget: float, auxiliary: Optional[SpendVector] = None) -> AllocationCandidate:
        """
        Best candidate over the grid.

        The search is seeded with an even split at negative infinite profit and
        a candidate replaces the current best only on a strictly greater
        profit, so exact ties keep the earliest grid point.
        """
        budget = _check_budget(total_budget)
        candidates = self.sweep(budget, auxiliary)

        half = budget / 2.0
        best = AllocationCandidate(
            spend={TELEVISION: budget - half, DIGITAL: half},
            gross_profit=-math.inf,
            digital_share_pct=50.0,
            auxiliary=validate_spend(auxiliary, "auxiliary")
        )
        for candidate in candidates:
            if candidate.gross_profit > best.gross_profit:
                best = candidate

        logger.info(
            "Grid search completed",
            domain=self.domain.name,
            total_budget=budget,
            grid_size=len(candidates),
            digital_share_pct=best.digital_share_pct,
            auxiliary=dict(best.auxiliary),
            gross_profit=best.gross_profit
        )
        return best


def recommend(domain: DomainLike,
              total_budget: float,
              auxiliary: Optional[SpendVector] = None,
              horizon_periods: int = 30,
              channel_grid_step_pct: float = 5.0,
              auxiliary_grid_step: Optional[float] = None,
              variation: PeriodicVariation = DEFAULT_VARIATION,
              max_workers: Optional[int] = None) -> AllocationCandidate:
    """Recommend the profit-maximizing split of ``total_budget`` over the grid.

    See GridSearchOptimizer for the search space and the grid-only guarantee.
    """
    optimizer = GridSearchOptimizer(
        domain,
        horizon_periods=horizon_periods,
        channel_grid_step_pct=channel_grid_step_pct,
        auxiliary_grid_step=auxiliary_grid_step,
        variation=variation,
        max_workers=max_workers
    )
    return optimizer.recommend(total_budget, auxiliary)
