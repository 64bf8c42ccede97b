"""
Domain registry for the mix planner.

A domain is a product category with its own response-curve coefficients and
metric graph. Each domain is described purely as data: an ordered list of
funnel metrics and a tuple of edges feeding them, so adding a domain means
adding a DomainParameters instance, not code.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Mapping, Optional, Tuple, Union

from mixplanner.utils.exceptions import ConfigurationError, UnknownDomainError

TELEVISION = "television"
DIGITAL = "digital"
ORGANIC_POSTS = "organicPosts"

SALES = "sales"
GROSS_PROFIT = "grossProfit"


class EdgeKind(Enum):
    SATURATING = "saturating"    # channel -> metric through saturate()
    CONVERSION = "conversion"    # metric -> metric, linear multiplier


class MarginMode(Enum):
    FIXED = "fixed"
    DIGITAL_SHARE = "digital_share"


@dataclass(frozen=True)
class MetricEdge:
    """One contribution to a funnel metric.

    Saturating edges add ``coefficient * saturate(amount, scale)`` plus
    ``linear * amount``. When ``gate`` is set the saturating term is further
    multiplied by the gate channel's saturation, so the edge only pays off when
    the gate channel is funded. Conversion edges add ``coefficient`` times an
    upstream metric.
    """
    target: str
    source: str
    coefficient: float
    kind: EdgeKind = EdgeKind.SATURATING
    scale: Optional[float] = None
    linear: float = 0.0
    gate: Optional[str] = None
    gate_scale: Optional[float] = None

    @property
    def effect_key(self) -> Tuple[str, float]:
        return (self.source, self.scale)

    @property
    def gate_key(self) -> Optional[Tuple[str, float]]:
        if self.gate is None:
            return None
        return (self.gate, self.gate_scale)


@dataclass(frozen=True)
class MarginPolicy:
    """Gross margin for a domain.

    FIXED domains use ``rate`` as is. DIGITAL_SHARE domains shift the rate with
    the share of monetary spend going to ``share_channel``, which stands in for
    a growing e-commerce share carrying a better margin, and clamp the result
    to ``[floor, ceiling]``.
    """
    mode: MarginMode = MarginMode.FIXED
    rate: float = 0.35
    share_channel: str = DIGITAL
    slope: float = 0.0
    pivot: float = 0.0
    floor: float = 0.0
    ceiling: float = 1.0

    def __post_init__(self):
        if not 0.0 < self.rate <= 1.0:
            raise ConfigurationError(f"Gross margin rate must be in (0, 1], got {self.rate}")
        if self.mode == MarginMode.DIGITAL_SHARE and not 0.0 < self.floor <= self.ceiling <= 1.0:
            raise ConfigurationError(
                f"Margin clamp must satisfy 0 < floor <= ceiling <= 1, got [{self.floor}, {self.ceiling}]"
            )

    @property
    def is_fixed(self) -> bool:
        return self.mode == MarginMode.FIXED

    def digital_share(self, spend: Mapping[str, float], channels: Tuple[str, ...]) -> float:
        total = sum(spend.get(channel, 0.0) for channel in channels)
        if total <= 0:
            return 0.0
        return spend.get(self.share_channel, 0.0) / total

    def rate_for(self, spend: Mapping[str, float], channels: Tuple[str, ...]) -> float:
        """Margin fraction for a spend vector over the given monetary channels."""
        if self.is_fixed:
            return self.rate
        share = self.digital_share(spend, channels)
        return min(self.ceiling, max(self.floor, self.rate + self.slope * (share - self.pivot)))


@dataclass(frozen=True)
class DomainParameters:
    """Immutable coefficient bundle and metric graph for one product domain."""
    name: str
    label: str
    channels: Tuple[str, ...]
    metrics: Tuple[str, ...]
    edges: Tuple[MetricEdge, ...]
    margin: MarginPolicy = field(default_factory=MarginPolicy)
    auxiliary_limits: Tuple[Tuple[str, float], ...] = ()
    default_spend: Tuple[Tuple[str, float], ...] = ()
    default_auxiliary: Tuple[Tuple[str, float], ...] = ()
    description: str = ""

    def __post_init__(self):
        self._validate()

    def _validate(self):
        if SALES not in self.metrics:
            raise ConfigurationError(f"Domain {self.name!r} does not produce {SALES!r}")
        if GROSS_PROFIT in self.metrics:
            raise ConfigurationError(f"{GROSS_PROFIT!r} is derived from sales and cannot be declared")
        if len(set(self.metrics)) != len(self.metrics):
            raise ConfigurationError(f"Domain {self.name!r} declares a metric twice")

        inputs = self.inputs
        position = {metric: index for index, metric in enumerate(self.metrics)}
        for edge in self.edges:
            if edge.target not in position:
                raise ConfigurationError(f"Edge targets undeclared metric {edge.target!r}")
            if edge.kind == EdgeKind.SATURATING:
                if edge.source not in inputs:
                    raise ConfigurationError(f"Edge reads unknown input {edge.source!r}")
                if edge.scale is None or edge.scale <= 0:
                    raise ConfigurationError(f"Saturation scale for {edge.source!r} must be > 0")
                if edge.gate is not None:
                    if edge.gate not in inputs:
                        raise ConfigurationError(f"Edge gated by unknown input {edge.gate!r}")
                    if edge.gate_scale is None or edge.gate_scale <= 0:
                        raise ConfigurationError(f"Gate scale for {edge.gate!r} must be > 0")
            else:
                # Metric order doubles as the topological order of the graph
                if edge.source not in position or position[edge.source] >= position[edge.target]:
                    raise ConfigurationError(
                        f"Conversion {edge.source!r} -> {edge.target!r} breaks the metric order"
                    )

    @property
    def auxiliary_inputs(self) -> Tuple[str, ...]:
        return tuple(name for name, _ in self.auxiliary_limits)

    @property
    def inputs(self) -> Tuple[str, ...]:
        return self.channels + self.auxiliary_inputs

    @property
    def output_metrics(self) -> Tuple[str, ...]:
        return self.metrics + (GROSS_PROFIT,)

    def auxiliary_limit(self, name: str) -> float:
        return dict(self.auxiliary_limits)[name]

    def default_spend_vector(self) -> Dict[str, float]:
        return dict(self.default_spend)

    def default_auxiliary_inputs(self) -> Dict[str, float]:
        return dict(self.default_auxiliary)

    def edges_for(self, metric: str) -> List[MetricEdge]:
        return [edge for edge in self.edges if edge.target == metric]


# Brand / LTV funnel: broad reach builds brand search, organic posts ride on
# digital reach to create conversation, margin is flat.
SKINCARE = DomainParameters(
    name="skincare",
    label="Skincare (brand LTV)",
    description="Reach drives brand search; organic posting amplifies digital reach into UGC.",
    channels=(TELEVISION, DIGITAL),
    auxiliary_limits=((ORGANIC_POSTS, 20.0),),
    metrics=("reach", "brandSearch", "ugc", SALES),
    edges=(
        MetricEdge("reach", TELEVISION, 900_000.0, scale=6_000_000.0, linear=0.02),
        MetricEdge("reach", DIGITAL, 500_000.0, scale=3_000_000.0, linear=0.03),
        MetricEdge("brandSearch", "reach", 0.01, kind=EdgeKind.CONVERSION),
        MetricEdge("brandSearch", DIGITAL, 3_000.0, scale=2_500_000.0),
        MetricEdge("ugc", ORGANIC_POSTS, 400.0, scale=6.0, gate=DIGITAL, gate_scale=3_000_000.0),
        MetricEdge("ugc", TELEVISION, 150.0, scale=8_000_000.0),
        MetricEdge(SALES, "brandSearch", 120.0, kind=EdgeKind.CONVERSION),
        MetricEdge(SALES, "ugc", 900.0, kind=EdgeKind.CONVERSION),
        MetricEdge(SALES, "reach", 0.6, kind=EdgeKind.CONVERSION),
    ),
    margin=MarginPolicy(mode=MarginMode.FIXED, rate=0.38),
    default_spend=((TELEVISION, 7_200_000.0), (DIGITAL, 4_800_000.0)),
    default_auxiliary=((ORGANIC_POSTS, 8.0),),
)

# Product-hit funnel: discovery through reach and product search, UGC turning
# into reviews, margin improving as the digital (e-commerce) share grows.
MAKEUP = DomainParameters(
    name="makeup",
    label="Makeup (product hit)",
    description="Discovery via reach and product search; UGC converts through reviews; "
                "gross margin follows the digital share of spend.",
    channels=(TELEVISION, DIGITAL),
    auxiliary_limits=((ORGANIC_POSTS, 30.0),),
    metrics=("reach", "productSearch", "ugc", "reviews", SALES),
    edges=(
        MetricEdge("reach", TELEVISION, 1_100_000.0, scale=5_000_000.0, linear=0.015),
        MetricEdge("reach", DIGITAL, 350_000.0, scale=4_000_000.0, linear=0.02),
        MetricEdge("productSearch", "reach", 0.006, kind=EdgeKind.CONVERSION),
        MetricEdge("productSearch", DIGITAL, 2_500.0, scale=3_000_000.0),
        MetricEdge("ugc", ORGANIC_POSTS, 600.0, scale=10.0, gate=DIGITAL, gate_scale=2_500_000.0),
        MetricEdge("ugc", TELEVISION, 120.0, scale=6_000_000.0),
        MetricEdge("reviews", "ugc", 0.3, kind=EdgeKind.CONVERSION),
        MetricEdge(SALES, "productSearch", 150.0, kind=EdgeKind.CONVERSION),
        MetricEdge(SALES, "ugc", 600.0, kind=EdgeKind.CONVERSION),
        MetricEdge(SALES, "reviews", 900.0, kind=EdgeKind.CONVERSION),
        MetricEdge(SALES, "reach", 0.4, kind=EdgeKind.CONVERSION),
    ),
    margin=MarginPolicy(
        mode=MarginMode.DIGITAL_SHARE,
        rate=0.30,
        slope=0.35,
        pivot=0.30,
        floor=0.22,
        ceiling=0.45,
    ),
    default_spend=((TELEVISION, 4_000_000.0), (DIGITAL, 6_000_000.0)),
    default_auxiliary=((ORGANIC_POSTS, 12.0),),
)

_REGISTRY: Dict[str, DomainParameters] = {domain.name: domain for domain in (SKINCARE, MAKEUP)}


def available_domains() -> List[str]:
    """Names of every registered domain, sorted."""
    return sorted(_REGISTRY)


def resolve(domain: Union[str, DomainParameters]) -> DomainParameters:
    """Look up a domain by name. A DomainParameters instance is returned unchanged."""
    if isinstance(domain, DomainParameters):
        return domain
    try:
        return _REGISTRY[domain]
    except (KeyError, TypeError):
        raise UnknownDomainError(str(domain), _REGISTRY) from None
