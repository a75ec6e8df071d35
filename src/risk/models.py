"""Risk model value objects, scenario multipliers and thresholds."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from src.exceptions import ConfigError

Scenario = Literal["optimistic", "default", "pessimistic"]
LiquidityDepth = Literal["deep", "moderate", "shallow", "none"]
Action = Literal["execute", "wait", "abort"]

SCENARIOS: tuple[str, ...] = ("optimistic", "default", "pessimistic")


@dataclass(frozen=True, slots=True)
class ScenarioMultipliers:
    latency: float
    slippage: float


SCENARIO_MULTIPLIERS: dict[str, ScenarioMultipliers] = {
    "optimistic": ScenarioMultipliers(latency=0.7, slippage=0.5),
    "default": ScenarioMultipliers(latency=1.0, slippage=1.0),
    "pessimistic": ScenarioMultipliers(latency=1.5, slippage=2.0),
}

# Slippage (p95) thresholds
SLIPPAGE_ACCEPTABLE = 0.01
SLIPPAGE_WARNING = 0.03
SLIPPAGE_CRITICAL = 0.05

# Price impact thresholds
IMPACT_ACCEPTABLE = 0.005
IMPACT_WARNING = 0.02
IMPACT_CRITICAL = 0.05

# Execution confidence thresholds
CONFIDENCE_HIGH = 0.8
CONFIDENCE_MEDIUM = 0.5

# Raw liquidity thresholds; one unit is 10**18 raw liquidity.
LIQUIDITY_UNIT = 10**18
DEEP_LIQUIDITY = 1_000_000 * LIQUIDITY_UNIT
MODERATE_LIQUIDITY = 100_000 * LIQUIDITY_UNIT


def check_scenario(scenario: str) -> str:
    """Return ``scenario`` unchanged, or raise ConfigError if it is unknown."""
    if scenario not in SCENARIOS:
        raise ConfigError(f"Unknown risk scenario {scenario!r}, expected one of {SCENARIOS}")
    return scenario


def classify_liquidity_depth(liquidity: int) -> str:
    """Bucket raw pool liquidity into deep / moderate / shallow / none."""
    if liquidity <= 0:
        return "none"
    if liquidity >= DEEP_LIQUIDITY:
        return "deep"
    if liquidity >= MODERATE_LIQUIDITY:
        return "moderate"
    return "shallow"


@dataclass(frozen=True, slots=True)
class SimulationParams:
    """Input to :meth:`RiskSimulator.simulate`."""

    pool_id: str
    amount_in: int
    scenario: str = "default"


@dataclass(frozen=True, slots=True)
class LatencyEstimate:
    p50: int
    p95: int
    p99: int
    capital_at_risk_seconds: int


@dataclass(frozen=True, slots=True)
class PoolRisk:
    """Pool-side half of a simulation, before confidence is derived."""

    liquidity_depth: str
    slippage_p50: float
    slippage_p95: float
    price_impact: float
    used_fallback: bool = False


@dataclass(frozen=True, slots=True)
class RiskMetrics:
    """Full risk estimate for one intent against one pool."""

    finality_delay_p50: int
    finality_delay_p95: int
    capital_at_risk_seconds: int
    slippage_p50: float
    slippage_p95: float
    price_impact: float
    liquidity_depth: str
    execution_confidence: float
    recommended_action: str
    used_fallback: bool = False

    @classmethod
    def empty(cls) -> "RiskMetrics":
        """Zero-valued metrics for results that never reached simulation."""
        return cls(
            finality_delay_p50=0,
            finality_delay_p95=0,
            capital_at_risk_seconds=0,
            slippage_p50=0.0,
            slippage_p95=0.0,
            price_impact=0.0,
            liquidity_depth="none",
            execution_confidence=0.0,
            recommended_action="abort",
        )
