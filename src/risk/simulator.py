"""Risk simulator: latency estimate + pool analysis -> RiskMetrics."""

from __future__ import annotations

from typing import Callable, Optional

import structlog

from src.liquidity.tick_math import Q96
from src.pools.state import PoolState, PoolStateReader, read_pool_state
from src.risk.latency import estimate_latency
from src.risk.models import (
    CONFIDENCE_HIGH,
    CONFIDENCE_MEDIUM,
    IMPACT_ACCEPTABLE,
    IMPACT_CRITICAL,
    IMPACT_WARNING,
    SCENARIO_MULTIPLIERS,
    SLIPPAGE_ACCEPTABLE,
    SLIPPAGE_CRITICAL,
    SLIPPAGE_WARNING,
    LatencyEstimate,
    PoolRisk,
    RiskMetrics,
    SimulationParams,
    classify_liquidity_depth,
)

logger = structlog.get_logger()

LIQUIDITY_FACTORS = {
    "deep": 1.0,
    "moderate": 0.8,
    "shallow": 0.5,
}
UNKNOWN_LIQUIDITY_FACTOR = 0.3

# p95 slippage is taken as twice the median.
P95_SLIPPAGE_FACTOR = 2.0

# scenario -> LatencyEstimate
LatencyModel = Callable[[str], LatencyEstimate]

CONSERVATIVE_POOL_RISK = PoolRisk(
    liquidity_depth="shallow",
    slippage_p50=SLIPPAGE_WARNING,
    slippage_p95=SLIPPAGE_CRITICAL,
    price_impact=IMPACT_WARNING,
    used_fallback=True,
)


def estimate_slippage(liquidity: int, amount: int, sqrt_price_x96: int) -> float:
    """Median slippage ~ amount / (2 * effective liquidity), capped at 100%."""
    if liquidity == 0:
        return 1.0
    effective = liquidity * sqrt_price_x96 // Q96
    if effective == 0:
        return 1.0
    return min(amount / (2 * effective), 1.0)


def estimate_price_impact(liquidity: int, amount: int, sqrt_price_x96: int) -> float:
    """Relative price move from pushing ``amount`` through ``liquidity``.

    new_sqrt = sqrt + amount * 2^96 / L; impact = |new^2 - old^2| / old^2,
    capped at 100%.
    """
    if liquidity == 0 or sqrt_price_x96 == 0:
        return 1.0
    delta = amount * Q96 // liquidity
    old_price = sqrt_price_x96 / Q96
    new_price = (sqrt_price_x96 + delta) / Q96
    old_sq = old_price * old_price
    impact = abs((new_price * new_price - old_sq) / old_sq)
    return min(impact, 1.0)


def pool_risk_from_state(state: PoolState, amount: int, scenario: str) -> PoolRisk:
    slippage_multiplier = SCENARIO_MULTIPLIERS[scenario].slippage
    base = estimate_slippage(state.liquidity, amount, state.sqrt_price_x96)
    return PoolRisk(
        liquidity_depth=classify_liquidity_depth(state.liquidity),
        slippage_p50=base * slippage_multiplier,
        slippage_p95=base * P95_SLIPPAGE_FACTOR * slippage_multiplier,
        price_impact=estimate_price_impact(state.liquidity, amount, state.sqrt_price_x96),
    )


def calculate_confidence(pool_risk: PoolRisk) -> float:
    """Multiplicative confidence score in [0, 1]."""
    confidence = LIQUIDITY_FACTORS.get(pool_risk.liquidity_depth, UNKNOWN_LIQUIDITY_FACTOR)

    if pool_risk.slippage_p95 >= SLIPPAGE_CRITICAL:
        confidence *= 0.3
    elif pool_risk.slippage_p95 >= SLIPPAGE_WARNING:
        confidence *= 0.6
    elif pool_risk.slippage_p95 >= SLIPPAGE_ACCEPTABLE:
        confidence *= 0.9

    if pool_risk.price_impact >= IMPACT_CRITICAL:
        confidence *= 0.3
    elif pool_risk.price_impact >= IMPACT_WARNING:
        confidence *= 0.7
    elif pool_risk.price_impact >= IMPACT_ACCEPTABLE:
        confidence *= 0.95

    return max(0.0, min(1.0, confidence))


def recommend(pool_risk: PoolRisk, confidence: Optional[float] = None) -> str:
    """First matching rule wins: abort conditions, then wait, else execute."""
    if confidence is None:
        confidence = calculate_confidence(pool_risk)

    if pool_risk.slippage_p95 >= SLIPPAGE_CRITICAL:
        return "abort"
    if pool_risk.price_impact >= IMPACT_CRITICAL:
        return "abort"
    if pool_risk.liquidity_depth in ("shallow", "none"):
        return "abort"
    if confidence < CONFIDENCE_MEDIUM:
        return "abort"

    if confidence < CONFIDENCE_HIGH:
        return "wait"
    if pool_risk.slippage_p95 >= SLIPPAGE_WARNING:
        return "wait"
    if pool_risk.price_impact >= IMPACT_WARNING:
        return "wait"

    return "execute"


class RiskSimulator:
    """Combines the latency model with a live read of the target pool.

    Pool read failures never propagate: the simulator logs
    ``pool_risk_fallback`` and continues with conservative pool risk.
    """

    def __init__(
        self,
        pool_reader: PoolStateReader,
        latency_model: Optional[LatencyModel] = None,
    ) -> None:
        self._reader = pool_reader
        self._latency_model = latency_model or estimate_latency

    async def analyze_pool(self, pool_id: str, amount: int, scenario: str = "default") -> PoolRisk:
        result = await read_pool_state(self._reader, pool_id)
        if not result.ok:
            logger.warning(
                "pool_risk_fallback",
                pool_id=pool_id,
                error=result.error,
                scenario=scenario,
            )
            return CONSERVATIVE_POOL_RISK
        return pool_risk_from_state(result.state, amount, scenario)

    async def simulate(self, params: SimulationParams) -> RiskMetrics:
        """Estimate latency, slippage, impact and confidence for ``params``."""
        latency = self._latency_model(params.scenario)
        pool_risk = await self.analyze_pool(params.pool_id, params.amount_in, params.scenario)

        confidence = calculate_confidence(pool_risk)
        action = recommend(pool_risk, confidence)

        metrics = RiskMetrics(
            finality_delay_p50=latency.p50,
            finality_delay_p95=latency.p95,
            capital_at_risk_seconds=latency.capital_at_risk_seconds,
            slippage_p50=pool_risk.slippage_p50,
            slippage_p95=pool_risk.slippage_p95,
            price_impact=pool_risk.price_impact,
            liquidity_depth=pool_risk.liquidity_depth,
            execution_confidence=confidence,
            recommended_action=action,
            used_fallback=pool_risk.used_fallback,
        )
        logger.debug(
            "risk_simulated",
            pool_id=params.pool_id,
            scenario=params.scenario,
            confidence=round(confidence, 4),
            action=action,
            depth=pool_risk.liquidity_depth,
        )
        return metrics
