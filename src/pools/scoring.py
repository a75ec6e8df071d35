"""Pool scoring and best-pool selection.

``score_pool`` is a pure function of (pool, risk, rules, weights); the
reasons it emits are stable strings so a selection can be audited later.
"""

from __future__ import annotations

import asyncio
import math
from dataclasses import dataclass, field
from typing import Callable, Optional

import structlog

from src.pools.discovery import DiscoveredPool, discover_pools
from src.pools.keys import ZERO_ADDRESS, PoolKey
from src.pools.state import PoolStateReader
from src.risk.models import RiskMetrics, SimulationParams, check_scenario
from src.risk.simulator import RiskSimulator

logger = structlog.get_logger()

# Reason fragments that mark a pool as ineligible in the aggregated message.
_INELIGIBLE_MARKERS = ("ineligible", "exceeds", "below")


@dataclass(frozen=True, slots=True)
class EligibilityRules:
    """Hard gates. Failing any one makes a pool ineligible."""

    max_slippage: float = 0.01
    max_price_impact: float = 0.02
    min_confidence: float = 0.8
    min_liquidity: Optional[int] = 0
    min_fee_tier: Optional[int] = 100
    max_fee_tier: Optional[int] = 10000


@dataclass(frozen=True, slots=True)
class ScoringWeights:
    """Soft preferences. They only move the score."""

    preferred_fee_tiers: tuple[int, ...] = (3000, 500)
    fee_rank_penalty: int = 5
    unlisted_fee_penalty: int = 15
    moderate_depth_penalty: int = 15
    shallow_depth_penalty: int = 30
    no_depth_penalty: int = 50
    high_slippage: float = 0.03
    high_slippage_penalty: int = 20
    moderate_slippage: float = 0.01
    moderate_slippage_penalty: int = 10
    high_impact: float = 0.02
    high_impact_penalty: int = 15
    moderate_impact: float = 0.005
    moderate_impact_penalty: int = 7
    confidence_bonus_scale: int = 10


@dataclass(frozen=True, slots=True)
class PoolEvaluation:
    pool: DiscoveredPool
    risk: RiskMetrics
    decision: str
    score: int
    reasons: tuple[str, ...]
    eligible: bool


@dataclass(frozen=True, slots=True)
class PoolSelectionResult:
    selected_pool: Optional[DiscoveredPool]
    pool_key: Optional[PoolKey]
    all_evaluations: tuple[PoolEvaluation, ...] = field(default_factory=tuple)
    selection_reason: str = ""


def _pct(value: float, digits: int = 2) -> str:
    return f"{value * 100:.{digits}f}%"


def score_pool(
    pool: DiscoveredPool,
    risk: RiskMetrics,
    rules: EligibilityRules,
    weights: ScoringWeights,
) -> tuple[int, tuple[str, ...], bool]:
    """Score a pool out of 100.

    Starts at 100 and applies, in order: fee-tier preference, fee-tier
    bounds, liquidity depth, minimum liquidity, slippage, price impact and a
    confidence bonus. An uninitialized pool always scores 0 and is ineligible.

    Returns ``(score, reasons, eligible)``.
    """
    score = 100
    reasons: list[str] = []
    eligible = True
    fee = pool.pool_key.fee

    # Fee tier preference
    if weights.preferred_fee_tiers:
        if fee in weights.preferred_fee_tiers:
            rank = weights.preferred_fee_tiers.index(fee)
        else:
            rank = -1
        if rank == 0:
            reasons.append(f"Preferred fee tier ({pool.fee_percent})")
        elif rank > 0:
            penalty = rank * weights.fee_rank_penalty
            score -= penalty
            reasons.append(
                f"Fee tier {pool.fee_percent} is preference #{rank + 1} (-{penalty})"
            )
        else:
            score -= weights.unlisted_fee_penalty
            reasons.append(
                f"Fee tier {pool.fee_percent} not in preferred list "
                f"(-{weights.unlisted_fee_penalty})"
            )

    if rules.max_fee_tier and fee > rules.max_fee_tier:
        eligible = False
        reasons.append(f"Fee tier {pool.fee_percent} exceeds maximum")
    if rules.min_fee_tier and fee < rules.min_fee_tier:
        eligible = False
        reasons.append(f"Fee tier {pool.fee_percent} below minimum")

    # Liquidity depth
    depth = pool.liquidity_depth
    if depth == "deep":
        reasons.append("Deep liquidity (+0)")
    elif depth == "moderate":
        score -= weights.moderate_depth_penalty
        reasons.append(f"Moderate liquidity (-{weights.moderate_depth_penalty})")
    elif depth == "shallow":
        score -= weights.shallow_depth_penalty
        reasons.append(f"Shallow liquidity (-{weights.shallow_depth_penalty})")
    elif depth == "none":
        score -= weights.no_depth_penalty
        eligible = False
        reasons.append(f"No liquidity (-{weights.no_depth_penalty}, ineligible)")

    if rules.min_liquidity is not None and pool.liquidity < rules.min_liquidity:
        eligible = False
        reasons.append(f"Liquidity {pool.liquidity} below minimum {rules.min_liquidity}")

    # Slippage: score penalty, then the hard policy gate
    slippage = risk.slippage_p95
    if slippage > weights.high_slippage:
        score -= weights.high_slippage_penalty
        reasons.append(f"High slippage {_pct(slippage)} (-{weights.high_slippage_penalty})")
    elif slippage > weights.moderate_slippage:
        score -= weights.moderate_slippage_penalty
        reasons.append(
            f"Moderate slippage {_pct(slippage)} (-{weights.moderate_slippage_penalty})"
        )
    else:
        reasons.append(f"Low slippage {_pct(slippage)} (+0)")

    if slippage > rules.max_slippage:
        eligible = False
        reasons.append(f"Slippage exceeds policy max {_pct(rules.max_slippage)}")

    # Price impact: same shape as slippage
    impact = risk.price_impact
    if impact > weights.high_impact:
        score -= weights.high_impact_penalty
        reasons.append(f"High price impact {_pct(impact)} (-{weights.high_impact_penalty})")
    elif impact > weights.moderate_impact:
        score -= weights.moderate_impact_penalty
        reasons.append(
            f"Moderate price impact {_pct(impact)} (-{weights.moderate_impact_penalty})"
        )
    else:
        reasons.append(f"Low price impact {_pct(impact)} (+0)")

    if impact > rules.max_price_impact:
        eligible = False
        reasons.append(f"Price impact exceeds policy max {_pct(rules.max_price_impact)}")

    # Confidence bonus
    confidence = risk.execution_confidence
    bonus = math.floor(confidence * weights.confidence_bonus_scale)
    score += bonus
    reasons.append(f"Execution confidence {_pct(confidence, 0)} (+{bonus})")

    if confidence < rules.min_confidence:
        eligible = False
        reasons.append(f"Confidence below policy min {_pct(rules.min_confidence, 0)}")

    if not pool.initialized:
        eligible = False
        score = 0
        reasons.append("Pool not initialized (ineligible)")

    score = max(0, min(100, score))
    return score, tuple(reasons), eligible


def select_best(evaluations: list[PoolEvaluation]) -> PoolSelectionResult:
    """Pick the highest-scoring eligible pool; ties keep enumeration order."""
    evaluations = tuple(evaluations)
    eligible = sorted(
        (e for e in evaluations if e.eligible), key=lambda e: e.score, reverse=True
    )

    if not eligible:
        details = "; ".join(
            f"{e.pool.fee_percent}: "
            + ", ".join(
                r for r in e.reasons if any(m in r for m in _INELIGIBLE_MARKERS)
            )
            for e in evaluations
        )
        return PoolSelectionResult(
            selected_pool=None,
            pool_key=None,
            all_evaluations=evaluations,
            selection_reason=f"No pools meet eligibility criteria. {details}",
        )

    best = eligible[0]
    return PoolSelectionResult(
        selected_pool=best.pool,
        pool_key=best.pool.pool_key,
        all_evaluations=evaluations,
        selection_reason=(
            f"Selected {best.pool.fee_percent} fee pool with score {best.score}/100"
        ),
    )


Decide = Callable[[RiskMetrics], str]


class PoolSelector:
    """Discovers, evaluates and ranks the pools of a token pair."""

    def __init__(
        self,
        reader: PoolStateReader,
        simulator: RiskSimulator,
        rules: Optional[EligibilityRules] = None,
        weights: Optional[ScoringWeights] = None,
        *,
        scenario: str = "default",
        hooks: str = ZERO_ADDRESS,
        decimals0: int = 18,
        decimals1: int = 6,
    ) -> None:
        self._reader = reader
        self._simulator = simulator
        self.rules = rules or EligibilityRules()
        self.weights = weights or ScoringWeights()
        self.scenario = check_scenario(scenario)
        self.hooks = hooks
        self.decimals0 = decimals0
        self.decimals1 = decimals1

    async def evaluate_pool(
        self,
        pool: DiscoveredPool,
        amount: int,
        *,
        rules: Optional[EligibilityRules] = None,
        weights: Optional[ScoringWeights] = None,
        decide: Optional[Decide] = None,
    ) -> PoolEvaluation:
        """Simulate ``amount`` against ``pool`` and score the result.

        ``decide`` maps the risk to an action; without it the simulator's
        own recommendation is used.
        """
        risk = await self._simulator.simulate(
            SimulationParams(pool_id=pool.pool_id, amount_in=amount, scenario=self.scenario)
        )
        decision = decide(risk) if decide else risk.recommended_action
        score, reasons, eligible = score_pool(
            pool, risk, rules or self.rules, weights or self.weights
        )
        logger.info(
            "pool_evaluated",
            pool_id=pool.pool_id[:10],
            fee=pool.fee_percent,
            depth=pool.liquidity_depth,
            slippage_p95=round(risk.slippage_p95, 6),
            impact=round(risk.price_impact, 6),
            score=score,
            decision=decision,
            eligible=eligible,
        )
        return PoolEvaluation(
            pool=pool,
            risk=risk,
            decision=decision,
            score=score,
            reasons=reasons,
            eligible=eligible,
        )

    async def evaluate_pools(
        self,
        pools: list[DiscoveredPool],
        amount: int,
        *,
        rules: Optional[EligibilityRules] = None,
        weights: Optional[ScoringWeights] = None,
        decide: Optional[Decide] = None,
    ) -> list[PoolEvaluation]:
        """Evaluate all pools concurrently; results keep input order."""
        return list(
            await asyncio.gather(
                *(
                    self.evaluate_pool(
                        pool, amount, rules=rules, weights=weights, decide=decide
                    )
                    for pool in pools
                )
            )
        )

    async def select_pool(
        self,
        token_a: str,
        token_b: str,
        amount: int,
        *,
        rules: Optional[EligibilityRules] = None,
        weights: Optional[ScoringWeights] = None,
        decide: Optional[Decide] = None,
    ) -> PoolSelectionResult:
        """Discover the pair's pools, evaluate the initialized ones, pick one."""
        pools = await discover_pools(
            self._reader,
            token_a,
            token_b,
            self.hooks,
            decimals0=self.decimals0,
            decimals1=self.decimals1,
        )
        initialized = [p for p in pools if p.initialized]
        if not initialized:
            logger.warning("no_initialized_pools", token_a=token_a, token_b=token_b)
            return PoolSelectionResult(
                selected_pool=None,
                pool_key=None,
                all_evaluations=(),
                selection_reason="No initialized pools found for the token pair",
            )

        evaluations = await self.evaluate_pools(
            initialized, amount, rules=rules, weights=weights, decide=decide
        )
        result = select_best(evaluations)
        logger.info(
            "pool_selected" if result.selected_pool else "pool_selection_failed",
            reason=result.selection_reason,
            evaluated=len(evaluations),
        )
        return result
