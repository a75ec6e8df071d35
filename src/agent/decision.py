"""Policy decision rules applied to a risk estimate."""

from __future__ import annotations

from src.agent.models import Decision
from src.agent.policy import AgentPolicy
from src.risk.models import CONFIDENCE_MEDIUM, IMPACT_CRITICAL, RiskMetrics


def _simulator_hard_abort(risk: RiskMetrics) -> bool:
    """Simulator abort causes other than slippage."""
    return (
        risk.liquidity_depth in ("shallow", "none")
        or risk.price_impact >= IMPACT_CRITICAL
        or risk.execution_confidence < CONFIDENCE_MEDIUM
    )


def make_decision(risk: RiskMetrics, policy: AgentPolicy) -> Decision:
    """Map risk + policy to execute / wait / abort. First matching rule wins.

    1. confidence below policy minimum: abort
    2. simulator abort for a reason other than slippage: abort
    3. slippage above policy maximum: the policy's fallback strategy
    4. finality delay above policy maximum: wait
    5. price impact above policy maximum: abort
    6. otherwise the simulator's own recommendation
    """
    if risk.execution_confidence < policy.min_confidence:
        return Decision("abort", "confidence")

    if risk.recommended_action == "abort" and _simulator_hard_abort(risk):
        return Decision("abort", "simulator")

    if risk.slippage_p95 > policy.max_slippage:
        return Decision(policy.fallback_strategy, "slippage")

    if risk.finality_delay_p95 > policy.max_latency_seconds:
        return Decision("wait", "latency")

    if risk.price_impact > policy.max_price_impact:
        return Decision("abort", "price_impact")

    if risk.recommended_action == "execute":
        return Decision("execute")
    return Decision(risk.recommended_action, "simulator")


def abort_reason(risk: RiskMetrics, policy: AgentPolicy) -> str:
    """Every violated threshold, in order: confidence, slippage, impact."""
    reasons = []
    if risk.execution_confidence < policy.min_confidence:
        reasons.append(
            f"Low confidence ({risk.execution_confidence * 100:.1f}% "
            f"< {policy.min_confidence * 100:.1f}%)"
        )
    if risk.slippage_p95 > policy.max_slippage:
        reasons.append(
            f"High slippage ({risk.slippage_p95 * 100:.2f}% "
            f"> {policy.max_slippage * 100:.2f}%)"
        )
    if risk.price_impact > policy.max_price_impact:
        reasons.append(
            f"High price impact ({risk.price_impact * 100:.2f}% "
            f"> {policy.max_price_impact * 100:.2f}%)"
        )
    return "; ".join(reasons) if reasons else "Risk thresholds exceeded"


def max_retries_reason(policy: AgentPolicy) -> str:
    return (
        f"Max retries ({policy.retry_attempts}) exceeded "
        "while waiting for favorable conditions"
    )
