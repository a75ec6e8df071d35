"""Static finality latency model for the bridging leg."""

from __future__ import annotations

import math

from src.risk.models import SCENARIO_MULTIPLIERS, LatencyEstimate

# Observed attestation timings, seconds.
BASE_LATENCY_P50 = 15
BASE_LATENCY_P95 = 45
BASE_LATENCY_P99 = 90


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def estimate_latency(scenario: str = "default") -> LatencyEstimate:
    """Scale the base latency table by the scenario multiplier.

    Capital-at-risk is the p95 delay: the conservative lock-up window.
    """
    if scenario not in SCENARIO_MULTIPLIERS:
        raise ValueError(f"Unknown scenario: {scenario}")
    multiplier = SCENARIO_MULTIPLIERS[scenario].latency
    p95 = _round_half_up(BASE_LATENCY_P95 * multiplier)
    return LatencyEstimate(
        p50=_round_half_up(BASE_LATENCY_P50 * multiplier),
        p95=p95,
        p99=_round_half_up(BASE_LATENCY_P99 * multiplier),
        capital_at_risk_seconds=p95,
    )
