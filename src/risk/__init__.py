"""Risk simulation for liquidity deposits."""

from src.risk.latency import estimate_latency
from src.risk.models import (
    LatencyEstimate,
    PoolRisk,
    RiskMetrics,
    SimulationParams,
    classify_liquidity_depth,
)
from src.risk.simulator import RiskSimulator, calculate_confidence, recommend

__all__ = [
    "LatencyEstimate",
    "PoolRisk",
    "RiskMetrics",
    "RiskSimulator",
    "SimulationParams",
    "calculate_confidence",
    "classify_liquidity_depth",
    "estimate_latency",
    "recommend",
]
