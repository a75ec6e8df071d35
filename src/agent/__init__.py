"""Risk-gated settlement agent."""

from src.agent.decision import abort_reason, make_decision
from src.agent.engine import SettleAgent
from src.agent.models import (
    Decision,
    DecisionLogEntry,
    ExecutionResult,
    SimulationPreview,
)
from src.agent.policy import DEFAULT_POLICY, AgentPolicy

__all__ = [
    "DEFAULT_POLICY",
    "AgentPolicy",
    "Decision",
    "DecisionLogEntry",
    "ExecutionResult",
    "SettleAgent",
    "SimulationPreview",
    "abort_reason",
    "make_decision",
]
