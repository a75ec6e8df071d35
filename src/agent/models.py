"""Results and audit records produced by the settlement agent."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Optional

from src.agent.policy import AgentPolicy
from src.execution.models import DepositIntent
from src.risk.models import RiskMetrics


@dataclass(frozen=True, slots=True)
class Decision:
    """An action plus the rule that produced it (None when all checks pass)."""

    action: str  # "execute", "wait", "abort"
    trigger: Optional[str] = None


@dataclass(frozen=True, slots=True)
class ExecutionResult:
    status: str  # "completed", "aborted", "failed"
    risk: RiskMetrics
    reason: Optional[str] = None
    tx_hash: Optional[str] = None
    position_id: Optional[str] = None
    retry_count: int = 0
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True, slots=True)
class DecisionLogEntry:
    """One evaluation, recorded whether or not anything was executed."""

    decision: str
    risk: RiskMetrics
    policy: AgentPolicy
    intent: DepositIntent
    retry_count: int
    trigger: Optional[str] = None
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True, slots=True)
class SimulationPreview:
    risk: RiskMetrics
    decision: str
    reason: Optional[str] = None
