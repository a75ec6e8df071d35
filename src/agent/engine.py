"""Settlement decision engine.

Each call runs simulate -> log -> decide, then executes, waits and
re-evaluates, or aborts. The retry chain is a loop whose only suspension
point is the retry delay, which an ``asyncio.Event`` can cut short.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Optional

import structlog

from src.agent.decision import abort_reason, make_decision, max_retries_reason
from src.agent.models import DecisionLogEntry, ExecutionResult, SimulationPreview
from src.agent.policy import AgentPolicy
from src.exceptions import ConfigError, TickRangeError
from src.execution.gateway import ExecutionGateway, adapt_gateway_response
from src.execution.models import DepositIntent
from src.liquidity.position import plan_tick_range
from src.pools.keys import PoolKey, compute_pool_id
from src.pools.scoring import PoolSelector
from src.risk.models import RiskMetrics, SimulationParams, check_scenario
from src.risk.simulator import RiskSimulator

logger = structlog.get_logger()

Sleep = Callable[[float], Awaitable[Any]]


class SettleAgent:
    """Risk-gated executor for liquidity deposit intents."""

    def __init__(
        self,
        simulator: RiskSimulator,
        gateway: ExecutionGateway,
        policy: Optional[AgentPolicy] = None,
        selector: Optional[PoolSelector] = None,
        pair: Optional[tuple[str, str]] = None,
        *,
        scenario: str = "default",
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._simulator = simulator
        self._gateway = gateway
        self._policy = policy or AgentPolicy()
        self._selector = selector
        self._pair = pair
        self._scenario = check_scenario(scenario)
        self._sleep = sleep
        self._log: list[DecisionLogEntry] = []

    @classmethod
    def from_settings(cls, gateway: Optional[ExecutionGateway] = None) -> "SettleAgent":
        """Wire reader, simulator, selector and policy from global settings.

        Without an explicit gateway, PAPER_MODE must be on.
        """
        from config.settings import settings
        from config.validators import validate_pair, validate_risk_scenario
        from src.execution.gateway import PaperExecutionGateway
        from src.pools.state import Web3PoolStateReader
        from src.utils.logging import configure_logging

        configure_logging(settings.LOG_LEVEL, settings.LOG_JSON)
        validate_pair()
        validate_risk_scenario()
        reader = Web3PoolStateReader.from_settings()
        if gateway is None:
            if not settings.PAPER_MODE:
                raise ConfigError("A live execution gateway is required when PAPER_MODE is off")
            gateway = PaperExecutionGateway(reader)

        policy = AgentPolicy.from_settings(settings)
        simulator = RiskSimulator(reader)
        selector = PoolSelector(
            reader,
            simulator,
            policy.eligibility_rules(),
            policy.scoring_weights(),
            scenario=settings.RISK_SCENARIO,
            hooks=settings.PAIR_HOOKS,
            decimals0=settings.TOKEN0_DECIMALS,
            decimals1=settings.TOKEN1_DECIMALS,
        )
        return cls(
            simulator,
            gateway,
            policy,
            selector,
            (settings.PAIR_TOKEN_A, settings.PAIR_TOKEN_B),
            scenario=settings.RISK_SCENARIO,
        )

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def evaluate_and_execute(
        self,
        intent: DepositIntent,
        pool_key: Optional[PoolKey] = None,
        retry_count: int = 0,
        cancel: Optional[asyncio.Event] = None,
    ) -> ExecutionResult:
        """Evaluate ``intent`` and execute, retry or abort per the current policy."""
        return await self._run(intent, pool_key, retry_count, cancel, self._policy)

    async def select_and_execute(
        self,
        amount: int,
        recipient: Optional[str] = None,
        cancel: Optional[asyncio.Event] = None,
    ) -> ExecutionResult:
        """Pick the best pool for the configured pair, then evaluate and execute."""
        if self._selector is None or self._pair is None:
            raise ConfigError("Pool selection needs a selector and a token pair")

        policy = self._policy
        token_a, token_b = self._pair
        logger.info("pool_selection_started", amount=amount, token_a=token_a, token_b=token_b)

        selection = await self._selector.select_pool(
            token_a,
            token_b,
            amount,
            rules=policy.eligibility_rules(),
            weights=policy.scoring_weights(),
            decide=lambda risk: make_decision(risk, policy).action,
        )
        pool = selection.selected_pool
        if pool is None or selection.pool_key is None:
            logger.warning("pool_selection_aborted", reason=selection.selection_reason)
            return ExecutionResult(
                status="aborted",
                risk=RiskMetrics.empty(),
                reason=selection.selection_reason,
            )

        tick_lower: Optional[int] = None
        tick_upper: Optional[int] = None
        try:
            tick_lower, tick_upper = plan_tick_range(
                pool.tick,
                selection.pool_key.tick_spacing,
                policy.tick_range_width,
                policy.position_type,
            )
        except TickRangeError as e:
            logger.warning("tick_range_unplanned", pool_id=pool.pool_id[:10], error=str(e))

        intent = DepositIntent(
            amount=amount,
            pool_id=pool.pool_id,
            tick_lower=tick_lower,
            tick_upper=tick_upper,
            recipient=recipient,
        )
        return await self._run(intent, selection.pool_key, 0, cancel, policy)

    async def simulate_only(self, intent: DepositIntent) -> SimulationPreview:
        """Risk and decision for ``intent`` with no log entry and no execution."""
        pool_id = intent.pool_id
        if not pool_id:
            raise ValueError("intent.pool_id is required for simulation")
        policy = self._policy
        risk = await self._simulate(pool_id, intent.amount)
        decision = make_decision(risk, policy)
        return SimulationPreview(
            risk=risk,
            decision=decision.action,
            reason=abort_reason(risk, policy) if decision.action == "abort" else None,
        )

    # ------------------------------------------------------------------
    # History and policy
    # ------------------------------------------------------------------

    def get_execution_history(self) -> list[DecisionLogEntry]:
        return list(self._log)

    def clear_execution_history(self) -> None:
        self._log = []

    def get_policy(self) -> AgentPolicy:
        return self._policy

    def update_policy(self, **changes: Any) -> AgentPolicy:
        """Apply validated changes. Runs already in flight keep their snapshot."""
        self._policy = self._policy.updated(**changes)
        logger.info("policy_updated", **self._policy.to_dict())
        return self._policy

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _simulate(self, pool_id: str, amount: int) -> RiskMetrics:
        return await self._simulator.simulate(
            SimulationParams(pool_id=pool_id, amount_in=amount, scenario=self._scenario)
        )

    async def _run(
        self,
        intent: DepositIntent,
        pool_key: Optional[PoolKey],
        retry_count: int,
        cancel: Optional[asyncio.Event],
        policy: AgentPolicy,
    ) -> ExecutionResult:
        pool_id = intent.pool_id
        if pool_key is not None:
            key_id = compute_pool_id(pool_key)
            if pool_id is None:
                pool_id = key_id
            elif pool_id.lower() != key_id.lower():
                logger.warning("pool_key_mismatch", intent_pool_id=pool_id, pool_key_id=key_id)
        if pool_id is None:
            return ExecutionResult(
                status="failed",
                risk=RiskMetrics.empty(),
                reason="pool_id or pool_key is required to evaluate a deposit",
                retry_count=retry_count,
            )

        while True:
            logger.info(
                "intent_evaluating",
                pool_id=pool_id[:10],
                amount=intent.amount,
                attempt=retry_count + 1,
                max_attempts=policy.retry_attempts + 1,
            )
            risk = await self._simulate(pool_id, intent.amount)
            decision = make_decision(risk, policy)
            self._log.append(
                DecisionLogEntry(
                    decision=decision.action,
                    risk=risk,
                    policy=policy,
                    intent=intent,
                    retry_count=retry_count,
                    trigger=decision.trigger,
                )
            )
            logger.info(
                "decision_made",
                decision=decision.action,
                trigger=decision.trigger,
                confidence=round(risk.execution_confidence, 4),
                slippage_p95=round(risk.slippage_p95, 6),
                impact=round(risk.price_impact, 6),
                finality_p95=risk.finality_delay_p95,
                retry_count=retry_count,
            )

            if decision.action == "execute":
                return await self._execute(intent, pool_key, risk, retry_count)

            if decision.action == "abort":
                return ExecutionResult(
                    status="aborted",
                    risk=risk,
                    reason=abort_reason(risk, policy),
                    retry_count=retry_count,
                )

            if retry_count >= policy.retry_attempts:
                logger.warning("max_retries_reached", retry_attempts=policy.retry_attempts)
                return ExecutionResult(
                    status="aborted",
                    risk=risk,
                    reason=max_retries_reason(policy),
                    retry_count=retry_count,
                )

            logger.info("retry_scheduled", delay=policy.retry_delay_seconds,
                        retry_count=retry_count + 1)
            if await self._wait(policy.retry_delay_seconds, cancel):
                logger.warning("retry_cancelled", retry_count=retry_count)
                return ExecutionResult(
                    status="aborted",
                    risk=risk,
                    reason="Cancelled while waiting for retry",
                    retry_count=retry_count,
                )
            retry_count += 1

    async def _wait(self, seconds: float, cancel: Optional[asyncio.Event]) -> bool:
        """Sleep for ``seconds``. Returns True if ``cancel`` fired first."""
        if cancel is None:
            await self._sleep(seconds)
            return False
        if cancel.is_set():
            return True

        sleeper = asyncio.ensure_future(self._sleep(seconds))
        watcher = asyncio.ensure_future(cancel.wait())
        try:
            await asyncio.wait({sleeper, watcher}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (sleeper, watcher):
                if not task.done():
                    task.cancel()
        return cancel.is_set()

    async def _execute(
        self,
        intent: DepositIntent,
        pool_key: Optional[PoolKey],
        risk: RiskMetrics,
        retry_count: int,
    ) -> ExecutionResult:
        if pool_key is None:
            logger.error("execution_missing_pool_key", pool_id=intent.pool_id)
            return ExecutionResult(
                status="failed",
                risk=risk,
                reason="pool_key is required for liquidity deposit execution",
                retry_count=retry_count,
            )

        logger.info("deposit_executing", amount=intent.amount, fee=pool_key.fee)
        try:
            result = adapt_gateway_response(
                await self._gateway.deposit_liquidity(intent, pool_key)
            )
        except Exception as e:
            logger.error("deposit_error", error=str(e))
            return ExecutionResult(
                status="failed",
                risk=risk,
                reason=str(e),
                retry_count=retry_count,
            )

        if not result.success:
            logger.error("deposit_failed", error=result.error)
            return ExecutionResult(
                status="failed",
                risk=risk,
                reason=result.error or "Unknown error during liquidity deposit",
                retry_count=retry_count,
            )

        logger.info("deposit_completed", tx_hash=result.tx_hash, position_id=result.position_id)
        return ExecutionResult(
            status="completed",
            risk=risk,
            tx_hash=result.tx_hash,
            position_id=result.position_id,
            retry_count=retry_count,
        )
