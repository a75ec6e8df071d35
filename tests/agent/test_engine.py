"""Tests for the SettleAgent decision engine."""

import asyncio
from dataclasses import replace
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.agent.engine import SettleAgent
from src.agent.policy import AgentPolicy
from src.exceptions import ConfigError, PolicyError
from src.execution.models import DepositIntent, DepositResult
from src.pools.discovery import DiscoveredPool
from src.pools.keys import ZERO_ADDRESS, compute_pool_id, create_pool_key, fee_to_percent
from src.pools.scoring import PoolSelectionResult
from src.risk.models import RiskMetrics

USDC = "0x31d0220469e10c4e71834a79b1f276d740d3768f"
POOL_KEY = create_pool_key(ZERO_ADDRESS, USDC, 3000, 60)
POOL_ID = compute_pool_id(POOL_KEY)

GOOD_RISK = RiskMetrics(
    finality_delay_p50=15,
    finality_delay_p95=45,
    capital_at_risk_seconds=45,
    slippage_p50=0.0015,
    slippage_p95=0.003,
    price_impact=0.001,
    liquidity_depth="deep",
    execution_confidence=1.0,
    recommended_action="execute",
)
WAIT_RISK = replace(GOOD_RISK, execution_confidence=0.9, recommended_action="wait")
SLIPPY_RISK = replace(GOOD_RISK, slippage_p95=0.02, execution_confidence=0.9, recommended_action="wait")
SHALLOW_RISK = replace(
    GOOD_RISK,
    liquidity_depth="shallow",
    execution_confidence=0.425,
    slippage_p95=0.05,
    price_impact=0.03,
    recommended_action="abort",
)


def _simulator(*risks):
    simulator = MagicMock()
    if len(risks) == 1:
        simulator.simulate = AsyncMock(return_value=risks[0])
    else:
        simulator.simulate = AsyncMock(side_effect=list(risks))
    return simulator


def _gateway(result=None):
    gateway = MagicMock()
    gateway.deposit_liquidity = AsyncMock(
        return_value=result or DepositResult(success=True, tx_hash="0xabc", position_id="7")
    )
    return gateway


def _agent(simulator, gateway=None, policy=None, sleep=None, **kwargs):
    return SettleAgent(
        simulator,
        gateway or _gateway(),
        policy,
        sleep=sleep or AsyncMock(),
        **kwargs,
    )


def _intent(amount=1_000_000, **kwargs):
    return DepositIntent(amount=amount, pool_id=POOL_ID, **kwargs)


# --- execute ---------------------------------------------------------------

@pytest.mark.asyncio
async def test_execute_completes_with_gateway_result():
    gateway = _gateway()
    agent = _agent(_simulator(GOOD_RISK), gateway)

    result = await agent.evaluate_and_execute(_intent(), POOL_KEY)

    assert result.status == "completed"
    assert result.tx_hash == "0xabc"
    assert result.position_id == "7"
    assert result.risk == GOOD_RISK
    assert result.reason is None
    gateway.deposit_liquidity.assert_awaited_once_with(_intent(), POOL_KEY)


@pytest.mark.asyncio
async def test_pool_id_resolved_from_key():
    simulator = _simulator(GOOD_RISK)
    agent = _agent(simulator)

    await agent.evaluate_and_execute(DepositIntent(amount=5), POOL_KEY)

    params = simulator.simulate.call_args.args[0]
    assert params.pool_id == POOL_ID
    assert params.amount_in == 5
    assert params.scenario == "default"


@pytest.mark.asyncio
async def test_scenario_passed_to_simulator():
    simulator = _simulator(GOOD_RISK)
    agent = _agent(simulator, scenario="pessimistic")
    await agent.evaluate_and_execute(_intent(), POOL_KEY)
    assert simulator.simulate.call_args.args[0].scenario == "pessimistic"


@pytest.mark.asyncio
async def test_missing_pool_id_and_key_fails():
    simulator = _simulator(GOOD_RISK)
    agent = _agent(simulator)

    result = await agent.evaluate_and_execute(DepositIntent(amount=5))

    assert result.status == "failed"
    assert result.risk == RiskMetrics.empty()
    simulator.simulate.assert_not_awaited()


@pytest.mark.asyncio
async def test_missing_pool_key_is_terminal_failure():
    gateway = _gateway()
    sleep = AsyncMock()
    agent = _agent(_simulator(GOOD_RISK), gateway, sleep=sleep)

    result = await agent.evaluate_and_execute(_intent())

    assert result.status == "failed"
    assert result.reason == "pool_key is required for liquidity deposit execution"
    assert result.risk == GOOD_RISK
    gateway.deposit_liquidity.assert_not_awaited()
    sleep.assert_not_awaited()


@pytest.mark.asyncio
async def test_gateway_failure_reported_verbatim():
    gateway = _gateway(DepositResult(success=False, error="execution reverted: STF"))
    agent = _agent(_simulator(GOOD_RISK), gateway)

    result = await agent.evaluate_and_execute(_intent(), POOL_KEY)

    assert result.status == "failed"
    assert result.reason == "execution reverted: STF"


@pytest.mark.asyncio
async def test_gateway_failure_without_error_message():
    agent = _agent(_simulator(GOOD_RISK), _gateway(DepositResult(success=False)))
    result = await agent.evaluate_and_execute(_intent(), POOL_KEY)
    assert result.reason == "Unknown error during liquidity deposit"


@pytest.mark.asyncio
async def test_gateway_exception_becomes_failed_result():
    gateway = MagicMock()
    gateway.deposit_liquidity = AsyncMock(side_effect=RuntimeError("nonce too low"))
    sleep = AsyncMock()
    agent = _agent(_simulator(GOOD_RISK), gateway, sleep=sleep)

    result = await agent.evaluate_and_execute(_intent(), POOL_KEY)

    assert result.status == "failed"
    assert result.reason == "nonce too low"
    sleep.assert_not_awaited()


@pytest.mark.asyncio
async def test_unrecognized_gateway_response_fails():
    agent = _agent(_simulator(GOOD_RISK), _gateway("0xabc"))
    result = await agent.evaluate_and_execute(_intent(), POOL_KEY)
    assert result.status == "failed"
    assert result.reason == "Unrecognized gateway response: '0xabc'"


@pytest.mark.asyncio
async def test_gateway_dict_response_adapted():
    gateway = _gateway()
    gateway.deposit_liquidity.return_value = {
        "success": True,
        "txHash": "0xdef",
        "positionId": 42,
    }
    agent = _agent(_simulator(GOOD_RISK), gateway)

    result = await agent.evaluate_and_execute(_intent(), POOL_KEY)

    assert result.status == "completed"
    assert result.tx_hash == "0xdef"
    assert result.position_id == "42"


# --- abort -----------------------------------------------------------------

@pytest.mark.asyncio
async def test_shallow_pool_aborts_with_all_violations():
    gateway = _gateway()
    agent = _agent(_simulator(SHALLOW_RISK), gateway)

    result = await agent.evaluate_and_execute(_intent(), POOL_KEY)

    assert result.status == "aborted"
    assert result.reason == (
        "Low confidence (42.5% < 80.0%); "
        "High slippage (5.00% > 1.00%); "
        "High price impact (3.00% > 2.00%)"
    )
    gateway.deposit_liquidity.assert_not_awaited()


@pytest.mark.asyncio
async def test_shallow_pool_aborts_even_with_wait_fallback():
    risk = replace(
        GOOD_RISK,
        liquidity_depth="shallow",
        execution_confidence=0.315,
        slippage_p95=0.02,
        price_impact=0.0404,
        recommended_action="abort",
    )
    sleep = AsyncMock()
    gateway = _gateway()
    policy = AgentPolicy(min_confidence=0.2, fallback_strategy="wait")
    agent = _agent(_simulator(risk), gateway, policy, sleep=sleep)

    result = await agent.evaluate_and_execute(_intent(), POOL_KEY)

    assert result.status == "aborted"
    assert result.retry_count == 0
    assert result.reason == (
        "High slippage (2.00% > 1.00%); High price impact (4.04% > 2.00%)"
    )
    sleep.assert_not_awaited()
    gateway.deposit_liquidity.assert_not_awaited()
    [entry] = agent.get_execution_history()
    assert (entry.decision, entry.trigger) == ("abort", "simulator")


@pytest.mark.asyncio
async def test_slippage_abort_fallback():
    sleep = AsyncMock()
    agent = _agent(
        _simulator(SLIPPY_RISK), policy=AgentPolicy(fallback_strategy="abort"), sleep=sleep
    )

    result = await agent.evaluate_and_execute(_intent(), POOL_KEY)

    assert result.status == "aborted"
    assert result.reason == "High slippage (2.00% > 1.00%)"
    sleep.assert_not_awaited()


# --- wait / retry ----------------------------------------------------------

@pytest.mark.asyncio
@pytest.mark.parametrize("attempts", [0, 1, 3])
async def test_retry_bound(attempts):
    simulator = _simulator(WAIT_RISK)
    sleep = AsyncMock()
    agent = _agent(
        simulator, policy=AgentPolicy(retry_attempts=attempts, retry_delay_seconds=30), sleep=sleep
    )

    result = await agent.evaluate_and_execute(_intent(), POOL_KEY)

    assert result.status == "aborted"
    assert result.reason == (
        f"Max retries ({attempts}) exceeded while waiting for favorable conditions"
    )
    assert result.retry_count == attempts
    assert sleep.await_count == attempts
    assert all(call.args == (30,) for call in sleep.await_args_list)
    assert simulator.simulate.await_count == attempts + 1
    history = agent.get_execution_history()
    assert [entry.retry_count for entry in history] == list(range(attempts + 1))
    assert all(entry.decision == "wait" for entry in history)


@pytest.mark.asyncio
async def test_slippage_wait_then_execute():
    gateway = _gateway()
    sleep = AsyncMock()
    agent = _agent(_simulator(SLIPPY_RISK, GOOD_RISK), gateway, sleep=sleep)

    result = await agent.evaluate_and_execute(_intent(), POOL_KEY)

    assert result.status == "completed"
    assert result.retry_count == 1
    sleep.assert_awaited_once_with(30.0)
    history = agent.get_execution_history()
    assert [(e.decision, e.trigger) for e in history] == [("wait", "slippage"), ("execute", None)]


@pytest.mark.asyncio
async def test_initial_retry_count_counts_against_budget():
    sleep = AsyncMock()
    agent = _agent(_simulator(WAIT_RISK), policy=AgentPolicy(retry_attempts=3), sleep=sleep)

    result = await agent.evaluate_and_execute(_intent(), POOL_KEY, retry_count=2)

    assert result.status == "aborted"
    assert result.retry_count == 3
    assert sleep.await_count == 1


@pytest.mark.asyncio
async def test_cancel_already_set_aborts_without_sleeping():
    sleep = AsyncMock()
    cancel = asyncio.Event()
    cancel.set()
    agent = _agent(_simulator(WAIT_RISK), sleep=sleep)

    result = await agent.evaluate_and_execute(_intent(), POOL_KEY, cancel=cancel)

    assert result.status == "aborted"
    assert result.reason == "Cancelled while waiting for retry"
    assert result.retry_count == 0
    sleep.assert_not_awaited()


@pytest.mark.asyncio
async def test_cancel_interrupts_pending_sleep():
    async def never(_seconds):
        await asyncio.Event().wait()

    simulator = _simulator(WAIT_RISK)
    cancel = asyncio.Event()
    agent = _agent(simulator, sleep=never)
    asyncio.get_running_loop().call_later(0.01, cancel.set)

    result = await asyncio.wait_for(
        agent.evaluate_and_execute(_intent(), POOL_KEY, cancel=cancel), timeout=5
    )

    assert result.status == "aborted"
    assert result.reason == "Cancelled while waiting for retry"
    assert simulator.simulate.await_count == 1


@pytest.mark.asyncio
async def test_unset_cancel_does_not_interrupt():
    sleep = AsyncMock()
    agent = _agent(_simulator(WAIT_RISK, GOOD_RISK), sleep=sleep)

    result = await agent.evaluate_and_execute(_intent(), POOL_KEY, cancel=asyncio.Event())

    assert result.status == "completed"
    sleep.assert_awaited_once()


# --- audit log -------------------------------------------------------------

@pytest.mark.asyncio
async def test_every_evaluation_logged():
    agent = _agent(_simulator(SHALLOW_RISK))
    intent = _intent()

    await agent.evaluate_and_execute(intent, POOL_KEY)

    [entry] = agent.get_execution_history()
    assert entry.decision == "abort"
    assert entry.trigger == "confidence"
    assert entry.risk == SHALLOW_RISK
    assert entry.intent == intent
    assert entry.policy == agent.get_policy()
    assert entry.retry_count == 0


@pytest.mark.asyncio
async def test_history_is_a_copy_and_can_be_cleared():
    agent = _agent(_simulator(GOOD_RISK))
    await agent.evaluate_and_execute(_intent(), POOL_KEY)
    await agent.evaluate_and_execute(_intent(), POOL_KEY)

    history = agent.get_execution_history()
    history.clear()
    assert len(agent.get_execution_history()) == 2

    agent.clear_execution_history()
    assert agent.get_execution_history() == []


@pytest.mark.asyncio
async def test_same_inputs_same_decision():
    agent = _agent(_simulator(SLIPPY_RISK), policy=AgentPolicy(retry_attempts=0))
    first = await agent.evaluate_and_execute(_intent(), POOL_KEY)
    second = await agent.evaluate_and_execute(_intent(), POOL_KEY)

    assert (first.status, first.reason, first.risk) == (second.status, second.reason, second.risk)
    decisions = [(e.decision, e.trigger) for e in agent.get_execution_history()]
    assert decisions[0] == decisions[1]


# --- policy ----------------------------------------------------------------

def test_unknown_scenario_rejected_at_construction():
    with pytest.raises(ConfigError, match="worst_case"):
        _agent(_simulator(GOOD_RISK), scenario="worst_case")


def test_default_policy():
    agent = _agent(_simulator(GOOD_RISK))
    assert agent.get_policy() == AgentPolicy()


def test_update_policy_validates():
    agent = _agent(_simulator(GOOD_RISK))
    updated = agent.update_policy(max_slippage=0.05)
    assert updated.max_slippage == 0.05
    assert agent.get_policy().max_slippage == 0.05

    with pytest.raises(PolicyError):
        agent.update_policy(max_slippage=3.0)
    assert agent.get_policy().max_slippage == 0.05


@pytest.mark.asyncio
async def test_in_flight_run_keeps_policy_snapshot():
    agent = None

    async def tighten(_seconds):
        agent.update_policy(retry_attempts=0)

    agent = _agent(_simulator(WAIT_RISK), policy=AgentPolicy(retry_attempts=2), sleep=tighten)

    result = await agent.evaluate_and_execute(_intent(), POOL_KEY)

    assert result.retry_count == 2
    assert agent.get_policy().retry_attempts == 0
    assert all(e.policy.retry_attempts == 2 for e in agent.get_execution_history())


# --- simulate only ---------------------------------------------------------

@pytest.mark.asyncio
async def test_simulate_only_does_not_log_or_execute():
    gateway = _gateway()
    agent = _agent(_simulator(SHALLOW_RISK), gateway)

    preview = await agent.simulate_only(_intent())

    assert preview.decision == "abort"
    assert preview.risk == SHALLOW_RISK
    assert preview.reason.startswith("Low confidence")
    assert agent.get_execution_history() == []
    gateway.deposit_liquidity.assert_not_awaited()


@pytest.mark.asyncio
async def test_simulate_only_execute_has_no_reason():
    preview = await _agent(_simulator(GOOD_RISK)).simulate_only(_intent())
    assert preview.decision == "execute"
    assert preview.reason is None


@pytest.mark.asyncio
async def test_simulate_only_requires_pool_id():
    with pytest.raises(ValueError):
        await _agent(_simulator(GOOD_RISK)).simulate_only(DepositIntent(amount=1))


# --- select and execute ----------------------------------------------------

def _discovered(tick=0):
    return DiscoveredPool(
        pool_id=POOL_ID,
        pool_key=POOL_KEY,
        initialized=True,
        sqrt_price_x96=2**96,
        tick=tick,
        liquidity=2_000_000 * 10**18,
        price=1e12,
        fee_percent=fee_to_percent(3000),
        liquidity_depth="deep",
    )


def _selector(result):
    selector = MagicMock()
    selector.select_pool = AsyncMock(return_value=result)
    return selector


@pytest.mark.asyncio
async def test_select_and_execute_requires_selector():
    with pytest.raises(ConfigError):
        await _agent(_simulator(GOOD_RISK)).select_and_execute(1_000_000)


@pytest.mark.asyncio
async def test_select_and_execute_no_eligible_pool():
    reason = "No pools meet eligibility criteria. 0.30%: Slippage 5.00% exceeds max 1.00%"
    selector = _selector(PoolSelectionResult(None, None, (), reason))
    simulator = _simulator(GOOD_RISK)
    gateway = _gateway()
    agent = _agent(simulator, gateway, selector=selector, pair=(ZERO_ADDRESS, USDC))

    result = await agent.select_and_execute(1_000_000)

    assert result.status == "aborted"
    assert result.reason == reason
    assert result.risk == RiskMetrics.empty()
    assert result.risk.execution_confidence == 0.0
    assert result.risk.recommended_action == "abort"
    simulator.simulate.assert_not_awaited()
    gateway.deposit_liquidity.assert_not_awaited()
    assert agent.get_execution_history() == []


@pytest.mark.asyncio
async def test_select_and_execute_plans_range_and_deposits():
    selection = PoolSelectionResult(_discovered(tick=125), POOL_KEY, (), "Selected 0.30% pool")
    selector = _selector(selection)
    gateway = _gateway()
    policy = AgentPolicy(tick_range_width=2000, position_type="one_sided_token1")
    agent = _agent(
        _simulator(GOOD_RISK), gateway, policy, selector=selector, pair=(ZERO_ADDRESS, USDC)
    )

    result = await agent.select_and_execute(1_000_000, recipient="0xrecipient")

    assert result.status == "completed"
    intent, key = gateway.deposit_liquidity.call_args.args
    assert key == POOL_KEY
    assert intent == DepositIntent(
        amount=1_000_000,
        pool_id=POOL_ID,
        tick_lower=120 - 1980,
        tick_upper=120,
        recipient="0xrecipient",
    )

    kwargs = selector.select_pool.call_args.kwargs
    assert selector.select_pool.call_args.args == (ZERO_ADDRESS, USDC, 1_000_000)
    assert kwargs["rules"] == policy.eligibility_rules()
    assert kwargs["weights"] == policy.scoring_weights()
    assert kwargs["decide"](GOOD_RISK) == "execute"
    assert kwargs["decide"](SLIPPY_RISK) == "wait"


@pytest.mark.asyncio
async def test_select_and_execute_runs_retry_loop():
    selection = PoolSelectionResult(_discovered(), POOL_KEY, (), "Selected 0.30% pool")
    sleep = AsyncMock()
    agent = _agent(
        _simulator(WAIT_RISK),
        policy=AgentPolicy(retry_attempts=2),
        sleep=sleep,
        selector=_selector(selection),
        pair=(ZERO_ADDRESS, USDC),
    )

    result = await agent.select_and_execute(1_000_000)

    assert result.status == "aborted"
    assert sleep.await_count == 2
    assert len(agent.get_execution_history()) == 3


# --- wiring ----------------------------------------------------------------

def test_from_settings_requires_gateway_outside_paper_mode(monkeypatch):
    from config.settings import settings

    monkeypatch.setattr(settings, "RPC_URL", "http://localhost:8545")
    monkeypatch.setattr(settings, "STATE_VIEW_ADDRESS", "0x86e8631a016f9068c3f085faf484ee3f5fdee8f2")
    monkeypatch.setattr(settings, "PAPER_MODE", False)

    with pytest.raises(ConfigError):
        SettleAgent.from_settings()


def test_from_settings_paper_mode(monkeypatch):
    from config.settings import settings
    from src.execution.gateway import PaperExecutionGateway

    monkeypatch.setattr(settings, "RPC_URL", "http://localhost:8545")
    monkeypatch.setattr(settings, "STATE_VIEW_ADDRESS", "0x86e8631a016f9068c3f085faf484ee3f5fdee8f2")
    monkeypatch.setattr(settings, "PAPER_MODE", True)

    agent = SettleAgent.from_settings()

    assert isinstance(agent._gateway, PaperExecutionGateway)
    assert agent.get_policy() == AgentPolicy.from_settings(settings)
