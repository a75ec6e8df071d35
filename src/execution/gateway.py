"""Execution gateway protocol and the paper-mode gateway."""

from __future__ import annotations

import itertools
from typing import Any, Protocol, runtime_checkable

import structlog
from web3 import Web3

from src.exceptions import ExecutionError, SettleError
from src.execution.models import DepositIntent, DepositResult
from src.liquidity.position import plan_position, usable_tick_bounds
from src.pools.keys import PoolKey, compute_pool_id
from src.pools.state import PoolStateReader

logger = structlog.get_logger()


@runtime_checkable
class ExecutionGateway(Protocol):
    """Interface every deposit backend must satisfy.

    Signing, gas and confirmation handling all live behind it.
    """

    async def deposit_liquidity(
        self, intent: DepositIntent, pool_key: PoolKey
    ) -> DepositResult | dict[str, Any]: ...


def _pick(raw: dict[str, Any], camel: str, snake: str) -> Any:
    """Value under the camelCase key if present, else the snake_case one."""
    return raw[camel] if camel in raw else raw.get(snake)


def adapt_gateway_response(raw: DepositResult | dict[str, Any]) -> DepositResult:
    """Normalize a gateway reply (dataclass or camelCase dict) to DepositResult."""
    if isinstance(raw, DepositResult):
        return raw
    if not isinstance(raw, dict):
        raise ExecutionError(f"Unrecognized gateway response: {raw!r}")
    success = bool(raw.get("success"))
    position_id = _pick(raw, "positionId", "position_id")
    liquidity = _pick(raw, "liquidityMinted", "liquidity")
    return DepositResult(
        success=success,
        tx_hash=_pick(raw, "txHash", "tx_hash"),
        position_id=str(position_id) if position_id is not None else None,
        error=raw.get("error") if not success else None,
        liquidity=int(liquidity) if liquidity is not None else None,
        amount0=int(raw["amount0"]) if raw.get("amount0") is not None else None,
        amount1=int(raw["amount1"]) if raw.get("amount1") is not None else None,
    )


class PaperExecutionGateway:
    """Plans the position against live pool state without sending anything.

    ``deposit_token`` selects which pool currency (0 or 1) the intent amount
    is denominated in.
    """

    def __init__(self, reader: PoolStateReader, *, deposit_token: int = 1) -> None:
        if deposit_token not in (0, 1):
            raise ValueError("deposit_token must be 0 or 1")
        self._reader = reader
        self._deposit_token = deposit_token
        self._position_ids = itertools.count(1)

    async def deposit_liquidity(
        self, intent: DepositIntent, pool_key: PoolKey
    ) -> DepositResult:
        # Unset ticks default to the full usable range for the pool.
        full_lower, full_upper = usable_tick_bounds(max(pool_key.tick_spacing, 1))
        tick_lower = intent.tick_lower if intent.tick_lower is not None else full_lower
        tick_upper = intent.tick_upper if intent.tick_upper is not None else full_upper
        if tick_lower >= tick_upper:
            return DepositResult(
                success=False,
                error=(
                    f"Invalid tick range: tick_lower ({tick_lower}) must be less "
                    f"than tick_upper ({tick_upper})"
                ),
            )

        pool_id = compute_pool_id(pool_key)
        amount0 = intent.amount if self._deposit_token == 0 else 0
        amount1 = intent.amount if self._deposit_token == 1 else 0
        try:
            state = await self._reader.get_pool_state(pool_id)
            plan = plan_position(state, tick_lower, tick_upper, amount0, amount1)
        except SettleError as e:
            logger.error("paper_deposit_failed", pool_id=pool_id, error=str(e))
            return DepositResult(success=False, error=str(e))

        if plan.liquidity == 0:
            return DepositResult(
                success=False,
                error=f"Deposit of {intent.amount} mints zero liquidity in [{tick_lower}, {tick_upper}]",
            )

        position_id = next(self._position_ids)
        tx_hash = Web3.to_hex(
            Web3.keccak(text=f"paper:{pool_id}:{tick_lower}:{tick_upper}:{plan.liquidity}:{position_id}")
        )
        logger.info(
            "paper_deposit",
            pool_id=pool_id[:10],
            tick_lower=tick_lower,
            tick_upper=tick_upper,
            liquidity=plan.liquidity,
            amount0=plan.amount0,
            amount1=plan.amount1,
            recipient=intent.recipient,
        )
        return DepositResult(
            success=True,
            tx_hash=tx_hash,
            position_id=str(position_id),
            liquidity=plan.liquidity,
            amount0=plan.amount0,
            amount1=plan.amount1,
        )
