"""Pool state access: the reader protocol and a web3 StateView reader."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Protocol, TypeVar, runtime_checkable

import structlog
from web3 import Web3

from src.exceptions import PoolStateError

logger = structlog.get_logger()
T = TypeVar("T")

STATE_VIEW_ABI = [
    {
        "name": "getSlot0",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "poolId", "type": "bytes32"}],
        "outputs": [
            {"name": "sqrtPriceX96", "type": "uint160"},
            {"name": "tick", "type": "int24"},
            {"name": "protocolFee", "type": "uint24"},
            {"name": "lpFee", "type": "uint24"},
        ],
    },
    {
        "name": "getLiquidity",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "poolId", "type": "bytes32"}],
        "outputs": [{"name": "liquidity", "type": "uint128"}],
    },
]


@dataclass(frozen=True, slots=True)
class PoolState:
    """Snapshot of a pool at one block. Read fresh for every decision."""

    pool_id: str
    sqrt_price_x96: int
    tick: int
    liquidity: int
    fee: int

    @property
    def initialized(self) -> bool:
        return self.sqrt_price_x96 > 0


@runtime_checkable
class PoolStateReader(Protocol):
    """Anything that can fetch the current state of a pool by id."""

    async def get_pool_state(self, pool_id: str) -> PoolState: ...


@dataclass(frozen=True, slots=True)
class PoolStateResult:
    """Either a state or the error that prevented reading it."""

    state: Optional[PoolState] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.state is not None


async def read_pool_state(reader: PoolStateReader, pool_id: str) -> PoolStateResult:
    """Query ``reader`` and fold any failure into a :class:`PoolStateResult`."""
    try:
        state = await reader.get_pool_state(pool_id)
    except Exception as e:
        logger.warning("pool_state_read_failed", pool_id=pool_id, error=str(e))
        return PoolStateResult(error=str(e) or type(e).__name__)
    return PoolStateResult(state=state)


async def _read_with_retry(
    call: Callable[[], Awaitable[T]],
    *,
    max_attempts: int = 3,
    base_delay: float = 0.1,
    operation: str = "",
) -> T:
    """Retry an RPC read with exponential backoff (100ms, 200ms, 400ms...)."""
    last_exc: Exception = RuntimeError("no attempts")
    for attempt in range(max_attempts):
        try:
            return await call()
        except Exception as e:
            last_exc = e
            if attempt == max_attempts - 1:
                logger.error("pool_read_failed", op=operation, error=str(e),
                             attempts=attempt + 1)
                break
            delay = base_delay * (2 ** attempt)
            logger.warning("pool_read_retry", op=operation, attempt=attempt + 1,
                           delay=delay, error=str(e))
            await asyncio.sleep(delay)
    raise PoolStateError(
        f"Failed to fetch pool state after {max_attempts} attempts: {last_exc}"
    ) from last_exc


class Web3PoolStateReader:
    """Reads pool state through the Uniswap v4 StateView lens contract."""

    def __init__(
        self,
        rpc_url: str,
        state_view_address: str,
        *,
        timeout: float = 10.0,
        max_attempts: int = 3,
        base_delay: float = 0.1,
        web3: Optional[Web3] = None,
    ) -> None:
        if not state_view_address:
            raise ValueError("state_view_address is required")
        self._w3 = web3 or Web3(
            Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": timeout})
        )
        self._contract = self._w3.eth.contract(
            address=Web3.to_checksum_address(state_view_address),
            abi=STATE_VIEW_ABI,
        )
        self._max_attempts = max_attempts
        self._base_delay = base_delay

    @classmethod
    def from_settings(cls) -> "Web3PoolStateReader":
        """Build a reader from global settings.

        Raises ConfigError if the RPC endpoint or StateView address is missing.
        """
        from config.settings import settings
        from config.validators import validate_pool_reader
        validate_pool_reader()
        return cls(
            rpc_url=settings.RPC_URL,
            state_view_address=settings.STATE_VIEW_ADDRESS,
            timeout=settings.POOL_READ_TIMEOUT_SECONDS,
            max_attempts=settings.POOL_READ_MAX_ATTEMPTS,
            base_delay=settings.POOL_READ_BASE_DELAY,
        )

    def _get_pool_state_sync(self, pool_id: str) -> PoolState:
        pool_id_bytes = Web3.to_bytes(hexstr=pool_id)
        slot0: Any = self._contract.functions.getSlot0(pool_id_bytes).call()
        liquidity = self._contract.functions.getLiquidity(pool_id_bytes).call()
        sqrt_price_x96, tick, _protocol_fee, lp_fee = slot0
        return PoolState(
            pool_id=pool_id,
            sqrt_price_x96=int(sqrt_price_x96),
            tick=int(tick),
            liquidity=int(liquidity),
            fee=int(lp_fee),
        )

    async def get_pool_state(self, pool_id: str) -> PoolState:
        """Fetch slot0 and liquidity for ``pool_id``.

        Raises PoolStateError once every attempt has failed.
        """
        return await _read_with_retry(
            lambda: asyncio.to_thread(self._get_pool_state_sync, pool_id),
            max_attempts=self._max_attempts,
            base_delay=self._base_delay,
            operation=f"get_pool_state:{pool_id[:10]}",
        )
