"""Pool discovery across the standard fee tiers.

There is no on-chain registry of pools for a pair, so every standard
(fee, tick spacing) combination is hashed into a pool id and queried.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

import structlog

from src.liquidity.position import sqrt_price_to_price
from src.pools.keys import (
    ZERO_ADDRESS,
    PoolKey,
    compute_pool_id,
    create_pool_key,
    fee_to_percent,
)
from src.pools.state import PoolStateReader, PoolStateResult, read_pool_state
from src.risk.models import classify_liquidity_depth

logger = structlog.get_logger()

# (fee, tick_spacing)
STANDARD_FEE_TIERS: tuple[tuple[int, int], ...] = (
    (100, 1),  # 0.01% stable pairs
    (500, 10),  # 0.05% stable / low volatility
    (3000, 60),  # 0.30% most pairs
    (10000, 200),  # 1.00% exotic / volatile
)


@dataclass(frozen=True, slots=True)
class DiscoveredPool:
    pool_id: str
    pool_key: PoolKey
    initialized: bool
    sqrt_price_x96: int
    tick: int
    liquidity: int
    price: float
    fee_percent: str
    liquidity_depth: str

    @property
    def fee(self) -> int:
        return self.pool_key.fee


def generate_pool_keys(
    token_a: str, token_b: str, hooks: str = ZERO_ADDRESS
) -> list[PoolKey]:
    """One sorted pool key per standard fee tier."""
    return [
        create_pool_key(token_a, token_b, fee, tick_spacing, hooks)
        for fee, tick_spacing in STANDARD_FEE_TIERS
    ]


def _to_discovered(
    key: PoolKey,
    pool_id: str,
    result: PoolStateResult,
    decimals0: int,
    decimals1: int,
) -> DiscoveredPool:
    state = result.state
    if state is None or not state.initialized:
        return DiscoveredPool(
            pool_id=pool_id,
            pool_key=key,
            initialized=False,
            sqrt_price_x96=0,
            tick=0,
            liquidity=0,
            price=0.0,
            fee_percent=fee_to_percent(key.fee),
            liquidity_depth="none",
        )
    return DiscoveredPool(
        pool_id=pool_id,
        pool_key=key,
        initialized=True,
        sqrt_price_x96=state.sqrt_price_x96,
        tick=state.tick,
        liquidity=state.liquidity,
        price=sqrt_price_to_price(state.sqrt_price_x96, decimals0, decimals1),
        fee_percent=fee_to_percent(key.fee),
        liquidity_depth=classify_liquidity_depth(state.liquidity),
    )


async def discover_pools(
    reader: PoolStateReader,
    token_a: str,
    token_b: str,
    hooks: str = ZERO_ADDRESS,
    *,
    decimals0: int = 18,
    decimals1: int = 6,
) -> list[DiscoveredPool]:
    """Query every standard fee tier for the pair concurrently.

    A failed query marks that pool uninitialized; it never fails the others.
    """
    keys = generate_pool_keys(token_a, token_b, hooks)
    pool_ids = [compute_pool_id(key) for key in keys]

    results = await asyncio.gather(
        *(read_pool_state(reader, pool_id) for pool_id in pool_ids)
    )

    pools = []
    for key, pool_id, result in zip(keys, pool_ids, results):
        if not result.ok:
            logger.warning(
                "pool_discovery_failed",
                pool_id=pool_id,
                fee=key.fee,
                error=result.error,
            )
        pools.append(_to_discovered(key, pool_id, result, decimals0, decimals1))

    logger.info(
        "pools_discovered",
        total=len(pools),
        initialized=sum(1 for p in pools if p.initialized),
    )
    return pools
