"""Pool identity, state access, discovery and scoring."""

from src.pools.keys import (
    ZERO_ADDRESS,
    PoolKey,
    compute_pool_id,
    create_pool_key,
    fee_to_percent,
    format_pool_key,
    sort_tokens,
)
from src.pools.state import (
    PoolState,
    PoolStateReader,
    PoolStateResult,
    Web3PoolStateReader,
    read_pool_state,
)

__all__ = [
    "ZERO_ADDRESS",
    "PoolKey",
    "PoolState",
    "PoolStateReader",
    "PoolStateResult",
    "Web3PoolStateReader",
    "compute_pool_id",
    "create_pool_key",
    "fee_to_percent",
    "format_pool_key",
    "read_pool_state",
    "sort_tokens",
]
