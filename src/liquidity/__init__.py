"""Concentrated-liquidity fixed-point math.

Sub-modules:
- tick_math: tick <-> Q64.96 sqrt price, mul_div helpers
- amounts: liquidity <-> token amount conversions
- position: tick range planning and deposit sizing
"""

from src.liquidity.amounts import (
    amount0_for_liquidity,
    amount1_for_liquidity,
    amounts_for_liquidity,
    liquidity_for_amount0,
    liquidity_for_amount1,
    liquidity_for_amounts,
)
from src.liquidity.tick_math import (
    MAX_SQRT_RATIO,
    MAX_TICK,
    MIN_SQRT_RATIO,
    MIN_TICK,
    Q96,
    mul_div,
    mul_div_rounding_up,
    sqrt_ratio_at_tick,
    tick_at_sqrt_ratio,
)

__all__ = [
    "MAX_SQRT_RATIO",
    "MAX_TICK",
    "MIN_SQRT_RATIO",
    "MIN_TICK",
    "Q96",
    "amount0_for_liquidity",
    "amount1_for_liquidity",
    "amounts_for_liquidity",
    "liquidity_for_amount0",
    "liquidity_for_amount1",
    "liquidity_for_amounts",
    "mul_div",
    "mul_div_rounding_up",
    "sqrt_ratio_at_tick",
    "tick_at_sqrt_ratio",
]
