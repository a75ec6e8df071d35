"""Liquidity <-> token amount conversions for a concentrated range.

Port of the reference LiquidityAmounts library. Bounds may be passed in
either order; they are sorted before use.
"""

from __future__ import annotations

from src.liquidity.tick_math import Q96, mul_div


def _sorted(sqrt_a: int, sqrt_b: int) -> tuple[int, int]:
    return (sqrt_b, sqrt_a) if sqrt_a > sqrt_b else (sqrt_a, sqrt_b)


def liquidity_for_amount0(sqrt_a: int, sqrt_b: int, amount0: int) -> int:
    """Liquidity received for ``amount0`` of token0 over [sqrt_a, sqrt_b].

    amount0 * (sqrt_upper * sqrt_lower) / (sqrt_upper - sqrt_lower)
    """
    sqrt_a, sqrt_b = _sorted(sqrt_a, sqrt_b)
    intermediate = mul_div(sqrt_a, sqrt_b, Q96)
    return mul_div(amount0, intermediate, sqrt_b - sqrt_a)


def liquidity_for_amount1(sqrt_a: int, sqrt_b: int, amount1: int) -> int:
    """Liquidity received for ``amount1`` of token1 over [sqrt_a, sqrt_b].

    amount1 / (sqrt_upper - sqrt_lower)
    """
    sqrt_a, sqrt_b = _sorted(sqrt_a, sqrt_b)
    return mul_div(amount1, Q96, sqrt_b - sqrt_a)


def liquidity_for_amounts(
    sqrt_current: int,
    sqrt_a: int,
    sqrt_b: int,
    amount0: int,
    amount1: int,
) -> int:
    """Maximum liquidity mintable from the given amounts at the current price.

    * price at or below the range: token0 only
    * price inside the range: the smaller of the two single-sided results,
      so neither deposited amount is exceeded
    * price at or above the range: token1 only
    """
    sqrt_a, sqrt_b = _sorted(sqrt_a, sqrt_b)

    if sqrt_current <= sqrt_a:
        return liquidity_for_amount0(sqrt_a, sqrt_b, amount0)
    if sqrt_current < sqrt_b:
        liquidity0 = liquidity_for_amount0(sqrt_current, sqrt_b, amount0)
        liquidity1 = liquidity_for_amount1(sqrt_a, sqrt_current, amount1)
        return min(liquidity0, liquidity1)
    return liquidity_for_amount1(sqrt_a, sqrt_b, amount1)


def amount0_for_liquidity(sqrt_a: int, sqrt_b: int, liquidity: int) -> int:
    """Token0 owed for ``liquidity`` over [sqrt_a, sqrt_b], rounded down."""
    sqrt_a, sqrt_b = _sorted(sqrt_a, sqrt_b)
    return mul_div(liquidity << 96, sqrt_b - sqrt_a, sqrt_b) // sqrt_a


def amount1_for_liquidity(sqrt_a: int, sqrt_b: int, liquidity: int) -> int:
    """Token1 owed for ``liquidity`` over [sqrt_a, sqrt_b], rounded down."""
    sqrt_a, sqrt_b = _sorted(sqrt_a, sqrt_b)
    return mul_div(liquidity, sqrt_b - sqrt_a, Q96)


def amounts_for_liquidity(
    sqrt_current: int,
    sqrt_a: int,
    sqrt_b: int,
    liquidity: int,
) -> tuple[int, int]:
    """Return ``(amount0, amount1)`` for ``liquidity`` at the current price.

    Inverse of :func:`liquidity_for_amounts`. Because liquidity is an integer,
    amount -> liquidity -> amount is lossy; the amounts returned here are the
    authoritative ones to submit.
    """
    sqrt_a, sqrt_b = _sorted(sqrt_a, sqrt_b)

    amount0 = 0
    amount1 = 0
    if sqrt_current <= sqrt_a:
        amount0 = amount0_for_liquidity(sqrt_a, sqrt_b, liquidity)
    elif sqrt_current < sqrt_b:
        amount0 = amount0_for_liquidity(sqrt_current, sqrt_b, liquidity)
        amount1 = amount1_for_liquidity(sqrt_a, sqrt_current, liquidity)
    else:
        amount1 = amount1_for_liquidity(sqrt_a, sqrt_b, liquidity)
    return amount0, amount1
