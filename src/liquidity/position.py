"""Tick range and position planning for a liquidity deposit."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Literal

from src.exceptions import TickRangeError
from src.liquidity.amounts import amounts_for_liquidity, liquidity_for_amounts
from src.liquidity.tick_math import MAX_TICK, MIN_TICK, Q96, sqrt_ratio_at_tick
from src.pools.state import PoolState

PositionType = Literal["one_sided_token1", "one_sided_token0", "balanced"]
POSITION_TYPES: tuple[str, ...] = ("one_sided_token1", "one_sided_token0", "balanced")


@dataclass(frozen=True, slots=True)
class PositionPlan:
    """Ticks, liquidity and the amounts that will actually be pulled."""

    tick_lower: int
    tick_upper: int
    liquidity: int
    amount0: int
    amount1: int


def _check_spacing(tick_spacing: int) -> None:
    if tick_spacing <= 0:
        raise TickRangeError(f"Tick spacing must be positive, got {tick_spacing}")


def usable_tick_bounds(tick_spacing: int) -> tuple[int, int]:
    """Lowest and highest ticks that are multiples of ``tick_spacing``."""
    _check_spacing(tick_spacing)
    max_usable = (MAX_TICK // tick_spacing) * tick_spacing
    return -max_usable, max_usable


def nearest_usable_tick(tick: int, tick_spacing: int) -> int:
    """Round ``tick`` to the nearest multiple of ``tick_spacing`` within range."""
    _check_spacing(tick_spacing)
    if not MIN_TICK <= tick <= MAX_TICK:
        raise TickRangeError(f"Tick {tick} outside [{MIN_TICK}, {MAX_TICK}]")
    rounded = math.floor(tick / tick_spacing + 0.5) * tick_spacing
    if rounded < MIN_TICK:
        return rounded + tick_spacing
    if rounded > MAX_TICK:
        return rounded - tick_spacing
    return rounded


def plan_tick_range(
    current_tick: int,
    tick_spacing: int,
    width: int,
    position_type: str = "balanced",
) -> tuple[int, int]:
    """Pick ``(tick_lower, tick_upper)`` around ``current_tick``.

    ``balanced`` centers the range on the current tick. ``one_sided_token1``
    ends at or below the current tick so only token1 is deposited;
    ``one_sided_token0`` starts strictly above it so only token0 is deposited.
    Both ends are multiples of ``tick_spacing``.
    """
    _check_spacing(tick_spacing)
    if width <= 0:
        raise TickRangeError(f"Range width must be positive, got {width}")
    if position_type not in POSITION_TYPES:
        raise TickRangeError(f"Unknown position type: {position_type}")

    span = max(tick_spacing, (width // tick_spacing) * tick_spacing)
    base = (current_tick // tick_spacing) * tick_spacing

    if position_type == "one_sided_token1":
        tick_upper = base
        tick_lower = base - span
    elif position_type == "one_sided_token0":
        tick_lower = base + tick_spacing
        tick_upper = tick_lower + span
    else:
        half = max(tick_spacing, (span // 2 // tick_spacing) * tick_spacing)
        tick_lower = base - half
        tick_upper = base + half

    min_usable, max_usable = usable_tick_bounds(tick_spacing)
    tick_lower = max(tick_lower, min_usable)
    tick_upper = min(tick_upper, max_usable)
    if tick_lower >= tick_upper:
        raise TickRangeError(
            f"No room for a {position_type} range at tick {current_tick} "
            f"(spacing {tick_spacing})"
        )
    return tick_lower, tick_upper


def plan_position(
    state: PoolState,
    tick_lower: int,
    tick_upper: int,
    amount0: int,
    amount1: int,
) -> PositionPlan:
    """Convert deposit amounts into liquidity and back.

    The returned amounts are recomputed from the integer liquidity, so they
    never exceed ``amount0`` / ``amount1``.
    """
    if tick_lower >= tick_upper:
        raise TickRangeError(
            f"tick_lower ({tick_lower}) must be less than tick_upper ({tick_upper})"
        )
    sqrt_lower = sqrt_ratio_at_tick(tick_lower)
    sqrt_upper = sqrt_ratio_at_tick(tick_upper)

    liquidity = liquidity_for_amounts(
        state.sqrt_price_x96, sqrt_lower, sqrt_upper, amount0, amount1
    )
    used0, used1 = amounts_for_liquidity(
        state.sqrt_price_x96, sqrt_lower, sqrt_upper, liquidity
    )
    return PositionPlan(
        tick_lower=tick_lower,
        tick_upper=tick_upper,
        liquidity=liquidity,
        amount0=used0,
        amount1=used1,
    )


def sqrt_price_to_price(
    sqrt_price_x96: int, decimals0: int = 18, decimals1: int = 6
) -> float:
    """Human price of token0 in token1, adjusted for token decimals."""
    if sqrt_price_x96 == 0:
        return 0.0
    sqrt_price = sqrt_price_x96 / Q96
    return sqrt_price * sqrt_price * 10 ** (decimals0 - decimals1)
