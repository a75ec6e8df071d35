"""Tick <-> sqrt price conversion in Q64.96 fixed point.

Port of the reference TickMath library. Every shift and rounding step follows
the on-chain implementation so results match bit-for-bit; Python ints supply
the 256-bit (and wider) intermediates.
"""

from __future__ import annotations

from src.exceptions import TickRangeError

Q96 = 1 << 96
Q128 = 1 << 128
MAX_UINT256 = (1 << 256) - 1

MIN_TICK = -887272
MAX_TICK = 887272

# sqrt_ratio_at_tick(MIN_TICK) and sqrt_ratio_at_tick(MAX_TICK)
MIN_SQRT_RATIO = 4295128739
MAX_SQRT_RATIO = 1461446703485210103287273052203988822378723970342

# 1 / sqrt(1.0001)^(2^i) in Q128.128 for i = 1..19; bit 0 seeds the ratio.
_TICK_BIT_0 = 0xFFFCB933BD6FAD37AA2D162D1A594001
_TICK_MAGIC = (
    (0x2, 0xFFF97272373D413259A46990580E213A),
    (0x4, 0xFFF2E50F5F656932EF12357CF3C7FDCC),
    (0x8, 0xFFE5CACA7E10E4E61C3624EAA0941CD0),
    (0x10, 0xFFCB9843D60F6159C9DB58835C926644),
    (0x20, 0xFF973B41FA98C081472E6896DFB254C0),
    (0x40, 0xFF2EA16466C96A3843EC78B326B52861),
    (0x80, 0xFE5DEE046A99A2A811C461F1969C3053),
    (0x100, 0xFCBE86C7900A88AEDCFFC83B479AA3A4),
    (0x200, 0xF987A7253AC413176F2B074CF7815E54),
    (0x400, 0xF3392B0822B70005940C7A398E4B70F3),
    (0x800, 0xE7159475A2C29B7443B29C7FA6E889D9),
    (0x1000, 0xD097F3BDFD2022B8845AD8F792AA5825),
    (0x2000, 0xA9F746462D870FDF8A65DC1F90E061E5),
    (0x4000, 0x70D869A156D2A1B890BB3DF62BAF32F7),
    (0x8000, 0x31BE135F97D08FD981231505542FCFA6),
    (0x10000, 0x9AA508B5B7A84E1C677DE54F3E99BC9),
    (0x20000, 0x5D6AF8DEDB81196699C329225EE604),
    (0x40000, 0x2216E584F5FA1EA926041BEDFE98),
    (0x80000, 0x48A170391F7DC42444E8FA2),
)

# log_sqrt10001 scaling and the error bounds used to bracket the tick.
_LOG_SQRT10001_MULTIPLIER = 255738958999603826347141
_TICK_LOW_OFFSET = 3402992956809132418596140100660247210
_TICK_HIGH_OFFSET = 291339464771989622907027621153398088495

# (shift, threshold) pairs for the most-significant-bit search.
_MSB_STEPS = (
    (7, (1 << 128) - 1),
    (6, (1 << 64) - 1),
    (5, (1 << 32) - 1),
    (4, 0xFFFF),
    (3, 0xFF),
    (2, 0xF),
    (1, 0x3),
)


def sqrt_ratio_at_tick(tick: int) -> int:
    """Return sqrt(1.0001^tick) * 2^96, rounded up.

    Raises
    ------
    TickRangeError
        If ``tick`` is outside ``[MIN_TICK, MAX_TICK]``.
    """
    abs_tick = abs(tick)
    if abs_tick > MAX_TICK:
        raise TickRangeError(f"Tick {tick} outside [{MIN_TICK}, {MAX_TICK}]")

    ratio = _TICK_BIT_0 if abs_tick & 0x1 else Q128
    for bit, magic in _TICK_MAGIC:
        if abs_tick & bit:
            ratio = (ratio * magic) >> 128

    if tick > 0:
        ratio = MAX_UINT256 // ratio

    # Q128.128 -> Q64.96, rounding up so the result is never below the true price.
    return (ratio >> 32) + (0 if ratio % (1 << 32) == 0 else 1)


def tick_at_sqrt_ratio(sqrt_price_x96: int) -> int:
    """Return the greatest tick whose sqrt ratio is <= ``sqrt_price_x96``.

    Raises
    ------
    TickRangeError
        If ``sqrt_price_x96`` is outside ``[MIN_SQRT_RATIO, MAX_SQRT_RATIO)``.
    """
    if not (MIN_SQRT_RATIO <= sqrt_price_x96 < MAX_SQRT_RATIO):
        raise TickRangeError(
            f"sqrt price {sqrt_price_x96} outside [{MIN_SQRT_RATIO}, {MAX_SQRT_RATIO})"
        )

    ratio = sqrt_price_x96 << 32

    r = ratio
    msb = 0
    for shift, threshold in _MSB_STEPS:
        f = (1 if r > threshold else 0) << shift
        msb |= f
        r >>= f
    msb |= 1 if r > 1 else 0

    if msb >= 128:
        r = ratio >> (msb - 127)
    else:
        r = ratio << (127 - msb)

    log_2 = (msb - 128) << 64
    for bit in range(63, 49, -1):
        r = (r * r) >> 127
        f = r >> 128
        log_2 |= f << bit
        r >>= f

    log_sqrt10001 = log_2 * _LOG_SQRT10001_MULTIPLIER

    tick_low = (log_sqrt10001 - _TICK_LOW_OFFSET) >> 128
    tick_high = (log_sqrt10001 + _TICK_HIGH_OFFSET) >> 128

    if tick_low == tick_high:
        return tick_low
    return tick_high if sqrt_ratio_at_tick(tick_high) <= sqrt_price_x96 else tick_low


def mul_div(a: int, b: int, denominator: int) -> int:
    """floor(a * b / denominator) at full precision."""
    if denominator == 0:
        raise ZeroDivisionError("mul_div denominator is zero")
    return (a * b) // denominator


def mul_div_rounding_up(a: int, b: int, denominator: int) -> int:
    """ceil(a * b / denominator) at full precision."""
    result = mul_div(a, b, denominator)
    if (a * b) % denominator > 0:
        result += 1
    return result
