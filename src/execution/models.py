"""Shared data structures for liquidity deposit execution."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True, slots=True)
class DepositIntent:
    """What the caller wants deposited.

    ``amount`` is in raw units of the settlement token. Ticks left as None
    are chosen by the gateway.
    """

    amount: int
    pool_id: Optional[str] = None
    tick_lower: Optional[int] = None
    tick_upper: Optional[int] = None
    recipient: Optional[str] = None


@dataclass(frozen=True, slots=True)
class DepositResult:
    """Result from a gateway's deposit_liquidity call."""

    success: bool
    tx_hash: Optional[str] = None
    position_id: Optional[str] = None
    error: Optional[str] = None
    liquidity: Optional[int] = None
    amount0: Optional[int] = None
    amount1: Optional[int] = None
