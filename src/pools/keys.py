"""Pool key identity: token ordering and pool id hashing."""

from __future__ import annotations

from dataclasses import dataclass

import structlog
from eth_abi import encode
from web3 import Web3

from src.exceptions import PoolKeyError

logger = structlog.get_logger()

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
MAX_FEE = 1_000_000  # fee units are hundredths of a basis point
MIN_TICK_SPACING = 1
MAX_TICK_SPACING = (1 << 23) - 1  # int24
USUAL_TICK_SPACINGS = frozenset({1, 10, 60, 200})

# Field order is fixed by the on-chain PoolKey struct.
POOL_KEY_ABI_TYPES = ("address", "address", "uint24", "int24", "address")


@dataclass(frozen=True, slots=True)
class PoolKey:
    """Uniquely identifies a pool; ``currency0`` sorts below ``currency1``."""

    currency0: str
    currency1: str
    fee: int
    tick_spacing: int
    hooks: str = ZERO_ADDRESS

    @property
    def pool_id(self) -> str:
        return compute_pool_id(self)


def _address_value(address: str) -> int:
    if not isinstance(address, str) or not Web3.is_address(address.lower()):
        raise PoolKeyError(f"Invalid address: {address}")
    return int(address, 16)


def sort_tokens(token_a: str, token_b: str) -> tuple[str, str]:
    """Return the pair ordered by numeric address value."""
    a = _address_value(token_a)
    b = _address_value(token_b)
    if a == b:
        raise PoolKeyError(f"Identical tokens: {token_a}")
    return (token_a, token_b) if a < b else (token_b, token_a)


def create_pool_key(
    token_a: str,
    token_b: str,
    fee: int,
    tick_spacing: int,
    hooks: str = ZERO_ADDRESS,
) -> PoolKey:
    """Build a validated :class:`PoolKey` with sorted currencies."""
    if not 0 <= fee <= MAX_FEE:
        raise PoolKeyError(f"Fee {fee} outside [0, {MAX_FEE}]")
    if not MIN_TICK_SPACING <= tick_spacing <= MAX_TICK_SPACING:
        raise PoolKeyError(f"Tick spacing {tick_spacing} outside int24 positive range")
    _address_value(hooks)

    if tick_spacing not in USUAL_TICK_SPACINGS:
        logger.warning("unusual_tick_spacing", fee=fee, tick_spacing=tick_spacing)

    currency0, currency1 = sort_tokens(token_a, token_b)
    return PoolKey(
        currency0=currency0,
        currency1=currency1,
        fee=fee,
        tick_spacing=tick_spacing,
        hooks=hooks,
    )


def encode_pool_key(key: PoolKey) -> bytes:
    """ABI-encode ``(currency0, currency1, fee, tick_spacing, hooks)``."""
    return encode(
        list(POOL_KEY_ABI_TYPES),
        [
            Web3.to_checksum_address(key.currency0),
            Web3.to_checksum_address(key.currency1),
            key.fee,
            key.tick_spacing,
            Web3.to_checksum_address(key.hooks),
        ],
    )


def compute_pool_id(key: PoolKey) -> str:
    """keccak256 of the ABI-encoded pool key, as a 0x-prefixed hex string."""
    return Web3.to_hex(Web3.keccak(encode_pool_key(key)))


def fee_to_percent(fee: int) -> str:
    """3000 -> '0.30%'."""
    return f"{fee / 10000:.2f}%"


def format_pool_key(key: PoolKey) -> str:
    return (
        f"{key.currency0}/{key.currency1} fee={fee_to_percent(key.fee)} "
        f"spacing={key.tick_spacing} hooks={key.hooks}"
    )
