"""Agent policy: the thresholds and preferences a settlement run obeys."""

from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from typing import Any, Optional

from src.exceptions import PolicyError
from src.liquidity.position import POSITION_TYPES
from src.pools.keys import MAX_FEE
from src.pools.scoring import EligibilityRules, ScoringWeights

FALLBACK_STRATEGIES = ("wait", "abort")


@dataclass(frozen=True, slots=True)
class AgentPolicy:
    """Immutable policy snapshot. Use :meth:`updated` to derive a new one."""

    max_slippage: float = 0.01  # 1%
    max_price_impact: float = 0.02  # 2%
    min_confidence: float = 0.80
    max_latency_seconds: float = 300.0  # 5 minutes
    retry_attempts: int = 3
    retry_delay_seconds: float = 30.0
    fallback_strategy: str = "wait"

    # Pool selection
    min_liquidity: int = 0
    preferred_fee_tiers: tuple[int, ...] = (3000, 500)
    min_fee_tier: Optional[int] = 100
    max_fee_tier: Optional[int] = 10000
    tick_range_width: int = 2000  # ~20% price range
    position_type: str = "one_sided_token1"

    def __post_init__(self) -> None:
        object.__setattr__(self, "preferred_fee_tiers", tuple(self.preferred_fee_tiers))
        validate_policy(self)

    @classmethod
    def from_settings(cls, settings: Any = None) -> "AgentPolicy":
        """Build the default policy from ``POLICY_*`` settings."""
        if settings is None:
            from config.settings import settings
        return cls(
            max_slippage=settings.POLICY_MAX_SLIPPAGE,
            max_price_impact=settings.POLICY_MAX_PRICE_IMPACT,
            min_confidence=settings.POLICY_MIN_CONFIDENCE,
            max_latency_seconds=settings.POLICY_MAX_LATENCY_SECONDS,
            retry_attempts=settings.POLICY_RETRY_ATTEMPTS,
            retry_delay_seconds=settings.POLICY_RETRY_DELAY_SECONDS,
            fallback_strategy=settings.POLICY_FALLBACK_STRATEGY,
            min_liquidity=settings.POLICY_MIN_LIQUIDITY,
            preferred_fee_tiers=parse_fee_tiers(settings.POLICY_PREFERRED_FEE_TIERS),
            min_fee_tier=settings.POLICY_MIN_FEE_TIER,
            max_fee_tier=settings.POLICY_MAX_FEE_TIER,
            tick_range_width=settings.POLICY_TICK_RANGE_WIDTH,
            position_type=settings.POLICY_POSITION_TYPE,
        )

    def updated(self, **changes: Any) -> "AgentPolicy":
        """Return a validated copy with ``changes`` applied."""
        unknown = set(changes) - set(self.__dataclass_fields__)
        if unknown:
            raise PolicyError(f"Unknown policy fields: {', '.join(sorted(unknown))}")
        return replace(self, **changes)

    def eligibility_rules(self) -> EligibilityRules:
        return EligibilityRules(
            max_slippage=self.max_slippage,
            max_price_impact=self.max_price_impact,
            min_confidence=self.min_confidence,
            min_liquidity=self.min_liquidity,
            min_fee_tier=self.min_fee_tier,
            max_fee_tier=self.max_fee_tier,
        )

    def scoring_weights(self) -> ScoringWeights:
        return ScoringWeights(preferred_fee_tiers=self.preferred_fee_tiers)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def parse_fee_tiers(raw: str) -> tuple[int, ...]:
    """'3000,500' -> (3000, 500)."""
    try:
        return tuple(int(part) for part in raw.split(",") if part.strip())
    except ValueError as e:
        raise PolicyError(f"Invalid fee tier list: {raw!r}") from e


def _check_fraction(name: str, value: float) -> None:
    if not 0.0 <= value <= 1.0:
        raise PolicyError(f"{name} must be within [0, 1], got {value}")


def validate_policy(policy: AgentPolicy) -> None:
    """Raise PolicyError for out-of-range values."""
    _check_fraction("max_slippage", policy.max_slippage)
    _check_fraction("max_price_impact", policy.max_price_impact)
    _check_fraction("min_confidence", policy.min_confidence)

    if policy.max_latency_seconds < 0:
        raise PolicyError("max_latency_seconds must be non-negative")
    if policy.retry_attempts < 0:
        raise PolicyError("retry_attempts must be non-negative")
    if policy.retry_delay_seconds < 0:
        raise PolicyError("retry_delay_seconds must be non-negative")
    if policy.fallback_strategy not in FALLBACK_STRATEGIES:
        raise PolicyError(
            f"fallback_strategy must be one of {FALLBACK_STRATEGIES}, "
            f"got {policy.fallback_strategy!r}"
        )

    if policy.min_liquidity < 0:
        raise PolicyError("min_liquidity must be non-negative")
    for fee in policy.preferred_fee_tiers:
        if not 0 <= fee <= MAX_FEE:
            raise PolicyError(f"Preferred fee tier {fee} outside [0, {MAX_FEE}]")
    if (
        policy.min_fee_tier is not None
        and policy.max_fee_tier is not None
        and policy.min_fee_tier > policy.max_fee_tier
    ):
        raise PolicyError("min_fee_tier must not exceed max_fee_tier")
    if policy.tick_range_width <= 0:
        raise PolicyError("tick_range_width must be positive")
    if policy.position_type not in POSITION_TYPES:
        raise PolicyError(
            f"position_type must be one of {POSITION_TYPES}, got {policy.position_type!r}"
        )


DEFAULT_POLICY = AgentPolicy()
