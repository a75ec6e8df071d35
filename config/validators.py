"""Credential and configuration validators."""

from src.exceptions import ConfigError


def validate_pool_reader() -> None:
    """Raise ConfigError if on-chain pool reads are not configured."""
    from config.settings import settings
    if not settings.RPC_URL:
        raise ConfigError("RPC_URL is required")
    if not settings.STATE_VIEW_ADDRESS:
        raise ConfigError("STATE_VIEW_ADDRESS is required")


def validate_pair() -> None:
    """Raise ConfigError if the token pair for pool selection is missing."""
    from config.settings import settings
    if not settings.PAIR_TOKEN_A or not settings.PAIR_TOKEN_B:
        raise ConfigError("PAIR_TOKEN_A and PAIR_TOKEN_B are required")
    if settings.PAIR_TOKEN_A.lower() == settings.PAIR_TOKEN_B.lower():
        raise ConfigError("PAIR_TOKEN_A and PAIR_TOKEN_B must differ")


def validate_risk_scenario() -> None:
    """Raise ConfigError if RISK_SCENARIO is not a known scenario."""
    from config.settings import settings
    from src.risk.models import check_scenario
    check_scenario(settings.RISK_SCENARIO)
