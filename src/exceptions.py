"""Custom exceptions for the settlement agent."""


class SettleError(Exception):
    """Base exception for all settlement agent errors."""


class TickRangeError(SettleError, ValueError):
    """Tick or sqrt price outside the representable range."""


class PoolKeyError(SettleError, ValueError):
    """Invalid pool key components."""


class PoolStateError(SettleError):
    """Error reading pool state from the chain."""


class ExecutionError(SettleError):
    """Error submitting a liquidity deposit."""


class PolicyError(SettleError, ValueError):
    """Agent policy value out of bounds."""


class ConfigError(SettleError):
    """Missing or invalid configuration."""
