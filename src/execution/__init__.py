from src.execution.models import DepositIntent, DepositResult
from src.execution.gateway import (
    ExecutionGateway,
    PaperExecutionGateway,
    adapt_gateway_response,
)

__all__ = [
    "DepositIntent",
    "DepositResult",
    "ExecutionGateway",
    "PaperExecutionGateway",
    "adapt_gateway_response",
]
