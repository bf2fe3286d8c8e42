"""Pydantic request/response schemas."""

from .automation import (
    AllocationResponse,
    AutomationRuleCreate,
    AutomationRuleResponse,
    AutomationRuleUpdate,
    ExecutionResult,
    RoundUpRequest,
    RoundUpResponse,
    RoundUpTransactionInput,
)
from .portfolio_valuation import PortfolioValuation
from .transaction import (
    TransactionCreate,
    TransactionResponse,
    TransactionStats,
    TransactionUpdate,
)

__all__ = [
    "AllocationResponse",
    "AutomationRuleCreate",
    "AutomationRuleResponse",
    "AutomationRuleUpdate",
    "ExecutionResult",
    "PortfolioValuation",
    "RoundUpRequest",
    "RoundUpResponse",
    "RoundUpTransactionInput",
    "TransactionCreate",
    "TransactionResponse",
    "TransactionStats",
    "TransactionUpdate",
]
