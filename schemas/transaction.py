"""Pydantic schemas for ledger transactions."""

from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

TransactionType = Literal["buy", "sell", "dividend", "fee"]
TransactionStatus = Literal["pending", "completed", "failed", "cancelled"]


class TransactionCreate(BaseModel):
    """Schema for recording a ledger transaction."""

    asset_id: str | None = None
    type: TransactionType
    quantity: Decimal = Field(default=Decimal("0"), ge=0)
    price: Decimal = Field(default=Decimal("0"), ge=0)
    total_amount: Decimal | None = Field(default=None, ge=0)
    fee: Decimal | None = Field(default=None, ge=0)
    notes: str | None = None


class TransactionUpdate(BaseModel):
    """Schema for editing a pending transaction."""

    quantity: Decimal | None = Field(default=None, ge=0)
    price: Decimal | None = Field(default=None, ge=0)
    notes: str | None = None


class TransactionResponse(BaseModel):
    """Schema for Transaction API response."""

    id: str
    portfolio_id: str
    asset_id: str | None
    type: str
    quantity: Decimal
    price: Decimal
    total_amount: Decimal
    fee: Decimal
    status: str
    automation_rule_id: str | None = None
    notes: str | None = None
    error_message: str | None = None
    executed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TransactionStats(BaseModel):
    """Aggregates over a portfolio's completed transactions."""

    total_buys: Decimal
    total_sells: Decimal
    total_fees: Decimal
    net_invested: Decimal
    transaction_count: int
