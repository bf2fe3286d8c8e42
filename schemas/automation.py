"""Pydantic schemas for automation rules, round-ups and execution results."""

from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

Frequency = Literal["daily", "weekly", "biweekly", "monthly"]
TriggerType = Literal["schedule", "round_up", "goal_based", "market_dip"]
AllocationStrategy = Literal["equal_weight", "market_cap", "esg_weighted", "custom"]
ExecutionStatus = Literal["success", "failed", "skipped"]


class AutomationRuleCreate(BaseModel):
    """Schema for creating an automation rule."""

    portfolio_id: str
    name: str = Field(min_length=1)
    is_active: bool = True
    investment_amount: Decimal | None = None
    frequency: Frequency = "monthly"
    trigger_type: TriggerType = "schedule"
    allocation_strategy: AllocationStrategy = "custom"
    asset_allocation: dict[str, Decimal]
    round_up_multiplier: Decimal | None = None
    market_dip_threshold: Decimal | None = None
    market_dip_cooldown_hours: int | None = None


class AutomationRuleUpdate(BaseModel):
    """Schema for updating an automation rule. Omitted fields are unchanged."""

    name: str | None = Field(default=None, min_length=1)
    is_active: bool | None = None
    investment_amount: Decimal | None = None
    frequency: Frequency | None = None
    trigger_type: TriggerType | None = None
    allocation_strategy: AllocationStrategy | None = None
    asset_allocation: dict[str, Decimal] | None = None
    round_up_multiplier: Decimal | None = None
    market_dip_threshold: Decimal | None = None
    market_dip_cooldown_hours: int | None = None


class AutomationRuleResponse(BaseModel):
    """Schema for AutomationRule API response."""

    id: str
    user_id: str
    portfolio_id: str
    name: str
    is_active: bool
    investment_amount: Decimal | None
    frequency: str
    trigger_type: str
    allocation_strategy: str
    asset_allocation: dict[str, Decimal]
    round_up_multiplier: Decimal | None = None
    market_dip_threshold: Decimal | None = None
    market_dip_cooldown_hours: int | None = None
    last_market_dip_trigger: datetime | None = None
    next_execution: datetime
    last_execution: datetime | None = None
    total_invested: Decimal
    execution_count: int
    consecutive_failures: int
    last_error: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class RoundUpTransactionInput(BaseModel):
    """An everyday card/bank purchase reported by the transaction webhook."""

    transaction_id: str
    amount: Decimal
    rounded_amount: Decimal
    round_up_amount: Decimal = Field(ge=0)
    merchant: str | None = None
    date: datetime | None = None


class RoundUpRequest(BaseModel):
    """Webhook payload: the purchase plus the user it belongs to."""

    user_id: str
    transaction: RoundUpTransactionInput


class AllocationResponse(BaseModel):
    """One asset line of an executed allocation plan."""

    asset_id: str
    symbol: str | None = None
    amount: Decimal
    quantity: Decimal
    price: Decimal

    model_config = ConfigDict(from_attributes=True)


class ExecutionResult(BaseModel):
    """Outcome of one rule execution within a tick."""

    execution_id: str | None = None
    automation_rule_id: str
    portfolio_id: str
    trigger_type: str
    total_amount: Decimal = Decimal("0")
    allocations: list[AllocationResponse] = []
    executed_at: datetime
    status: ExecutionStatus
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == "success"


class RoundUpResponse(BaseModel):
    """Response for the round-up webhook. ``execution`` is None below threshold."""

    triggered: bool
    execution: ExecutionResult | None = None
