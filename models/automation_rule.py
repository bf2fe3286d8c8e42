"""AutomationRule model - a user's recurring or event-triggered investment rule."""

from decimal import Decimal

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid, utc_now

FREQUENCIES = ("daily", "weekly", "biweekly", "monthly")
TRIGGER_TYPES = ("schedule", "round_up", "goal_based", "market_dip")
ALLOCATION_STRATEGIES = ("equal_weight", "market_cap", "esg_weighted", "custom")


class AutomationRule(Base):
    """An automation rule owned by a user and bound to one portfolio.

    next_execution is only meaningful for ``schedule`` rules; other trigger
    types store the creation/update instant and are evaluated every tick.
    """

    __tablename__ = "automation_rules"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), nullable=False, index=True)
    portfolio_id = Column(String(36), ForeignKey("portfolios.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    investment_amount = Column(Numeric(18, 4), nullable=True)
    frequency = Column(String, nullable=False, default="monthly")
    trigger_type = Column(String, nullable=False, default="schedule", index=True)
    allocation_strategy = Column(String, nullable=False, default="custom")
    asset_allocation = Column(JSON, nullable=False, default=dict)  # asset_id -> percent
    round_up_multiplier = Column(Numeric(10, 4), nullable=True)
    market_dip_threshold = Column(Numeric(10, 4), nullable=True)
    market_dip_cooldown_hours = Column(Integer, nullable=True)
    last_market_dip_trigger = Column(DateTime, nullable=True)
    next_execution = Column(DateTime, nullable=False, default=utc_now, index=True)
    last_execution = Column(DateTime, nullable=True)
    total_invested = Column(Numeric(18, 4), nullable=False, default=Decimal("0"))
    execution_count = Column(Integer, nullable=False, default=0)
    consecutive_failures = Column(Integer, nullable=False, default=0)
    last_error = Column(String, nullable=True)
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

    # Relationships
    portfolio = relationship("Portfolio", back_populates="automation_rules")
    round_up_entries = relationship(
        "RoundUpBufferEntry", back_populates="automation_rule", cascade="all, delete-orphan"
    )
    executions = relationship(
        "AutomationExecution", back_populates="automation_rule", cascade="all, delete-orphan"
    )
