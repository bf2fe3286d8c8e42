"""AutomationExecution model - records the outcome of each rule execution."""

from decimal import Decimal

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Numeric, String
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid, utc_now


class AutomationExecution(Base):
    """A log entry recording one attempt to execute an automation rule.

    Failed attempts carry a human-readable error_message that the UI
    surfaces verbatim.
    """

    __tablename__ = "automation_executions"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    automation_rule_id = Column(
        String(36), ForeignKey("automation_rules.id", ondelete="CASCADE"), nullable=False, index=True
    )
    portfolio_id = Column(String(36), nullable=False)
    trigger_type = Column(String, nullable=False)
    status = Column(String, nullable=False)  # "success" | "failed" | "skipped"
    total_amount = Column(Numeric(18, 4), nullable=False, default=Decimal("0"))
    allocations = Column(JSON, nullable=True)  # list[dict] of executed allocation lines
    error_message = Column(String, nullable=True)
    executed_at = Column(DateTime, default=utc_now)

    # Relationships
    automation_rule = relationship("AutomationRule", back_populates="executions")
