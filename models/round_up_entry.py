"""RoundUpBufferEntry model - spare change waiting to reach the investment threshold."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Numeric, String
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid, utc_now


class RoundUpBufferEntry(Base):
    """A scaled round-up from one card/bank purchase.

    Entries flip to consumed exactly once, together with every other
    entry summed into the same investment.
    """

    __tablename__ = "round_up_buffer_entries"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), nullable=False, index=True)
    automation_rule_id = Column(
        String(36), ForeignKey("automation_rules.id", ondelete="CASCADE"), nullable=False, index=True
    )
    source_transaction_id = Column(String, nullable=False)
    merchant = Column(String, nullable=True)
    amount = Column(Numeric(18, 4), nullable=False)
    is_consumed = Column(Boolean, default=False, nullable=False, index=True)
    consumed_at = Column(DateTime, nullable=True)
    execution_id = Column(String(36), ForeignKey("automation_executions.id"), nullable=True)
    created_at = Column(DateTime, default=utc_now)

    # Relationships
    automation_rule = relationship("AutomationRule", back_populates="round_up_entries")
