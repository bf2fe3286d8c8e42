"""Transaction model - a single buy/sell/dividend/fee ledger event."""

from decimal import Decimal

from sqlalchemy import Column, DateTime, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid, utc_now

TRANSACTION_TYPES = ("buy", "sell", "dividend", "fee")
TRANSACTION_STATUSES = ("pending", "completed", "failed", "cancelled")


class Transaction(Base):
    """A ledger event against a portfolio.

    Rows are never deleted: failed transactions are kept for audit.
    Only ``pending`` rows may be edited or cancelled.
    """

    __tablename__ = "transactions"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    portfolio_id = Column(String(36), ForeignKey("portfolios.id"), nullable=False, index=True)
    asset_id = Column(String(36), ForeignKey("assets.id"), nullable=True, index=True)
    type = Column(String, nullable=False)  # "buy" | "sell" | "dividend" | "fee"
    quantity = Column(Numeric(18, 8), nullable=False, default=Decimal("0"))
    price = Column(Numeric(18, 4), nullable=False, default=Decimal("0"))
    total_amount = Column(Numeric(18, 4), nullable=False, default=Decimal("0"))
    fee = Column(Numeric(18, 4), nullable=False, default=Decimal("0"))
    status = Column(String, nullable=False, default="pending", index=True)
    automation_rule_id = Column(
        String(36), ForeignKey("automation_rules.id", ondelete="SET NULL"), nullable=True, index=True
    )
    notes = Column(Text, nullable=True)
    error_message = Column(String, nullable=True)
    executed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utc_now, index=True)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

    # Relationships
    portfolio = relationship("Portfolio", back_populates="transactions")
    asset = relationship("Asset")
