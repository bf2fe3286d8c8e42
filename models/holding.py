"""Holding model - position in one asset within one portfolio."""

from decimal import Decimal

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Numeric, String, UniqueConstraint
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid, utc_now


class Holding(Base):
    """A position in a portfolio, maintained by the transaction ledger.

    Created on the first buy of an asset and deleted when a sell brings
    the quantity to exactly zero.
    """

    __tablename__ = "holdings"
    __table_args__ = (
        UniqueConstraint(
            "portfolio_id", "asset_id",
            name="uix_holding_portfolio_asset",
        ),
        CheckConstraint("quantity >= 0", name="ck_holding_quantity_non_negative"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    portfolio_id = Column(
        String(36), ForeignKey("portfolios.id", ondelete="CASCADE"), nullable=False, index=True
    )
    asset_id = Column(
        String(36), ForeignKey("assets.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    quantity = Column(Numeric(18, 8), nullable=False, default=Decimal("0"))
    average_cost = Column(Numeric(18, 8), nullable=False, default=Decimal("0"))
    total_invested = Column(Numeric(18, 4), nullable=False, default=Decimal("0"))
    last_transaction_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

    # Relationships
    portfolio = relationship("Portfolio", back_populates="holdings")
    asset = relationship("Asset")
