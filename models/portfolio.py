"""Portfolio model - a user's investment portfolio and its cached aggregates."""

from decimal import Decimal

from sqlalchemy import Boolean, Column, DateTime, Numeric, String
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid, utc_now


class Portfolio(Base):
    """A portfolio owned by a user.

    The four valuation aggregates are denormalized here and rewritten by
    PortfolioValuationService whenever holdings change.
    """

    __tablename__ = "portfolios"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), nullable=False, index=True)
    name = Column(String, nullable=False)
    currency = Column(String(3), nullable=False, default="USD")
    is_active = Column(Boolean, default=True)
    total_value = Column(Numeric(18, 4), nullable=False, default=Decimal("0"))
    total_invested = Column(Numeric(18, 4), nullable=False, default=Decimal("0"))
    total_returns = Column(Numeric(18, 4), nullable=False, default=Decimal("0"))
    returns_percentage = Column(Numeric(10, 4), nullable=False, default=Decimal("0"))
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

    # Relationships
    holdings = relationship("Holding", back_populates="portfolio", cascade="all, delete-orphan")
    transactions = relationship("Transaction", back_populates="portfolio")
    automation_rules = relationship("AutomationRule", back_populates="portfolio")
