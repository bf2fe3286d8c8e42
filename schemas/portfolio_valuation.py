"""Pydantic schemas for portfolio valuation."""

from decimal import Decimal

from pydantic import BaseModel


class PortfolioValuation(BaseModel):
    """Aggregates recomputed from a portfolio's holdings."""

    portfolio_id: str
    total_value: Decimal
    total_invested: Decimal
    total_returns: Decimal
    returns_percentage: Decimal
    holdings_count: int
