"""Portfolio valuation service.

Recomputes a portfolio's value, invested capital and returns from its
current holdings and writes the aggregates onto the Portfolio row.
"""

import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from integrations.database_price_feed import DatabasePriceFeed
from integrations.price_feed_protocol import PriceFeed
from models import Holding, Portfolio
from schemas.portfolio_valuation import PortfolioValuation
from services.exceptions import EntityNotFoundError

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
HUNDRED = Decimal("100")


class PortfolioValuationService:
    """Derives portfolio aggregates from holdings and current prices."""

    def __init__(self, price_feed: Optional[PriceFeed] = None):
        """Initialize with an optional price feed for dependency injection.

        Args:
            price_feed: Price lookup. If None, the ``assets`` table of the
                session passed to each call is used.
        """
        self._price_feed = price_feed

    def _feed(self, db: Session) -> PriceFeed:
        return self._price_feed or DatabasePriceFeed(db)

    def recalculate(self, db: Session, portfolio_id: str) -> PortfolioValuation:
        """Recompute and persist a portfolio's aggregates.

        Holdings without a current price contribute zero value but still
        count toward invested capital. Recomputing from unchanged holdings
        always yields the same result.

        Raises:
            EntityNotFoundError: Unknown portfolio.
        """
        portfolio = db.get(Portfolio, portfolio_id)
        if portfolio is None:
            raise EntityNotFoundError(f"Portfolio not found: {portfolio_id}")

        holdings = db.query(Holding).filter(Holding.portfolio_id == portfolio_id).all()
        prices = self._feed(db).get_prices([h.asset_id for h in holdings])

        total_value = ZERO
        total_invested = ZERO
        for holding in holdings:
            quantity = Decimal(holding.quantity)
            quote = prices.get(holding.asset_id)
            current_price = (
                Decimal(quote.current_price)
                if quote is not None and quote.current_price is not None
                else ZERO
            )
            total_value += quantity * current_price
            total_invested += quantity * Decimal(holding.average_cost)

        total_returns = total_value - total_invested
        returns_percentage = (
            total_returns / total_invested * HUNDRED if total_invested > 0 else ZERO
        )

        portfolio.total_value = total_value
        portfolio.total_invested = total_invested
        portfolio.total_returns = total_returns
        portfolio.returns_percentage = returns_percentage
        db.flush()

        logger.debug(
            "Portfolio %s valued: value=%s invested=%s returns=%s",
            portfolio_id, total_value, total_invested, total_returns,
        )
        return PortfolioValuation(
            portfolio_id=portfolio_id,
            total_value=total_value,
            total_invested=total_invested,
            total_returns=total_returns,
            returns_percentage=returns_percentage,
            holdings_count=len(holdings),
        )
