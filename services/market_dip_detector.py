"""Market dip detection for opportunistic-buy rules."""

import logging
from datetime import datetime, timedelta
from decimal import Decimal

from config import settings
from integrations.price_feed_protocol import PriceFeed
from models import AutomationRule
from models.utils import as_utc

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")


class MarketDipDetector:
    """Evaluates whether any asset in an allocation has dipped enough to buy."""

    def __init__(self, price_feed: PriceFeed):
        self._price_feed = price_feed

    @staticmethod
    def dip_percent(current_price: Decimal, previous_close: Decimal) -> Decimal:
        """Percentage drop from the previous close (negative when the price rose)."""
        return (previous_close - current_price) / previous_close * HUNDRED

    def is_triggered(
        self, allocation_map: dict[str, Decimal], threshold_percent: Decimal
    ) -> bool:
        """True if any allocated asset dipped by at least ``threshold_percent``.

        Assets missing either price, or with a non-positive previous
        close, are ignored.
        """
        threshold = Decimal(str(threshold_percent))
        prices = self._price_feed.get_prices(sorted(allocation_map))

        for asset_id in sorted(allocation_map):
            quote = prices.get(asset_id)
            if quote is None or quote.current_price is None or not quote.previous_close:
                continue
            previous_close = Decimal(quote.previous_close)
            if previous_close <= 0:
                continue
            dip = self.dip_percent(Decimal(quote.current_price), previous_close)
            if dip >= threshold:
                logger.info(
                    "Market dip on %s: %.2f%% (threshold %s%%)",
                    quote.symbol or asset_id, dip, threshold,
                )
                return True
        return False

    @staticmethod
    def in_cooldown(rule: AutomationRule, now: datetime) -> bool:
        """True while the rule's last dip trigger is younger than its cooldown.

        Falls back to last_execution when no dip trigger was recorded.
        """
        last_trigger = as_utc(rule.last_market_dip_trigger or rule.last_execution)
        if last_trigger is None:
            return False
        hours = rule.market_dip_cooldown_hours or settings.MARKET_DIP_COOLDOWN_HOURS
        return now - last_trigger < timedelta(hours=hours)
