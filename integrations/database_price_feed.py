"""Price feed backed by the ``assets`` table."""

import logging

from sqlalchemy.orm import Session

from integrations.price_feed_protocol import AssetPrice
from models import Asset

logger = logging.getLogger(__name__)


class DatabasePriceFeed:
    """Reads prices that the market-data collaborator writes to ``assets``."""

    def __init__(self, db: Session):
        self._db = db

    def get_prices(self, asset_ids: list[str]) -> dict[str, AssetPrice]:
        if not asset_ids:
            return {}

        assets = self._db.query(Asset).filter(Asset.id.in_(asset_ids)).all()
        prices = {
            asset.id: AssetPrice(
                asset_id=asset.id,
                symbol=asset.symbol,
                current_price=asset.current_price,
                previous_close=asset.previous_close,
                quantity_increment=asset.quantity_increment,
            )
            for asset in assets
        }
        if len(prices) < len(set(asset_ids)):
            logger.debug(
                "Price lookup: %d of %d assets known",
                len(prices), len(set(asset_ids)),
            )
        return prices
