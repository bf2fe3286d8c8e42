"""Asset model - tradable instrument and its externally maintained prices."""

from decimal import Decimal

from sqlalchemy import Column, DateTime, Numeric, String

from database import Base
from models.utils import generate_uuid, utc_now


class Asset(Base):
    """A tradable asset.

    current_price and previous_close are written by the market-data feed;
    the automation core only reads them.
    """

    __tablename__ = "assets"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    symbol = Column(String, nullable=False, unique=True, index=True)
    name = Column(String, nullable=True)
    asset_type = Column(String, nullable=True)  # e.g., "stock", "etf", "crypto"
    current_price = Column(Numeric(18, 4), nullable=True)
    previous_close = Column(Numeric(18, 4), nullable=True)
    quantity_increment = Column(Numeric(18, 8), nullable=False, default=Decimal("0.00000001"))
    price_updated_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utc_now)
