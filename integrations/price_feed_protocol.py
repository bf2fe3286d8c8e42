"""Price feed protocol definitions.

Defines the read-only interface the automation core uses to look up
current prices. The feed is maintained by an external market-data
collaborator and may be stale; the core never waits for fresh prices.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol


@dataclass
class AssetPrice:
    """Latest known prices for one asset."""

    asset_id: str
    current_price: Decimal | None
    previous_close: Decimal | None = None
    symbol: str | None = None
    quantity_increment: Decimal | None = None  # None -> settings default


class PriceFeed(Protocol):
    """Protocol for price lookups.

    Implementations must not raise for unknown assets.
    """

    def get_prices(self, asset_ids: list[str]) -> dict[str, AssetPrice]:
        """Look up prices for the given assets.

        Args:
            asset_ids: Asset IDs to look up.

        Returns:
            Dict mapping each known asset ID to its AssetPrice. Unknown
            assets are omitted.
        """
        ...
