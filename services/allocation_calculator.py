"""Splits an investment amount across a rule's asset allocation."""

from dataclasses import dataclass, field
from decimal import ROUND_DOWN, Decimal

from config import settings
from integrations.price_feed_protocol import AssetPrice
from services.exceptions import PriceUnavailableError

HUNDRED = Decimal("100")


@dataclass
class Allocation:
    """One asset's share of an investment."""

    asset_id: str
    amount: Decimal
    quantity: Decimal
    price: Decimal
    symbol: str | None = None

    def to_dict(self) -> dict:
        """JSON-safe representation for execution records."""
        return {
            "asset_id": self.asset_id,
            "symbol": self.symbol,
            "amount": str(self.amount),
            "quantity": str(self.quantity),
            "price": str(self.price),
        }


@dataclass
class AllocationPlan:
    """Ordered allocation lines (sorted by asset ID)."""

    allocations: list[Allocation] = field(default_factory=list)

    @property
    def total_amount(self) -> Decimal:
        return sum((a.amount for a in self.allocations), Decimal("0"))

    def __len__(self) -> int:
        return len(self.allocations)

    def __iter__(self):
        return iter(self.allocations)


def round_down_to_increment(quantity: Decimal, increment: Decimal) -> Decimal:
    """Round a quantity down to a whole multiple of the tradable increment."""
    steps = (quantity / increment).to_integral_value(rounding=ROUND_DOWN)
    return steps * increment if steps else Decimal("0")


class AllocationCalculator:
    """Pure allocation arithmetic. All-or-nothing on missing prices."""

    @staticmethod
    def apportion(
        total_amount: Decimal,
        allocation_map: dict[str, Decimal],
        prices: dict[str, AssetPrice],
    ) -> AllocationPlan:
        """Apportion ``total_amount`` by percentage across assets.

        Args:
            total_amount: Amount to invest.
            allocation_map: asset_id -> percent (need not sum to 100).
            prices: Price lookup keyed by asset_id.

        Returns:
            AllocationPlan with one line per asset whose quantity is
            non-zero after rounding down to its tradable increment.

        Raises:
            PriceUnavailableError: Any allocated asset lacks a positive
                current price. No partial plan is returned.
        """
        asset_ids = sorted(allocation_map)

        missing = [
            asset_id for asset_id in asset_ids
            if asset_id not in prices
            or prices[asset_id].current_price is None
            or prices[asset_id].current_price <= 0
        ]
        if missing:
            raise PriceUnavailableError(missing)

        plan = AllocationPlan()
        for asset_id in asset_ids:
            percent = Decimal(str(allocation_map[asset_id]))
            quote = prices[asset_id]
            price = Decimal(quote.current_price)
            amount = total_amount * percent / HUNDRED
            increment = quote.quantity_increment or settings.DEFAULT_QUANTITY_INCREMENT
            quantity = round_down_to_increment(amount / price, Decimal(increment))
            if quantity <= 0:
                continue
            plan.allocations.append(
                Allocation(
                    asset_id=asset_id,
                    amount=amount,
                    quantity=quantity,
                    price=price,
                    symbol=quote.symbol,
                )
            )
        return plan
