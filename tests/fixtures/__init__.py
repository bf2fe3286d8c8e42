"""Test fixtures and sample data."""
import pytest
from datetime import datetime, timezone
from decimal import Decimal

from models import Asset, AutomationRule, Holding, Portfolio
from sqlalchemy.orm import Session

USER_ID = "user-123"


def create_asset(
    db: Session,
    symbol: str,
    current_price: Decimal | None,
    previous_close: Decimal | None = None,
    quantity_increment: Decimal = Decimal("0.00000001"),
) -> Asset:
    """Create an Asset whose ID is its symbol, for readable allocation maps.

    This is a helper function (not a fixture) for tests that need
    assets with specific prices.
    """
    asset = Asset(
        id=symbol,
        symbol=symbol,
        name=symbol,
        current_price=current_price,
        previous_close=previous_close,
        quantity_increment=quantity_increment,
    )
    db.add(asset)
    db.flush()
    return asset


def create_holding(
    db: Session,
    portfolio: Portfolio,
    asset: Asset,
    quantity: Decimal,
    average_cost: Decimal,
) -> Holding:
    """Create a Holding directly, bypassing the ledger."""
    holding = Holding(
        portfolio_id=portfolio.id,
        asset_id=asset.id,
        quantity=quantity,
        average_cost=average_cost,
        total_invested=quantity * average_cost,
    )
    db.add(holding)
    db.flush()
    return holding


def create_rule(db: Session, portfolio: Portfolio, **overrides) -> AutomationRule:
    """Create an AutomationRule directly, bypassing validation."""
    values = {
        "user_id": portfolio.user_id,
        "portfolio_id": portfolio.id,
        "name": "Test Rule",
        "is_active": True,
        "investment_amount": Decimal("100"),
        "frequency": "weekly",
        "trigger_type": "schedule",
        "allocation_strategy": "custom",
        "asset_allocation": {"AAPL": "100"},
        "next_execution": datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc),
    }
    values.update(overrides)
    rule = AutomationRule(**values)
    db.add(rule)
    db.flush()
    return rule


@pytest.fixture
def portfolio(db: Session) -> Portfolio:
    """Create a test portfolio."""
    p = Portfolio(user_id=USER_ID, name="Growth")
    db.add(p)
    db.commit()
    db.refresh(p)
    return p


@pytest.fixture
def aapl(db: Session) -> Asset:
    """AAPL at 180, previous close 180."""
    asset = create_asset(db, "AAPL", Decimal("180"), Decimal("180"))
    db.commit()
    return asset


@pytest.fixture
def googl(db: Session) -> Asset:
    """GOOGL at 3000, previous close 3000."""
    asset = create_asset(db, "GOOGL", Decimal("3000"), Decimal("3000"))
    db.commit()
    return asset


@pytest.fixture
def schedule_rule(db: Session, portfolio: Portfolio, aapl: Asset, googl: Asset) -> AutomationRule:
    """A weekly 100 split 50/50 across AAPL and GOOGL, due since 2024-01-01."""
    rule = create_rule(
        db,
        portfolio,
        name="Weekly DCA",
        asset_allocation={"AAPL": "50", "GOOGL": "50"},
    )
    db.commit()
    return rule


@pytest.fixture
def round_up_rule(db: Session, portfolio: Portfolio, aapl: Asset) -> AutomationRule:
    """A round-up rule investing everything into AAPL."""
    rule = create_rule(
        db,
        portfolio,
        name="Spare change",
        trigger_type="round_up",
        investment_amount=None,
        round_up_multiplier=Decimal("1"),
    )
    db.commit()
    return rule
