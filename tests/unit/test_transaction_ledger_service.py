"""Tests for the TransactionLedgerService."""

import itertools
from decimal import Decimal

import pytest
from sqlalchemy.orm import Session

from models import Asset, Holding, Portfolio, Transaction
from schemas.transaction import TransactionUpdate
from services.exceptions import (
    EntityNotFoundError,
    InsufficientHoldingsError,
    TransactionStateError,
)
from services.transaction_ledger_service import TransactionLedgerService
from tests.fixtures import create_holding


def _holding(db: Session, portfolio: Portfolio, asset: Asset) -> Holding | None:
    return db.query(Holding).filter_by(portfolio_id=portfolio.id, asset_id=asset.id).first()


class TestRecordBuy:
    def test_first_buy_creates_holding(self, db: Session, portfolio: Portfolio, aapl: Asset):
        tx = TransactionLedgerService.record(
            db, portfolio.id, aapl.id, "buy", Decimal("10"), Decimal("100")
        )

        assert tx.status == "completed"
        assert tx.executed_at is not None
        assert tx.total_amount == Decimal("1000")
        holding = _holding(db, portfolio, aapl)
        assert holding.quantity == Decimal("10")
        assert holding.average_cost == Decimal("100")
        assert holding.total_invested == Decimal("1000")

    def test_fee_defaults_to_rate_of_total(self, db: Session, portfolio: Portfolio, aapl: Asset):
        tx = TransactionLedgerService.record(
            db, portfolio.id, aapl.id, "buy", Decimal("10"), Decimal("100")
        )
        assert tx.fee == Decimal("1")

    def test_explicit_fee_and_total_kept(self, db: Session, portfolio: Portfolio, aapl: Asset):
        tx = TransactionLedgerService.record(
            db,
            portfolio.id,
            aapl.id,
            "buy",
            Decimal("0.27777777"),
            Decimal("180"),
            fee=Decimal("0"),
            total_amount=Decimal("50"),
        )
        assert tx.total_amount == Decimal("50")
        assert tx.fee == Decimal("0")

    def test_weighted_average_cost(self, db: Session, portfolio: Portfolio, aapl: Asset):
        TransactionLedgerService.record(db, portfolio.id, aapl.id, "buy", Decimal("10"), Decimal("100"))
        TransactionLedgerService.record(db, portfolio.id, aapl.id, "buy", Decimal("10"), Decimal("120"))

        holding = _holding(db, portfolio, aapl)
        assert holding.quantity == Decimal("20")
        assert holding.average_cost == Decimal("110")
        assert holding.total_invested == Decimal("2200")

    @pytest.mark.parametrize(
        "order",
        list(itertools.permutations([("10", "100"), ("5", "130"), ("5", "70")])),
    )
    def test_average_cost_independent_of_buy_order(
        self, db: Session, portfolio: Portfolio, aapl: Asset, order
    ):
        for quantity, price in order:
            TransactionLedgerService.record(
                db, portfolio.id, aapl.id, "buy", Decimal(quantity), Decimal(price)
            )

        holding = _holding(db, portfolio, aapl)
        assert holding.quantity == Decimal("20")
        assert holding.average_cost == Decimal("100")

    def test_unknown_portfolio(self, db: Session, aapl: Asset):
        with pytest.raises(EntityNotFoundError):
            TransactionLedgerService.record(db, "missing", aapl.id, "buy", Decimal("1"), Decimal("1"))

    def test_unknown_type_rejected(self, db: Session, portfolio: Portfolio, aapl: Asset):
        with pytest.raises(ValueError, match="Unknown transaction type"):
            TransactionLedgerService.record(db, portfolio.id, aapl.id, "swap", Decimal("1"), Decimal("1"))

    def test_buy_requires_positive_quantity(self, db: Session, portfolio: Portfolio, aapl: Asset):
        with pytest.raises(ValueError, match="positive quantity"):
            TransactionLedgerService.record(db, portfolio.id, aapl.id, "buy", Decimal("0"), Decimal("1"))


class TestRecordSell:
    def test_partial_sell_keeps_average_cost(self, db: Session, portfolio: Portfolio, aapl: Asset):
        create_holding(db, portfolio, aapl, Decimal("10"), Decimal("100"))

        tx = TransactionLedgerService.record(
            db, portfolio.id, aapl.id, "sell", Decimal("4"), Decimal("150")
        )

        assert tx.status == "completed"
        holding = _holding(db, portfolio, aapl)
        assert holding.quantity == Decimal("6")
        assert holding.average_cost == Decimal("100")
        assert holding.total_invested == Decimal("600")

    def test_selling_entire_position_deletes_holding(
        self, db: Session, portfolio: Portfolio, aapl: Asset
    ):
        create_holding(db, portfolio, aapl, Decimal("10"), Decimal("100"))

        TransactionLedgerService.record(db, portfolio.id, aapl.id, "sell", Decimal("10"), Decimal("150"))

        assert _holding(db, portfolio, aapl) is None

    def test_oversell_fails_and_leaves_holding(self, db: Session, portfolio: Portfolio, aapl: Asset):
        create_holding(db, portfolio, aapl, Decimal("10"), Decimal("100"))

        with pytest.raises(InsufficientHoldingsError) as exc_info:
            TransactionLedgerService.record(
                db, portfolio.id, aapl.id, "sell", Decimal("11"), Decimal("150")
            )

        assert exc_info.value.requested == Decimal("11")
        assert exc_info.value.held == Decimal("10")
        holding = _holding(db, portfolio, aapl)
        assert holding.quantity == Decimal("10")

        failed = db.query(Transaction).filter_by(portfolio_id=portfolio.id).one()
        assert failed.status == "failed"
        assert "Insufficient holdings" in failed.error_message
        assert failed.executed_at is None

    def test_sell_without_holding_fails(self, db: Session, portfolio: Portfolio, aapl: Asset):
        with pytest.raises(InsufficientHoldingsError):
            TransactionLedgerService.record(db, portfolio.id, aapl.id, "sell", Decimal("1"), Decimal("150"))

        assert db.query(Transaction).one().status == "failed"


class TestCashEvents:
    def test_dividend_does_not_touch_holdings(self, db: Session, portfolio: Portfolio, aapl: Asset):
        create_holding(db, portfolio, aapl, Decimal("10"), Decimal("100"))

        tx = TransactionLedgerService.record(
            db, portfolio.id, aapl.id, "dividend", Decimal("0"), Decimal("0"),
            total_amount=Decimal("12.50"), fee=Decimal("0"),
        )

        assert tx.status == "completed"
        assert _holding(db, portfolio, aapl).quantity == Decimal("10")


class TestPendingLifecycle:
    def test_submit_then_settle(self, db: Session, portfolio: Portfolio, aapl: Asset):
        tx = TransactionLedgerService.submit(db, portfolio.id, aapl.id, "buy", Decimal("2"), Decimal("180"))
        assert tx.status == "pending"
        assert _holding(db, portfolio, aapl) is None

        TransactionLedgerService.settle(db, tx.id)

        assert tx.status == "completed"
        assert _holding(db, portfolio, aapl).quantity == Decimal("2")

    def test_settle_twice_rejected(self, db: Session, portfolio: Portfolio, aapl: Asset):
        tx = TransactionLedgerService.record(db, portfolio.id, aapl.id, "buy", Decimal("1"), Decimal("180"))

        with pytest.raises(TransactionStateError):
            TransactionLedgerService.settle(db, tx.id)

    def test_cancel_pending(self, db: Session, portfolio: Portfolio, aapl: Asset):
        tx = TransactionLedgerService.submit(db, portfolio.id, aapl.id, "buy", Decimal("1"), Decimal("180"))

        TransactionLedgerService.cancel(db, tx.id)

        assert tx.status == "cancelled"

    def test_cancel_completed_rejected(self, db: Session, portfolio: Portfolio, aapl: Asset):
        tx = TransactionLedgerService.record(db, portfolio.id, aapl.id, "buy", Decimal("1"), Decimal("180"))

        with pytest.raises(TransactionStateError):
            TransactionLedgerService.cancel(db, tx.id)
        assert tx.status == "completed"

    def test_update_pending_recomputes_amounts(self, db: Session, portfolio: Portfolio, aapl: Asset):
        tx = TransactionLedgerService.submit(db, portfolio.id, aapl.id, "buy", Decimal("1"), Decimal("180"))

        TransactionLedgerService.update_pending(
            db, tx.id, TransactionUpdate(quantity=Decimal("2"), notes="doubled")
        )

        assert tx.quantity == Decimal("2")
        assert tx.total_amount == Decimal("360")
        assert tx.fee == Decimal("0.36")
        assert tx.notes == "doubled"

    def test_update_completed_rejected(self, db: Session, portfolio: Portfolio, aapl: Asset):
        tx = TransactionLedgerService.record(db, portfolio.id, aapl.id, "buy", Decimal("1"), Decimal("180"))

        with pytest.raises(TransactionStateError):
            TransactionLedgerService.update_pending(db, tx.id, TransactionUpdate(notes="late"))

    def test_update_pending_zero_quantity_rejected(self, db: Session, portfolio: Portfolio, aapl: Asset):
        tx = TransactionLedgerService.submit(db, portfolio.id, aapl.id, "buy", Decimal("1"), Decimal("180"))

        with pytest.raises(ValueError, match="positive quantity"):
            TransactionLedgerService.update_pending(db, tx.id, TransactionUpdate(quantity=Decimal("0")))

        assert tx.quantity == Decimal("1")
        assert tx.total_amount == Decimal("180")

    def test_update_pending_price_only_keeps_quantity(self, db: Session, portfolio: Portfolio, aapl: Asset):
        tx = TransactionLedgerService.submit(db, portfolio.id, aapl.id, "buy", Decimal("2"), Decimal("180"))

        TransactionLedgerService.update_pending(db, tx.id, TransactionUpdate(price=Decimal("200")))

        assert tx.quantity == Decimal("2")
        assert tx.total_amount == Decimal("400")

    def test_settle_rejects_zero_quantity_buy(self, db: Session, portfolio: Portfolio, aapl: Asset):
        tx = TransactionLedgerService.submit(db, portfolio.id, aapl.id, "buy", Decimal("1"), Decimal("180"))
        tx.quantity = Decimal("0")

        with pytest.raises(ValueError, match="positive quantity"):
            TransactionLedgerService.settle(db, tx.id)

        assert tx.status == "pending"
        assert _holding(db, portfolio, aapl) is None

    def test_get_missing_transaction(self, db: Session):
        with pytest.raises(EntityNotFoundError):
            TransactionLedgerService.get_transaction(db, "missing")


class TestQueries:
    def test_list_filters_by_type_and_status(
        self, db: Session, portfolio: Portfolio, aapl: Asset
    ):
        TransactionLedgerService.record(db, portfolio.id, aapl.id, "buy", Decimal("2"), Decimal("100"))
        TransactionLedgerService.record(db, portfolio.id, aapl.id, "sell", Decimal("1"), Decimal("120"))
        TransactionLedgerService.submit(db, portfolio.id, aapl.id, "buy", Decimal("1"), Decimal("100"))

        assert len(TransactionLedgerService.list_transactions(db, portfolio.id)) == 3
        buys = TransactionLedgerService.list_transactions(db, portfolio.id, type="buy")
        assert {t.type for t in buys} == {"buy"}
        assert len(buys) == 2
        pending = TransactionLedgerService.list_transactions(db, portfolio.id, status="pending")
        assert len(pending) == 1
        assert len(TransactionLedgerService.list_transactions(db, portfolio.id, limit=1)) == 1

    def test_stats_count_only_completed(self, db: Session, portfolio: Portfolio, aapl: Asset):
        TransactionLedgerService.record(db, portfolio.id, aapl.id, "buy", Decimal("10"), Decimal("100"))
        TransactionLedgerService.record(db, portfolio.id, aapl.id, "sell", Decimal("4"), Decimal("150"))
        TransactionLedgerService.submit(db, portfolio.id, aapl.id, "buy", Decimal("1"), Decimal("100"))
        with pytest.raises(InsufficientHoldingsError):
            TransactionLedgerService.record(db, portfolio.id, aapl.id, "sell", Decimal("100"), Decimal("150"))

        stats = TransactionLedgerService.calculate_stats(db, portfolio.id)

        assert stats.transaction_count == 2
        assert stats.total_buys == Decimal("1000")
        assert stats.total_sells == Decimal("600")
        assert stats.total_fees == Decimal("1.6")
        assert stats.net_invested == Decimal("400")

    def test_stats_empty_portfolio(self, db: Session, portfolio: Portfolio):
        stats = TransactionLedgerService.calculate_stats(db, portfolio.id)
        assert stats.transaction_count == 0
        assert stats.net_invested == Decimal("0")
