"""Service for recording ledger transactions and maintaining holdings.

Every trade is written as a ``pending`` row first, then settled: the
holding mutation runs inside a savepoint and the row ends ``completed``
or ``failed``. Failed rows are kept for audit.
"""

import logging
from datetime import datetime
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config import settings
from models import Holding, Portfolio, Transaction
from models.transaction import TRANSACTION_TYPES
from models.utils import utc_now
from schemas.transaction import TransactionStats, TransactionUpdate
from services.exceptions import (
    EntityNotFoundError,
    InsufficientHoldingsError,
    PersistenceError,
    TransactionStateError,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


class TransactionLedgerService:
    """Records buy/sell/dividend/fee events and mutates holdings."""

    # --- Recording ---

    @staticmethod
    def record(
        db: Session,
        portfolio_id: str,
        asset_id: str | None,
        type: str,
        quantity: Decimal,
        price: Decimal,
        fee: Decimal | None = None,
        total_amount: Decimal | None = None,
        automation_rule_id: str | None = None,
        notes: str | None = None,
    ) -> Transaction:
        """Record a transaction and apply it to holdings.

        Args:
            db: Database session
            portfolio_id: Portfolio the trade belongs to
            asset_id: Traded asset (None for cash-only events)
            type: "buy" | "sell" | "dividend" | "fee"
            quantity: Units traded
            price: Price per unit
            fee: Explicit fee; defaults to TRANSACTION_FEE_RATE of total_amount
            total_amount: Cash amount; defaults to quantity * price
            automation_rule_id: Originating rule, if any
            notes: Free-form notes

        Returns:
            The completed Transaction.

        Raises:
            InsufficientHoldingsError: Sell exceeds the held quantity. The
                transaction is left ``failed``.
            PersistenceError: The storage layer failed.
        """
        transaction = TransactionLedgerService.submit(
            db,
            portfolio_id,
            asset_id,
            type,
            quantity,
            price,
            fee=fee,
            total_amount=total_amount,
            automation_rule_id=automation_rule_id,
            notes=notes,
        )
        return TransactionLedgerService._settle(db, transaction)

    @staticmethod
    def submit(
        db: Session,
        portfolio_id: str,
        asset_id: str | None,
        type: str,
        quantity: Decimal,
        price: Decimal,
        fee: Decimal | None = None,
        total_amount: Decimal | None = None,
        automation_rule_id: str | None = None,
        notes: str | None = None,
    ) -> Transaction:
        """Write a pending transaction without touching holdings."""
        TransactionLedgerService._validate(type, asset_id, quantity, price)
        if db.get(Portfolio, portfolio_id) is None:
            raise EntityNotFoundError(f"Portfolio not found: {portfolio_id}")

        if total_amount is None:
            total_amount = quantity * price
        if fee is None:
            fee = total_amount * settings.TRANSACTION_FEE_RATE

        transaction = Transaction(
            portfolio_id=portfolio_id,
            asset_id=asset_id,
            type=type,
            quantity=quantity,
            price=price,
            total_amount=total_amount,
            fee=fee,
            status="pending",
            automation_rule_id=automation_rule_id,
            notes=notes,
        )
        db.add(transaction)
        TransactionLedgerService._flush(db)
        return transaction

    @staticmethod
    def _validate(type: str, asset_id: str | None, quantity: Decimal, price: Decimal) -> None:
        """Reject trades the ledger cannot apply. Raises ValueError."""
        if type not in TRANSACTION_TYPES:
            raise ValueError(f"Unknown transaction type: {type!r}")
        if quantity < 0 or price < 0:
            raise ValueError("Quantity and price must be non-negative")
        if type in ("buy", "sell"):
            if not asset_id:
                raise ValueError(f"A {type} transaction requires an asset")
            if quantity <= 0:
                raise ValueError(f"A {type} transaction requires a positive quantity")

    @staticmethod
    def settle(db: Session, transaction_id: str) -> Transaction:
        """Apply a pending transaction to holdings and complete it."""
        transaction = TransactionLedgerService.get_transaction(db, transaction_id)
        return TransactionLedgerService._settle(db, transaction)

    @staticmethod
    def _settle(db: Session, transaction: Transaction) -> Transaction:
        if transaction.status != "pending":
            raise TransactionStateError(
                f"Only pending transactions can be settled (status: {transaction.status})"
            )
        TransactionLedgerService._validate(
            transaction.type,
            transaction.asset_id,
            Decimal(transaction.quantity),
            Decimal(transaction.price),
        )

        now = utc_now()
        try:
            with db.begin_nested():
                if transaction.type == "buy":
                    TransactionLedgerService._apply_buy(db, transaction, now)
                elif transaction.type == "sell":
                    TransactionLedgerService._apply_sell(db, transaction, now)
                db.flush()
        except InsufficientHoldingsError as e:
            TransactionLedgerService._mark_failed(db, transaction, str(e))
            raise
        except SQLAlchemyError as e:
            TransactionLedgerService._mark_failed(db, transaction, "Holding update failed")
            raise PersistenceError(f"Failed to update holdings: {e}") from e

        transaction.status = "completed"
        transaction.executed_at = now
        TransactionLedgerService._flush(db)
        logger.info(
            "Completed %s: %s x %s @ %s in portfolio %s",
            transaction.type,
            transaction.quantity,
            transaction.asset_id,
            transaction.price,
            transaction.portfolio_id,
        )
        return transaction

    # --- Holding mutation ---

    @staticmethod
    def _apply_buy(db: Session, transaction: Transaction, now: datetime) -> None:
        """Create or grow a holding, updating the weighted average cost."""
        quantity = Decimal(transaction.quantity)
        price = Decimal(transaction.price)
        holding = (
            db.query(Holding)
            .filter_by(portfolio_id=transaction.portfolio_id, asset_id=transaction.asset_id)
            .first()
        )

        if holding is None:
            holding = Holding(
                portfolio_id=transaction.portfolio_id,
                asset_id=transaction.asset_id,
                quantity=quantity,
                average_cost=price,
                total_invested=quantity * price,
                last_transaction_at=now,
            )
            db.add(holding)
            return

        old_quantity = Decimal(holding.quantity)
        new_quantity = old_quantity + quantity
        new_total_cost = old_quantity * Decimal(holding.average_cost) + quantity * price
        holding.quantity = new_quantity
        holding.average_cost = new_total_cost / new_quantity
        holding.total_invested = new_total_cost
        holding.last_transaction_at = now

    @staticmethod
    def _apply_sell(db: Session, transaction: Transaction, now: datetime) -> None:
        """Shrink or delete a holding. Average cost is unchanged on sells."""
        quantity = Decimal(transaction.quantity)
        holding = (
            db.query(Holding)
            .filter_by(portfolio_id=transaction.portfolio_id, asset_id=transaction.asset_id)
            .first()
        )
        held = Decimal(holding.quantity) if holding else ZERO
        if quantity > held:
            raise InsufficientHoldingsError(transaction.asset_id, quantity, held)

        new_quantity = held - quantity
        if new_quantity == 0:
            db.delete(holding)
            return

        holding.quantity = new_quantity
        holding.total_invested = new_quantity * Decimal(holding.average_cost)
        holding.last_transaction_at = now

    @staticmethod
    def _mark_failed(db: Session, transaction: Transaction, message: str) -> None:
        transaction.status = "failed"
        transaction.error_message = message
        TransactionLedgerService._flush(db)
        logger.warning(
            "Transaction %s (%s %s) failed: %s",
            transaction.id, transaction.type, transaction.asset_id, message,
        )

    @staticmethod
    def _flush(db: Session) -> None:
        try:
            db.flush()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to persist transaction: {e}") from e

    # --- Pending lifecycle ---

    @staticmethod
    def cancel(db: Session, transaction_id: str) -> Transaction:
        """Cancel a pending transaction."""
        transaction = TransactionLedgerService.get_transaction(db, transaction_id)
        if transaction.status != "pending":
            raise TransactionStateError("Only pending transactions can be cancelled")

        transaction.status = "cancelled"
        TransactionLedgerService._flush(db)
        logger.info("Cancelled transaction %s", transaction_id)
        return transaction

    @staticmethod
    def update_pending(
        db: Session, transaction_id: str, data: TransactionUpdate
    ) -> Transaction:
        """Edit a pending transaction. Amount and fee follow quantity/price."""
        transaction = TransactionLedgerService.get_transaction(db, transaction_id)
        if transaction.status != "pending":
            raise TransactionStateError("Only pending transactions can be updated")

        if data.notes is not None:
            transaction.notes = data.notes

        if data.quantity is not None or data.price is not None:
            quantity = data.quantity if data.quantity is not None else Decimal(transaction.quantity)
            price = data.price if data.price is not None else Decimal(transaction.price)
            TransactionLedgerService._validate(transaction.type, transaction.asset_id, quantity, price)
            transaction.quantity = quantity
            transaction.price = price
            transaction.total_amount = Decimal(transaction.quantity) * Decimal(transaction.price)
            transaction.fee = Decimal(transaction.total_amount) * settings.TRANSACTION_FEE_RATE

        TransactionLedgerService._flush(db)
        return transaction

    # --- Queries ---

    @staticmethod
    def get_transaction(db: Session, transaction_id: str) -> Transaction:
        """Get a transaction by ID. Raises EntityNotFoundError if missing."""
        transaction = db.get(Transaction, transaction_id)
        if transaction is None:
            raise EntityNotFoundError(f"Transaction not found: {transaction_id}")
        return transaction

    @staticmethod
    def list_transactions(
        db: Session,
        portfolio_id: str,
        type: str | None = None,
        status: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int | None = None,
    ) -> list[Transaction]:
        """List a portfolio's transactions, newest first."""
        query = db.query(Transaction).filter(Transaction.portfolio_id == portfolio_id)
        if type:
            query = query.filter(Transaction.type == type)
        if status:
            query = query.filter(Transaction.status == status)
        if start:
            query = query.filter(Transaction.created_at >= start)
        if end:
            query = query.filter(Transaction.created_at <= end)
        query = query.order_by(Transaction.created_at.desc(), Transaction.id.desc())
        if limit:
            query = query.limit(limit)
        return query.all()

    @staticmethod
    def calculate_stats(db: Session, portfolio_id: str) -> TransactionStats:
        """Aggregate a portfolio's completed transactions."""
        transactions = (
            db.query(Transaction)
            .filter_by(portfolio_id=portfolio_id, status="completed")
            .all()
        )

        total_buys = ZERO
        total_sells = ZERO
        total_fees = ZERO
        for transaction in transactions:
            amount = Decimal(transaction.total_amount)
            if transaction.type == "buy":
                total_buys += amount
            elif transaction.type == "sell":
                total_sells += amount
            total_fees += Decimal(transaction.fee)

        return TransactionStats(
            total_buys=total_buys,
            total_sells=total_sells,
            total_fees=total_fees,
            net_invested=total_buys - total_sells,
            transaction_count=len(transactions),
        )
