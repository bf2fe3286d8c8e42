"""Transaction ledger API endpoints."""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from api.helpers import get_or_404, to_http_error
from database import get_db
from models import Portfolio
from schemas.transaction import (
    TransactionCreate,
    TransactionResponse,
    TransactionStats,
    TransactionStatus,
    TransactionType,
    TransactionUpdate,
)
from services.exceptions import AutomationError, InsufficientHoldingsError
from services.transaction_ledger_service import TransactionLedgerService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["transactions"])


@router.get("/portfolios/{portfolio_id}/transactions", response_model=list[TransactionResponse])
def list_transactions(
    portfolio_id: str,
    type: Optional[TransactionType] = Query(None),
    status: Optional[TransactionStatus] = Query(None),
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=1000),
    db: Session = Depends(get_db),
):
    """List a portfolio's transactions, newest first."""
    get_or_404(db, Portfolio, portfolio_id, "Portfolio not found")
    return TransactionLedgerService.list_transactions(
        db, portfolio_id, type=type, status=status, start=start, end=end, limit=limit
    )


@router.post(
    "/portfolios/{portfolio_id}/transactions",
    response_model=TransactionResponse,
    status_code=201,
)
def record_transaction(
    portfolio_id: str,
    body: TransactionCreate,
    db: Session = Depends(get_db),
):
    """Record a transaction and apply it to holdings."""
    get_or_404(db, Portfolio, portfolio_id, "Portfolio not found")
    try:
        transaction = TransactionLedgerService.record(
            db,
            portfolio_id,
            body.asset_id,
            body.type,
            body.quantity,
            body.price,
            fee=body.fee,
            total_amount=body.total_amount,
            notes=body.notes,
        )
    except InsufficientHoldingsError as e:
        # Keep the failed transaction row for audit
        db.commit()
        raise to_http_error(e)
    except ValueError as e:
        raise to_http_error(AutomationError(str(e)))
    except AutomationError as e:
        raise to_http_error(e)
    db.commit()
    db.refresh(transaction)
    return transaction


@router.get("/portfolios/{portfolio_id}/transactions/stats", response_model=TransactionStats)
def transaction_stats(portfolio_id: str, db: Session = Depends(get_db)):
    """Totals over a portfolio's completed transactions."""
    get_or_404(db, Portfolio, portfolio_id, "Portfolio not found")
    return TransactionLedgerService.calculate_stats(db, portfolio_id)


@router.get("/transactions/{transaction_id}", response_model=TransactionResponse)
def get_transaction(transaction_id: str, db: Session = Depends(get_db)):
    """Get a single transaction."""
    try:
        return TransactionLedgerService.get_transaction(db, transaction_id)
    except AutomationError as e:
        raise to_http_error(e)


@router.patch("/transactions/{transaction_id}", response_model=TransactionResponse)
def update_transaction(
    transaction_id: str,
    body: TransactionUpdate,
    db: Session = Depends(get_db),
):
    """Edit a pending transaction."""
    try:
        transaction = TransactionLedgerService.update_pending(db, transaction_id, body)
    except ValueError as e:
        raise to_http_error(AutomationError(str(e)))
    except AutomationError as e:
        raise to_http_error(e)
    db.commit()
    db.refresh(transaction)
    return transaction


@router.post("/transactions/{transaction_id}/cancel", response_model=TransactionResponse)
def cancel_transaction(transaction_id: str, db: Session = Depends(get_db)):
    """Cancel a pending transaction."""
    try:
        transaction = TransactionLedgerService.cancel(db, transaction_id)
    except AutomationError as e:
        raise to_http_error(e)
    db.commit()
    db.refresh(transaction)
    return transaction
