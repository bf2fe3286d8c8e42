"""Portfolio valuation API endpoints."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from api.helpers import to_http_error
from database import get_db
from schemas.portfolio_valuation import PortfolioValuation
from services.exceptions import AutomationError
from services.portfolio_valuation_service import PortfolioValuationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/portfolios", tags=["portfolios"])


@router.post("/{portfolio_id}/valuation", response_model=PortfolioValuation)
def recalculate_valuation(portfolio_id: str, db: Session = Depends(get_db)):
    """Recompute and store a portfolio's value and returns."""
    try:
        valuation = PortfolioValuationService().recalculate(db, portfolio_id)
    except AutomationError as e:
        raise to_http_error(e)
    db.commit()
    return valuation
