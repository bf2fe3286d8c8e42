"""Shared API helpers for route handlers."""

from typing import TypeVar

from fastapi import Header, HTTPException
from sqlalchemy.orm import Session

from database import Base
from services.exceptions import (
    AutomationError,
    ConcurrentConsumptionError,
    EntityNotFoundError,
    InsufficientHoldingsError,
    PersistenceError,
    RuleValidationError,
    TransactionStateError,
)

T = TypeVar("T", bound=Base)

_STATUS_CODES: tuple[tuple[type[AutomationError], int], ...] = (
    (EntityNotFoundError, 404),
    (RuleValidationError, 422),
    (InsufficientHoldingsError, 409),
    (TransactionStateError, 409),
    (ConcurrentConsumptionError, 409),
    (PersistenceError, 503),
)


def get_or_404(db: Session, model: type[T], entity_id: str, detail: str = "Not found") -> T:
    """Fetch a single entity by primary key or raise 404.

    Args:
        db: Database session.
        model: SQLAlchemy model class.
        entity_id: Primary key value.
        detail: Error message for the 404 response.

    Returns:
        The entity instance.

    Raises:
        HTTPException: 404 if the entity doesn't exist.
    """
    entity = db.query(model).filter(model.id == entity_id).first()
    if not entity:
        raise HTTPException(status_code=404, detail=detail)
    return entity


def get_current_user_id(x_user_id: str = Header(...)) -> str:
    """Caller identity, set by the authenticating gateway in front of the API."""
    return x_user_id


def to_http_error(error: AutomationError) -> HTTPException:
    """Map a service-layer error to the matching HTTP status."""
    for error_type, status_code in _STATUS_CODES:
        if isinstance(error, error_type):
            return HTTPException(status_code=status_code, detail=str(error))
    return HTTPException(status_code=400, detail=str(error))
