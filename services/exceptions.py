"""Typed exception hierarchy for the automation core.

Errors at the allocation or ledger level abort only the current rule or
transaction; the execution engine records them on a failed execution
and moves on to the next rule.
"""

from decimal import Decimal


class AutomationError(Exception):
    """Base exception for all automation-core errors."""

    pass


class RuleValidationError(AutomationError):
    """A rule is malformed. Raised at creation/update, never during execution."""

    pass


class EntityNotFoundError(AutomationError, LookupError):
    """A referenced rule, portfolio or transaction doesn't exist."""

    pass


class PriceUnavailableError(AutomationError):
    """No usable price for one or more assets in an allocation.

    Carries the missing asset IDs so the execution record can name them.
    """

    def __init__(self, asset_ids: list[str]):
        self.asset_ids = sorted(asset_ids)
        super().__init__(f"Price unavailable for assets: {', '.join(self.asset_ids)}")


class AllocationError(AutomationError):
    """An allocation plan produced nothing tradable."""

    pass


class InsufficientHoldingsError(AutomationError):
    """A sell requested more than the portfolio holds."""

    def __init__(self, asset_id: str, requested: Decimal, held: Decimal):
        self.asset_id = asset_id
        self.requested = requested
        self.held = held
        super().__init__(
            f"Insufficient holdings for asset {asset_id}: "
            f"requested {requested}, held {held}"
        )


class TransactionStateError(AutomationError):
    """A transaction is not in a state that allows the requested change."""

    pass


class PersistenceError(AutomationError):
    """The storage layer failed. Surfaced, not retried within the same tick."""

    pass


class ConcurrentConsumptionError(AutomationError):
    """Round-up entries were consumed by another writer mid-execution."""

    pass
