"""Round-up accumulation: buffers spare change until it's worth investing."""

import logging
from decimal import Decimal
from typing import Callable, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from config import settings
from models import AutomationRule, RoundUpBufferEntry
from models.utils import utc_now
from schemas.automation import ExecutionResult, RoundUpTransactionInput
from services.exceptions import ConcurrentConsumptionError
from services.rule_locks import RuleLockRegistry, rule_locks

logger = logging.getLogger(__name__)

ExecuteCallback = Callable[[AutomationRule, Decimal], ExecutionResult]


class RoundUpAccumulator:
    """Buffers round-ups per rule and triggers an investment at the threshold.

    The read-sum, decide and consume steps for one rule run under that
    rule's lock, and consumption is a conditional update guarded on
    ``is_consumed = false`` so two writers can never both invest the
    same entries.
    """

    def __init__(
        self,
        lock_registry: Optional[RuleLockRegistry] = None,
        threshold: Optional[Decimal] = None,
    ):
        self._locks = lock_registry or rule_locks
        self._threshold = threshold

    @property
    def threshold(self) -> Decimal:
        return self._threshold if self._threshold is not None else settings.ROUND_UP_THRESHOLD

    @staticmethod
    def find_rule(db: Session, user_id: str) -> AutomationRule | None:
        """The user's first active round-up rule (oldest first)."""
        return (
            db.query(AutomationRule)
            .filter(
                AutomationRule.user_id == user_id,
                AutomationRule.is_active == True,  # noqa: E712
                AutomationRule.trigger_type == "round_up",
            )
            .order_by(AutomationRule.created_at.asc(), AutomationRule.id.asc())
            .first()
        )

    @staticmethod
    def scaled_amount(round_up_amount: Decimal, multiplier: Decimal | None) -> Decimal:
        """Apply the rule's multiplier (default 1) to a raw round-up."""
        return Decimal(round_up_amount) * Decimal(multiplier if multiplier is not None else 1)

    @staticmethod
    def pending_entries(db: Session, rule_id: str) -> list[RoundUpBufferEntry]:
        """Unconsumed entries for a rule, oldest first."""
        return (
            db.query(RoundUpBufferEntry)
            .filter(
                RoundUpBufferEntry.automation_rule_id == rule_id,
                RoundUpBufferEntry.is_consumed == False,  # noqa: E712
            )
            .order_by(RoundUpBufferEntry.created_at.asc(), RoundUpBufferEntry.id.asc())
            .all()
        )

    def add_and_maybe_trigger(
        self,
        db: Session,
        user_id: str,
        transaction: RoundUpTransactionInput,
        execute: ExecuteCallback,
    ) -> ExecutionResult | None:
        """Buffer a round-up and invest the buffer once it reaches the threshold.

        Args:
            db: Database session
            user_id: Owner of the purchase
            transaction: The incoming purchase event
            execute: Runs the rule for a given amount and returns its
                execution result (success or failed).

        Returns:
            The execution result when the threshold was reached, otherwise
            None. A failed execution leaves the buffer unconsumed.

        Raises:
            ConcurrentConsumptionError: Another writer consumed the summed
                entries; this invocation's investment is rolled back.
        """
        rule = self.find_rule(db, user_id)
        if rule is None:
            logger.debug("No active round-up rule for user %s", user_id)
            return None

        amount = self.scaled_amount(transaction.round_up_amount, rule.round_up_multiplier)

        with self._locks.claim(rule.id):
            db.add(
                RoundUpBufferEntry(
                    user_id=user_id,
                    automation_rule_id=rule.id,
                    source_transaction_id=transaction.transaction_id,
                    merchant=transaction.merchant,
                    amount=amount,
                )
            )
            db.flush()

            entries = self.pending_entries(db, rule.id)
            total = sum((Decimal(e.amount) for e in entries), Decimal("0"))
            if total < self.threshold:
                logger.debug(
                    "Round-up buffer for rule %s at %s (threshold %s)",
                    rule.id, total, self.threshold,
                )
                return None

            logger.info(
                "Round-up buffer for rule %s reached %s across %d entries",
                rule.id, total, len(entries),
            )
            with db.begin_nested():
                result = execute(rule, total)
                if result.succeeded:
                    self._consume(db, [e.id for e in entries], result.execution_id)
            return result

    @staticmethod
    def _consume(db: Session, entry_ids: list[str], execution_id: str | None) -> None:
        """Mark exactly ``entry_ids`` consumed, failing if any already were."""
        stmt = (
            update(RoundUpBufferEntry)
            .where(
                RoundUpBufferEntry.id.in_(entry_ids),
                RoundUpBufferEntry.is_consumed == False,  # noqa: E712
            )
            .values(is_consumed=True, consumed_at=utc_now(), execution_id=execution_id)
            .execution_options(synchronize_session="evaluate")
        )
        consumed = db.execute(stmt).rowcount
        if consumed != len(entry_ids):
            raise ConcurrentConsumptionError(
                f"Expected to consume {len(entry_ids)} round-up entries, consumed {consumed}"
            )
