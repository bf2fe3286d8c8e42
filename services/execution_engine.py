"""Execution engine - runs due and triggered automation rules.

Three entry points feed the engine: the scheduler tick
(``run_scheduled``), the purchase webhook (``process_round_up``) and the
market tick (``check_market_dips``). All of them converge on the same
per-rule execution: allocate, record buys, revalue the portfolio, update
the rule's bookkeeping.

Each rule runs inside its own savepoint and its own lock claim. A rule
that fails is recorded as a failed execution and never aborts the batch
or leaves part of a multi-asset allocation behind.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from config import settings
from integrations.database_price_feed import DatabasePriceFeed
from integrations.price_feed_protocol import PriceFeed
from models import AutomationExecution, AutomationRule
from models.utils import utc_now
from schemas.automation import (
    AllocationResponse,
    ExecutionResult,
    RoundUpTransactionInput,
)
from services.allocation_calculator import AllocationCalculator, AllocationPlan
from services.automation_rule_service import AutomationRuleService
from services.exceptions import AllocationError, AutomationError, RuleValidationError
from services.market_dip_detector import MarketDipDetector
from services.portfolio_valuation_service import PortfolioValuationService
from services.round_up_accumulator import RoundUpAccumulator
from services.rule_locks import RuleLockRegistry, rule_locks
from services.schedule_calculator import ScheduleCalculator
from services.transaction_ledger_service import TransactionLedgerService

logger = logging.getLogger(__name__)

RULE_BUSY_MESSAGE = "Rule is already being executed"


class ExecutionEngine:
    """Orchestrates automation rule execution."""

    def __init__(
        self,
        price_feed: Optional[PriceFeed] = None,
        lock_registry: Optional[RuleLockRegistry] = None,
        accumulator: Optional[RoundUpAccumulator] = None,
    ):
        """Initialize with optional collaborators for dependency injection.

        Args:
            price_feed: Price lookup. If None, each call reads the
                ``assets`` table through the session it was given.
            lock_registry: Per-rule locks. Defaults to the process-wide
                registry so separate engine instances exclude each other.
            accumulator: Round-up buffer. Defaults to one sharing the
                engine's lock registry.
        """
        self._price_feed = price_feed
        self._locks = lock_registry or rule_locks
        self._accumulator = accumulator or RoundUpAccumulator(lock_registry=self._locks)
        self._valuation = PortfolioValuationService(price_feed)

    def _feed(self, db: Session) -> PriceFeed:
        return self._price_feed or DatabasePriceFeed(db)

    # --- Entry points ---

    def run_scheduled(self, db: Session, now: Optional[datetime] = None) -> list[ExecutionResult]:
        """Execute every active schedule rule whose next_execution has passed.

        Failed rules keep their next_execution and are retried next tick.
        """
        now = now or utc_now()
        rules = (
            db.query(AutomationRule)
            .filter(
                AutomationRule.is_active == True,  # noqa: E712
                AutomationRule.trigger_type == "schedule",
                AutomationRule.next_execution <= now,
            )
            .order_by(AutomationRule.next_execution.asc(), AutomationRule.id.asc())
            .all()
        )
        logger.info("Scheduled run: %d rules due", len(rules))

        results = []
        for rule in rules:
            with self._locks.claim(rule.id, blocking=False) as claimed:
                if not claimed:
                    logger.info("Skipping rule %s: %s", rule.id, RULE_BUSY_MESSAGE)
                    results.append(self._skipped(rule, now, RULE_BUSY_MESSAGE))
                    continue
                results.append(
                    self._execute(db, rule, rule.investment_amount, now, advance_schedule=True)
                )

        self._log_batch("Scheduled run", results)
        return results

    def process_round_up(
        self, db: Session, user_id: str, transaction: RoundUpTransactionInput
    ) -> ExecutionResult | None:
        """Buffer a purchase round-up; invest the buffer once it crosses the threshold.

        Returns:
            The execution result when the buffer was invested (or the
            attempt failed), otherwise None.
        """
        def execute(rule: AutomationRule, amount: Decimal) -> ExecutionResult:
            return self._execute(db, rule, amount, utc_now(), advance_schedule=False)

        return self._accumulator.add_and_maybe_trigger(db, user_id, transaction, execute)

    def check_market_dips(self, db: Session, now: Optional[datetime] = None) -> list[ExecutionResult]:
        """Execute active market-dip rules whose allocation has dipped.

        Rules still inside their cooldown window are not evaluated.
        """
        now = now or utc_now()
        rules = (
            db.query(AutomationRule)
            .filter(
                AutomationRule.is_active == True,  # noqa: E712
                AutomationRule.trigger_type == "market_dip",
            )
            .order_by(AutomationRule.id.asc())
            .all()
        )
        detector = MarketDipDetector(self._feed(db))

        results = []
        for rule in rules:
            if detector.in_cooldown(rule, now):
                logger.debug("Market dip rule %s in cooldown", rule.id)
                continue

            with self._locks.claim(rule.id, blocking=False) as claimed:
                if not claimed:
                    logger.info("Skipping rule %s: %s", rule.id, RULE_BUSY_MESSAGE)
                    results.append(self._skipped(rule, now, RULE_BUSY_MESSAGE))
                    continue

                threshold = rule.market_dip_threshold or settings.DEFAULT_MARKET_DIP_THRESHOLD
                try:
                    triggered = detector.is_triggered(rule.asset_allocation or {}, threshold)
                except Exception as e:
                    logger.warning("Market dip check failed for rule %s: %s", rule.id, e, exc_info=True)
                    results.append(self._fail(db, rule, now, f"Market dip check failed: {e}"))
                    continue
                if not triggered:
                    continue

                results.append(
                    self._execute(
                        db,
                        rule,
                        rule.investment_amount,
                        now,
                        advance_schedule=False,
                        dip_trigger=True,
                    )
                )

        self._log_batch("Market dip check", results)
        return results

    def execute_now(self, db: Session, user_id: str, rule_id: str) -> ExecutionResult:
        """Run one rule immediately at the owner's request.

        Schedule rules advance their next_execution as if the tick had
        fired. Round-up rules only invest through their buffer.
        """
        rule = AutomationRuleService.get_rule(db, user_id, rule_id)
        if rule.trigger_type == "round_up":
            raise RuleValidationError(
                "Round-up rules invest automatically when their buffer reaches the threshold"
            )

        now = utc_now()
        with self._locks.claim(rule.id, blocking=False) as claimed:
            if not claimed:
                return self._skipped(rule, now, RULE_BUSY_MESSAGE)
            return self._execute(
                db,
                rule,
                rule.investment_amount,
                now,
                advance_schedule=rule.trigger_type == "schedule",
                dip_trigger=rule.trigger_type == "market_dip",
            )

    # --- Per-rule execution ---

    def _execute(
        self,
        db: Session,
        rule: AutomationRule,
        amount: Decimal | None,
        now: datetime,
        advance_schedule: bool,
        dip_trigger: bool = False,
    ) -> ExecutionResult:
        """Execute one rule in isolation and update its bookkeeping."""
        try:
            with db.begin_nested():
                plan = self._invest(db, rule, amount)
        except Exception as e:
            # Unexpected errors get a traceback; domain errors are expected.
            logger.warning(
                "Automation rule %s failed: %s", rule.id, e,
                exc_info=not isinstance(e, AutomationError),
            )
            return self._fail(db, rule, now, str(e) or type(e).__name__)

        rule.last_execution = now
        if advance_schedule:
            rule.next_execution = ScheduleCalculator.next_execution(
                rule.frequency, now, rule.trigger_type
            )
        if dip_trigger:
            rule.last_market_dip_trigger = now
        rule.total_invested = Decimal(rule.total_invested or 0) + plan.total_amount
        rule.execution_count = (rule.execution_count or 0) + 1
        rule.consecutive_failures = 0
        rule.last_error = None

        logger.info(
            "Automation rule %s invested %s across %d assets",
            rule.id, plan.total_amount, len(plan),
        )
        return self._record(db, rule, now, "success", plan=plan)

    def _invest(self, db: Session, rule: AutomationRule, amount: Decimal | None) -> AllocationPlan:
        """Allocate, record one buy per asset and revalue the portfolio."""
        if amount is None or Decimal(amount) <= 0:
            raise AllocationError("Rule has no investment amount")

        allocation_map = rule.asset_allocation or {}
        prices = self._feed(db).get_prices(sorted(allocation_map))
        plan = AllocationCalculator.apportion(Decimal(amount), allocation_map, prices)
        if not plan:
            raise AllocationError(
                f"Investment of {amount} is too small to buy any allocated asset"
            )

        for allocation in plan:
            TransactionLedgerService.record(
                db,
                rule.portfolio_id,
                allocation.asset_id,
                "buy",
                allocation.quantity,
                allocation.price,
                total_amount=allocation.amount,
                automation_rule_id=rule.id,
            )

        self._valuation.recalculate(db, rule.portfolio_id)
        return plan

    def _fail(self, db: Session, rule: AutomationRule, now: datetime, message: str) -> ExecutionResult:
        """Record a failed attempt. next_execution is deliberately left as is."""
        rule.consecutive_failures = (rule.consecutive_failures or 0) + 1
        rule.last_error = message
        if rule.trigger_type == "schedule" and rule.consecutive_failures > 1:
            # TODO: deactivate or back off rules that keep failing instead of
            # retrying them on every tick.
            logger.warning(
                "Rule %s has failed %d consecutive times and stays due",
                rule.id, rule.consecutive_failures,
            )
        return self._record(db, rule, now, "failed", error=message)

    @staticmethod
    def _record(
        db: Session,
        rule: AutomationRule,
        now: datetime,
        status: str,
        plan: AllocationPlan | None = None,
        error: str | None = None,
    ) -> ExecutionResult:
        """Persist an AutomationExecution row and return it as a result."""
        allocations = list(plan) if plan is not None else []
        total_amount = plan.total_amount if plan is not None else Decimal("0")

        execution = AutomationExecution(
            automation_rule_id=rule.id,
            portfolio_id=rule.portfolio_id,
            trigger_type=rule.trigger_type,
            status=status,
            total_amount=total_amount,
            allocations=[a.to_dict() for a in allocations],
            error_message=error,
            executed_at=now,
        )
        db.add(execution)
        db.flush()

        return ExecutionResult(
            execution_id=execution.id,
            automation_rule_id=rule.id,
            portfolio_id=rule.portfolio_id,
            trigger_type=rule.trigger_type,
            total_amount=total_amount,
            allocations=[
                AllocationResponse(
                    asset_id=a.asset_id,
                    symbol=a.symbol,
                    amount=a.amount,
                    quantity=a.quantity,
                    price=a.price,
                )
                for a in allocations
            ],
            executed_at=now,
            status=status,
            error=error,
        )

    @staticmethod
    def _skipped(rule: AutomationRule, now: datetime, reason: str) -> ExecutionResult:
        return ExecutionResult(
            automation_rule_id=rule.id,
            portfolio_id=rule.portfolio_id,
            trigger_type=rule.trigger_type,
            executed_at=now,
            status="skipped",
            error=reason,
        )

    @staticmethod
    def _log_batch(label: str, results: list[ExecutionResult]) -> None:
        succeeded = sum(1 for r in results if r.status == "success")
        failed = sum(1 for r in results if r.status == "failed")
        logger.info("%s complete: %d succeeded, %d failed", label, succeeded, failed)
