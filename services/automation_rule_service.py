"""Automation rule lifecycle: create, list, update, delete."""

import logging
from decimal import Decimal

from sqlalchemy.orm import Session

from models import Asset, AutomationExecution, AutomationRule, Portfolio
from models.utils import utc_now
from schemas.automation import AutomationRuleCreate, AutomationRuleUpdate
from services.exceptions import EntityNotFoundError, RuleValidationError
from services.schedule_calculator import ScheduleCalculator

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")

# Trigger types that invest a fixed amount each time they fire.
FIXED_AMOUNT_TRIGGERS = ("schedule", "market_dip", "goal_based")

# Fields that cannot be cleared once set.
_REQUIRED_FIELDS = ("name", "is_active", "frequency", "trigger_type", "allocation_strategy", "asset_allocation")


def _serialize_allocation(allocation: dict[str, Decimal]) -> dict[str, str]:
    """JSON-safe copy of an allocation map, keyed in asset-id order."""
    return {asset_id: str(allocation[asset_id]) for asset_id in sorted(allocation)}


class AutomationRuleService:
    """CRUD for automation rules, scoped to the owning user."""

    @staticmethod
    def validate(db: Session, rule: AutomationRule) -> None:
        """Reject malformed rules before they can reach the engine.

        Raises:
            RuleValidationError: Describing the first problem found.
        """
        allocation = rule.asset_allocation or {}
        if not allocation:
            raise RuleValidationError("Asset allocation must not be empty")

        percents = {asset_id: Decimal(str(p)) for asset_id, p in allocation.items()}
        non_positive = sorted(a for a, p in percents.items() if p <= 0)
        if non_positive:
            raise RuleValidationError(
                f"Allocation percentages must be positive: {', '.join(non_positive)}"
            )
        total = sum(percents.values(), Decimal("0"))
        if total > HUNDRED:
            raise RuleValidationError(f"Allocation percentages total {total}%, above 100%")

        known = {
            a.id for a in db.query(Asset.id).filter(Asset.id.in_(list(percents))).all()
        }
        unknown = sorted(set(percents) - known)
        if unknown:
            raise RuleValidationError(f"Unknown assets in allocation: {', '.join(unknown)}")

        if rule.trigger_type in FIXED_AMOUNT_TRIGGERS:
            if rule.investment_amount is None or Decimal(rule.investment_amount) <= 0:
                raise RuleValidationError(
                    f"A {rule.trigger_type} rule requires a positive investment amount"
                )
        elif rule.investment_amount is not None and Decimal(rule.investment_amount) <= 0:
            raise RuleValidationError("Investment amount must be positive")

        if rule.round_up_multiplier is not None and Decimal(rule.round_up_multiplier) <= 0:
            raise RuleValidationError("Round-up multiplier must be positive")

        if rule.market_dip_threshold is not None:
            threshold = Decimal(rule.market_dip_threshold)
            if threshold <= 0 or threshold > HUNDRED:
                raise RuleValidationError("Market dip threshold must be between 0 and 100")

        if rule.market_dip_cooldown_hours is not None and rule.market_dip_cooldown_hours <= 0:
            raise RuleValidationError("Market dip cooldown must be a positive number of hours")

    @staticmethod
    def create_rule(db: Session, user_id: str, data: AutomationRuleCreate) -> AutomationRule:
        """Create an active rule with its first next_execution computed."""
        portfolio = db.get(Portfolio, data.portfolio_id)
        if portfolio is None or portfolio.user_id != user_id:
            raise RuleValidationError(f"Unknown portfolio: {data.portfolio_id}")

        values = data.model_dump()
        values["asset_allocation"] = _serialize_allocation(data.asset_allocation)
        rule = AutomationRule(
            user_id=user_id,
            **values,
            next_execution=ScheduleCalculator.next_execution(
                data.frequency, utc_now(), data.trigger_type
            ),
            total_invested=Decimal("0"),
            execution_count=0,
        )
        AutomationRuleService.validate(db, rule)

        db.add(rule)
        db.flush()
        logger.info(
            "Created %s automation rule %s (%s) for portfolio %s",
            rule.trigger_type, rule.id, rule.name, rule.portfolio_id,
        )
        return rule

    @staticmethod
    def list_rules(db: Session, user_id: str) -> list[AutomationRule]:
        """A user's rules, newest first."""
        return (
            db.query(AutomationRule)
            .filter(AutomationRule.user_id == user_id)
            .order_by(AutomationRule.created_at.desc(), AutomationRule.id.desc())
            .all()
        )

    @staticmethod
    def get_rule(db: Session, user_id: str, rule_id: str) -> AutomationRule:
        """Get one of the user's rules. Raises EntityNotFoundError otherwise."""
        rule = (
            db.query(AutomationRule)
            .filter(AutomationRule.id == rule_id, AutomationRule.user_id == user_id)
            .first()
        )
        if rule is None:
            raise EntityNotFoundError(f"Automation rule not found: {rule_id}")
        return rule

    @staticmethod
    def update_rule(
        db: Session, user_id: str, rule_id: str, data: AutomationRuleUpdate
    ) -> AutomationRule:
        """Apply a partial update.

        next_execution is recomputed from now when frequency or
        trigger_type is part of the update.
        """
        rule = AutomationRuleService.get_rule(db, user_id, rule_id)
        updates = data.model_dump(exclude_unset=True)
        for field in _REQUIRED_FIELDS:
            if field in updates and updates[field] is None:
                del updates[field]

        if "asset_allocation" in updates:
            updates["asset_allocation"] = _serialize_allocation(data.asset_allocation)

        with db.no_autoflush:
            for field, value in updates.items():
                setattr(rule, field, value)
            try:
                AutomationRuleService.validate(db, rule)
            except RuleValidationError:
                db.expire(rule)
                raise

        if "frequency" in updates or "trigger_type" in updates:
            rule.next_execution = ScheduleCalculator.next_execution(
                rule.frequency, utc_now(), rule.trigger_type
            )

        db.flush()
        logger.info("Updated automation rule %s (%s)", rule.id, ", ".join(sorted(updates)))
        return rule

    @staticmethod
    def delete_rule(db: Session, user_id: str, rule_id: str) -> None:
        """Delete a rule along with its round-up buffer and execution log."""
        rule = AutomationRuleService.get_rule(db, user_id, rule_id)
        logger.info("Deleting automation rule %s (%s)", rule.id, rule.name)
        db.delete(rule)
        db.flush()

    @staticmethod
    def list_executions(
        db: Session, user_id: str, rule_id: str, limit: int = 50
    ) -> list[AutomationExecution]:
        """A rule's execution records, newest first."""
        AutomationRuleService.get_rule(db, user_id, rule_id)
        return (
            db.query(AutomationExecution)
            .filter(AutomationExecution.automation_rule_id == rule_id)
            .order_by(AutomationExecution.executed_at.desc())
            .limit(limit)
            .all()
        )
