"""Automation rule API endpoints and trigger entry points."""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from api.helpers import get_current_user_id, to_http_error
from database import get_db
from schemas.automation import (
    AutomationRuleCreate,
    AutomationRuleResponse,
    AutomationRuleUpdate,
    ExecutionResult,
    RoundUpRequest,
    RoundUpResponse,
)
from services.automation_rule_service import AutomationRuleService
from services.exceptions import AutomationError
from services.execution_engine import ExecutionEngine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/automation", tags=["automation"])


def get_execution_engine() -> ExecutionEngine:
    """Dependency that provides the execution engine."""
    return ExecutionEngine()


# --- Rule management ---


@router.post("/rules", response_model=AutomationRuleResponse, status_code=201)
def create_rule(
    body: AutomationRuleCreate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Create an automation rule."""
    try:
        rule = AutomationRuleService.create_rule(db, user_id, body)
    except AutomationError as e:
        raise to_http_error(e)
    db.commit()
    db.refresh(rule)
    return rule


@router.get("/rules", response_model=list[AutomationRuleResponse])
def list_rules(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """List the caller's automation rules, newest first."""
    return AutomationRuleService.list_rules(db, user_id)


@router.get("/rules/{rule_id}", response_model=AutomationRuleResponse)
def get_rule(
    rule_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Get one automation rule."""
    try:
        return AutomationRuleService.get_rule(db, user_id, rule_id)
    except AutomationError as e:
        raise to_http_error(e)


@router.patch("/rules/{rule_id}", response_model=AutomationRuleResponse)
def update_rule(
    rule_id: str,
    body: AutomationRuleUpdate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Update an automation rule."""
    try:
        rule = AutomationRuleService.update_rule(db, user_id, rule_id, body)
    except AutomationError as e:
        raise to_http_error(e)
    db.commit()
    db.refresh(rule)
    return rule


@router.delete("/rules/{rule_id}", status_code=204)
def delete_rule(
    rule_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Delete an automation rule."""
    try:
        AutomationRuleService.delete_rule(db, user_id, rule_id)
    except AutomationError as e:
        raise to_http_error(e)
    db.commit()


@router.get("/rules/{rule_id}/executions")
def list_executions(
    rule_id: str,
    limit: int = Query(50, ge=1, le=500),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Execution history for a rule, newest first."""
    try:
        executions = AutomationRuleService.list_executions(db, user_id, rule_id, limit)
    except AutomationError as e:
        raise to_http_error(e)
    return [
        {
            "id": e.id,
            "status": e.status,
            "trigger_type": e.trigger_type,
            "total_amount": e.total_amount,
            "allocations": e.allocations or [],
            "error": e.error_message,
            "executed_at": e.executed_at,
        }
        for e in executions
    ]


@router.post("/rules/{rule_id}/execute", response_model=ExecutionResult)
def execute_rule(
    rule_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    engine: ExecutionEngine = Depends(get_execution_engine),
):
    """Run a rule immediately."""
    try:
        result = engine.execute_now(db, user_id, rule_id)
    except AutomationError as e:
        raise to_http_error(e)
    db.commit()
    return result


# --- Trigger entry points ---


@router.post("/run-scheduled", response_model=list[ExecutionResult])
def run_scheduled(
    db: Session = Depends(get_db),
    engine: ExecutionEngine = Depends(get_execution_engine),
):
    """Scheduler tick: execute every due schedule rule."""
    results = engine.run_scheduled(db)
    db.commit()
    return results


@router.post("/check-market-dips", response_model=list[ExecutionResult])
def check_market_dips(
    db: Session = Depends(get_db),
    engine: ExecutionEngine = Depends(get_execution_engine),
):
    """Market tick: execute market-dip rules whose assets dipped."""
    results = engine.check_market_dips(db)
    db.commit()
    return results


@router.post("/round-ups", response_model=RoundUpResponse)
def process_round_up(
    body: RoundUpRequest,
    db: Session = Depends(get_db),
    engine: ExecutionEngine = Depends(get_execution_engine),
):
    """Purchase webhook: buffer the round-up and invest once it crosses the threshold."""
    try:
        result = engine.process_round_up(db, body.user_id, body.transaction)
    except AutomationError as e:
        # Keep the buffered round-up; the investment savepoint already rolled back
        db.commit()
        raise to_http_error(e)
    db.commit()
    return RoundUpResponse(triggered=result is not None, execution=result)
