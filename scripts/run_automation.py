#!/usr/bin/env python
"""Run one automation tick from an external scheduler.

Cron (or any scheduler) invokes this for the periodic batch and the
market tick. Each run commits once at the end; per-rule failures are
recorded as failed executions and reflected in the exit code.

Usage:
    python -m scripts.run_automation scheduled
    python -m scripts.run_automation market-dips
    python -m scripts.run_automation scheduled --dry-run
"""

import argparse
import logging
import sys

from database import get_session_local, init_db
from logging_config import setup_logging
from services.execution_engine import ExecutionEngine

logger = logging.getLogger(__name__)


def run_automation(tick: str, dry_run: bool = False, engine: ExecutionEngine | None = None) -> int:
    """Run one tick and return the number of failed executions."""
    engine = engine or ExecutionEngine()
    SessionLocal = get_session_local()
    db = SessionLocal()

    try:
        if tick == "scheduled":
            results = engine.run_scheduled(db)
        elif tick == "market-dips":
            results = engine.check_market_dips(db)
        else:
            raise ValueError(f"Unknown tick: {tick!r}")

        for result in results:
            line = f"  {result.status:<8} rule {result.automation_rule_id}  {result.total_amount}"
            if result.error:
                line += f"  ({result.error})"
            print(line)

        if dry_run:
            db.rollback()
            print("\n[DRY RUN] No changes made. Run without --dry-run to apply.")
        else:
            db.commit()

        failed = sum(1 for r in results if r.status == "failed")
        print(f"\n{len(results)} executions, {failed} failed")
        return failed

    except Exception:
        db.rollback()
        logger.exception("Automation tick %s aborted", tick)
        raise
    finally:
        db.close()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Run an automation engine tick")
    parser.add_argument(
        "tick",
        choices=["scheduled", "market-dips"],
        help="Which trigger path to evaluate",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Evaluate and print results without committing",
    )
    args = parser.parse_args(argv)

    setup_logging()
    init_db()
    failed = run_automation(args.tick, dry_run=args.dry_run)
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
