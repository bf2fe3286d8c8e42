"""SQLAlchemy ORM models."""

from .asset import Asset
from .automation_execution import AutomationExecution
from .automation_rule import AutomationRule
from .holding import Holding
from .portfolio import Portfolio
from .round_up_entry import RoundUpBufferEntry
from .transaction import Transaction
from .utils import generate_uuid

__all__ = ["Asset", "AutomationExecution", "AutomationRule", "Holding", "Portfolio", "RoundUpBufferEntry", "Transaction", "generate_uuid"]
