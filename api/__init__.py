"""API route handlers."""
from . import automation, portfolios, transactions

__all__ = ["automation", "portfolios", "transactions"]
