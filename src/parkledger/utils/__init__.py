"""Utility functions for parkledger."""

from parkledger.utils.date_parser import parse_date, parse_period, period_bounds
from parkledger.utils.amount_parser import parse_amount, to_money
from parkledger.utils.locks import KeyedLock, advisory_locks

__all__ = [
    "parse_date",
    "parse_period",
    "period_bounds",
    "parse_amount",
    "to_money",
    "KeyedLock",
    "advisory_locks",
]
