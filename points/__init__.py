"""
User Point System

This module provides:
- Per-user point balances capped at a maximum
- Charge and use flows serialized per user
- Immutable history of every committed transaction
- Pluggable balance store and history log
"""

from .models import (
    TransactionType,
    UserBalance,
    HistoryRecord,
)
from .locks import KeyLockRegistry
from .service import PointService

__all__ = [
    "TransactionType",
    "UserBalance",
    "HistoryRecord",
    "KeyLockRegistry",
    "PointService",
]
