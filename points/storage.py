import threading
from datetime import datetime, timezone
from typing import Optional, Protocol

from .models import TransactionType, UserBalance, HistoryRecord


class BalanceStore(Protocol):
    def select_by_id(self, user_id: int) -> Optional[UserBalance]: ...

    def insert_or_update(self, user_id: int, amount: int) -> Optional[UserBalance]: ...


class HistoryLog(Protocol):
    def insert(
        self, user_id: int, amount: int, transaction_type: TransactionType, created_at: datetime
    ) -> Optional[HistoryRecord]: ...

    def select_all_by_user_id(self, user_id: int) -> Optional[list[HistoryRecord]]: ...


class InMemoryBalanceStore:
    def __init__(self, seed: Optional[dict[int, int]] = None):
        self.balances: dict[int, dict] = {}
        self._lock = threading.Lock()
        for user_id, amount in (seed or {}).items():
            self.insert_or_update(user_id, amount)

    def select_by_id(self, user_id: int) -> Optional[UserBalance]:
        with self._lock:
            data = self.balances.get(user_id)
        return UserBalance(**data) if data else None

    def insert_or_update(self, user_id: int, amount: int) -> Optional[UserBalance]:
        data = {
            "user_id": user_id,
            "amount": amount,
            "updated_at": datetime.now(timezone.utc),
        }
        with self._lock:
            self.balances[user_id] = data
        return UserBalance(**data)


class InMemoryHistoryLog:
    """Append-only log; records come back in insertion order."""

    def __init__(self):
        self.records: dict[int, list[dict]] = {}
        self._next_id = 1
        self._lock = threading.Lock()

    def insert(
        self, user_id: int, amount: int, transaction_type: TransactionType, created_at: datetime
    ) -> Optional[HistoryRecord]:
        with self._lock:
            data = {
                "id": self._next_id,
                "user_id": user_id,
                "amount": amount,
                "transaction_type": transaction_type,
                "created_at": created_at,
            }
            self._next_id += 1
            self.records.setdefault(user_id, []).append(data)
        return HistoryRecord(**data)

    def select_all_by_user_id(self, user_id: int) -> Optional[list[HistoryRecord]]:
        with self._lock:
            entries = self.records.get(user_id)
            if entries is None:
                return None
            entries = list(entries)
        return [HistoryRecord(**e) for e in entries]
