import logging
from typing import Optional

from .config import Settings
from .locks import KeyLockRegistry, LockTimeoutError
from .models import TransactionType, UserBalance, HistoryRecord
from .storage import BalanceStore, HistoryLog

logger = logging.getLogger(__name__)

__all__ = [
    "PointService",
    "PointServiceError",
    "NotFoundError",
    "UnknownUserError",
    "LimitExceededError",
    "InsufficientBalanceError",
    "PersistenceFailureError",
    "InvalidAmountError",
    "LockTimeoutError",
]


class PointServiceError(Exception):
    pass


class NotFoundError(PointServiceError):
    pass


class UnknownUserError(PointServiceError):
    pass


class LimitExceededError(PointServiceError):
    pass


class InsufficientBalanceError(PointServiceError):
    pass


class PersistenceFailureError(PointServiceError):
    pass


class InvalidAmountError(PointServiceError):
    pass


class PointService:
    """
    Charges and uses per-user points.

    Every mutation runs read -> validate -> write -> append while holding the
    user's lock, so operations on one user are applied one at a time and
    operations on different users never wait on each other.
    """

    def __init__(
        self,
        balances: BalanceStore,
        history: HistoryLog,
        locks: Optional[KeyLockRegistry] = None,
        settings: Optional[Settings] = None,
    ):
        self.balances = balances
        self.history = history
        self.locks = locks or KeyLockRegistry()
        self.settings = settings or Settings()

    def get_balance(self, user_id: int, consistent: bool = False) -> UserBalance:
        if consistent:
            with self.locks.hold(user_id, self.settings.lock_timeout):
                balance = self.balances.select_by_id(user_id)
        else:
            balance = self.balances.select_by_id(user_id)
        if balance is None:
            raise NotFoundError(f"User {user_id} has no point balance")
        return balance

    def get_history(self, user_id: int) -> list[HistoryRecord]:
        records = self.history.select_all_by_user_id(user_id)
        if records is None:
            raise NotFoundError(f"User {user_id} has no point history")
        return records

    def charge(self, user_id: int, amount: int) -> UserBalance:
        return self._apply(user_id, amount, TransactionType.CHARGE)

    def use(self, user_id: int, amount: int) -> UserBalance:
        return self._apply(user_id, amount, TransactionType.USE)

    def _apply(self, user_id: int, amount: int, transaction_type: TransactionType) -> UserBalance:
        self._validate_amount(amount)

        with self.locks.hold(user_id, self.settings.lock_timeout):
            current = self.balances.select_by_id(user_id)
            if current is None:
                logger.info("%s rejected: unknown user=%s", transaction_type.value, user_id)
                raise UnknownUserError(f"User {user_id} is not registered")

            new_amount = self._next_amount(current, amount, transaction_type)

            try:
                updated = self.balances.insert_or_update(user_id, new_amount)
            except Exception as exc:
                logger.exception("%s failed: balance write raised user=%s", transaction_type.value, user_id)
                raise PersistenceFailureError(f"Point balance for user {user_id} was not updated") from exc
            if updated is None:
                logger.error("%s failed: balance write returned nothing user=%s", transaction_type.value, user_id)
                raise PersistenceFailureError(f"Point balance for user {user_id} was not updated")

            self._append_history(current, updated, transaction_type)

        logger.info(
            "%s user=%s amount=%s balance=%s->%s",
            transaction_type.value, user_id, amount, current.amount, updated.amount,
        )
        return updated

    def _next_amount(self, current: UserBalance, amount: int, transaction_type: TransactionType) -> int:
        if transaction_type == TransactionType.CHARGE:
            new_amount = current.amount + amount
            if new_amount > self.settings.max_point:
                logger.info(
                    "CHARGE rejected: user=%s balance=%s amount=%s exceeds max=%s",
                    current.user_id, current.amount, amount, self.settings.max_point,
                )
                raise LimitExceededError(
                    f"Charging {amount} would exceed the maximum of {self.settings.max_point} points"
                )
            return new_amount

        new_amount = current.amount - amount
        if new_amount < 0:
            logger.info(
                "USE rejected: user=%s balance=%s amount=%s", current.user_id, current.amount, amount,
            )
            raise InsufficientBalanceError(
                f"Cannot use {amount} points, only {current.amount} available"
            )
        return new_amount

    def _append_history(self, previous: UserBalance, updated: UserBalance, transaction_type: TransactionType):
        # the balance write has committed; undo it if the history entry cannot be recorded
        try:
            record = self.history.insert(
                updated.user_id, updated.amount, transaction_type, updated.updated_at
            )
        except Exception as exc:
            logger.exception("history append raised for user=%s", updated.user_id)
            self._restore(previous)
            raise PersistenceFailureError(
                f"History for user {updated.user_id} was not recorded"
            ) from exc
        if record is None:
            logger.error("history append returned nothing for user=%s", updated.user_id)
            self._restore(previous)
            raise PersistenceFailureError(f"History for user {updated.user_id} was not recorded")

    def _restore(self, previous: UserBalance):
        try:
            restored = self.balances.insert_or_update(previous.user_id, previous.amount)
        except Exception:
            logger.exception(
                "balance for user=%s left at new value without history; restore to %s raised",
                previous.user_id, previous.amount,
            )
            return
        if restored is None:
            logger.error(
                "balance for user=%s left at new value without history; restore to %s failed",
                previous.user_id, previous.amount,
            )
        else:
            logger.warning("balance for user=%s restored to %s", previous.user_id, previous.amount)

    @staticmethod
    def _validate_amount(amount: int):
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise InvalidAmountError(f"Amount must be an integer, got {amount!r}")
        if amount < 0:
            raise InvalidAmountError(f"Amount must not be negative, got {amount}")
