from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from decimal import Decimal, InvalidOperation
from typing import Optional, Tuple

from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlmodel import Session

from ..core.errors import (
    AccountNotFoundError,
    BalanceOverrideError,
    ConflictError,
    InvalidRequestError,
    StorageError,
)
from ..models import AccountModel, AccountUpdate
from .accounts import apply_update, new_account
from .repository import LedgerRepository


logger = logging.getLogger(__name__)

# SQLSTATEs for serialization failure, deadlock and lock-not-available
_CONFLICT_SQLSTATES = {"40001", "40P01", "55P03"}
_CONFLICT_MESSAGES = ("database is locked", "deadlock", "could not serialize")


def _is_conflict(exc: SQLAlchemyError) -> bool:
    if not isinstance(exc, DBAPIError):
        return False
    orig = exc.orig
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate in _CONFLICT_SQLSTATES:
        return True
    message = str(orig).lower()
    return any(fragment in message for fragment in _CONFLICT_MESSAGES)


class LedgerService:
    """Account CRUD and balance mutation over a single SQLModel session.

    Each public method runs in its own transaction: it either commits all of
    its writes or rolls all of them back and re-raises. Database failures
    surface as ``StorageError`` (``ConflictError`` for lock conflicts). The
    service never retries.
    """

    def __init__(
        self,
        session: Session,
        repository: Optional[LedgerRepository] = None,
        *,
        allow_balance_override: bool = False,
    ) -> None:
        self.session = session
        self.repository = repository or LedgerRepository(session)
        self.allow_balance_override = allow_balance_override

    # ------------------------------------------------------------------
    # Helper utilities
    # ------------------------------------------------------------------
    @contextmanager
    def _transaction(self, operation: str) -> Iterator[None]:
        try:
            yield
            self.session.commit()
        except Exception as exc:
            self.session.rollback()
            if isinstance(exc, SQLAlchemyError):
                logger.warning(
                    "transaction.rolled_back",
                    extra={"operation": operation, "error": str(exc)},
                )
                if _is_conflict(exc):
                    raise ConflictError(f"{operation} conflicted with a concurrent update") from exc
                raise StorageError(f"{operation} failed: {exc}") from exc
            raise

    def _require_positive(self, amount: Decimal) -> Decimal:
        if not isinstance(amount, Decimal):
            try:
                amount = Decimal(str(amount))
            except InvalidOperation as exc:
                raise InvalidRequestError(f"Invalid amount: {amount!r}") from exc
        if not amount.is_finite() or amount <= 0:
            raise InvalidRequestError("Amount must be a positive number")
        return amount

    def _get_account(self, account_id: int, *, for_update: bool = False) -> AccountModel:
        account = self.repository.get_account(account_id, for_update=for_update)
        if account is None:
            raise AccountNotFoundError(f"Account with id = {account_id} does not exist")
        return account

    def _adjust(self, account_id: int, delta: Decimal) -> AccountModel:
        account = self.repository.adjust_balance(account_id, delta)
        if account is None:
            raise AccountNotFoundError(f"Account with id = {account_id} does not exist")
        return account

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------
    def create_account(self, first_name: str, last_name: str) -> AccountModel:
        account = new_account(first_name, last_name)
        with self._transaction("create_account"):
            self.repository.add_account(account)
        logger.info(
            "account.created",
            extra={"account_id": account.id, "uuid": account.uuid},
        )
        return account

    def get_account_by_id(self, account_id: int) -> AccountModel:
        with self._transaction("get_account"):
            account = self._get_account(account_id)
        return account

    def get_accounts(self) -> list[AccountModel]:
        with self._transaction("get_accounts"):
            accounts = self.repository.list_accounts()
        return accounts

    def update_account(self, account: AccountModel) -> AccountModel:
        """Overwrite names and balance of the row matching ``account.id``."""
        account_id = account.id
        first_name, last_name, balance = account.first_name, account.last_name, account.balance
        # pending changes must not reach the row through autoflush before the check
        if account in self.session:
            self.session.expire(account)

        with self._transaction("update_account"):
            current = self._get_account(account_id, for_update=True)
            balance_changed = balance != current.balance
            if balance_changed and not self.allow_balance_override:
                raise BalanceOverrideError(
                    f"Balance of account {account_id} cannot be changed through an update"
                )
            if self.repository.write_account(
                account_id,
                first_name=first_name,
                last_name=last_name,
                balance=balance if balance_changed else None,
            ) == 0:
                raise AccountNotFoundError(f"Account with id = {account_id} does not exist")
            updated = self._get_account(account_id)
        logger.info("account.updated", extra={"account_id": account_id})
        return updated

    def patch_account(self, account_id: int, patch: AccountUpdate) -> AccountModel:
        """Lock the row, merge ``patch`` into it and write it back."""
        with self._transaction("patch_account"):
            current = self._get_account(account_id, for_update=True)
            account = apply_update(
                current, patch, allow_balance_override=self.allow_balance_override
            )
            self.session.add(account)
            self.session.flush()
        logger.info("account.updated", extra={"account_id": account_id})
        return account

    def delete_account(self, account_id: int) -> None:
        with self._transaction("delete_account"):
            deleted = self.repository.delete_account(account_id)
        logger.info(
            "account.deleted",
            extra={"account_id": account_id, "rows": deleted},
        )

    # ------------------------------------------------------------------
    # Balance mutation
    # ------------------------------------------------------------------
    def increase_balance(self, account_id: int, amount: Decimal) -> AccountModel:
        """Add ``amount`` to the balance (the HTTP "debit")."""
        amount = self._require_positive(amount)
        with self._transaction("increase_balance"):
            account = self._adjust(account_id, amount)
        logger.info(
            "account.debit",
            extra={"account_id": account_id, "amount": str(amount), "balance": str(account.balance)},
        )
        return account

    def decrease_balance(self, account_id: int, amount: Decimal) -> AccountModel:
        """Subtract ``amount`` from the balance (the HTTP "credit")."""
        amount = self._require_positive(amount)
        with self._transaction("decrease_balance"):
            account = self._adjust(account_id, -amount)
        logger.info(
            "account.credit",
            extra={"account_id": account_id, "amount": str(amount), "balance": str(account.balance)},
        )
        return account

    def transfer_money(
        self,
        source_id: int,
        destination_id: int,
        amount: Decimal,
    ) -> Tuple[AccountModel, AccountModel]:
        """Move ``amount`` from ``source_id`` to ``destination_id`` atomically.

        Both rows are locked in ascending id order, then the destination is
        increased and the source decreased. Any failure rolls back both legs.
        """
        amount = self._require_positive(amount)
        if source_id == destination_id:
            raise InvalidRequestError("Cannot transfer to the same account")

        with self._transaction("transfer_money"):
            locked = self.repository.lock_accounts((source_id, destination_id))
            for account_id in (source_id, destination_id):
                if account_id not in locked:
                    raise AccountNotFoundError(f"Account with id = {account_id} does not exist")

            destination = self._adjust(destination_id, amount)
            source = self._adjust(source_id, -amount)

        logger.info(
            "account.transfer",
            extra={
                "source_account_id": source_id,
                "dest_account_id": destination_id,
                "amount": str(amount),
            },
        )
        return source, destination
