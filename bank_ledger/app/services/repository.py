from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Optional

from sqlalchemy import delete, update
from sqlmodel import Session, select

from ..models import AccountModel


class LedgerRepository:
    """Thin data access layer around the SQLModel session.

    Nothing here commits; the service owns the transaction.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    # Account operations -------------------------------------------------
    def add_account(self, account: AccountModel) -> AccountModel:
        self.session.add(account)
        self.session.flush()
        self.session.refresh(account)
        return account

    def get_account(
        self, account_id: int, *, for_update: bool = False
    ) -> Optional[AccountModel]:
        stmt = select(AccountModel).where(AccountModel.id == account_id)
        if for_update:
            stmt = stmt.with_for_update()
        stmt = stmt.execution_options(populate_existing=True)
        return self.session.exec(stmt).first()

    def lock_accounts(self, account_ids: Iterable[int]) -> dict[int, AccountModel]:
        """Lock rows in ascending id order and return them keyed by id."""
        stmt = (
            select(AccountModel)
            .where(AccountModel.id.in_(sorted(set(account_ids))))
            .order_by(AccountModel.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return {account.id: account for account in self.session.exec(stmt)}

    def list_accounts(self) -> list[AccountModel]:
        stmt = select(AccountModel).order_by(AccountModel.id)
        return list(self.session.exec(stmt))

    def write_account(
        self,
        account_id: int,
        *,
        first_name: str,
        last_name: str,
        balance: Optional[Decimal] = None,
    ) -> int:
        """Overwrite the row's names, and its balance only when one is given."""
        values: dict[str, object] = {"first_name": first_name, "last_name": last_name}
        if balance is not None:
            values["balance"] = balance
        stmt = (
            update(AccountModel)
            .where(AccountModel.id == account_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return self.session.exec(stmt).rowcount

    def delete_account(self, account_id: int) -> int:
        stmt = (
            delete(AccountModel)
            .where(AccountModel.id == account_id)
            .execution_options(synchronize_session=False)
        )
        return self.session.exec(stmt).rowcount

    # Balance mutation ---------------------------------------------------
    def adjust_balance(self, account_id: int, delta: Decimal) -> Optional[AccountModel]:
        """Add ``delta`` to the stored balance in one UPDATE statement.

        The database computes ``balance + delta`` under the row lock taken by
        the UPDATE, so concurrent adjustments never overwrite each other.
        Returns the refreshed account, or ``None`` when no row matched.
        """
        stmt = (
            update(AccountModel)
            .where(AccountModel.id == account_id)
            .values(balance=AccountModel.balance + delta)
            .execution_options(synchronize_session=False)
        )
        if self.session.exec(stmt).rowcount == 0:
            return None
        return self.get_account(account_id)
