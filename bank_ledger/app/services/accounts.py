from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal
from uuid import uuid4

from ..core.errors import BalanceOverrideError
from ..models import AccountModel, AccountUpdate


def new_account(first_name: str, last_name: str) -> AccountModel:
    """Build an unsaved account with a fresh external UUID and a zero balance.

    ``id`` stays ``None`` until the store inserts the row.
    """
    return AccountModel(
        first_name=first_name,
        last_name=last_name,
        uuid=str(uuid4()),
        balance=Decimal("0"),
        created_at=datetime.now(UTC),
    )


def apply_update(
    existing: AccountModel,
    patch: AccountUpdate,
    *,
    allow_balance_override: bool = False,
) -> AccountModel:
    """Merge ``patch`` into ``existing`` and return it.

    Names are replaced only by non-empty values that differ from the current
    ones. A balance that differs from the current one is only accepted with
    ``allow_balance_override``; debit, credit and transfer are the normal
    way to move money.
    """
    balance_changed = patch.balance is not None and patch.balance != existing.balance
    if balance_changed and not allow_balance_override:
        raise BalanceOverrideError(
            f"Balance of account {existing.id} cannot be changed through an update"
        )

    if patch.first_name and patch.first_name != existing.first_name:
        existing.first_name = patch.first_name

    if patch.last_name and patch.last_name != existing.last_name:
        existing.last_name = patch.last_name

    if balance_changed:
        existing.balance = patch.balance

    return existing
