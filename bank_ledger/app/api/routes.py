import logging
from typing import Callable, TypeVar

from fastapi import APIRouter, Body, Depends, status

from ..core.config import Settings, get_settings
from ..core.dependencies import get_ledger_service
from ..core.errors import ConflictError
from ..models import (
    AccountCreate,
    AccountResponse,
    AccountUpdate,
    BalanceChangeRequest,
    DeleteAccountRequest,
    ErrorResponse,
    TransferRequest,
)
from ..services import LedgerService


logger = logging.getLogger(__name__)

T = TypeVar("T")

_error_responses = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}

router = APIRouter(prefix="/account", tags=["accounts"], responses=_error_responses)


def retry_on_conflict(settings: Settings, operation: Callable[[], T]) -> T:
    """Run a store mutation, retrying it while the database reports lock conflicts.

    The store rolls back a conflicting transaction before raising, so a retry
    starts from a clean state. The last ``ConflictError`` propagates once the
    attempts are used up.
    """
    attempts = max(1, settings.conflict_retry_attempts)
    attempt = 1
    while True:
        try:
            return operation()
        except ConflictError:
            if attempt >= attempts:
                raise
            logger.warning("transaction.retry", extra={"attempt": attempt})
            attempt += 1


@router.get("", response_model=list[AccountResponse])
def list_accounts(
    service: LedgerService = Depends(get_ledger_service),
) -> list[AccountResponse]:
    return [AccountResponse.model_validate(account) for account in service.get_accounts()]

@router.post("", response_model=AccountResponse, status_code=status.HTTP_201_CREATED)
def create_account(
    payload: AccountCreate,
    service: LedgerService = Depends(get_ledger_service),
) -> AccountResponse:
    account = service.create_account(payload.first_name, payload.last_name)
    return AccountResponse.model_validate(account)

@router.delete("", response_model=str)
def delete_account(
    payload: DeleteAccountRequest = Body(...),
    service: LedgerService = Depends(get_ledger_service),
) -> str:
    service.delete_account(payload.id)
    return f"removed acc with id = {payload.id}"

@router.get("/{account_id}", response_model=AccountResponse)
def get_account(
    account_id: int,
    service: LedgerService = Depends(get_ledger_service),
) -> AccountResponse:
    return AccountResponse.model_validate(service.get_account_by_id(account_id))

@router.put("/{account_id}", response_model=str)
def update_account(
    account_id: int,
    payload: AccountUpdate,
    service: LedgerService = Depends(get_ledger_service),
    settings: Settings = Depends(get_settings),
) -> str:
    retry_on_conflict(settings, lambda: service.patch_account(account_id, payload))
    return f"updated acc with id = {account_id}"

@router.post("/{account_id}/transfer", response_model=str)
def transfer(
    account_id: int,
    payload: TransferRequest,
    service: LedgerService = Depends(get_ledger_service),
    settings: Settings = Depends(get_settings),
) -> str:
    source, recipient = retry_on_conflict(
        settings,
        lambda: service.transfer_money(account_id, payload.recipient_id, payload.amount),
    )
    return (
        f"${payload.amount:.2f} transferred from {source.first_name}'s account "
        f"with id={source.id} to {recipient.first_name}'s account id={recipient.id}"
    )

@router.post("/{account_id}/debit", response_model=str)
def debit(
    account_id: int,
    payload: BalanceChangeRequest,
    service: LedgerService = Depends(get_ledger_service),
    settings: Settings = Depends(get_settings),
) -> str:
    account = retry_on_conflict(
        settings, lambda: service.increase_balance(account_id, payload.amount)
    )
    return f"${payload.amount:.2f} debited to {account.first_name}'s account with id={account.id}"

@router.post("/{account_id}/credit", response_model=str)
def credit(
    account_id: int,
    payload: BalanceChangeRequest,
    service: LedgerService = Depends(get_ledger_service),
    settings: Settings = Depends(get_settings),
) -> str:
    account = retry_on_conflict(
        settings, lambda: service.decrease_balance(account_id, payload.amount)
    )
    return f"${payload.amount:.2f} credited from {account.first_name}'s account with id={account.id}"

__all__ = ["router", "retry_on_conflict"]
