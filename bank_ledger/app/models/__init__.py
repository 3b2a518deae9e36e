from .db import Account as AccountModel
from .schemas import (
    AccountCreate,
    AccountResponse,
    AccountUpdate,
    BalanceChangeRequest,
    DeleteAccountRequest,
    ErrorResponse,
    TransferRequest,
)

__all__ = [
    "AccountCreate",
    "AccountResponse",
    "AccountUpdate",
    "BalanceChangeRequest",
    "DeleteAccountRequest",
    "ErrorResponse",
    "TransferRequest",
    "AccountModel",
]
