from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

class AccountCreate(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=50, description="Holder's first name")
    last_name: str = Field(..., min_length=1, max_length=50, description="Holder's last name")

class AccountUpdate(BaseModel):
    """Partial update. Empty or missing names and a missing balance leave the account as is."""

    first_name: Optional[str] = Field(default=None, max_length=50)
    last_name: Optional[str] = Field(default=None, max_length=50)
    balance: Optional[Decimal] = Field(default=None, max_digits=18, decimal_places=4)

class AccountResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    first_name: str
    last_name: str
    uuid: str
    balance: Decimal = Field(..., description="Fixed-point balance, serialized as a decimal string")
    created_at: datetime

class DeleteAccountRequest(BaseModel):
    id: int

class BalanceChangeRequest(BaseModel):
    amount: Decimal = Field(..., gt=0, max_digits=18, decimal_places=4)

class TransferRequest(BaseModel):
    recipient_id: int = Field(..., description="Id of the account receiving the money")
    amount: Decimal = Field(..., gt=0, max_digits=18, decimal_places=4)

class ErrorResponse(BaseModel):
    error: str
