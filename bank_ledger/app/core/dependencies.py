from fastapi import Depends
from sqlmodel import Session

from ..services import LedgerRepository, LedgerService
from .config import Settings, get_settings
from .db import get_session

def get_ledger_service(
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
) -> LedgerService:
    repository = LedgerRepository(session)
    return LedgerService(
        session,
        repository,
        allow_balance_override=settings.allow_balance_override,
    )
