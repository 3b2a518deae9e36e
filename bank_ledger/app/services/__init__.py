from .accounts import apply_update, new_account
from .ledger import LedgerService
from .repository import LedgerRepository

__all__ = ["LedgerRepository", "LedgerService", "apply_update", "new_account"]
