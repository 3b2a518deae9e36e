class LedgerError(Exception):
    """Base class for every error raised by the ledger store."""


class AccountNotFoundError(LedgerError):
    """Raised when an account id has no matching row."""


class InvalidRequestError(LedgerError):
    """Raised when an amount or payload is rejected before touching storage."""


class BalanceOverrideError(InvalidRequestError):
    """Raised when a generic update tries to change a balance without the override capability."""


class StorageError(LedgerError):
    """Raised when the database fails: lost connection, constraint violation."""


class ConflictError(StorageError):
    """Raised when the database reports a lock conflict, deadlock or serialization failure."""
