"""
Error Types Module

Every failure the core reports is a BankError carrying a stable ``code`` tag
that a UI layer can switch on without parsing messages.
"""


class BankError(Exception):
    """Base class for recoverable banking core errors"""
    code = "bank_error"


class InvalidCredentials(BankError):
    """Raised when no user matches the given username and password."""
    code = "invalid_credentials"


class NotAuthenticated(BankError):
    """Raised when an operation needs a signed-in user and there is none."""
    code = "not_authenticated"


class InvalidInput(BankError):
    """Raised for missing, malformed or non-positive command fields."""
    code = "invalid_input"


class AccountNotFound(BankError):
    """Raised when an account number does not resolve."""
    code = "account_not_found"


class TransferError(BankError):
    """Base class for transfers rejected by the ledger."""
    code = "transfer_error"


class SourceNotFound(TransferError):
    code = "source_not_found"


class DestinationNotFound(TransferError):
    code = "destination_not_found"


class SourceNotOwned(TransferError):
    """Raised when ownership checks are enabled and the actor does not own the source."""
    code = "source_not_owned"


class InsufficientFunds(TransferError):
    """Raised when a transfer would drop the source balance below zero."""
    code = "insufficient_funds"


class CardNotFound(BankError):
    code = "card_not_found"


class StaleSnapshotError(BankError):
    """Raised when a snapshot changed in storage after it was loaded."""
    code = "stale_snapshot"


class StorageBusy(BankError):
    """Raised when another writer holds the snapshot lock past the timeout."""
    code = "storage_busy"
