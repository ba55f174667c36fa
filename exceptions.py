"""
Error taxonomy for PaperLedger.
Raised inside repositories and services, converted to Rejection values at the service boundary.
"""

from typing import Optional


class LedgerError(Exception):
    """Base class for every error the ledger reports to its callers."""

    @property
    def kind(self) -> str:
        return type(self).__name__


class ValidationError(LedgerError):
    """Malformed or missing input."""


class InsufficientFundsError(LedgerError):
    """A buy or withdraw asks for more cash than the balance holds."""

    def __init__(self, have: float, want: float):
        self.have = have
        self.want = want
        super().__init__(f"Insufficient balance! You only have {have:.2f}")


class InsufficientHoldingsError(LedgerError):
    """A sell asks for more of an instrument than the user holds."""

    def __init__(self, have: float, want: float, instrument: Optional[str] = None):
        self.have = have
        self.want = want
        self.instrument = instrument
        label = instrument.upper() if instrument else "this"
        if have <= 0:
            message = f"You don't own any {label} stock!"
        else:
            message = f"Insufficient stock! You only have {have:g}"
        super().__init__(message)


class StorageError(LedgerError):
    """I/O or connection failure in the persistent store."""


class ConcurrentModificationError(StorageError):
    """The balance record changed between validation and append."""


class AuthenticationError(LedgerError):
    """Unknown username or wrong password."""


class UserExistsError(LedgerError):
    """Registration attempted for a username that is already taken."""
