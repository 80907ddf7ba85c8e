"""Ledger domain errors."""


class LedgerError(Exception):
    """Base class for ledger domain errors."""


class InvalidArgument(LedgerError, ValueError):
    """Raised for malformed or missing input (empty owner, missing account)."""


class InvalidAmount(LedgerError, ValueError):
    """Raised when a deposit or withdrawal amount is not a positive number."""


class InsufficientFunds(LedgerError):
    """Raised when a debit would take an account balance below zero."""

    def __init__(self, account_id, requested, available):
        self.account_id = account_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Account {account_id}: requested {requested}, available {available}"
        )
