"""
Transaction Record Module

Immutable records of balance-affecting events. Records are only ever created
by an account while it holds its own lock, so ``balance_after`` is always the
balance the account had right after the mutation.
"""

from decimal import Decimal
from datetime import datetime, timezone
from dataclasses import dataclass, field
from typing import Any, Dict

from .amounts import format_amount


# Record descriptions
ACCOUNT_OPENED = "Account opened"
DEPOSIT = "Deposit"
WITHDRAWAL = "Withdrawal"
INTEREST_APPLIED = "Interest/Charge applied"


def transfer_to(account_id: int) -> str:
    return f"Transfer to #{account_id}"


def transfer_from(account_id: int) -> str:
    return f"Transfer from #{account_id}"


@dataclass(frozen=True)
class TransactionRecord:
    """
    One entry of an account history.

    ``amount`` is signed: positive for credits, negative for debits.
    """
    description: str
    amount: Decimal
    balance_after: Decimal
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_credit(self) -> bool:
        """Check if the record increased the balance"""
        return self.amount > Decimal('0')

    @property
    def is_debit(self) -> bool:
        """Check if the record decreased the balance"""
        return self.amount < Decimal('0')

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging and event payloads"""
        return {
            'description': self.description,
            'amount': str(self.amount),
            'balance_after': str(self.balance_after),
            'timestamp': self.timestamp.isoformat()
        }

    def __str__(self) -> str:
        return (
            f"[{self.timestamp:%Y-%m-%d %H:%M}] {self.description:<20} "
            f"Amount: {format_amount(self.amount)} | "
            f"Balance: {format_amount(self.balance_after)}"
        )
