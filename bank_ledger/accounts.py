"""
Account Module

Accounts own their balance and their transaction history. Every read and
mutation of that state happens under a single per-account lock, so a balance
and the ``balance_after`` snapshot of the record it produced never disagree.
Multi-account operations take several account locks through ``hold_locks``,
which always acquires them in ascending id order.
"""

from contextlib import ExitStack, contextmanager
from decimal import Decimal
from enum import Enum
from typing import Iterator, List, Optional, Tuple
import threading

from .amounts import (
    ZERO, AmountLike, amount_precision, format_amount, parse_decimal, quantize, to_decimal
)
from .exceptions import InsufficientFunds, InvalidAmount, InvalidArgument
from .transactions import ACCOUNT_OPENED, DEPOSIT, WITHDRAWAL, TransactionRecord
from .events import EventDispatcher, DomainEvent, create_account_event


class AccountKind(Enum):
    """Account product kinds"""
    CHECKING = "checking"
    SAVINGS = "savings"

    @classmethod
    def parse(cls, value) -> 'AccountKind':
        """Accept an AccountKind, its value ("savings") or its name ("SAVINGS")"""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip()
            for kind in cls:
                if key.lower() == kind.value:
                    return kind
        raise InvalidArgument(f"Unknown account kind: {value!r}")


def positive_amount(amount: AmountLike) -> Decimal:
    """Parse an amount that must be strictly positive at the configured precision"""
    try:
        raw = parse_decimal(amount)
        value = to_decimal(raw)
    except ValueError as e:
        raise InvalidAmount(str(e)) from e
    if raw <= ZERO:
        raise InvalidAmount(f"Amount must be greater than 0, got {amount!r}")
    if value == ZERO:
        raise InvalidAmount(
            f"Amount {amount!r} rounds to zero at {amount_precision()} decimal places"
        )
    return value


class Account:
    """
    Bank account with a non-negative balance and an append-only history.

    Accounts are created by ``Ledger.create_account``; the id they carry is the
    one the ledger allocated.
    """

    def __init__(
        self,
        account_id: int,
        owner: str,
        kind: AccountKind,
        opening_balance: Decimal = ZERO,
        event_dispatcher: Optional[EventDispatcher] = None
    ):
        self._id = account_id
        self._owner = owner
        self._kind = kind
        self._lock = threading.Lock()
        self._balance = max(ZERO, opening_balance)
        self._history: List[TransactionRecord] = []
        self._event_dispatcher = event_dispatcher

        self._history.append(TransactionRecord(ACCOUNT_OPENED, self._balance, self._balance))

    @property
    def id(self) -> int:
        return self._id

    @property
    def owner(self) -> str:
        return self._owner

    @property
    def kind(self) -> AccountKind:
        return self._kind

    @property
    def balance(self) -> Decimal:
        """Current balance, never observed mid-mutation"""
        with self._lock:
            return self._balance

    @property
    def history(self) -> Tuple[TransactionRecord, ...]:
        """Snapshot of the history in chronological order"""
        with self._lock:
            return tuple(self._history)

    def deposit(self, amount: AmountLike) -> TransactionRecord:
        """
        Credit the account

        Raises:
            InvalidAmount: amount is not a positive number
        """
        value = positive_amount(amount)
        with self._lock:
            record = self.post_locked(value, DEPOSIT)
        self._publish(DomainEvent.FUNDS_DEPOSITED, record)
        return record

    def withdraw(self, amount: AmountLike) -> TransactionRecord:
        """
        Debit the account

        Raises:
            InvalidAmount: amount is not a positive number
            InsufficientFunds: amount exceeds the current balance
        """
        value = positive_amount(amount)
        with self._lock:
            record = self.post_locked(-value, WITHDRAWAL)
        self._publish(DomainEvent.FUNDS_WITHDRAWN, record)
        return record

    def record_adjustment(self, description: str, amount: AmountLike) -> TransactionRecord:
        """Append a record for a change applied elsewhere; the balance is not touched"""
        if not isinstance(description, str) or not description.strip():
            raise InvalidArgument("Adjustment description must not be empty")
        try:
            value = to_decimal(amount)
        except ValueError as e:
            raise InvalidAmount(str(e)) from e
        with self._lock:
            record = TransactionRecord(description, value, self._balance)
            self._history.append(record)
        return record

    def accrue(self, rate: Decimal, description: str) -> Tuple[Decimal, Optional[TransactionRecord]]:
        """
        Apply ``balance * rate`` as one atomic step

        Returns the rounded delta and its record, or ``None`` for the record
        when the delta is zero or is a charge the balance cannot cover.
        """
        with self._lock:
            delta = quantize(self._balance * rate)
            if delta == ZERO:
                return delta, None
            try:
                return delta, self.post_locked(delta, description)
            except InsufficientFunds:
                return delta, None

    # Lock-held API: callers must already hold this account's lock, normally
    # through ``hold_locks``. These methods never acquire it themselves.

    @property
    def balance_locked(self) -> Decimal:
        """Current balance for a caller holding the account lock"""
        return self._balance

    def post_locked(self, delta: Decimal, description: str) -> TransactionRecord:
        """
        Apply a signed, already quantized change and append its record

        Raises:
            InsufficientFunds: the change would take the balance below zero
        """
        new_balance = self._balance + delta
        if new_balance < ZERO:
            raise InsufficientFunds(self._id, -delta, self._balance)
        self._balance = new_balance
        record = TransactionRecord(description, delta, new_balance)
        self._history.append(record)
        return record

    def _publish(self, event_type: DomainEvent, record: TransactionRecord) -> None:
        if self._event_dispatcher:
            self._event_dispatcher.publish(
                create_account_event(event_type, self, **record.to_dict())
            )

    def __str__(self) -> str:
        return f"ID:{self._id} - {self._owner} ({self._kind.name}) - Balance: {format_amount(self.balance)}"

    def __repr__(self) -> str:
        return f"Account(id={self._id!r}, owner={self._owner!r}, kind={self._kind.name})"


@contextmanager
def hold_locks(*accounts: Account) -> Iterator[None]:
    """
    Hold the locks of all given accounts.

    Locks are taken in ascending id order and released in reverse, so two
    callers locking the same pair from opposite ends cannot deadlock. The same
    account passed twice is locked once.
    """
    distinct = {account.id: account for account in accounts}
    with ExitStack() as stack:
        for account_id in sorted(distinct):
            stack.enter_context(distinct[account_id]._lock)
        yield
