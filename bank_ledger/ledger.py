"""
Ledger Module

The ledger is the account registry: the only component that creates accounts
and allocates their ids. Ids come from a counter advanced under the registry
lock, so they are unique and strictly increasing even when creation fails
part way.
"""

from decimal import Decimal
from typing import Dict, Optional, Tuple
import itertools
import threading

from .accounts import Account, AccountKind, hold_locks
from .amounts import ZERO, AmountLike, to_decimal
from .exceptions import InvalidArgument
from .events import EventDispatcher, DomainEvent, create_account_event
from .logging_config import get_logger, log_action


class Ledger:
    """
    Registry of all accounts in creation order
    """

    def __init__(self, event_dispatcher: Optional[EventDispatcher] = None):
        self._accounts: Dict[int, Account] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()
        self._event_dispatcher = event_dispatcher
        self.logger = get_logger("bank_ledger.ledger")

    def create_account(
        self,
        owner: str,
        kind: AccountKind,
        initial_balance: AmountLike = ZERO
    ) -> Account:
        """
        Open a new account

        Args:
            owner: Account holder name, must not be blank
            kind: AccountKind or its name/value
            initial_balance: Opening balance, negative values are clamped to 0

        Returns:
            The registered Account

        Raises:
            InvalidArgument: blank owner, unknown kind or non-numeric balance
        """
        if not isinstance(owner, str) or not owner.strip():
            raise InvalidArgument("Owner name must not be empty")
        account_kind = AccountKind.parse(kind)
        try:
            opening = max(ZERO, to_decimal(initial_balance))
        except ValueError as e:
            raise InvalidArgument(f"Invalid initial balance: {initial_balance!r}") from e

        with self._lock:
            account = Account(
                account_id=next(self._ids),
                owner=owner.strip(),
                kind=account_kind,
                opening_balance=opening,
                event_dispatcher=self._event_dispatcher
            )
            self._accounts[account.id] = account

        log_action(
            self.logger, "info", f"Opened account {account.id}",
            action="create_account", resource=f"account:{account.id}",
            extra={"owner": account.owner, "kind": account_kind.value, "opening_balance": str(opening)}
        )
        if self._event_dispatcher:
            self._event_dispatcher.publish(
                create_account_event(DomainEvent.ACCOUNT_OPENED, account, opening_balance=str(opening))
            )

        return account

    def find_account(self, account_id: int) -> Optional[Account]:
        """Get account by id, None if there is no such account"""
        with self._lock:
            return self._accounts.get(account_id)

    def list_accounts(self) -> Tuple[Account, ...]:
        """All accounts in creation order"""
        with self._lock:
            return tuple(self._accounts.values())

    def total_balance(self) -> Decimal:
        """Sum of all account balances, taken with every account locked"""
        accounts = self.list_accounts()
        with hold_locks(*accounts):
            return sum((account.balance_locked for account in accounts), ZERO)

    def __len__(self) -> int:
        with self._lock:
            return len(self._accounts)

    def __contains__(self, account_id) -> bool:
        with self._lock:
            return account_id in self._accounts
