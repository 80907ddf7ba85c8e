"""
Interest Service Module

Applies a per-kind rate to an account balance: a positive rate credits
interest, a negative rate debits a charge. A charge the account cannot cover
is skipped for the cycle, never surfaced as an error and never recorded.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from .accounts import Account, AccountKind
from .amounts import ZERO
from .config import LedgerConfig, get_config
from .transactions import INTEREST_APPLIED, TransactionRecord
from .events import EventDispatcher, DomainEvent, create_account_event
from .logging_config import get_logger, log_action


@dataclass(frozen=True)
class InterestResult:
    """Outcome of one accrual on one account"""
    account_id: int
    rate: Decimal
    delta: Decimal
    record: Optional[TransactionRecord] = None

    @property
    def applied(self) -> bool:
        """True when the balance actually changed"""
        return self.record is not None


class InterestService:
    """
    Stateless interest/charge accrual

    Only the rates are taken from ``config``; deltas are rounded to the global
    ``amount_precision`` like every other amount.
    """

    def __init__(
        self,
        config: Optional[LedgerConfig] = None,
        event_dispatcher: Optional[EventDispatcher] = None
    ):
        config = config or get_config()
        self._rates: Dict[AccountKind, Decimal] = {
            AccountKind.SAVINGS: config.savings_interest_rate,
            AccountKind.CHECKING: config.checking_interest_rate,
        }
        self._event_dispatcher = event_dispatcher
        self.logger = get_logger("bank_ledger.interest")

    def rate_for(self, kind: AccountKind) -> Decimal:
        """Rate applied to accounts of the given kind"""
        return self._rates[kind]

    def apply_interest(self, account: Account) -> InterestResult:
        """
        Credit interest or debit a charge on one account

        The delta is computed and applied under the account lock, so it is
        always based on the balance it changes.
        """
        rate = self.rate_for(account.kind)
        delta, record = account.accrue(rate, INTEREST_APPLIED)

        result = InterestResult(account.id, rate, delta, record)
        if result.applied:
            log_action(
                self.logger, "info", f"Applied {delta} to account {account.id}",
                action="apply_interest", resource=f"account:{account.id}",
                extra={"rate": str(rate), "delta": str(delta)}
            )
            self._publish(DomainEvent.INTEREST_APPLIED, account, result)
        elif delta < ZERO:
            log_action(
                self.logger, "info", f"Skipped charge of {delta} on account {account.id}: insufficient funds",
                action="apply_interest", resource=f"account:{account.id}",
                extra={"rate": str(rate), "delta": str(delta)}
            )
            self._publish(DomainEvent.CHARGE_SKIPPED, account, result)
        return result

    def apply_interest_all(self, accounts: Iterable[Account]) -> List[InterestResult]:
        """Apply interest to each account in turn"""
        return [self.apply_interest(account) for account in accounts]

    def _publish(self, event_type: DomainEvent, account: Account, result: InterestResult) -> None:
        if self._event_dispatcher:
            self._event_dispatcher.publish(
                create_account_event(
                    event_type, account,
                    rate=str(result.rate), delta=str(result.delta)
                )
            )
