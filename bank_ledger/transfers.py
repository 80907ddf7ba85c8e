"""
Transfer Service Module

Moves funds between two accounts as one atomic unit. Both account locks are
held for the whole debit/credit pair, acquired in ascending id order, so no
other operation on either account can observe money that has left the source
but not yet reached the destination.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from .accounts import Account, hold_locks, positive_amount
from .amounts import AmountLike
from .exceptions import InsufficientFunds, InvalidAmount, InvalidArgument
from .transactions import TransactionRecord, transfer_from, transfer_to
from .events import EventDispatcher, DomainEvent, create_transfer_event
from .logging_config import get_logger, log_action


@dataclass(frozen=True)
class TransferResult:
    """
    Outcome of a transfer.

    Running out of funds is ordinary control flow and is reported here rather
    than raised; ``raise_for_error`` restores exception semantics.
    """
    source_id: int
    destination_id: int
    amount: Decimal
    error: Optional[InsufficientFunds] = None
    debit: Optional[TransactionRecord] = None
    credit: Optional[TransactionRecord] = None

    @property
    def success(self) -> bool:
        return self.error is None

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise self.error


class TransferService:
    """
    Stateless coordinator for account-to-account transfers
    """

    def __init__(self, event_dispatcher: Optional[EventDispatcher] = None):
        self._event_dispatcher = event_dispatcher
        self.logger = get_logger("bank_ledger.transfers")

    def transfer(
        self,
        source: Optional[Account],
        destination: Optional[Account],
        amount: AmountLike
    ) -> TransferResult:
        """
        Transfer ``amount`` from ``source`` to ``destination``

        Returns:
            TransferResult, failed with InsufficientFunds when the source
            cannot cover the amount (neither account is modified)

        Raises:
            InvalidArgument: missing account, non-positive amount, or the
                same account on both sides. Self-transfers are rejected on
                purpose: account locks are not reentrant and moving money
                from an account to itself has no effect to make atomic.
        """
        if source is None or destination is None:
            raise InvalidArgument("Both source and destination accounts are required")
        if source is destination or source.id == destination.id:
            raise InvalidArgument(f"Cannot transfer from account {source.id} to itself")
        try:
            value = positive_amount(amount)
        except InvalidAmount as e:
            raise InvalidArgument(f"Invalid transfer amount: {e}") from e

        try:
            with hold_locks(source, destination):
                debit = source.post_locked(-value, transfer_to(destination.id))
                credit = destination.post_locked(value, transfer_from(source.id))
        except InsufficientFunds as e:
            log_action(
                self.logger, "warning",
                f"Transfer of {value} from {source.id} to {destination.id} rejected: insufficient funds",
                action="transfer", resource=f"account:{source.id}",
                extra={"requested": str(e.requested), "available": str(e.available)}
            )
            self._publish(DomainEvent.TRANSFER_FAILED, source, destination, value, reason="insufficient_funds")
            return TransferResult(source.id, destination.id, value, error=e)

        log_action(
            self.logger, "info",
            f"Transferred {value} from {source.id} to {destination.id}",
            action="transfer", resource=f"account:{source.id}",
            extra={"destination_id": destination.id, "amount": str(value)}
        )
        self._publish(DomainEvent.TRANSFER_COMPLETED, source, destination, value)
        return TransferResult(source.id, destination.id, value, debit=debit, credit=credit)

    def _publish(self, event_type: DomainEvent, source: Account, destination: Account,
                 amount: Decimal, **data) -> None:
        if self._event_dispatcher:
            self._event_dispatcher.publish(
                create_transfer_event(event_type, source, destination, amount, **data)
            )
