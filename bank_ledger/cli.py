"""
Interactive Shell Module

Numbered menu over the ledger services. Parsing and printing only; every
business rule lives in the ledger, account and service classes.
"""

from typing import Callable, Optional

from .accounts import Account, AccountKind
from .amounts import format_amount
from .config import get_config
from .events import get_global_dispatcher
from .exceptions import LedgerError
from .interest import InterestService
from .ledger import Ledger
from .logging_config import setup_logging
from .transfers import TransferService


MENU = """
========= BANK =========
1 - Create account
2 - Check balance
3 - Withdraw
4 - Deposit
5 - List accounts
6 - Transfer
7 - Show history
8 - Apply interest/charges
9 - Exit"""


class BankShell:
    """
    Menu loop reading from ``input_func`` and writing to ``output_func``
    """

    def __init__(
        self,
        ledger: Ledger,
        transfer_service: TransferService,
        interest_service: InterestService,
        input_func: Callable[[str], str] = input,
        output_func: Callable[[str], None] = print
    ):
        self.ledger = ledger
        self.transfer_service = transfer_service
        self.interest_service = interest_service
        self._input = input_func
        self._output = output_func

        self._actions = {
            1: self.create_account,
            2: self.show_balance,
            3: self.withdraw,
            4: self.deposit,
            5: self.list_accounts,
            6: self.transfer,
            7: self.show_history,
            8: self.apply_interest,
        }

    def run(self) -> None:
        """Loop until option 9 or end of input"""
        while True:
            self._output(MENU)
            try:
                line = self._input("Select option: ").strip()
            except EOFError:
                return
            if not line:
                continue
            try:
                option = int(line)
            except ValueError:
                self._output("Invalid option.")
                continue
            if option == 9:
                self._output("Exiting...")
                return
            action = self._actions.get(option)
            if action is None:
                self._output("Invalid option.")
                continue
            action()

    def create_account(self) -> None:
        owner = self._input("Owner name: ").strip()
        if not owner:
            self._output("Owner name must not be empty.")
            return
        choice = self._input("Kind (1=Checking, 2=Savings): ").strip()
        kind = AccountKind.SAVINGS if choice == "2" else AccountKind.CHECKING
        initial = self._input("Initial balance: ").strip()
        try:
            account = self.ledger.create_account(owner, kind, initial)
        except LedgerError as e:
            self._output(f"Error: {e}")
            return
        self._output(f"Account created: {account}")

    def show_balance(self) -> None:
        account = self._prompt_account()
        if account:
            self._output(f"Balance: {format_amount(account.balance)}")

    def withdraw(self) -> None:
        account = self._prompt_account()
        if not account:
            return
        amount = self._input("Amount to withdraw: ").strip()
        try:
            account.withdraw(amount)
        except LedgerError as e:
            self._output(f"Error: {e}")
            return
        self._output(f"Withdrawal successful. New balance: {format_amount(account.balance)}")

    def deposit(self) -> None:
        account = self._prompt_account()
        if not account:
            return
        amount = self._input("Amount to deposit: ").strip()
        try:
            account.deposit(amount)
        except LedgerError as e:
            self._output(f"Error: {e}")
            return
        self._output(f"Deposit successful. New balance: {format_amount(account.balance)}")

    def list_accounts(self) -> None:
        accounts = self.ledger.list_accounts()
        if not accounts:
            self._output("No accounts registered.")
        for account in accounts:
            self._output(str(account))

    def transfer(self) -> None:
        source = self._prompt_account("Source account ID: ")
        if not source:
            return
        destination = self._prompt_account("Destination account ID: ")
        if not destination:
            return
        amount = self._input("Amount to transfer: ").strip()
        try:
            result = self.transfer_service.transfer(source, destination, amount)
        except LedgerError as e:
            self._output(f"Error: {e}")
            return
        if result.success:
            self._output("Transfer successful.")
        else:
            self._output(f"Error: {result.error}")

    def show_history(self) -> None:
        account = self._prompt_account()
        if not account:
            return
        self._output(f"History of {account.owner}:")
        for record in account.history:
            self._output(str(record))

    def apply_interest(self) -> None:
        account = self._prompt_account()
        if not account:
            return
        result = self.interest_service.apply_interest(account)
        if result.applied:
            self._output(f"Interest applied. New balance: {format_amount(account.balance)}")
        else:
            self._output(f"No interest applied. Balance: {format_amount(account.balance)}")

    def _prompt_account(self, prompt: str = "Account ID: ") -> Optional[Account]:
        raw = self._input(prompt).strip()
        try:
            account_id = int(raw)
        except ValueError:
            self._output("Invalid ID.")
            return None
        account = self.ledger.find_account(account_id)
        if account is None:
            self._output("Account not found.")
        return account


def main() -> None:
    """Start the interactive shell with settings from the environment"""
    config = get_config()
    setup_logging(config.log_level, fmt=config.log_format)
    dispatcher = get_global_dispatcher() if config.enable_events else None

    shell = BankShell(
        ledger=Ledger(event_dispatcher=dispatcher),
        transfer_service=TransferService(event_dispatcher=dispatcher),
        interest_service=InterestService(config, event_dispatcher=dispatcher)
    )
    try:
        shell.run()
    except KeyboardInterrupt:
        print("\nShutting down...")


if __name__ == "__main__":
    main()
