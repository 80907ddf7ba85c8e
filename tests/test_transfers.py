"""
Test suite for the transfer service

Tests all-or-nothing semantics, history records, conservation of the system
total and deadlock freedom under concurrent opposite-direction transfers.
"""

import pytest
import threading
from decimal import Decimal
from unittest.mock import Mock

from bank_ledger.accounts import AccountKind, hold_locks
from bank_ledger.events import EventDispatcher, DomainEvent
from bank_ledger.exceptions import InsufficientFunds, InvalidArgument
from bank_ledger.ledger import Ledger
from bank_ledger.transfers import TransferService, TransferResult


class TestTransfer:
    """Test single transfers"""
    
    def setup_method(self):
        """Set up test fixtures"""
        self.ledger = Ledger()
        self.service = TransferService()
        self.a = self.ledger.create_account("Alice", AccountKind.CHECKING, 100)
        self.b = self.ledger.create_account("Bob", AccountKind.SAVINGS, 0)
    
    def test_transfer_moves_funds(self):
        """Test the documented example: 40 from A(100) to B(0)"""
        result = self.service.transfer(self.a, self.b, 40)
        
        assert result.success
        assert result.amount == Decimal('40.00')
        assert self.a.balance == Decimal('60.00')
        assert self.b.balance == Decimal('40.00')
        
        assert [r.description for r in self.a.history] == [
            "Account opened", f"Transfer to #{self.b.id}"
        ]
        assert [r.description for r in self.b.history] == [
            "Account opened", f"Transfer from #{self.a.id}"
        ]
        assert self.a.history[-1].amount == Decimal('-40.00')
        assert self.a.history[-1].balance_after == Decimal('60.00')
        assert self.b.history[-1].amount == Decimal('40.00')
        assert self.b.history[-1].balance_after == Decimal('40.00')
        assert result.debit == self.a.history[-1]
        assert result.credit == self.b.history[-1]
    
    def test_total_balance_unchanged(self):
        before = self.ledger.total_balance()
        
        self.service.transfer(self.a, self.b, Decimal('12.34'))
        
        assert self.ledger.total_balance() == before
    
    def test_transfer_entire_balance(self):
        result = self.service.transfer(self.a, self.b, 100)
        
        assert result.success
        assert self.a.balance == Decimal('0')
        assert self.b.balance == Decimal('100')
    
    def test_insufficient_funds_leaves_both_untouched(self):
        """Test a failed transfer is all-or-nothing"""
        a_history = self.a.history
        b_history = self.b.history
        
        result = self.service.transfer(self.a, self.b, 150)
        
        assert not result.success
        assert isinstance(result.error, InsufficientFunds)
        assert result.error.account_id == self.a.id
        assert result.debit is None and result.credit is None
        assert self.a.balance == Decimal('100.00')
        assert self.b.balance == Decimal('0')
        assert self.a.history == a_history
        assert self.b.history == b_history
    
    def test_raise_for_error(self):
        result = self.service.transfer(self.b, self.a, 1)
        
        with pytest.raises(InsufficientFunds):
            result.raise_for_error()
        
        self.service.transfer(self.a, self.b, 1).raise_for_error()
    
    def test_missing_accounts(self):
        with pytest.raises(InvalidArgument):
            self.service.transfer(None, self.b, 10)
        with pytest.raises(InvalidArgument):
            self.service.transfer(self.a, None, 10)
    
    @pytest.mark.parametrize("amount", [0, -5, "abc", "1e27"])
    def test_invalid_amount(self, amount):
        with pytest.raises(InvalidArgument):
            self.service.transfer(self.a, self.b, amount)
        
        assert self.a.balance == Decimal('100.00')
    
    def test_self_transfer_rejected(self):
        with pytest.raises(InvalidArgument):
            self.service.transfer(self.a, self.a, 10)
        
        assert len(self.a.history) == 1
    
    def test_events(self):
        dispatcher = EventDispatcher()
        completed = Mock()
        failed = Mock()
        dispatcher.subscribe(DomainEvent.TRANSFER_COMPLETED, completed)
        dispatcher.subscribe(DomainEvent.TRANSFER_FAILED, failed)
        service = TransferService(event_dispatcher=dispatcher)
        
        service.transfer(self.a, self.b, 10)
        service.transfer(self.b, self.a, 500)
        
        completed.assert_called_once()
        assert completed.call_args.args[0].data["amount"] == "10.00"
        failed.assert_called_once()
        assert failed.call_args.args[0].data["reason"] == "insufficient_funds"


class TestTransferResult:
    """Test TransferResult"""
    
    def test_success_flag(self):
        ok = TransferResult(1, 2, Decimal('5'))
        failed = TransferResult(1, 2, Decimal('5'), error=InsufficientFunds(1, Decimal('5'), Decimal('0')))
        
        assert ok.success
        assert not failed.success


class TestConcurrentTransfers:
    """Test transfer atomicity and deadlock freedom"""
    
    def _run(self, targets):
        threads = [threading.Thread(target=target) for target in targets]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)
        assert not any(thread.is_alive() for thread in threads), "transfers deadlocked"
    
    def test_opposite_direction_transfers(self):
        """Test N opposite-direction transfers between the same pair finish"""
        ledger = Ledger()
        service = TransferService()
        a = ledger.create_account("A", AccountKind.CHECKING, 1000)
        b = ledger.create_account("B", AccountKind.CHECKING, 1000)
        
        def a_to_b():
            for _ in range(200):
                service.transfer(a, b, 1).raise_for_error()
        
        def b_to_a():
            for _ in range(200):
                service.transfer(b, a, 2).raise_for_error()
        
        self._run([a_to_b, b_to_a, a_to_b, b_to_a])
        
        # Same result as running the 800 transfers sequentially
        assert a.balance == Decimal('1400')
        assert b.balance == Decimal('600')
        assert len(a.history) == 801
        assert len(b.history) == 801
    
    def test_ring_of_transfers_conserves_total(self):
        """Test transfers around a ring keep the system total"""
        ledger = Ledger()
        service = TransferService()
        accounts = [ledger.create_account(f"R{i}", AccountKind.SAVINGS, 50) for i in range(4)]
        
        def worker(source, destination):
            def run():
                for _ in range(100):
                    service.transfer(source, destination, 3)
            return run
        
        pairs = list(zip(accounts, accounts[1:] + accounts[:1]))
        pairs += [(d, s) for s, d in pairs]
        self._run([worker(s, d) for s, d in pairs])
        
        assert ledger.total_balance() == Decimal('200')
        assert all(account.balance >= 0 for account in accounts)
    
    def test_no_intermediate_state_observed(self):
        """Test a reader holding both locks always sees the pair total"""
        ledger = Ledger()
        service = TransferService()
        a = ledger.create_account("A", AccountKind.CHECKING, 500)
        b = ledger.create_account("B", AccountKind.CHECKING, 500)
        torn = []
        done = threading.Event()
        
        def shuffle():
            for i in range(300):
                if i % 2:
                    service.transfer(a, b, 7)
                else:
                    service.transfer(b, a, 5)
            done.set()
        
        def observe():
            while not done.is_set():
                with hold_locks(a, b):
                    total = a.balance_locked + b.balance_locked
                if total != Decimal('1000'):
                    torn.append(total)
        
        self._run([shuffle, observe])
        
        assert torn == []
    
    def test_disjoint_pairs_do_not_contend(self):
        """Test a transfer proceeds while an unrelated pair is locked"""
        ledger = Ledger()
        service = TransferService()
        a, b, c, d = (ledger.create_account(name, AccountKind.CHECKING, 10) for name in "ABCD")
        finished = threading.Event()
        
        def transfer_c_to_d():
            service.transfer(c, d, 5)
            finished.set()
        
        with hold_locks(a, b):
            thread = threading.Thread(target=transfer_c_to_d)
            thread.start()
            assert finished.wait(timeout=5)
        thread.join()
        
        assert d.balance == Decimal('15')
