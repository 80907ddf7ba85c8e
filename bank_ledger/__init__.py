"""
Bank Ledger

An in-memory bank ledger with per-account locking, append-only transaction
histories, atomic transfers and interest/charge accrual. All monetary values
use Decimal.
"""

__version__ = "1.0.0"
