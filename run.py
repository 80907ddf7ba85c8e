#!/usr/bin/env python3
"""
Bank Ledger Entry Point

Starts the interactive bank menu over an in-memory ledger.
"""

import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from bank_ledger.cli import main


if __name__ == "__main__":
    print("🏦 Starting Bank Ledger...")
    print("💰 All amounts use Decimal precision")
    print("🧠 State is kept in memory and lost on exit")
    main()
