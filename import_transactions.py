#!/usr/bin/env python3
"""Personal Finance Transaction Importer.

This is the main entry point script for the finance importer.
It wraps the package CLI for convenient execution.

Usage:
    python import_transactions.py sms messages.txt --output review.xlsx
    python import_transactions.py csv statement.csv --ledger ledger.csv

For full documentation and options:
    python import_transactions.py --help
"""

import sys
from pathlib import Path

# Add src to path for development installs
src_path = Path(__file__).parent / "src"
if src_path.exists():
    sys.path.insert(0, str(src_path))

from finance_importer.cli import main

if __name__ == "__main__":
    sys.exit(main())
