#!/usr/bin/env python3
"""
Script to set up the database tables and the default chart of accounts.
Safe to re-run: existing accounts are left untouched.
"""

import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from coopledger.db.base import Base, SessionLocal, engine, atomic
from coopledger import models  # noqa: F401  registers tables on Base.metadata
from coopledger.services.chart import DEFAULT_ACCOUNTS, seed_default_accounts


def main():
    print("=" * 60)
    print("Cooperative Ledger - Ledger Accounts Setup")
    print("=" * 60)

    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        with atomic(db):
            created = seed_default_accounts(db)
        for account_data in DEFAULT_ACCOUNTS:
            marker = "Created" if account_data["account_code"] in created else "Exists "
            print(f"✓ {marker} {account_data['account_code']} - {account_data['account_name']}")
        print("=" * 60)
        print(f"Summary: {len(created)} created, {len(DEFAULT_ACCOUNTS) - len(created)} already present")
    except Exception as e:
        print(f"✗ Error: {e}")
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    main()
