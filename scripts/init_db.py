#!/usr/bin/env python3
"""
Create the ledger and per-vertical entitlement tables, optionally grant starter credits.
Run from project root: python -m scripts.init_db [--grant ACCOUNT_ID CREDITS]
"""
import argparse
import os
import sys

# project root on PYTHONPATH
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.core.logging import configure_logging
from app.db.schema import create_schema
from app.db.session import SessionLocal, engine
from app.services.ledger.service import LedgerService
from app.verticals.registry import get_registry


def main():
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--grant", nargs=2, metavar=("ACCOUNT_ID", "CREDITS"))
    args = parser.parse_args()

    configure_logging()
    registry = get_registry()
    create_schema(engine, registry)
    print(f"Schema ready: credit_ledger + {len(registry)} entitlement tables.")

    if args.grant:
        account_id, credits = args.grant[0], int(args.grant[1])
        db = SessionLocal()
        try:
            ledger = LedgerService(db)
            ledger.append(account_id, credits, "starter_grant")
            print(f"{account_id}: balance {ledger.balance(account_id)}")
        finally:
            db.close()


if __name__ == "__main__":
    main()
