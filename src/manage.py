"""Storefront database management CLI.

Creates and drops the schema of the ``storefront`` domain's SQL providers,
including the outbox table.

Usage:
    python src/manage.py setup-db   # Create all tables
    python src/manage.py drop-db    # Drop all tables
"""

import argparse
import sys

from shared.db import drop_db, setup_db
from shared.domain import init_domain


def main():
    parser = argparse.ArgumentParser(description="Storefront database management")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")
    args = parser.parse_args()

    print("Initializing storefront domain...")
    domain = init_domain()

    if args.command == "setup-db":
        print("Creating storefront database schema...")
        setup_db(domain)
        print("  storefront schema ready.")
    elif args.command == "drop-db":
        print("Dropping storefront database schema...")
        drop_db(domain)
        print("  storefront schema dropped.")
    else:
        parser.print_help()
        sys.exit(1)

    print("Done.")


if __name__ == "__main__":
    main()
