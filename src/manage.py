"""Bidding database management CLI.

Usage:
    python src/manage.py setup-db   # Create the orders and quotes tables
    python src/manage.py drop-db    # Drop them again
"""

import argparse
import sys


def setup_database():
    from bidding.domain import bidding
    from bidding.utils.db import setup_db

    print("Initializing bidding domain...")
    bidding.init()
    providers = setup_db(bidding)
    if providers:
        print(f"Schema ready on: {', '.join(providers)}")
    else:
        print("No relational database configured; nothing to create.")


def drop_database():
    from bidding.domain import bidding
    from bidding.utils.db import drop_db

    print("Initializing bidding domain...")
    bidding.init()
    providers = drop_db(bidding)
    if providers:
        print(f"Schema dropped on: {', '.join(providers)}")
    else:
        print("No relational database configured; nothing to drop.")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Bidding database management")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    args = parser.parse_args(argv)

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    return 0


if __name__ == "__main__":
    sys.exit(main())
