"""Picking database management CLI.

Creates and drops the SQL tables behind stock movements, products, orders
and picking jobs for whichever providers the domain is configured with.

Usage:
    python src/manage.py setup-db   # Create all tables
    python src/manage.py drop-db    # Drop all tables
"""

import argparse
import sys


def setup_database():
    """Create database schema for the picking domain."""
    from picking.domain import picking
    from picking.utils.db import setup_db

    print("Initializing picking domain...")
    picking.init()
    print("Creating picking database schema...")
    setup_db(picking)
    print("Done.")


def drop_database():
    """Drop database schema for the picking domain."""
    from picking.domain import picking
    from picking.utils.db import drop_db

    print("Initializing picking domain...")
    picking.init()
    print("Dropping picking database schema...")
    drop_db(picking)
    print("Done.")


def main():
    parser = argparse.ArgumentParser(description="Picking database management")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
