#!/usr/bin/env python3
"""
Database setup script for Retro Board.

Creates the board tables and, with --seed-demo, the demo board.
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from retroboard.core.config import settings
from retroboard.core.utils.database_helpers import check_database_health, get_database_info
from retroboard.db.init_db import init_database


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Initialize the Retro Board database")
    parser.add_argument(
        "--seed-demo",
        action="store_true",
        help="Create the demo board with sample cards",
    )
    return parser.parse_args(argv)


def main(argv=None):
    """Initialize database based on configuration"""
    args = parse_args(argv)

    print("Retro Board Database Setup")
    print("=" * 40)
    print(f"Database URL: {settings.database_url}")

    db_info = get_database_info()
    print(f"Database Type: {db_info['type']}")
    print(f"Connected: {db_info['connected']}")

    if db_info["error"]:
        print(f"Connection Error: {db_info['error']}")
        return False

    if db_info["version"]:
        print(f"Database Version: {db_info['version']}")

    print(f"Existing Tables: {len(db_info['tables'])}")
    for table in sorted(db_info["tables"]):
        print(f"  - {table}")

    print("\nInitializing database...")

    try:
        init_database()
        print("Database initialized successfully!")

        if args.seed_demo:
            from retroboard.db.seeds.demo_board import create_demo_board
            from retroboard.db.session import get_db_sync

            with get_db_sync() as db:
                demo = create_demo_board(db)
            print(f"Demo board ready: {demo.id}")

        health = check_database_health()
        print(f"Health Status: {health['status']}")
        print(f"Table Count: {health['table_count']}")

        if health["status"] != "healthy":
            print(f"Warning: {health['last_error']}")

        return True

    except Exception as e:
        print(f"Database initialization failed: {e}")
        return False


if __name__ == "__main__":
    success = main()
    sys.exit(0 if success else 1)
