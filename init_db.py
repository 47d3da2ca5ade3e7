#!/usr/bin/env python3
"""
Initialize the form store database.

Creates the table holding form images, drawing layers and detected
blank areas.
"""
import argparse
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent))

from config.settings import settings
from data.database import DatabaseManager, init_database
from data.db_models import Base


def main():
    parser = argparse.ArgumentParser(
        description='Initialize form store database'
    )
    parser.add_argument(
        '--database-url',
        type=str,
        default=None,
        help=f'Database URL (default: {settings.database_url})'
    )
    parser.add_argument(
        '--drop-existing',
        action='store_true',
        help='Drop existing tables before creating new ones (WARNING: destroys data!)'
    )

    args = parser.parse_args()

    # Create database manager
    db_manager = DatabaseManager(args.database_url)

    print("=" * 60)
    print("Form Store Database Initialization")
    print("=" * 60)
    print(f"Database URL: {db_manager.database_url}")
    print()

    # Drop tables if requested
    if args.drop_existing:
        confirm = input("⚠️  Drop existing tables? This will DELETE ALL DATA! (yes/no): ")
        if confirm.lower() == 'yes':
            db_manager.drop_tables()
            print()
        else:
            print("Aborted.")
            return

    init_database(db_manager)

    print()
    print("✓ Database initialized successfully!")
    print()
    print("Tables created:")
    for table in Base.metadata.sorted_tables:
        print(f"  - {table.name}")
    print()
    print("You can now:")
    print("  1. Import a form: python cli_workflow.py import form.png")
    print("  2. List stored forms: python cli_workflow.py list")
    print()


if __name__ == '__main__':
    main()
