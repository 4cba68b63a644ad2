"""
Reset the study database.

DANGEROUS: This deletes all words, rounds and review history!
Only use when you want to start fresh for testing.

Usage:
    python -m scripts.maintenance.reset_study_db
"""

import logging

from ebbinglish import database
from ebbinglish.config import is_test_mode


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    print("=" * 60)
    print("WARNING: Reset Study Database")
    print("=" * 60)
    print()
    print(f"Target: {'TEST' if is_test_mode() else 'PRODUCTION'} database")
    print()
    print("This will DELETE:")
    print("  - All words and their review states")
    print("  - All review logs")
    print("  - All rounds, sessions and study settings")
    print()

    response = input("Are you sure you want to reset? (type 'yes' to confirm): ")

    if response.lower() == "yes":
        print("\nResetting database...")
        database.reset_db()
        print("✓ Database reset complete!")
        print("\nThe database now has empty tables.")
    else:
        print("\nCancelled. No changes made.")


if __name__ == "__main__":
    main()
