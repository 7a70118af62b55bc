#!/usr/bin/env python3
"""
Check that the test suite will not run against the application database.

Tests use in-memory SQLite unless TEST_DATABASE_URL is set; this script
guards the Postgres case.
"""

import os
import sys

from dotenv import load_dotenv


def main() -> int:
    """Check test database configuration."""
    load_dotenv()

    app_db = os.getenv("DATABASE_URL")
    test_db = os.getenv("TEST_DATABASE_URL")

    if not test_db:
        print("TEST_DATABASE_URL is not set; tests will use in-memory SQLite.")
        return 0

    if test_db == app_db:
        print("ERROR: TEST_DATABASE_URL equals DATABASE_URL.", file=sys.stderr)
        print("Tests drop every table after each test. Use a separate database.", file=sys.stderr)
        return 1

    if "test" not in test_db.lower():
        print("WARNING: test database URL does not contain 'test'.")

    print("Test database configuration looks good.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
