#!/usr/bin/env python3
"""Create the Grant Master tables in the configured database.

Safe to re-run: every table is created with IF NOT EXISTS.
"""

from __future__ import annotations

import argparse
import sys

from grantmaster.config import settings
from grantmaster.db import GrantRepository, StorageError


def main() -> int:
    parser = argparse.ArgumentParser(description="Initialize the Grant Master database schema")
    parser.add_argument(
        "--database-url",
        default=settings.database_url,
        help="sqlite:/// URL to initialize (defaults to DATABASE_URL).",
    )
    args = parser.parse_args()

    try:
        repository = GrantRepository(args.database_url)
        repository.init_schema()
    except StorageError as exc:
        print(f"Database initialization failed: {exc}")
        return 1

    print(f"Database ready at {repository.path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
