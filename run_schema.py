#!/usr/bin/env python3
"""Run the Postgres schema for WotanEye billing (subscriptions + Stripe customers)"""

import os
import sys

import psycopg2

from billing.db import SCHEMA_STATEMENTS


def run_schema(database_url: str) -> int:
    """Apply every schema statement. Returns the number of failures."""
    print("Connecting to Postgres...")
    conn = psycopg2.connect(database_url, connect_timeout=10)
    conn.autocommit = True
    cur = conn.cursor()

    print("Running schema...\n")
    success_count = 0
    error_count = 0

    for desc, sql in SCHEMA_STATEMENTS:
        print(f"  {desc}...", end=" ")
        try:
            cur.execute(sql)
            print("OK")
            success_count += 1
        except psycopg2.Error as e:
            print(f"ERROR: {e}")
            error_count += 1

    print(f"\nSchema execution complete! {success_count} succeeded, {error_count} errors")

    # Verify tables
    cur.execute(
        "SELECT table_name FROM information_schema.tables "
        "WHERE table_schema = 'public' AND table_name LIKE 'billing_%' ORDER BY table_name;"
    )
    tables = cur.fetchall()
    print(f"\nBilling tables: {[t[0] for t in tables]}")

    cur.close()
    conn.close()
    print("\nConnection closed.")
    return error_count


if __name__ == '__main__':
    database_url = os.environ.get('DATABASE_URL')
    if not database_url:
        print("DATABASE_URL environment variable not set", file=sys.stderr)
        sys.exit(1)
    sys.exit(1 if run_schema(database_url) else 0)
