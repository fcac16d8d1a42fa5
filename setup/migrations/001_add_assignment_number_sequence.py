#!/usr/bin/env python3
"""
Migration 001: Move assignment numbers onto a Postgres sequence.

Deployments created before this migration generated assignment numbers by
reading MAX(assignment_number) and adding one, which hands out duplicates
when two reviewers request at the same moment. This migration adds:
- review_assignment_number_seq: sequence seeded from the current max
- next_assignment_number(): SQL function the API calls via RPC
- review_assignments_assignment_number_key: UNIQUE constraint (skipped with a
  warning if duplicates already exist)
- idx_extensions_queue: index backing the FIFO queue scan

This script is idempotent - safe to run multiple times.
"""

import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from utils.config_loader import load_config
from utils.logger import setup_logger

try:
    import psycopg2
except ImportError:
    print("Error: psycopg2 not installed. Run: pip install -e .")
    sys.exit(1)

logger = setup_logger(name=__name__)

SEQUENCE_NAME = "review_assignment_number_seq"
CONSTRAINT_NAME = "review_assignments_assignment_number_key"


def get_database_url(config) -> str:
    """Get PostgreSQL database URL from config."""
    if config.credentials.database_url:
        return config.credentials.database_url

    logger.error("DATABASE_URL not found in .env file")
    logger.error("Add to .env file: DATABASE_URL=postgresql://...")
    sys.exit(1)


def create_connection(database_url: str):
    """Create a PostgreSQL database connection."""
    try:
        conn = psycopg2.connect(database_url)
        logger.info("✓ Connected to PostgreSQL database")
        return conn
    except Exception as e:
        logger.error(f"✗ Failed to connect to database: {e}")
        sys.exit(1)


def check_sequence_exists(conn) -> bool:
    cursor = conn.cursor()
    cursor.execute("SELECT to_regclass(%s) IS NOT NULL;", (SEQUENCE_NAME,))
    exists = cursor.fetchone()[0]
    cursor.close()
    return exists


def check_constraint_exists(conn) -> bool:
    cursor = conn.cursor()
    cursor.execute("""
        SELECT EXISTS (
            SELECT 1 FROM pg_constraint WHERE conname = %s
        );
    """, (CONSTRAINT_NAME,))
    exists = cursor.fetchone()[0]
    cursor.close()
    return exists


def count_duplicate_numbers(conn) -> int:
    """Count assignment numbers issued more than once by the old generator."""
    cursor = conn.cursor()
    cursor.execute("""
        SELECT COUNT(*) FROM (
            SELECT assignment_number
            FROM review_assignments
            GROUP BY assignment_number
            HAVING COUNT(*) > 1
        ) dupes;
    """)
    count = cursor.fetchone()[0]
    cursor.close()
    return count


def run_statement(conn, statement: str, description: str) -> bool:
    try:
        cursor = conn.cursor()
        cursor.execute(statement)
        conn.commit()
        cursor.close()
        logger.info(f"✓ {description}")
        return True
    except Exception as e:
        logger.error(f"✗ {description} failed: {e}")
        conn.rollback()
        return False


def create_sequence(conn) -> bool:
    """Create the sequence and seed it past every number already issued."""
    if check_sequence_exists(conn):
        logger.info(f"⊙ Sequence '{SEQUENCE_NAME}' already exists, skipping")
        return True

    return run_statement(conn, f"""
        CREATE SEQUENCE {SEQUENCE_NAME};
        SELECT setval('{SEQUENCE_NAME}',
                      GREATEST(COALESCE(MAX(assignment_number), 0), 1),
                      COALESCE(MAX(assignment_number), 0) > 0)
        FROM review_assignments;
    """, f"Created sequence '{SEQUENCE_NAME}'")


def create_function(conn) -> bool:
    return run_statement(conn, f"""
        CREATE OR REPLACE FUNCTION next_assignment_number()
        RETURNS INTEGER
        LANGUAGE sql
        AS $$
            SELECT nextval('{SEQUENCE_NAME}')::INTEGER;
        $$;
    """, "Created function 'next_assignment_number'")


def add_unique_constraint(conn) -> bool:
    if check_constraint_exists(conn):
        logger.info(f"⊙ Constraint '{CONSTRAINT_NAME}' already exists, skipping")
        return True

    duplicates = count_duplicate_numbers(conn)
    if duplicates:
        logger.warning(
            f"⚠ {duplicates} assignment numbers are used more than once; "
            f"not adding '{CONSTRAINT_NAME}'. Renumber them and re-run."
        )
        return True

    return run_statement(
        conn,
        f"ALTER TABLE review_assignments ADD CONSTRAINT {CONSTRAINT_NAME} UNIQUE (assignment_number);",
        f"Added constraint '{CONSTRAINT_NAME}'",
    )


def verify_migration(conn) -> bool:
    """Verify that the migration was successful."""
    logger.info("\nVerifying migration...")

    if not check_sequence_exists(conn):
        logger.error(f"✗ Sequence '{SEQUENCE_NAME}' missing")
        return False
    logger.info(f"✓ Sequence '{SEQUENCE_NAME}' exists")

    cursor = conn.cursor()
    cursor.execute("SELECT EXISTS (SELECT 1 FROM pg_proc WHERE proname = 'next_assignment_number');")
    function_exists = cursor.fetchone()[0]
    cursor.close()
    if not function_exists:
        logger.error("✗ Function 'next_assignment_number' missing")
        return False
    logger.info("✓ Function 'next_assignment_number' exists")
    return True


def main():
    logger.info("="*80)
    logger.info("MIGRATION 001: Assignment Number Sequence")
    logger.info("="*80)

    config = load_config()
    logger.info("✓ Configuration loaded")

    database_url = get_database_url(config)
    conn = create_connection(database_url)

    try:
        steps = [
            create_sequence,
            create_function,
            add_unique_constraint,
            lambda c: run_statement(
                c,
                "CREATE INDEX IF NOT EXISTS idx_extensions_queue ON extensions(status, submitted_to_queue_at);",
                "Created index 'idx_extensions_queue'",
            ),
        ]
        for step in steps:
            if not step(conn):
                sys.exit(1)

        if verify_migration(conn):
            logger.info("\n" + "="*80)
            logger.info("✓ Migration completed successfully!")
            logger.info("="*80)
            sys.exit(0)
        else:
            logger.error("\n✗ Migration verification failed")
            sys.exit(1)

    finally:
        conn.close()
        logger.info("\n✓ Database connection closed")


if __name__ == "__main__":
    main()
