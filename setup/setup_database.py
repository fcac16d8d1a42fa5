#!/usr/bin/env python3
"""
Database setup script for review-matcher.

Creates the Supabase schema programmatically using direct PostgreSQL connection.

Usage:
    python setup/setup_database.py           # Create schema
    python setup/setup_database.py --verify  # Verify existing schema
    python setup/setup_database.py --drop    # Drop and recreate (DANGEROUS)
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from utils.config_loader import load_config
from utils.logger import setup_logger

try:
    import psycopg2
except ImportError:
    print("Error: psycopg2 not installed. Run: pip install -e .")
    sys.exit(1)

logger = setup_logger(name=__name__)


# SQL for creating the schema, in dependency order
CREATE_TABLES_SQL = {
    "users": """
CREATE TABLE IF NOT EXISTS users (
    id UUID PRIMARY KEY,
    email TEXT NOT NULL,
    name TEXT,
    credit_balance INTEGER NOT NULL DEFAULT 0,
    subscription_status TEXT,              -- NULL means free
    has_completed_qualification BOOLEAN NOT NULL DEFAULT FALSE,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
""",
    "extensions": """
CREATE TABLE IF NOT EXISTS extensions (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    owner_id UUID NOT NULL,
    name TEXT NOT NULL,
    chrome_store_url TEXT NOT NULL DEFAULT '',
    status TEXT NOT NULL DEFAULT 'library'
        CHECK (status IN ('library', 'pending_verification', 'verified', 'queued',
                          'assigned', 'reviewed', 'completed', 'rejected')),
    submitted_to_queue_at TIMESTAMPTZ,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    CONSTRAINT extensions_owner_id_fkey FOREIGN KEY (owner_id) REFERENCES users(id) ON DELETE CASCADE
);
""",
    "assignment_batches": """
CREATE TABLE IF NOT EXISTS assignment_batches (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    reviewer_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    assignment_type TEXT NOT NULL CHECK (assignment_type IN ('single', 'dual')),
    status TEXT NOT NULL DEFAULT 'active' CHECK (status IN ('active', 'completed')),
    credits_earned INTEGER,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    completed_at TIMESTAMPTZ
);
""",
    "review_assignments": """
CREATE TABLE IF NOT EXISTS review_assignments (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    batch_id UUID NOT NULL REFERENCES assignment_batches(id) ON DELETE CASCADE,
    extension_id UUID NOT NULL REFERENCES extensions(id) ON DELETE CASCADE,
    reviewer_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    assignment_number INTEGER NOT NULL UNIQUE,
    assigned_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    due_at TIMESTAMPTZ NOT NULL,
    status TEXT NOT NULL DEFAULT 'assigned' CHECK (status IN ('assigned', 'submitted', 'approved')),
    submitted_at TIMESTAMPTZ
);
""",
    "review_relationships": """
CREATE TABLE IF NOT EXISTS review_relationships (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    reviewer_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    reviewed_owner_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    extension_id UUID REFERENCES extensions(id) ON DELETE SET NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
""",
}

# Numbers come from a sequence so concurrent requests never collide.
# setval() seeds it past any numbers issued before the sequence existed.
CREATE_SEQUENCE_SQL = """
CREATE SEQUENCE IF NOT EXISTS review_assignment_number_seq;
SELECT setval('review_assignment_number_seq',
              GREATEST(COALESCE(MAX(assignment_number), 0), 1),
              COALESCE(MAX(assignment_number), 0) > 0)
FROM review_assignments;
"""

CREATE_FUNCTIONS_SQL = """
CREATE OR REPLACE FUNCTION next_assignment_number()
RETURNS INTEGER
LANGUAGE sql
AS $$
    SELECT nextval('review_assignment_number_seq')::INTEGER;
$$;
"""

CREATE_INDEXES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_extensions_queue ON extensions(status, submitted_to_queue_at);",
    "CREATE INDEX IF NOT EXISTS idx_review_assignments_reviewer_status ON review_assignments(reviewer_id, status);",
    "CREATE INDEX IF NOT EXISTS idx_review_relationships_reviewer ON review_relationships(reviewer_id);",
    "CREATE INDEX IF NOT EXISTS idx_review_relationships_owner ON review_relationships(reviewed_owner_id);",
]

DROP_TABLE_SQL = """
DROP FUNCTION IF EXISTS next_assignment_number();
DROP SEQUENCE IF EXISTS review_assignment_number_seq;
DROP TABLE IF EXISTS review_relationships CASCADE;
DROP TABLE IF EXISTS review_assignments CASCADE;
DROP TABLE IF EXISTS assignment_batches CASCADE;
DROP TABLE IF EXISTS extensions CASCADE;
"""


def get_database_url(config) -> str:
    """
    Get PostgreSQL database URL.

    Uses DATABASE_URL from .env; there is no way to derive it from the Supabase URL.
    """
    if config.credentials.database_url:
        return config.credentials.database_url

    # If no DATABASE_URL, provide instructions
    logger.error("DATABASE_URL not found in .env file")
    logger.error("\nTo get your DATABASE_URL:")
    logger.error("1. Go to Supabase Dashboard → Project Settings → Database")
    logger.error("2. Find 'Connection string' under 'Connection pooling'")
    logger.error("3. Copy the 'URI' connection string")
    logger.error("4. Add to .env file: DATABASE_URL=postgresql://...")
    sys.exit(1)


def create_connection(database_url: str):
    """Create a PostgreSQL database connection."""
    try:
        conn = psycopg2.connect(database_url)
        logger.info("✓ Connected to PostgreSQL database")
        return conn
    except Exception as e:
        logger.error(f"✗ Failed to connect to database: {e}")
        logger.error("\nMake sure:")
        logger.error("1. DATABASE_URL is correct in .env file")
        logger.error("2. Your IP is allowed in Supabase (Project Settings → Database → Connection pooling)")
        logger.error("3. Database password is correct")
        sys.exit(1)


def execute_sql(conn, sql_statement: str, description: str) -> bool:
    """Execute a SQL statement."""
    try:
        cursor = conn.cursor()
        cursor.execute(sql_statement)
        conn.commit()
        cursor.close()
        logger.info(f"✓ {description}")
        return True
    except Exception as e:
        logger.error(f"✗ {description} failed: {e}")
        conn.rollback()
        return False


def verify_schema(conn) -> bool:
    """Verify that tables, sequence, and helper function exist."""
    try:
        cursor = conn.cursor()
        ok = True

        for table_name in CREATE_TABLES_SQL:
            cursor.execute("""
                SELECT EXISTS (
                    SELECT FROM information_schema.tables
                    WHERE table_name = %s
                );
            """, (table_name,))
            if cursor.fetchone()[0]:
                logger.info(f"✓ Table '{table_name}' exists")
            else:
                logger.error(f"✗ Table '{table_name}' does not exist")
                ok = False

        cursor.execute("SELECT to_regclass('review_assignment_number_seq') IS NOT NULL;")
        if cursor.fetchone()[0]:
            logger.info("✓ Sequence 'review_assignment_number_seq' exists")
        else:
            logger.error("✗ Sequence 'review_assignment_number_seq' does not exist")
            ok = False

        cursor.execute("SELECT EXISTS (SELECT 1 FROM pg_proc WHERE proname = 'next_assignment_number');")
        if cursor.fetchone()[0]:
            logger.info("✓ Function 'next_assignment_number' exists")
        else:
            logger.error("✗ Function 'next_assignment_number' does not exist")
            ok = False

        cursor.execute("SELECT indexname FROM pg_indexes;")
        indexes = {row[0] for row in cursor.fetchall()}
        for idx_sql in CREATE_INDEXES_SQL:
            idx = idx_sql.split("INDEX IF NOT EXISTS ")[1].split(" ON")[0]
            if idx in indexes:
                logger.info(f"✓ Index '{idx}' exists")
            else:
                logger.warning(f"⚠ Index '{idx}' missing")

        cursor.close()
        return ok

    except Exception as e:
        logger.error(f"✗ Schema verification failed: {e}")
        return False


def create_schema(conn) -> bool:
    """Create the database schema."""
    logger.info("\n" + "="*80)
    logger.info("CREATING SCHEMA")
    logger.info("="*80 + "\n")

    for table_name, table_sql in CREATE_TABLES_SQL.items():
        if not execute_sql(conn, table_sql, f"Created table '{table_name}'"):
            return False

    if not execute_sql(conn, CREATE_SEQUENCE_SQL, "Created sequence 'review_assignment_number_seq'"):
        return False

    if not execute_sql(conn, CREATE_FUNCTIONS_SQL, "Created function 'next_assignment_number'"):
        return False

    for idx_sql in CREATE_INDEXES_SQL:
        idx_name = idx_sql.split("INDEX IF NOT EXISTS ")[1].split(" ON")[0]
        if not execute_sql(conn, idx_sql, f"Created index '{idx_name}'"):
            return False

    logger.info("\n✓ Database schema created successfully!")
    return True


def drop_schema(conn) -> bool:
    """Drop the assignment tables (DANGEROUS). The users table is left alone."""
    logger.warning("\n" + "="*80)
    logger.warning("⚠️  WARNING: DROPPING EXISTING SCHEMA")
    logger.warning("="*80)
    logger.warning("This will DELETE ALL extensions, assignments, batches, and review relationships!")

    response = input("\nType 'yes' to confirm: ")
    if response.lower() != 'yes':
        logger.info("Aborted.")
        return False

    if not execute_sql(conn, DROP_TABLE_SQL, "Dropped assignment tables"):
        return False

    logger.info("✓ Schema dropped")
    return True


def main():
    parser = argparse.ArgumentParser(
        description="Set up database schema for review-matcher"
    )
    parser.add_argument(
        "--verify",
        action="store_true",
        help="Verify existing schema without creating"
    )
    parser.add_argument(
        "--drop",
        action="store_true",
        help="Drop and recreate tables (DANGEROUS - deletes all data)"
    )

    args = parser.parse_args()

    config = load_config()
    logger.info("✓ Configuration loaded")

    database_url = get_database_url(config)
    conn = create_connection(database_url)

    try:
        if args.verify:
            logger.info("\n" + "="*80)
            logger.info("VERIFYING SCHEMA")
            logger.info("="*80 + "\n")

            if verify_schema(conn):
                logger.info("\n✓ Schema verification successful")
                sys.exit(0)
            else:
                logger.error("\n✗ Schema verification failed")
                sys.exit(1)

        if args.drop:
            if not drop_schema(conn):
                sys.exit(1)

        if create_schema(conn):
            logger.info("\nVerify the schema with:")
            logger.info("   python setup/setup_database.py --verify")
            sys.exit(0)
        else:
            logger.error("\n✗ Schema creation failed")
            sys.exit(1)

    finally:
        conn.close()
        logger.info("\n✓ Database connection closed")


if __name__ == "__main__":
    main()
