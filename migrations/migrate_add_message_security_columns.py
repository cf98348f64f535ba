#!/usr/bin/env python3
"""Migration script to add security columns to messages and create the ip_banlist table."""

import os
import sys
from sqlalchemy import create_engine, text, inspect

from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.environ.get("DATABASE_URL")

if not DATABASE_URL:
    print("ERROR: DATABASE_URL environment variable is required.")
    sys.exit(1)

# Heroku uses postgres:// but SQLAlchemy 2.0+ requires postgresql://
if DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql://", 1)

engine = create_engine(DATABASE_URL)

MESSAGE_COLUMNS = [
    ("user_agent", "VARCHAR"),
    ("is_encrypted", "BOOLEAN DEFAULT FALSE NOT NULL"),
    ("is_quarantined", "BOOLEAN DEFAULT FALSE NOT NULL"),
    ("scan_result", "JSON"),
]


def table_exists(connection, table_name):
    """Check if a table exists."""
    return inspect(connection).has_table(table_name)


def column_exists(connection, table_name, column_name):
    """Check if a column exists in a table."""
    inspector = inspect(connection)
    columns = inspector.get_columns(table_name)
    return any(c['name'] == column_name for c in columns)


def run_migration():
    print("Running migration to add message security columns and the ip_banlist table...")
    print(f"Database: {engine.url.host}:{engine.url.port}/{engine.url.database}")

    with engine.connect() as connection:
        if table_exists(connection, 'messages'):
            for column_name, column_type in MESSAGE_COLUMNS:
                if not column_exists(connection, 'messages', column_name):
                    print(f"Adding {column_name} column to messages table...")
                    connection.execute(text(f"ALTER TABLE messages ADD COLUMN {column_name} {column_type}"))
                    connection.commit()
                    print(f"✓ Successfully added {column_name} column to messages table.")
                else:
                    print(f"✓ Column '{column_name}' already exists in 'messages' table.")
        else:
            print("✓ Table 'messages' does not exist yet; it will be created on application startup.")

        if not table_exists(connection, 'ip_banlist'):
            print("Creating ip_banlist table...")
            connection.execute(text(
                "CREATE TABLE ip_banlist ("
                "ip_address VARCHAR PRIMARY KEY, "
                "reason VARCHAR NOT NULL, "
                "banned_at TIMESTAMP NOT NULL, "
                "expires_at TIMESTAMP, "
                "is_active BOOLEAN DEFAULT TRUE NOT NULL)"
            ))
            connection.execute(text(
                "CREATE INDEX idx_ip_banlist_active_expires ON ip_banlist (is_active, expires_at)"
            ))
            connection.commit()
            print("✓ Successfully created ip_banlist table.")
        else:
            print("✓ Table 'ip_banlist' already exists.")

    print("\n✓ Migration completed successfully!")


if __name__ == "__main__":
    run_migration()
