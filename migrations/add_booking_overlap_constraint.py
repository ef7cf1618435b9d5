"""
Add the booking overlap guard to an existing bookings table

New databases get the guard from Base.metadata.create_all. Databases created
before it existed need this migration:
- PostgreSQL: btree_gist extension + bookings_no_overlap exclusion constraint
- SQLite: bookings_no_overlap_insert / bookings_no_overlap_update triggers

The constraint cannot be added while overlapping blocking bookings exist;
cancel or move them first (the query below lists them).

Run with: python migrations/add_booking_overlap_constraint.py [--down]
"""

import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import text

from app.database import engine
from app.models import (
    OVERLAP_CONSTRAINT_NAME,
    POSTGRES_OVERLAP_STATEMENTS,
    SQLITE_OVERLAP_STATEMENTS,
)

OVERLAPPING_BOOKINGS_QUERY = """
    SELECT a.id, b.id, a.detailer_id
    FROM bookings a
    JOIN bookings b
      ON a.detailer_id = b.detailer_id
     AND a.id < b.id
     AND a.booking_time < b.end_time
     AND a.end_time > b.booking_time
    WHERE a.status <> 'cancelled' AND b.status <> 'cancelled'
"""


def upgrade():
    """Install the overlap guard for the connected backend"""
    with engine.connect() as conn:
        overlapping = conn.execute(text(OVERLAPPING_BOOKINGS_QUERY)).fetchall()
        if overlapping:
            print(f"❌ {len(overlapping)} overlapping booking pairs must be resolved first:")
            for first_id, second_id, detailer_id in overlapping:
                print(f"   detailer {detailer_id}: {first_id} <-> {second_id}")
            sys.exit(1)

        if engine.dialect.name == "postgresql":
            exists = conn.execute(
                text("SELECT 1 FROM pg_constraint WHERE conname = :name"),
                {"name": OVERLAP_CONSTRAINT_NAME},
            ).first()
            if exists:
                print(f"ℹ️  {OVERLAP_CONSTRAINT_NAME} constraint already exists")
                return
            for statement in POSTGRES_OVERLAP_STATEMENTS:
                conn.execute(text(statement))
            print(f"✅ Added {OVERLAP_CONSTRAINT_NAME} exclusion constraint")
        elif engine.dialect.name == "sqlite":
            # Triggers are CREATE ... IF NOT EXISTS
            for statement in SQLITE_OVERLAP_STATEMENTS:
                conn.execute(text(statement))
            print(f"✅ Added {OVERLAP_CONSTRAINT_NAME} triggers")
        else:
            print(f"❌ Unsupported database dialect: {engine.dialect.name}")
            sys.exit(1)

        conn.commit()
        print("Migration add_booking_overlap_constraint applied successfully")


def downgrade():
    with engine.connect() as conn:
        if engine.dialect.name == "postgresql":
            conn.execute(
                text(f"ALTER TABLE bookings DROP CONSTRAINT IF EXISTS {OVERLAP_CONSTRAINT_NAME}")
            )
        else:
            conn.execute(text(f"DROP TRIGGER IF EXISTS {OVERLAP_CONSTRAINT_NAME}_insert"))
            conn.execute(text(f"DROP TRIGGER IF EXISTS {OVERLAP_CONSTRAINT_NAME}_update"))
        conn.commit()
        print("Migration add_booking_overlap_constraint rolled back")


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Manage the booking overlap guard")
    parser.add_argument("--down", action="store_true", help="Rollback the migration")
    args = parser.parse_args()

    if args.down:
        downgrade()
    else:
        upgrade()
