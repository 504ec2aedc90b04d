"""
Add the (doctor, date, time) uniqueness guard to appointments

Migration to:
- delete duplicate appointments, keeping the lowest id of each group
- add unique index uq_appointments_doctor_date_time

Databases created by the application already have the constraint; the
script detects it and does nothing.

Run with: python migrations/add_unique_appointment_slot.py [--down]
"""

import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import Index, inspect, text

from clinic_booking.database import engine
from clinic_booking.models import Appointment

CONSTRAINT_NAME = "uq_appointments_doctor_date_time"


def _existing_guard(conn):
    """Return "constraint", "index" or None depending on how the guard exists"""
    inspector = inspect(conn)
    if CONSTRAINT_NAME in {c["name"] for c in inspector.get_unique_constraints("appointments")}:
        return "constraint"
    if CONSTRAINT_NAME in {i["name"] for i in inspector.get_indexes("appointments")}:
        return "index"
    return None


def _guard_index():
    table = Appointment.__table__
    return Index(
        CONSTRAINT_NAME,
        table.c.doctor_id,
        table.c.appointment_date,
        table.c.appointment_time,
        unique=True,
    )


def upgrade():
    """De-duplicate appointments and add the unique index"""
    with engine.connect() as conn:
        existing = _existing_guard(conn)
        if existing:
            print(f"ℹ️  {CONSTRAINT_NAME} already exists as a {existing}")
            return

        # Derived table keeps MySQL happy about deleting from a table it selects from
        result = conn.execute(text("""
            DELETE FROM appointments
            WHERE id NOT IN (
                SELECT keep_id FROM (
                    SELECT MIN(id) AS keep_id
                    FROM appointments
                    GROUP BY doctor_id, appointment_date, appointment_time
                ) AS keepers
            )
        """))
        print(f"✅ Removed {result.rowcount} duplicate appointments")

        _guard_index().create(conn)
        print(f"✅ Added {CONSTRAINT_NAME}")

        conn.commit()
        print("\n✅ Migration completed successfully!")


def downgrade():
    """Remove the unique index (deleted duplicates are not restored)"""
    with engine.connect() as conn:
        existing = _existing_guard(conn)
        if existing == "index":
            _guard_index().drop(conn)
        elif existing == "constraint":
            if conn.dialect.name == "sqlite":
                print(f"⚠️  SQLite cannot drop table constraint {CONSTRAINT_NAME}; rebuild the table instead")
                return
            conn.execute(text(f"ALTER TABLE appointments DROP CONSTRAINT {CONSTRAINT_NAME}"))
        else:
            print(f"ℹ️  {CONSTRAINT_NAME} does not exist")
            return

        conn.commit()
        print("✅ Migration rolled back successfully!")


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Manage the appointment uniqueness migration")
    parser.add_argument("--down", action="store_true", help="Rollback the migration")
    args = parser.parse_args()

    if args.down:
        print("Rolling back migration...")
        downgrade()
    else:
        print("Running migration...")
        upgrade()
