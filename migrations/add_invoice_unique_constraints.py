"""
Add uniqueness constraints to invoices and payments

Migration to add:
- uq_invoice_client_period (invoices: client_id, period_start, period_end)
- uq_payment_invoice_reference (payments: invoice_id, reference)

Databases created after these constraints were added to the models already
have them; the migration skips constraints that exist. It fails if duplicate
rows are present, and they have to be resolved by hand first.

Run with: python migrations/add_invoice_unique_constraints.py
"""

import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import text
from app.database import engine

CONSTRAINTS = {
    "uq_invoice_client_period": ("invoices", "client_id, period_start, period_end"),
    "uq_payment_invoice_reference": ("payments", "invoice_id, reference"),
}


def upgrade():
    """Add unique constraints"""
    with engine.connect() as conn:
        # Check if constraints already exist to make migration idempotent
        result = conn.execute(text("""
            SELECT constraint_name
            FROM information_schema.table_constraints
            WHERE table_name IN ('invoices', 'payments')
            AND constraint_type = 'UNIQUE'
        """))
        existing = {row[0] for row in result}

        for name, (table, columns) in CONSTRAINTS.items():
            if name in existing:
                print(f"ℹ️  {name} already exists")
                continue
            conn.execute(text(f"ALTER TABLE {table} ADD CONSTRAINT {name} UNIQUE ({columns})"))
            print(f"✅ Added {name} on {table}")

        conn.commit()
        print("\n✅ Migration completed successfully!")


def downgrade():
    """Remove unique constraints"""
    with engine.connect() as conn:
        for name, (table, _) in CONSTRAINTS.items():
            conn.execute(text(f"ALTER TABLE {table} DROP CONSTRAINT IF EXISTS {name}"))
        conn.commit()
        print("✅ Migration rolled back successfully!")


if __name__ == "__main__":
    import argparse
    parser = argparse.ArgumentParser(description='Manage invoice uniqueness constraints migration')
    parser.add_argument('--down', action='store_true', help='Rollback the migration')
    args = parser.parse_args()

    if args.down:
        print("Rolling back migration...")
        downgrade()
    else:
        print("Running migration...")
        upgrade()
