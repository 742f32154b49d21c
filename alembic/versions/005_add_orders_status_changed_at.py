"""005: add orders.status_changed_at

Revision ID: 005
Revises: 004
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # written only by status-changing updates; notification ids hash it
    op.execute("ALTER TABLE orders ADD COLUMN status_changed_at TIMESTAMPTZ;")
    op.execute("UPDATE orders SET status_changed_at = updated_at;")
    op.execute("""
        ALTER TABLE orders
            ALTER COLUMN status_changed_at SET DEFAULT NOW(),
            ALTER COLUMN status_changed_at SET NOT NULL;
    """)


def downgrade() -> None:
    op.execute("ALTER TABLE orders DROP COLUMN IF EXISTS status_changed_at;")
