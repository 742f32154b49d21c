"""003: create orders table

Revision ID: 003
Revises: 002
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE orders (
            id              UUID            PRIMARY KEY DEFAULT gen_random_uuid(),
            item_name       VARCHAR(100)    NOT NULL,
            tier            SMALLINT        NOT NULL,
            price_per_unit  NUMERIC(14, 4)  NOT NULL,
            amount          INT             NOT NULL,
            order_type      VARCHAR(10)     NOT NULL DEFAULT 'BUY',
            status          VARCHAR(20)     NOT NULL DEFAULT 'OPEN',
            creator_id      UUID            NOT NULL REFERENCES users (id) ON DELETE CASCADE,
            claimer_id      UUID            REFERENCES users (id) ON DELETE SET NULL,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            fulfilled_at    TIMESTAMPTZ,
            CONSTRAINT ck_orders_item_name      CHECK (item_name = LOWER(item_name) AND LENGTH(item_name) > 0),
            CONSTRAINT ck_orders_tier           CHECK (tier BETWEEN 1 AND 10),
            CONSTRAINT ck_orders_price          CHECK (price_per_unit > 0),
            CONSTRAINT ck_orders_amount         CHECK (amount > 0),
            CONSTRAINT ck_orders_order_type     CHECK (order_type IN ('BUY', 'SELL')),
            CONSTRAINT ck_orders_status         CHECK (
                status IN ('OPEN', 'IN_PROGRESS', 'READY_TO_TRADE', 'FULFILLED')
            ),
            CONSTRAINT ck_orders_sell_status    CHECK (NOT (order_type = 'SELL' AND status = 'IN_PROGRESS'))
        );
    """)
    op.execute("CREATE INDEX idx_orders_created_at ON orders (created_at DESC);")
    op.execute("CREATE INDEX idx_orders_creator ON orders (creator_id, updated_at DESC);")
    op.execute("CREATE INDEX idx_orders_claimer ON orders (claimer_id, updated_at DESC);")
    op.execute("CREATE INDEX idx_orders_type_status ON orders (order_type, status);")
    op.execute("""
        CREATE TRIGGER trg_orders_updated_at
            BEFORE UPDATE ON orders
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE orders IS 'BUY/SELL trade requests and their lifecycle status';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS orders CASCADE;")
