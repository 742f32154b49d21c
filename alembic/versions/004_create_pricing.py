"""004: create pricing, pricing_metadata and price_history tables

Revision ID: 004
Revises: 003
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE pricing (
            id          BIGSERIAL       PRIMARY KEY,
            item_name   VARCHAR(100)    NOT NULL,
            tier        SMALLINT        NOT NULL,
            price       NUMERIC(14, 4)  NOT NULL,
            created_by  UUID            REFERENCES users (id) ON DELETE SET NULL,
            created_at  TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at  TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_pricing_item_tier UNIQUE (item_name, tier),
            CONSTRAINT ck_pricing_tier      CHECK (tier BETWEEN 1 AND 10),
            CONSTRAINT ck_pricing_price     CHECK (price > 0)
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_pricing_updated_at
            BEFORE UPDATE ON pricing
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)

    op.execute("""
        CREATE TABLE pricing_metadata (
            key         VARCHAR(100)    PRIMARY KEY,
            value       TEXT            NOT NULL,
            updated_at  TIMESTAMPTZ     NOT NULL DEFAULT NOW()
        );
    """)

    op.execute("""
        CREATE TABLE price_history (
            id              BIGSERIAL       PRIMARY KEY,
            item_name       VARCHAR(100)    NOT NULL,
            tier            SMALLINT        NOT NULL,
            price           NUMERIC(14, 4)  NOT NULL,
            previous_price  NUMERIC(14, 4),
            change_type     VARCHAR(10)     NOT NULL,
            created_by      UUID            REFERENCES users (id) ON DELETE SET NULL,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_price_history_change_type CHECK (
                change_type IN ('created', 'updated', 'deleted')
            )
        );
    """)
    op.execute(
        "CREATE INDEX idx_price_history_item_tier ON price_history (item_name, tier, created_at);"
    )
    op.execute("COMMENT ON TABLE price_history IS 'Append-only log of reference price changes';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS price_history CASCADE;")
    op.execute("DROP TABLE IF EXISTS pricing_metadata CASCADE;")
    op.execute("DROP TABLE IF EXISTS pricing CASCADE;")
