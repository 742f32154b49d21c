"""002: create users table

Revision ID: 002
Revises: 001
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE users (
            id                      UUID            PRIMARY KEY DEFAULT gen_random_uuid(),
            discord_id              VARCHAR(32)     NOT NULL,
            discord_name            VARCHAR(100)    NOT NULL,
            name                    VARCHAR(100),
            email                   VARCHAR(255),
            image                   VARCHAR(500),
            in_game_name            VARCHAR(50),
            notifications_enabled   BOOLEAN         NOT NULL DEFAULT TRUE,
            audio_enabled           BOOLEAN         NOT NULL DEFAULT TRUE,
            is_admin                BOOLEAN         NOT NULL DEFAULT FALSE,
            created_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_users_discord_id      UNIQUE (discord_id),
            CONSTRAINT ck_users_in_game_name    CHECK (in_game_name IS NULL OR LENGTH(in_game_name) BETWEEN 1 AND 50)
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_users_updated_at
            BEFORE UPDATE ON users
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE users IS 'Cohort members, upserted on Discord sign-in';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS users CASCADE;")
