"""003: create seller_profiles table

Revision ID: 003
Revises: 002
Create Date: 2026-09-28
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE seller_profiles (
            user_id         UUID            PRIMARY KEY REFERENCES users(id) ON DELETE CASCADE,
            business_name   VARCHAR(200)    NOT NULL,
            slug            VARCHAR(220)    NOT NULL,
            is_enterprise   BOOLEAN         NOT NULL DEFAULT FALSE,
            gst_number      VARCHAR(15),
            city            VARCHAR(100),
            state           VARCHAR(100),
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_seller_profiles_slug UNIQUE (slug)
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_seller_profiles_updated_at
            BEFORE UPDATE ON seller_profiles
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS seller_profiles CASCADE;")
