"""008: seller_profiles.is_active for admin deactivation

Revision ID: 008
Revises: 007
Create Date: 2026-10-17
"""
from typing import Sequence, Union
from alembic import op

revision: str = "008"
down_revision: Union[str, None] = "007"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        ALTER TABLE seller_profiles
            ADD COLUMN is_active BOOLEAN NOT NULL DEFAULT TRUE;
    """)


def downgrade() -> None:
    op.execute("ALTER TABLE seller_profiles DROP COLUMN IF EXISTS is_active;")
