"""006: create message_threads and messages tables

Revision ID: 006
Revises: 005
Create Date: 2026-09-28
"""
from typing import Sequence, Union
from alembic import op

revision: str = "006"
down_revision: Union[str, None] = "005"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE message_threads (
            id              VARCHAR(120)    PRIMARY KEY,
            kind            VARCHAR(16)     NOT NULL,
            title           VARCHAR(200),
            order_id        UUID            REFERENCES orders(id) ON DELETE CASCADE,
            target          VARCHAR(16),
            participants    TEXT            NOT NULL DEFAULT '[]',
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_message_threads_target CHECK (target IS NULL OR target IN ('seller', 'vidyut'))
        );
    """)
    op.execute("""
        CREATE TABLE messages (
            id              UUID            PRIMARY KEY DEFAULT gen_random_uuid(),
            thread_id       VARCHAR(120)    NOT NULL REFERENCES message_threads(id) ON DELETE CASCADE,
            author_id       UUID            NOT NULL,
            author_role     VARCHAR(16)     NOT NULL,
            content         TEXT            NOT NULL,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW()
        );
    """)
    op.execute("CREATE INDEX idx_messages_thread ON messages (thread_id, created_at);")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS messages CASCADE;")
    op.execute("DROP TABLE IF EXISTS message_threads CASCADE;")
