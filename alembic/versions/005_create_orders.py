"""005: create orders and order_items tables

Revision ID: 005
Revises: 004
Create Date: 2026-09-28
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE orders (
            id                  UUID            PRIMARY KEY DEFAULT gen_random_uuid(),
            order_number        VARCHAR(80)     NOT NULL,
            buyer_id            UUID            NOT NULL REFERENCES users(id),
            status              VARCHAR(16)     NOT NULL DEFAULT 'PENDING',
            payment_status      VARCHAR(16)     NOT NULL DEFAULT 'pending',
            total_amount        BIGINT          NOT NULL,
            tax_amount          BIGINT          NOT NULL,
            shipping_cost       BIGINT          NOT NULL,
            shipping_address    TEXT            NOT NULL,
            estimated_delivery  TIMESTAMPTZ,
            delivered_at        TIMESTAMPTZ,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_orders_number     UNIQUE (order_number),
            CONSTRAINT ck_orders_amounts    CHECK (
                total_amount >= 0 AND tax_amount >= 0 AND shipping_cost >= 0
            ),
            CONSTRAINT ck_orders_status     CHECK (status IN (
                'PENDING', 'CONFIRMED', 'PROCESSING', 'SHIPPED',
                'DELIVERED', 'CANCELLED', 'RETURNED'
            ))
        );
    """)
    op.execute("CREATE INDEX idx_orders_buyer ON orders (buyer_id, created_at DESC);")
    op.execute("""
        CREATE TRIGGER trg_orders_updated_at
            BEFORE UPDATE ON orders
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)

    op.execute("""
        CREATE TABLE order_items (
            id              UUID            PRIMARY KEY DEFAULT gen_random_uuid(),
            order_id        UUID            NOT NULL REFERENCES orders(id) ON DELETE CASCADE,
            product_id      UUID            NOT NULL REFERENCES products(id),
            quantity        INT             NOT NULL,
            price           BIGINT          NOT NULL,
            CONSTRAINT ck_order_items_quantity CHECK (quantity > 0),
            CONSTRAINT ck_order_items_price CHECK (price >= 0)
        );
    """)
    op.execute("CREATE INDEX idx_order_items_order ON order_items (order_id);")
    op.execute("CREATE INDEX idx_order_items_product ON order_items (product_id);")
    op.execute("COMMENT ON COLUMN order_items.price IS 'Unit price in paise at order time';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS order_items CASCADE;")
    op.execute("DROP TABLE IF EXISTS orders CASCADE;")
