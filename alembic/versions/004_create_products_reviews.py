"""004: create products and reviews tables

Revision ID: 004
Revises: 003
Create Date: 2026-09-28
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE products (
            id              UUID            PRIMARY KEY DEFAULT gen_random_uuid(),
            name            VARCHAR(200)    NOT NULL,
            slug            VARCHAR(240)    NOT NULL,
            description     TEXT            NOT NULL,
            price           BIGINT          NOT NULL,
            stock           INT             NOT NULL DEFAULT 0,
            category_id     UUID            NOT NULL REFERENCES categories(id),
            seller_id       UUID            NOT NULL REFERENCES users(id),
            brand           VARCHAR(100),
            model           VARCHAR(100),
            sku             VARCHAR(64),
            tags            TEXT,
            image_urls      TEXT            NOT NULL DEFAULT '[]',
            specifications  TEXT,
            is_active       BOOLEAN         NOT NULL DEFAULT TRUE,
            is_featured     BOOLEAN         NOT NULL DEFAULT FALSE,
            rating          DOUBLE PRECISION NOT NULL DEFAULT 0,
            review_count    INT             NOT NULL DEFAULT 0,
            sales_count     INT             NOT NULL DEFAULT 0,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_products_slug     UNIQUE (slug),
            CONSTRAINT ck_products_price    CHECK (price >= 0),
            CONSTRAINT ck_products_stock    CHECK (stock >= 0),
            CONSTRAINT ck_products_rating   CHECK (rating >= 0 AND rating <= 5)
        );
    """)
    op.execute("CREATE INDEX idx_products_category ON products (category_id);")
    op.execute("CREATE INDEX idx_products_seller ON products (seller_id, created_at DESC);")
    op.execute("CREATE INDEX idx_products_active_created ON products (is_active, created_at DESC);")
    op.execute("""
        CREATE TRIGGER trg_products_updated_at
            BEFORE UPDATE ON products
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)
    op.execute("COMMENT ON COLUMN products.price IS 'Unit price in paise';")

    op.execute("""
        CREATE TABLE reviews (
            id              UUID            PRIMARY KEY DEFAULT gen_random_uuid(),
            product_id      UUID            NOT NULL REFERENCES products(id) ON DELETE CASCADE,
            user_id         UUID            NOT NULL REFERENCES users(id),
            rating          SMALLINT        NOT NULL,
            title           VARCHAR(200),
            comment         TEXT            NOT NULL,
            is_visible      BOOLEAN         NOT NULL DEFAULT TRUE,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_reviews_product_user UNIQUE (product_id, user_id),
            CONSTRAINT ck_reviews_rating    CHECK (rating BETWEEN 1 AND 5)
        );
    """)
    op.execute("CREATE INDEX idx_reviews_product ON reviews (product_id, created_at DESC);")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS reviews CASCADE;")
    op.execute("DROP TABLE IF EXISTS products CASCADE;")
