"""007: seed product categories

Revision ID: 007
Revises: 006
Create Date: 2026-09-28
"""

from typing import Sequence, Union

from alembic import op

revision: str = "007"
down_revision: Union[str, None] = "006"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_SLUGS = (
    "solar-panels",
    "inverters",
    "batteries",
    "wires-cables",
    "switchgear",
    "lighting",
    "motors-pumps",
)


def upgrade() -> None:
    op.execute("""
        INSERT INTO categories (name, slug, description) VALUES
            ('Solar Panels', 'solar-panels', 'Mono and poly crystalline PV modules'),
            ('Inverters', 'inverters', 'On-grid, off-grid and hybrid inverters'),
            ('Batteries', 'batteries', 'Lithium and lead-acid storage'),
            ('Wires & Cables', 'wires-cables', 'Building wire, DC solar and armoured cables'),
            ('Switchgear', 'switchgear', 'MCBs, RCCBs, isolators and distribution boards'),
            ('Lighting', 'lighting', 'LED fixtures and street lights'),
            ('Motors & Pumps', 'motors-pumps', 'Industrial motors and solar pumps')
        ON CONFLICT (slug) DO NOTHING;
    """)


def downgrade() -> None:
    slugs = ", ".join(f"'{s}'" for s in _SLUGS)
    op.execute(f"DELETE FROM categories WHERE slug IN ({slugs});")
