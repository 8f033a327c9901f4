"""Initial schema - tenants, tax_codes.

Revision ID: 001
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "tenants",
        sa.Column("tenant_id", sa.UUID(), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("api_key_hash", sa.String(255), unique=True, nullable=False),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False),
    )

    op.create_table(
        "tax_codes",
        sa.Column("record_id", sa.UUID(), primary_key=True),
        sa.Column("tenant_id", sa.UUID(), sa.ForeignKey("tenants.tenant_id"), nullable=False),
        sa.Column("tax_zone", sa.Text(), nullable=False),
        sa.Column("product_name", sa.Text(), nullable=False),
        sa.Column("tax_code", sa.Text(), nullable=False),
        sa.Column("tax_rate", sa.Numeric(), nullable=False),
        sa.Column("valid_from_date", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("valid_to_date", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("created_date", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.CheckConstraint("tax_rate >= 0", name="ck_tax_codes_rate_non_negative"),
        sa.CheckConstraint(
            "valid_to_date IS NULL OR valid_to_date > valid_from_date",
            name="ck_tax_codes_window",
        ),
    )
    # Write identity: same tenant/zone/product/code/valid_from replaces
    op.create_unique_constraint(
        "uq_tax_codes_identity",
        "tax_codes",
        ["tenant_id", "tax_zone", "product_name", "tax_code", "valid_from_date"],
    )
    op.create_index(
        "ix_tax_codes_lookup",
        "tax_codes",
        ["tenant_id", "tax_zone", "product_name", "tax_code"],
    )


def downgrade() -> None:
    op.drop_index("ix_tax_codes_lookup", table_name="tax_codes")
    op.drop_table("tax_codes")
    op.drop_table("tenants")
