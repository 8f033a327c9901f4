"""Tax code rate model."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from easytax.database import Base


class TaxCode(Base):
    """One rate rule for tenant + zone + product + code, valid over [from, to)."""

    __tablename__ = "tax_codes"

    record_id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True)
    tenant_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False), ForeignKey("tenants.tenant_id"), nullable=False
    )
    tax_zone: Mapped[str] = mapped_column(Text, nullable=False)
    product_name: Mapped[str] = mapped_column(Text, nullable=False)
    tax_code: Mapped[str] = mapped_column(Text, nullable=False)
    tax_rate: Mapped[Decimal] = mapped_column(Numeric(asdecimal=True), nullable=False)
    valid_from_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    valid_to_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        # Write identity: a second write with the same key replaces the first
        UniqueConstraint(
            "tenant_id",
            "tax_zone",
            "product_name",
            "tax_code",
            "valid_from_date",
            name="uq_tax_codes_identity",
        ),
        Index("ix_tax_codes_lookup", "tenant_id", "tax_zone", "product_name", "tax_code"),
        CheckConstraint("tax_rate >= 0", name="ck_tax_codes_rate_non_negative"),
        CheckConstraint(
            "valid_to_date IS NULL OR valid_to_date > valid_from_date",
            name="ck_tax_codes_window",
        ),
    )
