"""Shared fixtures for EasyTax tests."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from easytax.schemas.tax_code import TaxCodeRecord
from easytax.storage.memory import InMemoryTaxCodeStore

TENANT_ID = "6f1c3d2e-9a4b-4c1d-8e2f-000000000001"
CREATED = datetime(2024, 6, 1, tzinfo=timezone.utc)


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def make_record():
    """Factory for stored records with sensible AU GST defaults."""

    def _make(
        tax_zone="AU",
        product_name="HardwareProduct",
        tax_code="GST",
        tax_rate="0.10",
        valid_from_date=utc(2000, 10, 1),
        valid_to_date=None,
        tenant_id=TENANT_ID,
        created_date=CREATED,
    ) -> TaxCodeRecord:
        return TaxCodeRecord(
            tenant_id=tenant_id,
            tax_zone=tax_zone,
            product_name=product_name,
            tax_code=tax_code,
            tax_rate=Decimal(tax_rate),
            valid_from_date=valid_from_date,
            valid_to_date=valid_to_date,
            created_date=created_date,
        )

    return _make


@pytest.fixture
def store():
    return InMemoryTaxCodeStore()
