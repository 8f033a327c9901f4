"""Tax code store interface."""

from collections.abc import Sequence
from typing import Protocol

from easytax.engine.paths import TaxCodePrefix
from easytax.schemas.tax_code import TaxCodeRecord


class TaxCodeStore(Protocol):
    """Tenant-scoped tax code storage.

    Prefix parts that are None match anything. Failures of the backing
    storage surface as PersistenceError.
    """

    async def query(self, tenant_id: str, prefix: TaxCodePrefix) -> list[TaxCodeRecord]:
        """All records of the tenant under ``prefix``; empty list when none."""
        ...

    async def insert(self, record: TaxCodeRecord) -> None:
        """Persist one record, replacing any record with the same identity."""
        ...

    async def insert_batch(self, records: Sequence[TaxCodeRecord]) -> None:
        """Persist all records or none of them."""
        ...

    async def delete(self, tenant_id: str, prefix: TaxCodePrefix) -> int:
        """Remove every record of the tenant under ``prefix``; returns how many."""
        ...
