"""In-memory tax code store, for tests and local development."""

import asyncio
import logging
from collections.abc import Sequence

from easytax.engine.paths import TaxCodePrefix
from easytax.schemas.tax_code import TaxCodeRecord

logger = logging.getLogger(__name__)


class InMemoryTaxCodeStore:
    """Dict-backed store keyed by record identity.

    A single lock serializes every operation, so readers never see half of a
    batch.
    """

    def __init__(self, records: Sequence[TaxCodeRecord] = ()):
        self._records: dict[tuple, TaxCodeRecord] = {r.identity: r for r in records}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._records)

    def _matching(self, tenant_id: str, prefix: TaxCodePrefix) -> list[tuple]:
        return [
            key
            for key, r in self._records.items()
            if r.tenant_id == tenant_id
            and prefix.matches(r.tax_zone, r.product_name, r.tax_code)
        ]

    async def query(self, tenant_id: str, prefix: TaxCodePrefix) -> list[TaxCodeRecord]:
        async with self._lock:
            return [self._records[key] for key in self._matching(tenant_id, prefix)]

    async def insert(self, record: TaxCodeRecord) -> None:
        async with self._lock:
            self._records[record.identity] = record

    async def insert_batch(self, records: Sequence[TaxCodeRecord]) -> None:
        staged = {r.identity: r for r in records}
        async with self._lock:
            self._records.update(staged)
        logger.debug("Stored batch of %d tax codes", len(staged))

    async def delete(self, tenant_id: str, prefix: TaxCodePrefix) -> int:
        async with self._lock:
            keys = self._matching(tenant_id, prefix)
            for key in keys:
                del self._records[key]
        logger.debug("Deleted %d tax codes for tenant %s", len(keys), tenant_id)
        return len(keys)
