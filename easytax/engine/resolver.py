"""Resolution engine - store query + validity filter + deterministic ordering."""

import logging
from datetime import datetime

from easytax.engine.paths import TaxCodePrefix
from easytax.engine.validity import filter_applicable
from easytax.schemas.tax_code import TaxCodeRecord
from easytax.storage.store import TaxCodeStore

logger = logging.getLogger(__name__)


def order_records(records: list[TaxCodeRecord]) -> list[TaxCodeRecord]:
    """Sort by (tax_zone, product_name, tax_code, valid_from_date) ascending."""
    return sorted(records, key=lambda r: r.sort_key)


async def resolve(
    store: TaxCodeStore,
    tenant_id: str,
    prefix: TaxCodePrefix,
    instant: datetime | None = None,
) -> list[TaxCodeRecord]:
    """
    Records for ``tenant_id`` under ``prefix``, optionally only those valid
    at ``instant``. Every call re-queries the store.
    """
    records = await store.query(tenant_id, prefix)
    if instant is not None:
        records = filter_applicable(records, instant)
    result = order_records(records)
    logger.debug(
        "Resolved %d tax codes for tenant %s prefix %s at %s",
        len(result),
        tenant_id,
        "/".join(prefix.segments()) or "*",
        instant.isoformat() if instant else "any time",
    )
    return result
