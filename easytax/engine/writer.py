"""Write coordinator - stamps tenant and creation time onto incoming records."""

import logging
from collections.abc import Sequence
from datetime import datetime

from easytax.engine.paths import TaxCodePrefix
from easytax.schemas.tax_code import TaxCodeBatchItem, TaxCodeBody, TaxCodeRecord
from easytax.storage.store import TaxCodeStore

logger = logging.getLogger(__name__)


def stamp_record(item: TaxCodeBatchItem, tenant_id: str, now: datetime) -> TaxCodeRecord:
    """Build a stored record from a caller-supplied item."""
    return TaxCodeRecord(
        **item.model_dump(),
        tenant_id=tenant_id,
        created_date=now,
    )


async def save_tax_code(
    store: TaxCodeStore,
    tenant_id: str,
    prefix: TaxCodePrefix,
    body: TaxCodeBody,
    now: datetime,
) -> TaxCodeRecord:
    """
    Save one record addressed by a full zone/product/code prefix.
    The prefix overrides any key values the caller put in the body.
    """
    if not prefix.is_complete:
        raise ValueError("single tax code writes need zone, product and code")
    item = TaxCodeBatchItem(
        tax_zone=prefix.tax_zone,
        product_name=prefix.product_name,
        tax_code=prefix.tax_code,
        **body.model_dump(),
    )
    record = stamp_record(item, tenant_id, now)
    await store.insert(record)
    logger.info(
        "Saved tax code %s/%s/%s for tenant %s",
        record.tax_zone,
        record.product_name,
        record.tax_code,
        tenant_id,
    )
    return record


async def save_tax_codes(
    store: TaxCodeStore,
    tenant_id: str,
    items: Sequence[TaxCodeBatchItem] | None,
    now: datetime,
) -> list[TaxCodeRecord]:
    """
    Save a batch of records atomically, all sharing one created_date.
    An empty or missing batch writes nothing.
    """
    if not items:
        return []
    records = [stamp_record(item, tenant_id, now) for item in items]
    await store.insert_batch(records)
    logger.info("Saved %d tax codes for tenant %s", len(records), tenant_id)
    return records
