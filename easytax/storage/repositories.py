"""SQLAlchemy-backed tax code store."""

import logging
from collections.abc import Sequence
from uuid import uuid4

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from easytax.engine.paths import TaxCodePrefix
from easytax.exceptions import PersistenceError
from easytax.models import TaxCode
from easytax.schemas.tax_code import TaxCodeRecord

logger = logging.getLogger(__name__)


def _prefix_filters(tenant_id: str, prefix: TaxCodePrefix) -> list:
    """WHERE clauses for a tenant + key prefix; missing parts are unconstrained."""
    filters = [TaxCode.tenant_id == tenant_id]
    if prefix.tax_zone is not None:
        filters.append(TaxCode.tax_zone == prefix.tax_zone)
    if prefix.product_name is not None:
        filters.append(TaxCode.product_name == prefix.product_name)
    if prefix.tax_code is not None:
        filters.append(TaxCode.tax_code == prefix.tax_code)
    return filters


def _to_record(row: TaxCode) -> TaxCodeRecord:
    return TaxCodeRecord(
        tenant_id=str(row.tenant_id),
        tax_zone=row.tax_zone,
        product_name=row.product_name,
        tax_code=row.tax_code,
        tax_rate=row.tax_rate,
        valid_from_date=row.valid_from_date,
        valid_to_date=row.valid_to_date,
        created_date=row.created_date,
    )


def _upsert_statement(record: TaxCodeRecord):
    """INSERT ... ON CONFLICT (identity) DO UPDATE for one record."""
    stmt = pg_insert(TaxCode).values(
        record_id=str(uuid4()),
        tenant_id=record.tenant_id,
        tax_zone=record.tax_zone,
        product_name=record.product_name,
        tax_code=record.tax_code,
        tax_rate=record.tax_rate,
        valid_from_date=record.valid_from_date,
        valid_to_date=record.valid_to_date,
        created_date=record.created_date,
    )
    return stmt.on_conflict_do_update(
        constraint="uq_tax_codes_identity",
        set_={
            "tax_rate": stmt.excluded.tax_rate,
            "valid_to_date": stmt.excluded.valid_to_date,
            "created_date": stmt.excluded.created_date,
        },
    )


class SqlTaxCodeStore:
    """Tax code store over an async SQLAlchemy session.

    Every write commits its own transaction; a failed write is rolled back
    and reported as PersistenceError.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def query(self, tenant_id: str, prefix: TaxCodePrefix) -> list[TaxCodeRecord]:
        try:
            result = await self.db.execute(
                select(TaxCode)
                .where(*_prefix_filters(tenant_id, prefix))
                .order_by(
                    TaxCode.tax_zone,
                    TaxCode.product_name,
                    TaxCode.tax_code,
                    TaxCode.valid_from_date,
                )
            )
        except SQLAlchemyError as e:
            logger.exception("Tax code query failed for tenant %s", tenant_id)
            raise PersistenceError.from_exception(e) from e
        return [_to_record(row) for row in result.scalars().all()]

    async def insert(self, record: TaxCodeRecord) -> None:
        await self._write([record])

    async def insert_batch(self, records: Sequence[TaxCodeRecord]) -> None:
        await self._write(records)

    async def delete(self, tenant_id: str, prefix: TaxCodePrefix) -> int:
        try:
            result = await self.db.execute(
                delete(TaxCode).where(*_prefix_filters(tenant_id, prefix))
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.exception("Tax code delete failed for tenant %s", tenant_id)
            raise PersistenceError.from_exception(e) from e
        logger.debug("Deleted %d tax codes for tenant %s", result.rowcount, tenant_id)
        return result.rowcount

    async def _write(self, records: Sequence[TaxCodeRecord]) -> None:
        """Upsert all records in one transaction."""
        try:
            for record in records:
                await self.db.execute(_upsert_statement(record))
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.exception("Tax code write of %d records failed", len(records))
            raise PersistenceError.from_exception(e) from e
