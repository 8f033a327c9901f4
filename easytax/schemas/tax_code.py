"""Tax code request and record schemas."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from easytax.utils.encoding import ensure_utc


class TaxRateWindow(BaseModel):
    """Rate and validity window - the part of a record a caller supplies."""

    tax_rate: Decimal = Field(ge=0)
    valid_from_date: datetime
    valid_to_date: datetime | None = None

    @field_validator("valid_from_date", "valid_to_date", mode="after")
    @classmethod
    def normalize_utc(cls, v: datetime | None) -> datetime | None:
        return ensure_utc(v) if v is not None else None

    @model_validator(mode="after")
    def check_window(self):
        if self.valid_to_date is not None and self.valid_to_date <= self.valid_from_date:
            raise ValueError("valid_to_date must be after valid_from_date")
        return self


class TaxCodeBody(TaxRateWindow):
    """POST /taxCodes/{zone}/{product}/{code} body.

    Any zone/product/code in the body is ignored; the path decides them.
    """


class TaxCodeBatchItem(TaxRateWindow):
    """One element of a POST /taxCodes[/...] array body."""

    tax_zone: str = Field(min_length=1)
    product_name: str = Field(min_length=1)
    tax_code: str = Field(min_length=1)


class TaxCodeRecord(TaxCodeBatchItem):
    """A stored rate rule, stamped with its tenant and creation time."""

    model_config = ConfigDict(frozen=True)

    tenant_id: str
    created_date: datetime

    @field_validator("created_date", mode="after")
    @classmethod
    def normalize_created(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @property
    def identity(self) -> tuple:
        """Write identity - a later write with the same identity replaces this one."""
        return (
            self.tenant_id,
            self.tax_zone,
            self.product_name,
            self.tax_code,
            self.valid_from_date,
        )

    @property
    def sort_key(self) -> tuple:
        return (self.tax_zone, self.product_name, self.tax_code, self.valid_from_date)
