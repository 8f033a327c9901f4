"""JSON encoding policy for tax code records.

Rates are exact decimals and must never pass through a float, so records are
turned into plain JSON-safe dicts here before ``json.dumps`` sees them.
"""

import json
import re
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from pydantic import TypeAdapter

RECORD_FIELDS = (
    "tenant_id",
    "tax_zone",
    "product_name",
    "tax_code",
    "tax_rate",
    "valid_from_date",
    "valid_to_date",
    "created_date",
)

_timestamp_adapter = TypeAdapter(datetime)
_PARTIAL_DATE = re.compile(r"\d{4}(-\d{2})?")


def ensure_utc(value: datetime) -> datetime:
    """Naive datetimes are taken as UTC; aware ones are converted to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(text: str) -> datetime:
    """Parse a timestamp into UTC, accepting what record bodies accept.

    ISO-8601 date or date-time with optional offset, or unix seconds.
    Year-only and year-month forms are not accepted. Raises ValueError
    (pydantic's ValidationError) on anything else.
    """
    text = text.strip()
    # A bare year would otherwise be read as unix seconds
    if _PARTIAL_DATE.fullmatch(text):
        raise ValueError(f"incomplete date {text!r}")
    return ensure_utc(_timestamp_adapter.validate_python(text))


def decode_json(raw: bytes) -> Any:
    """Decode a request body, keeping JSON numbers with a fraction as Decimal.

    Raises json.JSONDecodeError on malformed input.
    """
    return json.loads(raw, parse_float=Decimal)


def format_decimal(value: Decimal) -> str:
    """Plain decimal text, never exponent notation (1E+1 -> '10')."""
    return format(value, "f")


def format_timestamp(value: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision, e.g. 2000-09-30T14:00:00.000Z."""
    value = ensure_utc(value)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


@dataclass(frozen=True)
class EncodingPolicy:
    """How records are rendered on the wire."""

    omit_absent: bool = True

    def encode_value(self, value: Any) -> Any:
        if isinstance(value, Decimal):
            return format_decimal(value)
        if isinstance(value, datetime):
            return format_timestamp(value)
        return value

    def record_to_dict(self, record: Any) -> dict:
        """Render one record (any object with the record attributes)."""
        out = {}
        for name in RECORD_FIELDS:
            value = getattr(record, name, None)
            if value is None and self.omit_absent:
                continue
            out[name] = self.encode_value(value)
        return out

    def dumps(self, records: Iterable[Any]) -> bytes:
        """Render records as a UTF-8 JSON array."""
        payload = [self.record_to_dict(r) for r in records]
        return json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


DEFAULT_POLICY = EncodingPolicy()
