"""Point-in-time validity filter for tax code records."""

from collections.abc import Iterable
from datetime import datetime

from easytax.schemas.tax_code import TaxRateWindow
from easytax.utils.encoding import ensure_utc


def is_applicable(record: TaxRateWindow, instant: datetime | None) -> bool:
    """
    Whether a record applies at ``instant``.

    The window is half-open: valid_from_date <= instant < valid_to_date, with
    a missing valid_to_date meaning open-ended. No instant means no filtering.
    """
    if instant is None:
        return True
    instant = ensure_utc(instant)
    if record.valid_from_date > instant:
        return False
    return record.valid_to_date is None or instant < record.valid_to_date


def filter_applicable(records: Iterable, instant: datetime | None) -> list:
    """All records applicable at ``instant``.

    Overlapping windows are not deduplicated or ranked; every applicable
    record is returned.
    """
    return [r for r in records if is_applicable(r, instant)]
