from __future__ import annotations

from datetime import date
from typing import List, Optional, Tuple

from dateutil.relativedelta import relativedelta

from .errors import InvalidRangeError
from .models import Month

MONTH_LABEL_FMT = "%b %Y"
DEFAULT_SAMPLE_DAY = 15


def _first_of_month(value: date) -> date:
    return date(value.year, value.month, 1)


def month_from_date(value: date) -> Month:
    first = _first_of_month(value)
    return Month(year=first.year, month=first.month, label=first.strftime(MONTH_LABEL_FMT))


def month_midpoint(month: Month, sample_day: int = DEFAULT_SAMPLE_DAY) -> date:
    """Representative day used to decide whether an allocation is active in ``month``."""
    return date(month.year, month.month, sample_day)


def resolve_window(
    reference_date: date,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    months: Optional[int] = 6,
) -> Tuple[date, date]:
    """Fill in a missing start (``reference_date``) and end (start + ``months``)."""
    if months is not None and months <= 0:
        raise InvalidRangeError(f"months must be a positive integer, got {months}")
    start = start_date or reference_date
    if end_date is not None:
        end = end_date
    else:
        if months is None:
            raise InvalidRangeError("either end_date or months is required")
        end = start + relativedelta(months=months)
    if end < start:
        raise InvalidRangeError(f"end date {end.isoformat()} is before start date {start.isoformat()}")
    return start, end


def build_month_sequence(start: date, end: date) -> List[Month]:
    if end < start:
        raise InvalidRangeError(f"end date {end.isoformat()} is before start date {start.isoformat()}")
    months: List[Month] = []
    current = _first_of_month(start)
    end_month = _first_of_month(end)
    while current <= end_month:
        months.append(month_from_date(current))
        current += relativedelta(months=1)
    return months
