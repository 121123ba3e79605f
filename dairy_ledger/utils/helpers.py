# utils/helpers.py
from datetime import date, datetime, timedelta

ISO_DATE_FMT = "%Y-%m-%d"


def today_str() -> str:
    """Return today's date as ISO string (YYYY-MM-DD)."""
    return date.today().isoformat()


def is_iso_date(value) -> bool:
    """
    True iff `value` is a 'YYYY-MM-DD' string naming a real calendar day.
    Zero padding is required: lexicographic comparison of stored dates
    only matches chronological order for that exact shape.
    """
    if not isinstance(value, str) or len(value) != 10:
        return False
    try:
        datetime.strptime(value, ISO_DATE_FMT)
    except ValueError:
        return False
    return True


def previous_day(iso_date: str) -> str:
    """'2026-03-01' -> '2026-02-28'. Raises OverflowError for '0001-01-01'."""
    d = datetime.strptime(iso_date, ISO_DATE_FMT).date()
    return (d - timedelta(days=1)).isoformat()
