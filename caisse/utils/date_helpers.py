import calendar
from datetime import date

_MONTH_LABELS = [
    "", "JANVIER", "FEVRIER", "MARS", "AVRIL", "MAI", "JUIN",
    "JUILLET", "AOUT", "SEPTEMBRE", "OCTOBRE", "NOVEMBRE", "DECEMBRE",
]

_MONTH_NAMES = [
    "", "Janvier", "Février", "Mars", "Avril", "Mai", "Juin",
    "Juillet", "Août", "Septembre", "Octobre", "Novembre", "Décembre",
]


def get_month_label(month: int) -> str:
    """Return the upper-case month label used on vouchers. E.g. 2 -> 'FEVRIER'."""
    if 1 <= month <= 12:
        return _MONTH_LABELS[month]
    raise ValueError(f"Invalid month: {month}")


def get_month_name(month: int) -> str:
    """Return the display month name. E.g. 8 -> 'Août'."""
    if 1 <= month <= 12:
        return _MONTH_NAMES[month]
    raise ValueError(f"Invalid month: {month}")


def period_fields(day: date) -> dict:
    """Period columns stored alongside a transaction date."""
    return {
        "month": day.month,
        "year": day.year,
        "month_label": get_month_label(day.month),
        "month_year": f"{day.month:02d}/{day.year}",
    }


def prev_month(year: int, month: int) -> tuple[int, int]:
    """Return (year, month) for the previous month."""
    if month == 1:
        return year - 1, 12
    return year, month - 1


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last calendar day of a month."""
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid month: {month}")
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def parse_iso_date(value: str | date) -> date:
    """Parse an ISO date string, raising ValueError with a readable message."""
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid date: {value!r}") from e
