# app/utils/dates.py
import re
from datetime import date, datetime, timezone
from typing import Tuple, Union

MONTH_KEY_RE = re.compile(r"^(\d{4})-(0[1-9]|1[0-2])$")

PT_BR_MONTHS = [
    "Janeiro", "Fevereiro", "Março", "Abril", "Maio", "Junho",
    "Julho", "Agosto", "Setembro", "Outubro", "Novembro", "Dezembro",
]


def utcnow() -> datetime:
    """Naive UTC timestamp; all DateTime columns are stored naive in UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def month_key(value: Union[date, datetime]) -> str:
    """2025-01-17 -> "2025-01"."""
    return f"{value.year:04d}-{value.month:02d}"


def parse_month_key(month_year: str) -> Tuple[int, int]:
    match = MONTH_KEY_RE.match(month_year or "")
    if not match:
        raise ValueError(f"Invalid month key {month_year!r}, expected YYYY-MM")
    return int(match.group(1)), int(match.group(2))


def month_bounds(month_year: str) -> Tuple[datetime, datetime]:
    """Half-open [start, end) datetime range of a "YYYY-MM" month."""
    year, month = parse_month_key(month_year)
    start = datetime(year, month, 1)
    if month == 12:
        end = datetime(year + 1, 1, 1)
    else:
        end = datetime(year, month + 1, 1)
    return start, end


def month_label(month_year: str) -> str:
    """ "2024-11" -> "Novembro de 2024" """
    year, month = parse_month_key(month_year)
    return f"{PT_BR_MONTHS[month - 1]} de {year}"


def to_naive_utc(value: datetime) -> datetime:
    """Drop tzinfo after converting aware datetimes to UTC."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value
