"""Age, calendar-month and period lookup helpers."""

from datetime import date
from typing import Iterable

# (year, month), compared lexicographically as tuples
YearMonth = tuple[int, int]


def parse_year_month(value: "str | date | YearMonth") -> YearMonth:
    """Parse "YYYY-MM" / "YYYY-MM-DD" / date → (year, month).

    Raises ValueError for strings that are not a valid calendar month.
    """
    if isinstance(value, date):
        return value.year, value.month
    if isinstance(value, tuple):
        year, month = value
    else:
        parts = str(value).strip().split("-")
        if len(parts) < 2:
            raise ValueError(f"年月の形式が不正です: {value!r}（YYYY-MM）")
        try:
            year, month = int(parts[0]), int(parts[1])
        except ValueError:
            raise ValueError(f"年月の形式が不正です: {value!r}（YYYY-MM）") from None
    if not 1 <= month <= 12:
        raise ValueError(f"月は1〜12で指定してください: {value!r}")
    return year, month


def calc_age(birth_date: date, year: int) -> int:
    """Age reached in the given calendar year (year difference only, min 0)."""
    return max(0, year - birth_date.year)


def is_active(recorded: YearMonth, year: int, month: int) -> bool:
    """True strictly after the recorded month (recorded 3月 → accrues from 4月)."""
    return (year, month) > recorded


def is_on_or_before(limit: YearMonth, year: int, month: int) -> bool:
    return (year, month) <= limit


def period_value(periods: Iterable, key: "int | YearMonth") -> float:
    """First period whose [start, end] contains key wins; none → 0."""
    for p in periods:
        if p.start <= key <= p.end:
            return p.amount
    return 0.0
