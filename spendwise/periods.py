"""Date-period math shared by every period-aware view.

Two period systems coexist:

- ``calendar``: a standard month, labeled ``"<Month> <Year>"``.
- ``mid-month``: the 15th of month M through the 14th of month M+1, labeled
  with month M+1 (``15 Dec 2023 .. 14 Jan 2024`` is ``"January 2024"``).

Labels produced here are unadorned. When both systems share one namespace
(period pickers, spreadsheet columns, budget keys) use :func:`picker_label`,
which appends :data:`MID_MONTH_SUFFIX` to mid-month labels.

Unparseable dates are reported as ``None`` rather than raised; callers skip
them.
"""

from __future__ import annotations

import calendar
import os
import re
from datetime import date, datetime
from enum import StrEnum
from typing import NamedTuple

MONTH_NAMES: tuple[str, ...] = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)
_MONTH_INDEX: dict[str, int] = {name: i for i, name in enumerate(MONTH_NAMES)}

MID_MONTH_SUFFIX = " (Mid-Month)"
MID_MONTH_START_DAY = 15


class PeriodMode(StrEnum):
    CALENDAR = "calendar"
    MID_MONTH = "mid-month"


class DateOrder(StrEnum):
    """Field order assumed for slash-separated dates."""

    DMY = "dmy"
    MDY = "mdy"


def default_date_order() -> DateOrder:
    """Return the configured slash-date order (``SPENDWISE_DATE_ORDER``).

    Defaults to day-first; unknown values also fall back to day-first.
    """

    raw = (os.getenv("SPENDWISE_DATE_ORDER") or "").strip().lower()
    try:
        return DateOrder(raw) if raw else DateOrder.DMY
    except ValueError:
        return DateOrder.DMY


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

_LEADING_INT = re.compile(r"\s*(\d+)")

_TEXT_FORMATS: tuple[str, ...] = (
    "%d %b %Y",
    "%d %B %Y",
    "%b %d, %Y",
    "%B %d, %Y",
    "%d-%b-%Y",
    "%d-%b-%y",
)


def _leading_int(part: str) -> tuple[int, int] | None:
    """Return ``(value, digit_count)`` for the digits leading ``part``."""

    m = _LEADING_INT.match(part)
    if m is None:
        return None
    digits = m.group(1)
    return int(digits), len(digits)


def _parse_slashed(raw: str, order: DateOrder) -> datetime | None:
    parts = raw.split("/")
    if len(parts) < 3:
        return None
    first = _leading_int(parts[0])
    second = _leading_int(parts[1])
    third = _leading_int(parts[2])
    if first is None or second is None or third is None:
        return None

    if order is DateOrder.DMY:
        day, month = first[0], second[0]
    else:
        month, day = first[0], second[0]
    year, year_digits = third
    if year_digits == 2:
        year += 2000

    try:
        return datetime(year, month, day)
    except ValueError:
        return None


def parse_date(raw: str | None, *, date_order: DateOrder | None = None) -> datetime | None:
    """Parse a statement date string; return ``None`` when it is unusable.

    - Strings containing ``/`` are read as day/month/year by default
      (``date_order`` or ``SPENDWISE_DATE_ORDER`` may switch to
      month/day/year). Two-digit years mean ``2000 + yy``.
    - Anything else goes through ISO parsing, then a few textual formats such
      as ``"10 Mar 2024"`` and ``"Mar 10, 2024"``.

    Time-zone offsets are dropped: a statement date is a wall-clock date.
    """

    if raw is None:
        return None
    s = str(raw).strip()
    if not s:
        return None

    if "/" in s:
        return _parse_slashed(s, date_order or default_date_order())

    iso = s[:-1] + "+00:00" if s.endswith("Z") else s
    try:
        return datetime.fromisoformat(iso).replace(tzinfo=None)
    except ValueError:
        pass

    for fmt in _TEXT_FORMATS:
        try:
            return datetime.strptime(s, fmt)
        except ValueError:
            continue
    return None


# ---------------------------------------------------------------------------
# Labels
# ---------------------------------------------------------------------------


def _add_months(year: int, month: int, delta: int) -> tuple[int, int]:
    """Shift a ``(year, month)`` pair (month 1..12) by ``delta`` months."""

    idx = year * 12 + (month - 1) + delta
    return idx // 12, idx % 12 + 1


def period_label(value: date, mode: PeriodMode | str) -> str:
    """Return the unadorned period label for ``value`` under ``mode``."""

    mode = PeriodMode(mode)
    # Anchor to the 1st before shifting so short months cannot overflow.
    anchor = value.replace(day=1)
    year, month = anchor.year, anchor.month
    if mode is PeriodMode.MID_MONTH and value.day >= MID_MONTH_START_DAY:
        year, month = _add_months(year, month, 1)
    return f"{MONTH_NAMES[month - 1]} {year}"


def picker_label(value: date, mode: PeriodMode | str) -> str:
    """Return a label that cannot collide across modes (mid-month is suffixed)."""

    label = period_label(value, mode)
    if PeriodMode(mode) is PeriodMode.MID_MONTH:
        return label + MID_MONTH_SUFFIX
    return label


def mode_for_label(label: str) -> PeriodMode:
    """Infer the period system from a picker label."""

    if label.endswith(MID_MONTH_SUFFIX):
        return PeriodMode.MID_MONTH
    return PeriodMode.CALENDAR


def parse_label(label: str) -> tuple[int, int]:
    """Return ``(year, month)`` for ``"<Month> <Year>"`` (suffix tolerated).

    Raises ``ValueError`` for anything else.
    """

    clean = label.strip()
    if clean.endswith(MID_MONTH_SUFFIX.strip()):
        clean = clean[: -len(MID_MONTH_SUFFIX.strip())].strip()
    parts = clean.split()
    if len(parts) != 2 or parts[0] not in _MONTH_INDEX or not parts[1].isdigit():
        raise ValueError(f"Invalid period label: {label!r}")
    return int(parts[1]), _MONTH_INDEX[parts[0]] + 1


# ---------------------------------------------------------------------------
# Ranges and ordering
# ---------------------------------------------------------------------------


class PeriodRange(NamedTuple):
    """Inclusive ``[start, end]`` boundaries of one period."""

    start: datetime
    end: datetime

    def contains(self, value: datetime) -> bool:
        return self.start <= value <= self.end


def period_range(label: str, mode: PeriodMode | str) -> PeriodRange:
    """Inverse of :func:`period_label`.

    - ``calendar``: the 1st at 00:00:00.000 to the last day at 23:59:59.999.
    - ``mid-month``: the 15th of the preceding month at 00:00:00.000 to the
      14th of the labeled month at 23:59:59.999.
    """

    mode = PeriodMode(mode)
    year, month = parse_label(label)

    if mode is PeriodMode.CALENDAR:
        last_day = calendar.monthrange(year, month)[1]
        return PeriodRange(
            start=datetime(year, month, 1),
            end=datetime(year, month, last_day, 23, 59, 59, 999000),
        )

    prev_year, prev_month = _add_months(year, month, -1)
    return PeriodRange(
        start=datetime(prev_year, prev_month, MID_MONTH_START_DAY),
        end=datetime(year, month, MID_MONTH_START_DAY - 1, 23, 59, 59, 999000),
    )


def sort_key(label: str) -> int:
    """Chronological key for picker labels of either mode.

    A mid-month label sorts immediately after the calendar label of the same
    month and year.
    """

    year, month = parse_label(label)
    key = (year * 12 + (month - 1)) * 2
    if label.endswith(MID_MONTH_SUFFIX):
        key += 1
    return key


__all__ = [
    "MID_MONTH_SUFFIX",
    "MONTH_NAMES",
    "DateOrder",
    "PeriodMode",
    "PeriodRange",
    "default_date_order",
    "mode_for_label",
    "parse_date",
    "parse_label",
    "period_label",
    "period_range",
    "picker_label",
    "sort_key",
]
