"""Period-scoped views over many reports.

Aggregation is a plain union: identical transactions found in different
reports are all kept.
"""

from __future__ import annotations

from collections.abc import Iterable

from .models import Report, Transaction
from .periods import (
    DateOrder,
    PeriodMode,
    parse_date,
    period_range,
    picker_label,
    sort_key,
)


def aggregate(
    reports: Iterable[Report],
    period_label: str,
    mode: PeriodMode | str,
    *,
    date_order: DateOrder | None = None,
) -> list[Transaction]:
    """Return every transaction across ``reports`` dated inside the period.

    Transactions whose date cannot be parsed are skipped. Raises
    ``ValueError`` for a malformed ``period_label``.
    """

    rng = period_range(period_label, mode)
    out: list[Transaction] = []
    for report in reports:
        for tx in report.transactions:
            when = parse_date(tx.date, date_order=date_order)
            if when is not None and rng.contains(when):
                out.append(tx)
    return out


def enumerate_periods(
    reports: Iterable[Report], *, date_order: DateOrder | None = None
) -> list[str]:
    """Return every picker label observable in ``reports``, newest first.

    Each valid date contributes both its calendar label and its suffixed
    mid-month label.
    """

    labels: set[str] = set()
    for report in reports:
        for tx in report.transactions:
            when = parse_date(tx.date, date_order=date_order)
            if when is None:
                continue
            labels.add(picker_label(when, PeriodMode.CALENDAR))
            labels.add(picker_label(when, PeriodMode.MID_MONTH))
    return sorted(labels, key=sort_key, reverse=True)


__all__ = ["aggregate", "enumerate_periods"]
