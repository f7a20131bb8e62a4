"""Month-over-month spending series for charting.

Trends are calendar-month only. Inflows are ignored.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from .models import Report, Transaction
from .periods import DateOrder, PeriodMode, parse_date, period_label, sort_key


@dataclass(slots=True)
class TrendPoint:
    """One period on the trend chart. Missing categories mean zero."""

    period: str
    total_discretionary: float = 0.0
    total_non_discretionary: float = 0.0
    by_category: dict[str, float] = field(default_factory=dict)

    def amount_for(self, category: str) -> float:
        return self.by_category.get(category, 0.0)


def _outflows(reports: Iterable[Report]) -> Iterable[Transaction]:
    for report in reports:
        for tx in report.transactions:
            if tx.is_outflow:
                yield tx


def build_trend(
    reports: Iterable[Report], *, date_order: DateOrder | None = None
) -> list[TrendPoint]:
    """Group outflows by calendar period, oldest period first."""

    points: dict[str, TrendPoint] = {}
    for tx in _outflows(reports):
        when = parse_date(tx.date, date_order=date_order)
        if when is None:
            continue
        label = period_label(when, PeriodMode.CALENDAR)
        point = points.get(label)
        if point is None:
            point = points[label] = TrendPoint(period=label)
        value = abs(tx.amount)
        cat = tx.effective_category
        point.by_category[cat] = point.by_category.get(cat, 0.0) + value
        if tx.is_discretionary:
            point.total_discretionary += value
        else:
            point.total_non_discretionary += value

    ordered = sorted(points.values(), key=lambda p: sort_key(p.period))
    for p in ordered:
        p.total_discretionary = round(p.total_discretionary, 2)
        p.total_non_discretionary = round(p.total_non_discretionary, 2)
        p.by_category = {k: round(v, 2) for k, v in p.by_category.items()}
    return ordered


def trend_category_groups(
    reports: Iterable[Report], *, date_order: DateOrder | None = None
) -> tuple[list[str], list[str]]:
    """Return (discretionary, non-discretionary) outflow categories, first-seen order.

    A category is placed by the flag of the first dated outflow that carries
    it. Undated outflows never reach a trend point, so they are ignored.
    """

    disc: list[str] = []
    essential: list[str] = []
    seen: set[str] = set()
    for tx in _outflows(reports):
        if parse_date(tx.date, date_order=date_order) is None:
            continue
        cat = tx.effective_category
        if cat in seen:
            continue
        seen.add(cat)
        (disc if tx.is_discretionary else essential).append(cat)
    return disc, essential


__all__ = ["TrendPoint", "build_trend", "trend_category_groups"]
