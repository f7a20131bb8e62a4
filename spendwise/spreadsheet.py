"""Period x category performance table.

Columns are periods (calendar or mid-month picker labels), rows are
categories split into income and expense groups. Cells hold net amounts, so
refunds offset spending inside the same category.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from .models import Report
from .periods import DateOrder, PeriodMode, parse_date, picker_label, sort_key

_INCOME_HINTS: tuple[str, ...] = ("income", "salary")


@dataclass(slots=True)
class Spreadsheet:
    mode: PeriodMode
    periods: list[str] = field(default_factory=list)
    income_categories: list[str] = field(default_factory=list)
    expense_categories: list[str] = field(default_factory=list)
    cells: dict[str, dict[str, float]] = field(default_factory=dict)

    def value(self, period: str, category: str) -> float:
        return self.cells.get(period, {}).get(category, 0.0)

    def income_total(self, period: str) -> float:
        return round(sum(self.value(period, c) for c in self.income_categories), 2)

    def expense_total(self, period: str) -> float:
        return round(sum(self.value(period, c) for c in self.expense_categories), 2)

    def net(self, period: str) -> float:
        return round(self.income_total(period) + self.expense_total(period), 2)


def _is_income(category: str, net: float) -> bool:
    if net > 0:
        return True
    if net < 0:
        return False
    lowered = category.lower()
    return any(hint in lowered for hint in _INCOME_HINTS)


def build_spreadsheet(
    reports: Iterable[Report],
    mode: PeriodMode | str = PeriodMode.CALENDAR,
    *,
    date_order: DateOrder | None = None,
) -> Spreadsheet:
    """Build the table over every transaction with a valid date."""

    mode = PeriodMode(mode)
    cells: dict[str, dict[str, float]] = {}
    global_net: dict[str, float] = {}

    for report in reports:
        for tx in report.transactions:
            when = parse_date(tx.date, date_order=date_order)
            if when is None:
                continue
            label = picker_label(when, mode)
            cat = tx.effective_category
            row = cells.setdefault(label, {})
            row[cat] = row.get(cat, 0.0) + tx.amount
            global_net[cat] = global_net.get(cat, 0.0) + tx.amount

    income = sorted(c for c, net in global_net.items() if _is_income(c, net))
    expense = sorted(c for c, net in global_net.items() if not _is_income(c, net))

    return Spreadsheet(
        mode=mode,
        periods=sorted(cells, key=sort_key),
        income_categories=income,
        expense_categories=expense,
        cells={p: {c: round(v, 2) for c, v in row.items()} for p, row in cells.items()},
    )


__all__ = ["Spreadsheet", "build_spreadsheet"]
