"""Side-by-side category comparison of two reports."""

from __future__ import annotations

from dataclasses import dataclass

from .models import Report


@dataclass(frozen=True, slots=True)
class CategoryComparison:
    category: str
    value_a: float
    value_b: float
    diff: float
    percent_diff: float


def _net_by_category(report: Report) -> dict[str, float]:
    totals: dict[str, float] = {}
    for tx in report.transactions:
        cat = tx.effective_category
        totals[cat] = totals.get(cat, 0.0) + tx.amount
    return totals


def compare_reports(a: Report, b: Report) -> list[CategoryComparison]:
    """Compare net category totals; the largest absolute change comes first.

    ``percent_diff`` is relative to ``a`` and reads 100 when ``a`` has nothing
    in that category.
    """

    totals_a = _net_by_category(a)
    totals_b = _net_by_category(b)
    categories = list(dict.fromkeys([*totals_a, *totals_b]))

    rows: list[CategoryComparison] = []
    for cat in categories:
        val_a = totals_a.get(cat, 0.0)
        val_b = totals_b.get(cat, 0.0)
        diff = val_b - val_a
        pct = (diff / val_a) * 100 if val_a != 0 else 100.0
        rows.append(
            CategoryComparison(
                category=cat,
                value_a=round(val_a, 2),
                value_b=round(val_b, 2),
                diff=round(diff, 2),
                percent_diff=round(pct, 2),
            )
        )
    rows.sort(key=lambda r: abs(r.diff), reverse=True)
    return rows


__all__ = ["CategoryComparison", "compare_reports"]
