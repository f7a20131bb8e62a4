"""Dashboard summary for one report or one aggregated period.

A category whose net total is negative is an outflow category; all of its
transactions (refunds included) count toward spending. Every other category
is treated as inflow.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import StrEnum

from .models import Transaction
from .periods import DateOrder, parse_date

_TOP_TRANSACTIONS = 5
_TOP_MERCHANTS = 8
_MERCHANT_MAX_LEN = 20
_MERCHANT_CUT = re.compile(r"[0-9*#]")

_WARNING_RATIO = 0.8


class BudgetLevel(StrEnum):
    OK = "ok"
    WARNING = "warning"
    OVER = "over"


@dataclass(frozen=True, slots=True)
class CategoryStat:
    name: str
    value: float
    count: int
    top_transactions: tuple[Transaction, ...]


@dataclass(frozen=True, slots=True)
class DailyPoint:
    day: date
    amount: float
    count: int


@dataclass(frozen=True, slots=True)
class BudgetUsage:
    budget: float
    spent: float
    percent_used: float
    remaining: float
    level: BudgetLevel


@dataclass(frozen=True, slots=True)
class Summary:
    categories: list[CategoryStat] = field(default_factory=list)
    total_spent: float = 0.0
    total_income: float = 0.0
    max_expense: float = 0.0
    top_category_percent: float = 0.0
    daily: list[DailyPoint] = field(default_factory=list)
    merchants: list[tuple[str, float]] = field(default_factory=list)
    budget: BudgetUsage | None = None


def merchant_name(description: str) -> str:
    """Short merchant key: text before the first digit, ``*`` or ``#``."""

    return _MERCHANT_CUT.split(description, maxsplit=1)[0].strip()[:_MERCHANT_MAX_LEN]


def budget_usage(spent: float, budget: float) -> BudgetUsage | None:
    if budget <= 0:
        return None
    ratio = spent / budget
    if ratio > 1:
        level = BudgetLevel.OVER
    elif ratio > _WARNING_RATIO:
        level = BudgetLevel.WARNING
    else:
        level = BudgetLevel.OK
    return BudgetUsage(
        budget=budget,
        spent=round(spent, 2),
        percent_used=round(min(100.0, ratio * 100), 2),
        remaining=round(max(0.0, budget - spent), 2),
        level=level,
    )


def _by_magnitude(txs: Sequence[Transaction]) -> list[Transaction]:
    return sorted(txs, key=lambda t: abs(t.amount), reverse=True)


def _daily_series(
    outflows: Sequence[Transaction], date_order: DateOrder | None
) -> list[DailyPoint]:
    buckets: dict[date, list[Transaction]] = {}
    for tx in outflows:
        when = parse_date(tx.date, date_order=date_order)
        if when is None:
            continue
        buckets.setdefault(when.date(), []).append(tx)
    if not buckets:
        return []

    out: list[DailyPoint] = []
    current, last = min(buckets), max(buckets)
    while current <= last:
        txs = buckets.get(current, [])
        out.append(
            DailyPoint(
                day=current,
                amount=round(abs(sum(t.amount for t in txs)), 2),
                count=len(txs),
            )
        )
        current += timedelta(days=1)
    return out


def summarize(
    transactions: Sequence[Transaction],
    *,
    budget: float = 0.0,
    date_order: DateOrder | None = None,
) -> Summary:
    groups: dict[str, list[Transaction]] = {}
    for tx in transactions:
        groups.setdefault(tx.effective_category, []).append(tx)

    outflows: list[Transaction] = []
    inflows: list[Transaction] = []
    stats: list[CategoryStat] = []
    for name, txs in groups.items():
        net = sum(t.amount for t in txs)
        if net < 0:
            outflows.extend(txs)
            stats.append(
                CategoryStat(
                    name=name,
                    value=round(abs(net), 2),
                    count=len(txs),
                    top_transactions=tuple(_by_magnitude(txs)[:_TOP_TRANSACTIONS]),
                )
            )
        else:
            inflows.extend(txs)
    stats.sort(key=lambda s: s.value, reverse=True)

    total_spent = round(sum(s.value for s in stats), 2)
    merchants: dict[str, float] = {}
    for tx in outflows:
        key = merchant_name(tx.description)
        merchants[key] = merchants.get(key, 0.0) + tx.amount
    top_merchants = sorted(
        ((k, round(abs(v), 2)) for k, v in merchants.items()),
        key=lambda kv: kv[1],
        reverse=True,
    )[:_TOP_MERCHANTS]

    return Summary(
        categories=stats,
        total_spent=total_spent,
        total_income=round(sum(t.amount for t in inflows), 2),
        max_expense=max((abs(t.amount) for t in outflows), default=0.0),
        top_category_percent=(
            round(stats[0].value / total_spent * 100, 2) if total_spent > 0 else 0.0
        ),
        daily=_daily_series(outflows, date_order),
        merchants=top_merchants,
        budget=budget_usage(total_spent, budget),
    )


__all__ = [
    "BudgetLevel",
    "BudgetUsage",
    "CategoryStat",
    "DailyPoint",
    "Summary",
    "budget_usage",
    "merchant_name",
    "summarize",
]
