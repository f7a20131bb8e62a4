"""Report lifecycle helpers.

Reports are replaced, never mutated: every function here returns a new
:class:`~spendwise.models.Report`.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from datetime import UTC, datetime

from .categories import coerce_category, is_known_category, validate_name
from .classify import ChunkProgress
from .models import Report, ReportStatus, Transaction


def compute_total_spent(transactions: Iterable[Transaction]) -> float:
    """Sum of absolute outflow amounts, rounded to cents."""

    return round(sum(-tx.amount for tx in transactions if tx.is_outflow), 2)


def default_report_name(now: datetime) -> str:
    return f"Report {now.strftime('%b %Y')}"


def new_report(
    transactions: Iterable[Transaction],
    *,
    name: str | None = None,
    now: datetime | None = None,
) -> Report:
    """Create the pending report for freshly parsed transactions."""

    created = now or datetime.now(UTC)
    txs = tuple(transactions)
    return Report(
        id=f"report-{uuid.uuid4().hex}",
        name=(name or "").strip() or default_report_name(created),
        timestamp=created,
        transactions=txs,
        total_spent=compute_total_spent(txs),
        status=ReportStatus.PROCESSING,
        progress=0,
    )


def apply_chunk_progress(report: Report, event: ChunkProgress) -> Report:
    """Swap a chunk's classified transactions into ``report`` by id."""

    by_id = {tx.id: tx for tx in event.transactions}
    txs = tuple(by_id.get(tx.id, tx) for tx in report.transactions)
    progress = max(report.progress, event.percent)
    return report.model_copy(
        update={
            "transactions": txs,
            "total_spent": compute_total_spent(txs),
            "progress": progress,
            "status": ReportStatus.COMPLETED if progress >= 100 else report.status,
            "degraded_chunks": report.degraded_chunks + (1 if event.degraded else 0),
        }
    )


def rename_report(report: Report, name: str) -> Report:
    clean = (name or "").strip()
    if not clean:
        raise ValueError("Report name must not be blank")
    return report.model_copy(update={"name": clean})


def edit_transaction_category(report: Report, tx_id: str, category: str) -> Report:
    """Set one transaction's category; the report status is left unchanged.

    Raises ``KeyError`` when ``tx_id`` is not in the report and ``ValueError``
    for a custom category name that fails validation.
    """

    if not is_known_category(category):
        check = validate_name(category or "")
        if not check.ok:
            raise ValueError(f"Invalid category name {category!r}: {check.reason}")
    value = coerce_category(category)
    found = False
    txs: list[Transaction] = []
    for tx in report.transactions:
        if tx.id == tx_id:
            found = True
            tx = tx.model_copy(update={"category": value})
        txs.append(tx)
    if not found:
        raise KeyError(tx_id)
    return report.model_copy(update={"transactions": tuple(txs)})


__all__ = [
    "apply_chunk_progress",
    "compute_total_spent",
    "default_report_name",
    "edit_transaction_category",
    "new_report",
    "rename_report",
]
