"""Statement ingestion workflow: CSV text to an autosaved, classified report."""

from __future__ import annotations

from collections.abc import Callable

from .classifier import Classifier
from .classify import PreferenceSource, iter_classify
from .ingest.csv_rows import parse_csv_text
from .logging_setup import get_logger
from .models import Report
from .persistence import ReportStore
from .reports import apply_chunk_progress, new_report

_logger = get_logger("spendwise.pipeline")


class NoTransactionsError(ValueError):
    """Raised when a statement yields no usable rows."""


def ingest_statement(
    csv_text: str,
    user_id: str,
    *,
    reports: ReportStore,
    classifier: Classifier,
    preferences: PreferenceSource | None = None,
    name: str | None = None,
    on_update: Callable[[Report], None] | None = None,
) -> Report:
    """Parse, persist and classify one statement.

    The pending report is saved before classification starts and again after
    every chunk, so an interrupted run leaves partial progress behind. Store
    errors propagate.
    """

    transactions = parse_csv_text(csv_text)
    if not transactions:
        raise NoTransactionsError("No valid transactions found in the statement")

    report = new_report(transactions, name=name)
    reports.save(report, user_id)
    _logger.info(
        "pipeline:report_created report_id=%s num_transactions=%d",
        report.id,
        len(transactions),
    )
    if on_update is not None:
        on_update(report)

    for event in iter_classify(
        transactions, user_id, classifier=classifier, preferences=preferences
    ):
        report = apply_chunk_progress(report, event)
        reports.save(report, user_id)
        if on_update is not None:
            on_update(report)

    _logger.info(
        "pipeline:report_completed report_id=%s total_spent=%.2f degraded_chunks=%d",
        report.id,
        report.total_spent,
        report.degraded_chunks,
    )
    return report


__all__ = ["NoTransactionsError", "ingest_statement"]
