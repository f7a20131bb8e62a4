"""Public interface for the ``spendwise`` package.

This module exposes the package's workflow functions and public models/types
as the stable import surface. There is no runtime logic here, only symbol
re-exports.
"""

from .aggregation import aggregate, enumerate_periods
from .categories import ALLOWED_CATEGORIES, DEFAULT_CATEGORY, Category, coerce_category
from .classifier import ChunkClassification, ClassificationContext, Classifier, OpenAIClassifier
from .classify import CHUNK_SIZE, ChunkProgress, classify, iter_classify
from .comparison import CategoryComparison, compare_reports
from .models import GroundingSource, Report, ReportStatus, Transaction, UserRule
from .periods import (
    DateOrder,
    PeriodMode,
    PeriodRange,
    parse_date,
    period_label,
    period_range,
    picker_label,
    sort_key,
)
from .pipeline import NoTransactionsError, ingest_statement
from .reports import apply_chunk_progress, edit_transaction_category, new_report, rename_report
from .spreadsheet import Spreadsheet, build_spreadsheet
from .summary import Summary, summarize
from .trends import TrendPoint, build_trend, trend_category_groups

__all__ = [
    # Workflow
    "aggregate",
    "apply_chunk_progress",
    "build_spreadsheet",
    "build_trend",
    "classify",
    "compare_reports",
    "edit_transaction_category",
    "enumerate_periods",
    "ingest_statement",
    "iter_classify",
    "new_report",
    "rename_report",
    "summarize",
    "trend_category_groups",
    # Period calendar
    "DateOrder",
    "PeriodMode",
    "PeriodRange",
    "parse_date",
    "period_label",
    "period_range",
    "picker_label",
    "sort_key",
    # Models / types
    "ALLOWED_CATEGORIES",
    "CHUNK_SIZE",
    "DEFAULT_CATEGORY",
    "Category",
    "CategoryComparison",
    "ChunkClassification",
    "ChunkProgress",
    "ClassificationContext",
    "Classifier",
    "GroundingSource",
    "NoTransactionsError",
    "OpenAIClassifier",
    "Report",
    "ReportStatus",
    "Spreadsheet",
    "Summary",
    "Transaction",
    "TrendPoint",
    "UserRule",
    "coerce_category",
]
