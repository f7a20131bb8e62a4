"""Stores for reports, personalization and budgets.

Each store wraps an injected :class:`~spendwise.db.Database` and opens one
transactional session per call. Database errors propagate unchanged; callers
own the user-facing save/delete feedback.

Upserts use select-then-update/insert so they behave identically on SQLite
and PostgreSQL.
"""

from __future__ import annotations

from collections.abc import Mapping

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from .categories import TOTAL_BUDGET_KEY, coerce_category
from .db.client import Database
from .db.models import SwBudget, SwCategorySetting, SwReport, SwUserRule
from .logging_setup import get_logger
from .models import Report, ReportStatus, Transaction, UserRule

_logger = get_logger("spendwise.persistence")


def _report_from_row(row: SwReport) -> Report:
    return Report(
        id=row.id,
        name=row.name,
        timestamp=row.created_at,
        transactions=tuple(Transaction.model_validate(t) for t in row.transactions or []),
        total_spent=row.total_spent,
        status=ReportStatus(row.status),
        progress=row.progress,
        degraded_chunks=row.degraded_chunks,
    )


class ReportStore:
    """Upsert/list/delete reports for one owner at a time."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def save(self, report: Report, user_id: str) -> None:
        """Insert or replace ``report`` (idempotent on ``report.id``).

        Raises ``PermissionError`` when the id belongs to another user.
        """

        payload = [tx.model_dump(mode="json") for tx in report.transactions]
        with self._db.session_scope() as session:
            row = session.get(SwReport, report.id)
            if row is None:
                session.add(
                    SwReport(
                        id=report.id,
                        user_id=user_id,
                        name=report.name,
                        created_at=report.timestamp,
                        transactions=payload,
                        total_spent=report.total_spent,
                        status=report.status.value,
                        progress=report.progress,
                        degraded_chunks=report.degraded_chunks,
                    )
                )
                return
            if row.user_id != user_id:
                raise PermissionError(f"Report {report.id} belongs to another user")
            row.name = report.name
            row.transactions = payload
            row.total_spent = report.total_spent
            row.status = report.status.value
            row.progress = report.progress
            row.degraded_chunks = report.degraded_chunks

    def list_all(self, user_id: str) -> list[Report]:
        """Return the user's reports, newest first."""

        with self._db.session_scope() as session:
            rows = session.scalars(
                select(SwReport)
                .where(SwReport.user_id == user_id)
                .order_by(SwReport.created_at.desc(), SwReport.id)
            ).all()
            return [_report_from_row(r) for r in rows]

    def get(self, report_id: str, user_id: str) -> Report | None:
        with self._db.session_scope() as session:
            row = session.get(SwReport, report_id)
            if row is None or row.user_id != user_id:
                return None
            return _report_from_row(row)

    def delete(self, report_id: str, user_id: str) -> bool:
        """Delete one report; returns False when the user owns no such report."""

        with self._db.session_scope() as session:
            result = session.execute(
                delete(SwReport).where(SwReport.id == report_id, SwReport.user_id == user_id)
            )
            deleted = (result.rowcount or 0) > 0
        if deleted:
            _logger.info("persistence:report_deleted report_id=%s", report_id)
        return deleted


class PreferenceStore:
    """Learned merchant rules and per-category discretionary settings."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def get_user_rules(self, user_id: str) -> list[UserRule]:
        with self._db.session_scope() as session:
            rows = session.scalars(
                select(SwUserRule).where(SwUserRule.user_id == user_id).order_by(SwUserRule.id)
            ).all()
            return [
                UserRule(
                    merchant_pattern=r.merchant_pattern,
                    preferred_category=r.preferred_category,
                )
                for r in rows
            ]

    def save_user_rule(self, user_id: str, rule: UserRule) -> None:
        """Upsert by ``(user_id, merchant_pattern)``."""

        if not rule.merchant_pattern:
            raise ValueError("merchant_pattern must not be blank")
        category = coerce_category(rule.preferred_category)
        with self._db.session_scope() as session:
            row = session.scalars(
                select(SwUserRule).where(
                    SwUserRule.user_id == user_id,
                    SwUserRule.merchant_pattern == rule.merchant_pattern,
                )
            ).one_or_none()
            if row is None:
                session.add(
                    SwUserRule(
                        user_id=user_id,
                        merchant_pattern=rule.merchant_pattern,
                        preferred_category=category,
                    )
                )
            else:
                row.preferred_category = category

    def get_category_settings(self, user_id: str) -> dict[str, bool]:
        with self._db.session_scope() as session:
            rows = session.scalars(
                select(SwCategorySetting).where(SwCategorySetting.user_id == user_id)
            ).all()
            return {r.category: r.is_discretionary for r in rows}

    def save_category_setting(self, user_id: str, category: str, is_discretionary: bool) -> None:
        name = coerce_category(category)
        with self._db.session_scope() as session:
            row = session.scalars(
                select(SwCategorySetting).where(
                    SwCategorySetting.user_id == user_id,
                    SwCategorySetting.category == name,
                )
            ).one_or_none()
            if row is None:
                session.add(
                    SwCategorySetting(
                        user_id=user_id, category=name, is_discretionary=is_discretionary
                    )
                )
            else:
                row.is_discretionary = is_discretionary


class BudgetStore:
    """Numeric targets keyed by ``(period_label, category)``."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def get_budget(
        self, user_id: str, period_label: str, category: str = TOTAL_BUDGET_KEY
    ) -> float:
        """Return the stored amount, or ``0.0`` when no budget is set."""

        with self._db.session_scope() as session:
            amount = session.scalar(
                select(SwBudget.amount).where(
                    SwBudget.user_id == user_id,
                    SwBudget.period_label == period_label,
                    SwBudget.category == category,
                )
            )
            return float(amount) if amount is not None else 0.0

    def save_budget(
        self,
        user_id: str,
        period_label: str,
        amount: float,
        category: str = TOTAL_BUDGET_KEY,
    ) -> None:
        with self._db.session_scope() as session:
            self._upsert(session, user_id, period_label, category, amount)

    def get_category_budgets(self, user_id: str, period_label: str) -> dict[str, float]:
        """Return per-category budgets for one period (the ``Total`` row excluded)."""

        with self._db.session_scope() as session:
            rows = session.scalars(
                select(SwBudget).where(
                    SwBudget.user_id == user_id,
                    SwBudget.period_label == period_label,
                    SwBudget.category != TOTAL_BUDGET_KEY,
                )
            ).all()
            return {r.category: float(r.amount) for r in rows}

    def save_category_budgets(
        self, user_id: str, period_label: str, budgets: Mapping[str, float]
    ) -> None:
        with self._db.session_scope() as session:
            for category, amount in budgets.items():
                self._upsert(session, user_id, period_label, category, amount)

    @staticmethod
    def _upsert(
        session: Session, user_id: str, period_label: str, category: str, amount: float
    ) -> None:
        row = session.scalars(
            select(SwBudget).where(
                SwBudget.user_id == user_id,
                SwBudget.period_label == period_label,
                SwBudget.category == category,
            )
        ).one_or_none()
        if row is None:
            session.add(
                SwBudget(
                    user_id=user_id,
                    period_label=period_label,
                    category=category,
                    amount=float(amount),
                )
            )
        else:
            row.amount = float(amount)


__all__ = ["BudgetStore", "PreferenceStore", "ReportStore"]
