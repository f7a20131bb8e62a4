from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pytest
from typer.testing import CliRunner

import spendwise.classifier as classifier_mod
from spendwise.cli import app
from spendwise.db import Database
from spendwise.models import Report, ReportStatus, Transaction
from spendwise.persistence import BudgetStore, PreferenceStore, ReportStore
from tests.helpers.db import sqlite_url
from tests.helpers.openai_stub import OpenAIStub

runner = CliRunner()


def _invoke(db_file: Path, *args: str, user: str = "alice"):
    return runner.invoke(
        app, ["--database-url", sqlite_url(db_file), "--user", user, *args]
    )


@pytest.fixture()
def db_file(tmp_path: Path, db: Database) -> Path:
    return tmp_path / "db" / "spendwise.db"


def _seed(db: Database) -> tuple[Report, Report]:
    store = ReportStore(db)
    feb = Report(
        id="report-feb",
        name="February",
        timestamp=datetime(2024, 3, 1, tzinfo=UTC),
        transactions=(
            Transaction(
                id="f1", date="2024-02-03", description="Cafe", amount=-20, category="Food - Dining"
            ),
            Transaction(
                id="f2", date="2024-02-20", description="Rent", amount=-1000, category="Housing"
            ),
        ),
        total_spent=1020.0,
        status=ReportStatus.COMPLETED,
        progress=100,
    )
    mar = Report(
        id="report-mar",
        name="March",
        timestamp=datetime(2024, 4, 1, tzinfo=UTC),
        transactions=(
            Transaction(
                id="m1", date="2024-03-05", description="Cafe", amount=-50, category="Food - Dining"
            ),
            Transaction(
                id="m2", date="2024-03-28", description="Salary", amount=3000, category="Income"
            ),
        ),
        total_spent=50.0,
        status=ReportStatus.COMPLETED,
        progress=100,
    )
    store.save(feb, "alice")
    store.save(mar, "alice")
    return feb, mar


def test_no_subcommand_shows_help():
    result = runner.invoke(app, [])
    assert "Usage" in result.output


def test_reports_lists_newest_first(db: Database, db_file: Path):
    _seed(db)
    result = _invoke(db_file, "reports")
    assert result.exit_code == 0, result.output
    assert result.output.index("report-mar") < result.output.index("report-feb")

    other = _invoke(db_file, "reports", user="bob")
    assert other.exit_code == 0
    assert "No reports saved yet" in other.output


def test_periods_and_period_view(db: Database, db_file: Path):
    _seed(db)
    BudgetStore(db).save_budget("alice", "March 2024", 100)

    periods = _invoke(db_file, "periods")
    assert periods.exit_code == 0, periods.output
    lines = periods.output.splitlines()
    assert lines[0] == "April 2024 (Mid-Month)"
    assert lines[1:3] == ["March 2024 (Mid-Month)", "March 2024"]

    view = _invoke(db_file, "period-view", "March 2024")
    assert view.exit_code == 0, view.output
    assert "2 transactions" in view.output
    assert "Food - Dining" in view.output
    assert "50% used" in view.output


def test_period_view_rejects_malformed_label(db_file: Path):
    result = _invoke(db_file, "period-view", "Marchember 2024")
    assert result.exit_code == 1
    assert "Error:" in result.output


def test_trend_spreadsheet_and_compare(db: Database, db_file: Path):
    _seed(db)

    trend = _invoke(db_file, "trend")
    assert trend.exit_code == 0, trend.output
    assert trend.output.index("February 2024") < trend.output.index("March 2024")

    sheet = _invoke(db_file, "spreadsheet", "--mode", "calendar")
    assert sheet.exit_code == 0, sheet.output
    assert "Income total" in sheet.output
    assert "Housing" in sheet.output

    bad = _invoke(db_file, "spreadsheet", "--mode", "weekly")
    assert bad.exit_code == 1

    compare = _invoke(db_file, "compare", "report-feb", "report-mar")
    assert compare.exit_code == 0, compare.output
    assert "Housing" in compare.output

    missing = _invoke(db_file, "compare", "report-feb", "report-nope")
    assert missing.exit_code == 1
    assert "Report not found" in missing.output


def test_rename_edit_and_delete(db: Database, db_file: Path):
    _seed(db)
    store = ReportStore(db)

    assert _invoke(db_file, "rename", "report-feb", "Feb card").exit_code == 0
    assert store.get("report-feb", "alice").name == "Feb card"

    edit = _invoke(db_file, "edit-category", "report-feb", "f1", "--category", "travel", "--learn")
    assert edit.exit_code == 0, edit.output
    assert "f1\tTravel" in edit.output
    assert store.get("report-feb", "alice").transactions[0].category == "Travel"
    (rule,) = PreferenceStore(db).get_user_rules("alice")
    assert (rule.merchant_pattern, rule.preferred_category) == ("Cafe", "Travel")

    bad_tx = _invoke(db_file, "edit-category", "report-feb", "zz", "--category", "Travel")
    assert bad_tx.exit_code == 1

    assert _invoke(db_file, "delete", "report-feb").exit_code == 0
    assert store.get("report-feb", "alice") is None
    again = _invoke(db_file, "delete", "report-feb")
    assert again.exit_code == 1
    assert "Error:" in again.output


def test_budget_rule_and_category_setting(db: Database, db_file: Path):
    result = _invoke(db_file, "budget-set", "March 2024 (Mid-Month)", "750")
    assert result.exit_code == 0, result.output
    assert BudgetStore(db).get_budget("alice", "March 2024 (Mid-Month)") == 750.0

    assert _invoke(db_file, "budget-set", "--", "March 2024", "-5").exit_code == 1

    rule = _invoke(db_file, "rule-add", "NETFLIX", "subscriptions")
    assert rule.exit_code == 0, rule.output
    assert PreferenceStore(db).get_user_rules("alice")[0].preferred_category == "Subscriptions"

    setting = _invoke(db_file, "category-setting", "Travel", "--essential")
    assert setting.exit_code == 0, setting.output
    assert PreferenceStore(db).get_category_settings("alice") == {"Travel": False}


def test_ingest_requires_api_key(tmp_path: Path, db_file: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    csv_path = tmp_path / "statement.csv"
    csv_path.write_text("Date,Description,Amount\n2024-01-01,Cafe,-3\n", encoding="utf-8")
    result = _invoke(db_file, "ingest", str(csv_path))
    assert result.exit_code == 1
    assert "OPENAI_API_KEY" in result.output


def test_ingest_classifies_and_saves(
    tmp_path: Path, db: Database, db_file: Path, monkeypatch: pytest.MonkeyPatch
):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")

    def decide(item: dict[str, Any]) -> tuple[str, bool]:
        if item["amount"] > 0:
            return "Income", False
        return "Food - Dining", True

    stub = OpenAIStub(decide)
    monkeypatch.setattr(classifier_mod, "OpenAI", lambda *a, **kw: stub)

    csv_path = tmp_path / "statement.csv"
    csv_path.write_text(
        "Date,Description,Amount\n2024-01-05,Cafe,-3.50\n2024-01-31,Payroll,2000\n",
        encoding="utf-8",
    )
    result = _invoke(db_file, "ingest", str(csv_path), "--name", "January")
    assert result.exit_code == 0, result.output
    assert "Saved" in result.output

    (report,) = ReportStore(db).list_all("alice")
    assert report.name == "January"
    assert report.status is ReportStatus.COMPLETED
    assert [t.category for t in report.transactions] == ["Food - Dining", "Income"]
    assert len(stub.calls) == 1


def test_ingest_reports_missing_file(tmp_path: Path, db_file: Path, monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    result = _invoke(db_file, "ingest", str(tmp_path / "nope.csv"))
    assert result.exit_code == 1
    assert "File not found" in result.output
