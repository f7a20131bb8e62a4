"""CLI for the ``spendwise`` package.

A Typer console interface over the report workflow. Environment variables
(``OPENAI_API_KEY``, ``DATABASE_URL``, ``SPENDWISE_USER`` and friends) are
loaded from a local ``.env`` using ``python-dotenv`` before any command runs.
Business logic lives in the library modules; commands only compose stores,
call them and render with ``rich``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, NoReturn

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.progress import BarColumn, Progress, TextColumn
from rich.table import Table
from typer.models import ArgumentInfo, OptionInfo

from .aggregation import aggregate, enumerate_periods
from .categories import ALLOWED_CATEGORIES, TOTAL_BUDGET_KEY
from .comparison import compare_reports
from .db.client import Database
from .logging_setup import configure_logging
from .models import Report, UserRule
from .periods import PeriodMode, mode_for_label, parse_label
from .persistence import BudgetStore, PreferenceStore, ReportStore
from .reports import edit_transaction_category, rename_report
from .spreadsheet import build_spreadsheet
from .summary import BudgetLevel, summarize
from .trends import build_trend

_DEFAULT_USER = "local"


@dataclass(slots=True)
class _CliState:
    database_url: str | None
    user: str


def _fail(message: str) -> NoReturn:
    typer.echo(f"Error: {message}", err=True)
    raise typer.Exit(1)


def _state(ctx: typer.Context) -> _CliState:
    state = ctx.find_root().obj
    if not isinstance(state, _CliState):  # pragma: no cover - callback always sets it
        _fail("CLI state not initialized")
    return state


def _database(ctx: typer.Context) -> Database:
    try:
        db = Database(_state(ctx).database_url)
        db.create_all()
    except RuntimeError as e:
        _fail(str(e))
    return db


def _load_report(store: ReportStore, report_id: str, user: str) -> Report:
    report = store.get(report_id, user)
    if report is None:
        _fail(f"Report not found: {report_id}")
    return report


def _money(value: float) -> str:
    return f"{value:,.2f}"


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Categorize CSV bank statements with OpenAI (Responses API) and browse "
        "spending by calendar or mid-month period. Loads .env before running."
    ),
)

# Module-level option objects to satisfy ruff B008 (no calls in parameter
# defaults).
CSV_PATH_ARGUMENT: ArgumentInfo = typer.Argument(
    ...,
    help="Path to a CSV statement with Date, Description and Amount columns",
    dir_okay=False,
    file_okay=True,
    exists=False,  # the handler reports missing files itself
)
MODE_OPTION: OptionInfo = typer.Option(
    PeriodMode.CALENDAR.value,
    "--mode",
    help="Period system: 'calendar' or 'mid-month' (15th to 14th).",
)


@app.command("ingest")
def ingest_cmd(
    ctx: typer.Context,
    csv_path: Annotated[Path, CSV_PATH_ARGUMENT],
    *,
    name: str | None = typer.Option(None, help="Report name (default: 'Report <Mon YYYY>')."),
    model: str | None = typer.Option(
        None, help="OpenAI model (falls back to SPENDWISE_OPENAI_MODEL)."
    ),
) -> None:
    """Parse a statement, classify it chunk by chunk and save it as a report."""

    # Deferred imports keep CLI startup fast for read-only commands.
    from .classifier import OpenAIClassifier
    from .classify import summarize_categories
    from .ingest.csv_rows import CsvFormatError
    from .pipeline import NoTransactionsError, ingest_statement

    state = _state(ctx)
    if not os.getenv("OPENAI_API_KEY"):
        _fail("OPENAI_API_KEY is not set in the environment.")

    try:
        text = csv_path.read_text(encoding="utf-8-sig")
    except FileNotFoundError:
        _fail(f"File not found: {csv_path}")
    except OSError as e:
        _fail(f"Failed to read '{csv_path}': {e}")

    db = _database(ctx)
    console = Console()
    with Progress(
        TextColumn("[cyan]Classifying[/cyan]"),
        BarColumn(),
        TextColumn("{task.percentage:>3.0f}%"),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("classify", total=100)

        def _on_update(report: Report) -> None:
            progress.update(task, completed=report.progress)

        try:
            report = ingest_statement(
                text,
                state.user,
                reports=ReportStore(db),
                classifier=OpenAIClassifier(model=model),
                preferences=PreferenceStore(db),
                name=name,
                on_update=_on_update,
            )
        except (CsvFormatError, NoTransactionsError) as e:
            _fail(str(e))

    console.print(f"[green]Saved[/green] {report.name} ({report.id})")
    console.print(
        f"{len(report.transactions)} transactions, total spent {_money(report.total_spent)}"
    )
    for category, count in sorted(summarize_categories(report.transactions).items()):
        console.print(f"  {category}: {count}")
    if report.degraded:
        console.print(
            f"[yellow]Warning:[/yellow] {report.degraded_chunks} chunk(s) could not be "
            "classified and were filed under 'Other'."
        )


@app.command("reports")
def reports_cmd(ctx: typer.Context) -> None:
    """List saved reports, newest first."""

    state = _state(ctx)
    reports = ReportStore(_database(ctx)).list_all(state.user)
    console = Console()
    if not reports:
        console.print("[yellow]No reports saved yet.[/yellow]")
        return
    table = Table(title="Reports")
    table.add_column("ID", no_wrap=True)
    table.add_column("Name")
    table.add_column("Created")
    table.add_column("Status")
    table.add_column("Total spent", justify="right")
    for r in reports:
        status = f"{r.status.value} ({r.progress}%)"
        if r.degraded:
            status += " degraded"
        table.add_row(
            r.id, r.name, r.timestamp.strftime("%Y-%m-%d %H:%M"), status, _money(r.total_spent)
        )
    console.print(table)


@app.command("periods")
def periods_cmd(ctx: typer.Context) -> None:
    """List every calendar and mid-month period found across reports."""

    state = _state(ctx)
    labels = enumerate_periods(ReportStore(_database(ctx)).list_all(state.user))
    if not labels:
        typer.echo("No dated transactions found.")
        return
    for label in labels:
        typer.echo(label)


@app.command("period-view")
def period_view_cmd(
    ctx: typer.Context,
    label: str = typer.Argument(..., help="Period label, e.g. 'March 2024 (Mid-Month)'."),
) -> None:
    """Summarize spending for one period across all reports."""

    state = _state(ctx)
    try:
        parse_label(label)
    except ValueError as e:
        _fail(str(e))
    db = _database(ctx)
    txs = aggregate(ReportStore(db).list_all(state.user), label, mode_for_label(label))
    budget = BudgetStore(db).get_budget(state.user, label)
    summary = summarize(txs, budget=budget)

    console = Console()
    console.print(f"[bold]{label}[/bold]: {len(txs)} transactions")
    console.print(f"Total spent:  {_money(summary.total_spent)}")
    console.print(f"Total income: {_money(summary.total_income)}")
    if summary.categories:
        table = Table(title="Spending by category")
        table.add_column("Category")
        table.add_column("Amount", justify="right")
        table.add_column("Count", justify="right")
        for stat in summary.categories:
            table.add_row(stat.name, _money(stat.value), str(stat.count))
        console.print(table)
    if summary.budget is not None:
        colour = {
            BudgetLevel.OK: "green",
            BudgetLevel.WARNING: "yellow",
            BudgetLevel.OVER: "red",
        }[summary.budget.level]
        console.print(
            f"Budget {_money(summary.budget.budget)}: [{colour}]"
            f"{summary.budget.percent_used:.0f}% used[/{colour}], "
            f"{_money(summary.budget.remaining)} left"
        )


@app.command("trend")
def trend_cmd(ctx: typer.Context) -> None:
    """Show month-over-month outflow totals."""

    state = _state(ctx)
    points = build_trend(ReportStore(_database(ctx)).list_all(state.user))
    console = Console()
    if not points:
        console.print("[yellow]No spending found.[/yellow]")
        return
    table = Table(title="Spending trend")
    table.add_column("Period")
    table.add_column("Discretionary", justify="right")
    table.add_column("Essential", justify="right")
    for p in points:
        table.add_row(p.period, _money(p.total_discretionary), _money(p.total_non_discretionary))
    console.print(table)


@app.command("spreadsheet")
def spreadsheet_cmd(
    ctx: typer.Context,
    mode: str = MODE_OPTION,
) -> None:
    """Render the period x category performance table."""

    state = _state(ctx)
    try:
        period_mode = PeriodMode(mode)
    except ValueError:
        _fail(f"Unknown mode {mode!r}; use 'calendar' or 'mid-month'.")
    sheet = build_spreadsheet(ReportStore(_database(ctx)).list_all(state.user), period_mode)

    console = Console()
    if not sheet.periods:
        console.print("[yellow]No dated transactions found.[/yellow]")
        return
    table = Table(title="Monthly performance")
    table.add_column("Category")
    for period in sheet.periods:
        table.add_column(period, justify="right")
    for cat in sheet.income_categories:
        table.add_row(cat, *(_money(sheet.value(p, cat)) for p in sheet.periods))
    table.add_row("Income total", *(_money(sheet.income_total(p)) for p in sheet.periods))
    for cat in sheet.expense_categories:
        table.add_row(cat, *(_money(sheet.value(p, cat)) for p in sheet.periods))
    table.add_row("Expense total", *(_money(sheet.expense_total(p)) for p in sheet.periods))
    table.add_row("Net", *(_money(sheet.net(p)) for p in sheet.periods))
    console.print(table)


@app.command("compare")
def compare_cmd(
    ctx: typer.Context,
    report_a: str = typer.Argument(..., help="Baseline report id."),
    report_b: str = typer.Argument(..., help="Report id to compare against the baseline."),
) -> None:
    """Compare category totals between two reports."""

    state = _state(ctx)
    store = ReportStore(_database(ctx))
    a = _load_report(store, report_a, state.user)
    b = _load_report(store, report_b, state.user)

    table = Table(title=f"{a.name} vs {b.name}")
    table.add_column("Category")
    table.add_column(a.name, justify="right")
    table.add_column(b.name, justify="right")
    table.add_column("Diff", justify="right")
    table.add_column("%", justify="right")
    for row in compare_reports(a, b):
        table.add_row(
            row.category,
            _money(row.value_a),
            _money(row.value_b),
            _money(row.diff),
            f"{row.percent_diff:+.2f}",
        )
    Console().print(table)


@app.command("rename")
def rename_cmd(
    ctx: typer.Context,
    report_id: str = typer.Argument(...),
    name: str = typer.Argument(...),
) -> None:
    """Rename a saved report."""

    state = _state(ctx)
    store = ReportStore(_database(ctx))
    report = _load_report(store, report_id, state.user)
    try:
        report = rename_report(report, name)
    except ValueError as e:
        _fail(str(e))
    store.save(report, state.user)
    typer.echo(f"Renamed {report.id} to {report.name}")


@app.command("edit-category")
def edit_category_cmd(
    ctx: typer.Context,
    report_id: str = typer.Argument(...),
    tx_id: str = typer.Argument(...),
    *,
    category: str | None = typer.Option(
        None, help="New category; prompts interactively when omitted."
    ),
    learn: bool = typer.Option(
        False, help="Also save a merchant rule so future statements prefer this category."
    ),
) -> None:
    """Change one transaction's category."""

    state = _state(ctx)
    db = _database(ctx)
    store = ReportStore(db)
    report = _load_report(store, report_id, state.user)
    tx = next((t for t in report.transactions if t.id == tx_id), None)
    if tx is None:
        _fail(f"Transaction not found: {tx_id}")

    if category is None:
        from .term_ui import select_category

        category = select_category(list(ALLOWED_CATEGORIES), default=tx.effective_category)

    try:
        report = edit_transaction_category(report, tx_id, category)
    except ValueError as e:
        _fail(str(e))
    store.save(report, state.user)
    updated = next(t for t in report.transactions if t.id == tx_id)
    if learn:
        PreferenceStore(db).save_user_rule(
            state.user,
            UserRule(
                merchant_pattern=tx.description,
                preferred_category=updated.effective_category,
            ),
        )
    typer.echo(f"{tx_id}\t{updated.effective_category}")


@app.command("delete")
def delete_cmd(
    ctx: typer.Context,
    report_id: str = typer.Argument(...),
) -> None:
    """Delete a saved report."""

    state = _state(ctx)
    if not ReportStore(_database(ctx)).delete(report_id, state.user):
        _fail(f"Report not found: {report_id}")
    typer.echo(f"Deleted {report_id}")


@app.command("budget-set")
def budget_set_cmd(
    ctx: typer.Context,
    label: str = typer.Argument(..., help="Period label the budget applies to."),
    amount: float = typer.Argument(..., help="Target amount (>= 0)."),
    *,
    category: str = typer.Option(TOTAL_BUDGET_KEY, help="Category, or 'Total' for the period."),
) -> None:
    """Set a spending target for a period."""

    state = _state(ctx)
    if amount < 0:
        _fail("Budget amount must not be negative.")
    try:
        parse_label(label)
    except ValueError as e:
        _fail(str(e))
    BudgetStore(_database(ctx)).save_budget(state.user, label, amount, category)
    typer.echo(f"Budget for {label} [{category}] set to {_money(amount)}")


@app.command("rule-add")
def rule_add_cmd(
    ctx: typer.Context,
    pattern: str = typer.Argument(..., help="Merchant description pattern."),
    category: str = typer.Argument(..., help="Preferred category."),
) -> None:
    """Teach the classifier a preferred category for a merchant."""

    state = _state(ctx)
    try:
        rule = UserRule(merchant_pattern=pattern, preferred_category=category)
        PreferenceStore(_database(ctx)).save_user_rule(state.user, rule)
    except ValueError as e:
        _fail(str(e))
    typer.echo(f'Rule saved: "{rule.merchant_pattern}" => {rule.preferred_category}')


@app.command("category-setting")
def category_setting_cmd(
    ctx: typer.Context,
    category: str = typer.Argument(...),
    *,
    discretionary: bool = typer.Option(
        True, "--discretionary/--essential", help="Whether spending in this category is optional."
    ),
) -> None:
    """Record whether a category counts as discretionary."""

    state = _state(ctx)
    PreferenceStore(_database(ctx)).save_category_setting(state.user, category, discretionary)
    kind = "discretionary" if discretionary else "essential"
    typer.echo(f"{category}: {kind}")


@app.callback(invoke_without_command=True)
def _root(
    ctx: typer.Context,
    *,
    database_url: str | None = typer.Option(
        None, help="Override DATABASE_URL (falls back to env var)."
    ),
    user: str | None = typer.Option(
        None, help="User identity owning reports (falls back to SPENDWISE_USER)."
    ),
) -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and configures logging.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging()

    ctx.obj = _CliState(
        database_url=database_url,
        user=user or os.getenv("SPENDWISE_USER") or _DEFAULT_USER,
    )

    if ctx.invoked_subcommand is None:
        typer.echo("No subcommand provided. Use --help to see available commands.")
        raise typer.Exit(1)


if __name__ == "__main__":  # pragma: no cover
    # Running as a module: `python -m spendwise.cli`
    app()
