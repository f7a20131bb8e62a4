from spendwise.models import Report, Transaction
from spendwise.periods import DateOrder
from spendwise.trends import build_trend, trend_category_groups


def _tx(tid, date, amount, category=None, discretionary=None):
    return Transaction(
        id=tid,
        date=date,
        description=tid,
        amount=amount,
        category=category,
        discretionary=discretionary,
    )


def _reports() -> list[Report]:
    return [
        Report(
            id="r1",
            name="r1",
            transactions=(
                _tx("rent", "2024-03-01", -1000, "Housing", False),
                _tx("dinner", "2024-03-05", -45.5, "Food - Dining", True),
                _tx("pay", "2024-03-28", 3000, "Income", False),
                _tx("misc", "2024-02-10", -10.25),
            ),
        ),
        Report(
            id="r2",
            name="r2",
            transactions=(
                _tx("dinner2", "2024-03-20", -4.5, "Food - Dining", True),
                _tx("bad", "??", -99, "Shopping", True),
            ),
        ),
    ]


def test_trend_groups_outflows_by_calendar_month_oldest_first():
    points = build_trend(_reports())
    assert [p.period for p in points] == ["February 2024", "March 2024"]

    feb, mar = points
    # Unset category and flag count as Other / discretionary.
    assert feb.by_category == {"Other": 10.25}
    assert feb.total_discretionary == 10.25
    assert feb.total_non_discretionary == 0.0

    assert mar.by_category == {"Housing": 1000.0, "Food - Dining": 50.0}
    assert mar.total_discretionary == 50.0
    assert mar.total_non_discretionary == 1000.0
    assert mar.amount_for("Travel") == 0.0


def test_trend_ignores_inflows_and_bad_dates():
    points = build_trend(_reports())
    assert all("Income" not in p.by_category for p in points)
    assert all("Shopping" not in p.by_category for p in points)


def test_category_groups_follow_first_seen_flag_and_skip_undated():
    disc, essential = trend_category_groups(_reports())
    assert disc == ["Food - Dining", "Other"]
    assert essential == ["Housing"]


def test_category_groups_honor_date_order():
    tx = _tx("t", "13/05/2024", -5, "Travel", True)
    reports = [Report(id="r", name="r", transactions=(tx,))]
    assert trend_category_groups(reports, date_order=DateOrder.DMY) == (["Travel"], [])
    assert trend_category_groups(reports, date_order=DateOrder.MDY) == ([], [])
    assert build_trend(reports, date_order=DateOrder.MDY) == []


def test_empty_reports():
    assert build_trend([]) == []
    assert trend_category_groups([]) == ([], [])
