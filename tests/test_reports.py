from datetime import date
from decimal import Decimal

import pytest

from schemas import ExpenseRecord, TransactionRecord, ValidationError
from services.report_service import (
    build_category_summary,
    build_monthly_report,
    date_window,
    get_category_summary,
    get_dashboard_summary,
    get_monthly_report,
    month_bounds,
    summarize_balances,
)


def txn(amount, kind, on, txn_id=None, category=None):
    return TransactionRecord(
        id=txn_id,
        amount=Decimal(amount),
        transaction_type=kind,
        date=on,
        category=category,
    )


def test_summarize_balances():
    totals = summarize_balances([Decimal("300"), Decimal("-80"), Decimal("0")])
    assert totals == {
        "you_get": Decimal("300"),
        "you_owe": Decimal("80"),
        "net_balance": Decimal("220"),
    }


def test_month_bounds_leap_year():
    assert month_bounds(2024, 2) == (date(2024, 2, 1), date(2024, 2, 29))


@pytest.mark.parametrize("year, month", [(2024, 0), (2024, 13), (1999, 5), (2101, 1)])
def test_month_bounds_rejects_out_of_range(year, month):
    with pytest.raises(ValidationError):
        month_bounds(year, month)


def test_monthly_report_totals():
    entries = [
        ("Ravi", txn("500", "credit", date(2024, 2, 10), 1)),
        ("Meena", txn("200", "debit", date(2024, 2, 10), 2)),
        ("Meena", txn("30", "debit", date(2024, 2, 3), 3)),
        ("Ravi", txn("50", "debit", date(2024, 3, 1), 4)),
    ]

    report = build_monthly_report(entries, 2024, 2, today=date(2024, 2, 10))

    assert report["days_in_month"] == 29
    assert len(report["daily_totals"]) == 29
    assert report["daily_totals"][9] == {"day": 10, "spent": "200.00", "received": "500.00"}
    assert report["monthly_totals"] == {"spent": "230.00", "received": "500.00", "net": "270.00"}
    assert report["today_spending"] == "200.00"
    assert [t["id"] for t in report["transactions"]][-1] == 3
    assert {t["id"] for t in report["transactions"]} == {1, 2, 3}
    assert all(t["category"] == "other" for t in report["transactions"])


def test_today_spending_only_for_current_month():
    report = build_monthly_report([], 2024, 1, today=date(2024, 2, 10))
    assert report["today_spending"] is None
    assert report["monthly_totals"]["net"] == "0.00"


def test_category_summary_merges_sources():
    start, end = date(2024, 6, 1), date(2024, 6, 30)
    transactions = [
        txn("100", "debit", date(2024, 6, 2), category="food"),
        txn("40", "credit", date(2024, 6, 3), category=None),
        txn("999", "debit", date(2024, 5, 31), category="rent"),
    ]
    expenses = [
        ExpenseRecord(
            amount=Decimal("60"),
            paid_by=1,
            split_between=[{"user_id": 1, "amount": "60"}],
            date=date(2024, 6, 4),
            category="food",
        ),
    ]

    summary = build_category_summary(transactions, expenses, start, end)

    assert [c["id"] for c in summary] == ["food", "other"]
    food = summary[0]
    assert food["transaction_total"] == "100.00"
    assert food["expense_total"] == "60.00"
    assert food["combined_total"] == "160.00"
    assert food["combined_count"] == 2
    assert summary[1]["transaction_count"] == 1


@pytest.fixture
def owner(seed):
    return seed.user("Asha", "+919000000001")


def test_monthly_report_from_database(seed, owner):
    stranger = seed.user("Kiran", "+919000000002")
    ravi = seed.contact(owner, "Ravi")
    theirs = seed.contact(stranger, "Someone")
    seed.txn(ravi, 120, "debit", on=date(2024, 7, 5), category="travel")
    seed.txn(theirs, 999, "debit", on=date(2024, 7, 5))

    report = get_monthly_report(owner.id, 7, 2024, today=date(2024, 7, 5))

    assert report["monthly_totals"]["spent"] == "120.00"
    assert report["today_spending"] == "120.00"
    assert report["transactions"][0]["contact_name"] == "Ravi"
    assert report["transactions"][0]["category"] == "travel"


def test_category_summary_from_database(seed, owner):
    friend = seed.user("Ravi", "+919000000002")
    contact = seed.contact(owner, "Ravi")
    seed.txn(contact, 80, "debit", on=date(2024, 6, 2), category="food")
    group = seed.group("Flat", owner, [friend])
    seed.expense(group, 900, friend, [(owner, 450), (friend, 450)], on=date(2024, 6, 1), category="rent")

    result = get_category_summary(owner.id, today=date(2024, 6, 20))

    assert result["month_name"] == "June"
    assert {c["id"]: c["combined_total"] for c in result["categories"]} == {
        "food": "80.00",
        "rent": "900.00",
    }


def test_dashboard_summary_includes_groups(seed, owner):
    friend = seed.user("Ravi", "+919000000002")
    ravi = seed.contact(owner, "Ravi")
    meena = seed.contact(owner, "Meena")
    seed.txn(ravi, 300, "credit")
    seed.txn(meena, 20, "debit")
    group = seed.group("Trip", owner, [friend])
    seed.expense(group, 100, owner, [(owner, 50), (friend, 50)])

    summary = get_dashboard_summary(owner.id)

    assert summary["ledger"] == {"you_get": "300.00", "you_owe": "20.00", "net_balance": "280.00"}
    assert summary["groups"] == {"you_get": "50.00", "you_owe": "0.00", "net_balance": "50.00"}
    assert summary["total"]["net_balance"] == "330.00"
    assert sorted(item["type"] for item in summary["activity"]) == ["expense", "transaction", "transaction"]


def test_dashboard_totals_within_a_date_window(seed, owner):
    friend = seed.user("Ravi", "+919000000002")
    ravi = seed.contact(owner, "Ravi")
    seed.txn(ravi, 100, "credit", on=date(2024, 6, 1))
    seed.txn(ravi, 30, "debit", on=date(2024, 7, 5))
    group = seed.group("Trip", owner, [friend])
    seed.expense(group, 100, owner, [(owner, 50), (friend, 50)], on=date(2024, 6, 2))
    seed.expense(group, 40, friend, [(owner, 20), (friend, 20)], on=date(2024, 7, 3))

    july = get_dashboard_summary(owner.id, date(2024, 7, 1), date(2024, 7, 31))

    assert july["ledger"] == {"you_get": "0.00", "you_owe": "30.00", "net_balance": "-30.00"}
    assert july["groups"] == {"you_get": "0.00", "you_owe": "20.00", "net_balance": "-20.00"}
    assert july["total"]["net_balance"] == "-50.00"

    everything = get_dashboard_summary(owner.id)
    assert everything["total"]["net_balance"] == "100.00"


def test_date_window_parsing():
    assert date_window(None, "") == (None, None)
    assert date_window("2024-07-01", "2024-07-31") == (date(2024, 7, 1), date(2024, 7, 31))

    with pytest.raises(ValidationError):
        date_window("01/07/2024", None)
    with pytest.raises(ValidationError):
        date_window("2024-08-01", "2024-07-01")
