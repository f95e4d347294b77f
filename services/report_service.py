"""
Report Service - totals, monthly report and category breakdowns

All aggregation helpers are pure and take already validated records; the
get_* functions fetch the user's data and call them.
"""
import calendar
from datetime import date, datetime

from flask import current_app
from sqlalchemy import select

from models import db, Contact, Expense, GroupMember, Transaction
from schemas import ExpenseRecord, TransactionRecord, ValidationError, parse, parse_many
from services.activity_service import get_activity_feed
from services.group_service import calculate_balances, get_user_group_ids
from services.ledger_service import get_contact_balances
from utils.categories import EXPENSE_CATEGORIES, sanitize_category
from utils.money import ZERO, format_amount


def summarize_balances(balances):
    """
    Totals over signed relationship balances.

    Returns:
        Dict with you_get (sum of positives), you_owe (sum of |negatives|)
        and net_balance
    """
    you_get = ZERO
    you_owe = ZERO
    for balance in balances:
        if balance > ZERO:
            you_get += balance
        elif balance < ZERO:
            you_owe += -balance

    return {
        "you_get": you_get,
        "you_owe": you_owe,
        "net_balance": you_get - you_owe,
    }


def month_bounds(year, month):
    """
    First and last calendar day of a month.

    Raises:
        ValidationError: If month isn't 1-12 or year isn't 2000-2100
    """
    if not isinstance(month, int) or month < 1 or month > 12:
        raise ValidationError("Invalid month. Must be 1-12.")
    if not isinstance(year, int) or year < 2000 or year > 2100:
        raise ValidationError("Invalid year.")

    days_in_month = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, days_in_month)


def date_window(start=None, end=None):
    """
    Parse an optional inclusive window from ISO date strings.

    Blank bounds stay None (unbounded).

    Raises:
        ValidationError: If a bound isn't YYYY-MM-DD or start is after end
    """
    bounds = []
    for name, value in (("start", start), ("end", end)):
        if value in (None, ""):
            bounds.append(None)
            continue
        try:
            bounds.append(date.fromisoformat(value))
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid {name} date, expected YYYY-MM-DD")

    if bounds[0] and bounds[1] and bounds[0] > bounds[1]:
        raise ValidationError("start must not be after end")
    return bounds[0], bounds[1]


def build_monthly_report(entries, year, month, today=None):
    """
    Daily and monthly spent/received totals for one calendar month.

    Args:
        entries: (contact_name, TransactionRecord) pairs, any date range
        year, month: the month to report
        today: reference date for today_spending (defaults to date.today())

    Debits count as spent, credits as received.
    """
    start, end = month_bounds(year, month)
    today = today or date.today()

    daily = [{"day": day, "spent": ZERO, "received": ZERO} for day in range(1, end.day + 1)]
    total_spent = ZERO
    total_received = ZERO
    in_range = []

    for contact_name, txn in entries:
        if txn.date < start or txn.date > end:
            continue

        bucket = daily[txn.date.day - 1]
        if txn.transaction_type == "credit":
            bucket["received"] += txn.amount
            total_received += txn.amount
        else:
            bucket["spent"] += txn.amount
            total_spent += txn.amount

        in_range.append((contact_name, txn))

    in_range.sort(key=lambda pair: (pair[1].date, pair[1].created_at or datetime.min), reverse=True)

    today_spending = None
    if today.year == year and today.month == month:
        today_spending = format_amount(daily[today.day - 1]["spent"])

    return {
        "month": month,
        "year": year,
        "days_in_month": end.day,
        "daily_totals": [
            {
                "day": d["day"],
                "spent": format_amount(d["spent"]),
                "received": format_amount(d["received"]),
            }
            for d in daily
        ],
        "monthly_totals": {
            "spent": format_amount(total_spent),
            "received": format_amount(total_received),
            "net": format_amount(total_received - total_spent),
        },
        "today_spending": today_spending,
        "transactions": [
            {
                "id": txn.id,
                "contact_name": contact_name,
                "amount": format_amount(txn.amount),
                "type": txn.transaction_type,
                "note": txn.note,
                "date": txn.date.isoformat(),
                "category": sanitize_category(txn.category),
            }
            for contact_name, txn in in_range
        ],
    }


def _totals_by_category(records, start, end):
    totals = {}
    for record in records:
        if record.date < start or record.date > end:
            continue
        category = sanitize_category(record.category)
        bucket = totals.setdefault(category, {"total": ZERO, "count": 0})
        bucket["total"] += record.amount
        bucket["count"] += 1
    return totals


def build_category_summary(transactions, expenses, start, end):
    """
    Per-category totals of ledger transactions and group expenses.

    Missing or unknown categories count as "other". Categories with no
    activity in [start, end] are left out; the rest follow catalogue order.
    """
    txn_totals = _totals_by_category(transactions, start, end)
    exp_totals = _totals_by_category(expenses, start, end)
    empty = {"total": ZERO, "count": 0}

    summary = []
    for category in EXPENSE_CATEGORIES:
        txn = txn_totals.get(category["id"], empty)
        exp = exp_totals.get(category["id"], empty)
        combined_total = txn["total"] + exp["total"]
        combined_count = txn["count"] + exp["count"]

        if combined_total <= ZERO and combined_count == 0:
            continue

        summary.append({
            "id": category["id"],
            "label": category["label"],
            "icon": category["icon"],
            "transaction_total": format_amount(txn["total"]),
            "transaction_count": txn["count"],
            "expense_total": format_amount(exp["total"]),
            "expense_count": exp["count"],
            "combined_total": format_amount(combined_total),
            "combined_count": combined_count,
        })
    return summary


# ---------------------------------------------------------------------------
# DB-backed operations
# ---------------------------------------------------------------------------

def _user_transactions(user_id, start=None, end=None):
    query = (
        db.session.query(Contact.name, Transaction)
        .join(Transaction, Transaction.contact_id == Contact.id)
        .filter(Contact.user_id == user_id)
    )
    if start is not None:
        query = query.filter(Transaction.date >= start)
    if end is not None:
        query = query.filter(Transaction.date <= end)

    return [(name, parse(TransactionRecord, txn)) for name, txn in query.all()]


def _user_group_expenses(user_id, start, end):
    group_ids = select(GroupMember.group_id).where(GroupMember.user_id == user_id)
    rows = (
        Expense.query
        .filter(Expense.group_id.in_(group_ids))
        .filter(Expense.date >= start, Expense.date <= end)
        .all()
    )
    return parse_many(ExpenseRecord, rows)


def get_dashboard_summary(user_id, start=None, end=None):
    """
    Ledger and group totals plus the recent activity feed.

    start/end restrict the totals to transactions and expenses dated
    inside the window; the activity feed is always the most recent items.
    """
    ledger_balances = [balance for _, balance, _ in get_contact_balances(user_id, start, end)]
    group_balances = [
        calculate_balances(group_id, start, end).get(user_id)
        for group_id in get_user_group_ids(user_id)
    ]

    def formatted(totals):
        return {key: format_amount(value) for key, value in totals.items()}

    return {
        "ledger": formatted(summarize_balances(ledger_balances)),
        "groups": formatted(summarize_balances(group_balances)),
        "total": formatted(summarize_balances(ledger_balances + group_balances)),
        "activity": get_activity_feed(
            user_id, limit=current_app.config.get("DASHBOARD_FEED_LIMIT", 20)
        ),
    }


def get_monthly_report(user_id, month, year, today=None):
    """
    Raises:
        ValidationError: If month/year are out of range
    """
    start, end = month_bounds(year, month)
    entries = _user_transactions(user_id, start, end)
    return build_monthly_report(entries, year, month, today=today)


def get_category_summary(user_id, today=None):
    """Category summary for the current calendar month."""
    today = today or date.today()
    start, end = month_bounds(today.year, today.month)

    transactions = [record for _, record in _user_transactions(user_id, start, end)]
    expenses = _user_group_expenses(user_id, start, end)

    return {
        "categories": build_category_summary(transactions, expenses, start, end),
        "month": today.month,
        "year": today.year,
        "month_name": calendar.month_name[today.month],
    }


def get_categories():
    return list(EXPENSE_CATEGORIES)
