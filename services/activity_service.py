from datetime import datetime

from sqlalchemy import or_

from models import db, Contact, Expense, Group, GroupMember, Settlement, Transaction, User
from schemas import ExpenseRecord, TransactionRecord, parse
from utils.money import format_amount


def _sort_key(item):
    return (item["date"], item["created_at"] or datetime.min)


def get_activity_feed(user_id, limit=20):
    # get my groups
    my_group_ids = [
        gm.group_id
        for gm in GroupMember.query.filter_by(user_id=user_id).all()
    ]

    # recent ledger entries with my contacts
    transactions = (
        db.session.query(Contact.name, Transaction)
        .join(Transaction, Transaction.contact_id == Contact.id)
        .filter(Contact.user_id == user_id)
        .order_by(Transaction.date.desc(), Transaction.id.desc())
        .limit(limit)
        .all()
    )

    # recent expenses from my groups
    expenses = []
    if my_group_ids:
        expenses = (
            Expense.query
            .filter(Expense.group_id.in_(my_group_ids))
            .order_by(Expense.date.desc(), Expense.id.desc())
            .limit(limit)
            .all()
        )

    # recent settlements where I'm involved
    settlements = (
        Settlement.query
        .filter(or_(Settlement.from_user == user_id, Settlement.to_user == user_id))
        .order_by(Settlement.id.desc())
        .limit(limit)
        .all()
    )

    feed = []

    for contact_name, row in transactions:
        txn = parse(TransactionRecord, row)
        feed.append({
            "type": "transaction",
            "contact_name": contact_name,
            "description": txn.note or f"{txn.transaction_type} transaction",
            "amount": format_amount(txn.amount),
            "transaction_type": txn.transaction_type,
            "date": txn.date,
            "created_at": txn.created_at,
        })

    group_names = {g.id: g.name for g in Group.query.filter(Group.id.in_(my_group_ids)).all()} if my_group_ids else {}

    for row in expenses:
        expense = parse(ExpenseRecord, row)
        feed.append({
            "type": "expense",
            "group_name": group_names.get(expense.group_id, "Unknown"),
            "description": expense.description or "Expense",
            "amount": format_amount(expense.amount),
            "paid_by_you": expense.paid_by == user_id,
            "date": expense.date,
            "created_at": expense.created_at,
        })

    for s in settlements:
        group = db.session.get(Group, s.group_id)
        payer = db.session.get(User, s.from_user)
        receiver = db.session.get(User, s.to_user)

        feed.append({
            "type": "settlement",
            "group_name": group.name if group else "Unknown",
            "amount": format_amount(s.amount),
            "payer_name": payer.name if payer else "Unknown",
            "receiver_name": receiver.name if receiver else "Unknown",
            "date": s.paid_at.date() if s.paid_at else datetime.min.date(),
            "created_at": s.paid_at,
        })

    feed.sort(key=_sort_key, reverse=True)

    for item in feed:
        item["date"] = item["date"].isoformat()
        item["created_at"] = item["created_at"].isoformat() if item["created_at"] else None

    return feed[:limit]
