"""
Contact Profile Service - one balance per (user, contact)

Combines two independently kept ledgers:
- the personal ledger (transactions with the contact)
- group expenses, but only in groups where the user AND the contact's
  registered account are both members, and only the part of each expense
  that is between the two of them

A contact whose mobile matches no registered user is a ghost contact: the
group side is simply empty.
"""
from datetime import date, datetime

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from models import db, Group, Settlement, SettlementIntent, Transaction, User
from schemas import SettleRequest, TransactionRecord, parse
from services.group_service import get_group_expenses, get_user_group_ids
from services.ledger_service import (
    get_contact_for_user,
    get_contact_transactions,
    ledger_net_balance,
    serialize_contact,
    serialize_transaction,
)
from services.settlement_service import serialize_settlement
from utils.helpers import mobile_variants
from utils.money import ZERO, format_amount


def pairwise_expense_net(expense, user_id, contact_user_id):
    """
    What one group expense adds to the user/contact balance.

    user paid    -> + contact's share (contact owes the user)
    contact paid -> - user's share (user owes the contact)
    anyone else  -> 0, it only moves balances with the third party
    """
    if expense.paid_by == user_id:
        return expense.share_of(contact_user_id)
    if expense.paid_by == contact_user_id:
        return -expense.share_of(user_id)
    return ZERO


def pairwise_group_net(expenses, user_id, contact_user_id):
    return sum(
        (pairwise_expense_net(e, user_id, contact_user_id) for e in expenses),
        ZERO,
    )


def _feed_key(item_date, created_at):
    return (item_date, created_at or datetime.min)


def ledger_activity(transactions):
    items = []
    for txn in transactions:
        item = {
            "type": "ledger",
            "id": txn.id,
            "description": txn.note or f"{txn.transaction_type} transaction",
            "amount": format_amount(txn.amount),
            "transaction_type": txn.transaction_type,
            "category": txn.category,
            "date": txn.date.isoformat(),
            "created_at": txn.created_at.isoformat() if txn.created_at else None,
        }
        items.append((_feed_key(txn.date, txn.created_at), item))
    return items


def group_activity(group, expenses, user_id, contact_user_id):
    items = []
    for expense in expenses:
        item = {
            "type": "group",
            "id": expense.id,
            "group_id": group.id,
            "group_name": group.name,
            "description": expense.description,
            "amount": format_amount(expense.amount),
            "paid_by_you": expense.paid_by == user_id,
            "paid_by_contact": expense.paid_by == contact_user_id,
            "your_split": format_amount(expense.share_of(user_id)),
            "contact_split": format_amount(expense.share_of(contact_user_id)),
            "net_effect": format_amount(pairwise_expense_net(expense, user_id, contact_user_id)),
            "date": expense.date.isoformat(),
            "created_at": expense.created_at.isoformat() if expense.created_at else None,
        }
        items.append((_feed_key(expense.date, expense.created_at), item))
    return items


def combined_balance(transactions, shared_groups, user_id, contact_user_id):
    """
    Ledger balance, pairwise group balance and the per-group breakdown.

    Returns:
        (ledger_balance, group_balance, [(group, group_net)])
    """
    ledger_balance = ledger_net_balance(transactions)

    group_balance = ZERO
    per_group = []
    if contact_user_id is not None:
        for group, expenses in shared_groups:
            group_net = pairwise_group_net(expenses, user_id, contact_user_id)
            group_balance += group_net
            per_group.append((group, group_net))

    return ledger_balance, group_balance, per_group


def reconcile_profile(contact, transactions, shared_groups, user_id, contact_user_id,
                      feed_limit=30, ledger_limit=50):
    """
    Build the unified profile from already fetched data.

    Args:
        contact: serialized contact dict
        transactions: every TransactionRecord of the contact
        shared_groups: list of (group, [ExpenseRecord]) for shared groups only
        user_id: the current user
        contact_user_id: the contact's registered user id, or None
        feed_limit: max items in recent_activity
        ledger_limit: newest ledger transactions offered to the feed

    Returns:
        Dict with contact, balance, shared_groups, recent_activity, summary
    """
    ledger_balance, group_balance, per_group = combined_balance(
        transactions, shared_groups, user_id, contact_user_id
    )
    total = ledger_balance + group_balance

    newest_first = sorted(
        transactions,
        key=lambda t: _feed_key(t.date, t.created_at),
        reverse=True,
    )
    feed = ledger_activity(newest_first[:ledger_limit])
    if contact_user_id is not None:
        for group, expenses in shared_groups:
            feed.extend(group_activity(group, expenses, user_id, contact_user_id))

    # ledger items stay ahead of group items on identical keys
    feed.sort(key=lambda pair: pair[0], reverse=True)

    return {
        "contact": dict(
            contact,
            has_user_account=contact_user_id is not None,
            user_id=contact_user_id,
        ),
        "balance": {
            "total_net_balance": format_amount(total),
            "ledger_balance": format_amount(ledger_balance),
            "group_balance": format_amount(group_balance),
        },
        "shared_groups": [
            {"id": group.id, "name": group.name, "balance": format_amount(net)}
            for group, net in per_group
        ],
        "recent_activity": [item for _, item in feed[:feed_limit]],
        "summary": {
            "total_transactions": len(transactions),
            "shared_groups_count": len(per_group),
            "you_get": format_amount(total) if total > ZERO else "0.00",
            "you_owe": format_amount(-total) if total < ZERO else "0.00",
        },
    }


# ---------------------------------------------------------------------------
# DB-backed operations
# ---------------------------------------------------------------------------

def resolve_contact_user(contact):
    """
    Registered account behind a contact, matched on normalized mobile.

    users.mobile is written by the auth service and may or may not carry
    the country code, so every stored form of the number is tried, the
    normalized one first.

    Returns None when there is no match (ghost contact).
    """
    variants = mobile_variants(contact.mobile, current_app.config.get("DEFAULT_COUNTRY_CODE", "+91"))
    if not variants:
        return None

    by_mobile = {u.mobile: u for u in User.query.filter(User.mobile.in_(variants)).all()}
    for variant in variants:
        if variant in by_mobile:
            return by_mobile[variant]
    return None


def find_shared_group_ids(user_id, other_user_id):
    """Groups both users belong to, in the current user's group order."""
    if other_user_id is None or other_user_id == user_id:
        return []
    other_ids = set(get_user_group_ids(other_user_id))
    return [gid for gid in get_user_group_ids(user_id) if gid in other_ids]


def _load_snapshot(user_id, contact_id):
    contact = get_contact_for_user(user_id, contact_id)
    transactions = get_contact_transactions(contact.id)

    contact_user = resolve_contact_user(contact)
    contact_user_id = contact_user.id if contact_user else None

    shared_groups = []
    for group_id in find_shared_group_ids(user_id, contact_user_id):
        group = db.session.get(Group, group_id)
        shared_groups.append((group, get_group_expenses(group_id)))

    return contact, transactions, contact_user, shared_groups


def get_contact_profile(user_id, contact_id):
    """
    Unified profile for one of the user's contacts.

    Raises:
        ContactNotFoundError: If the contact isn't owned by user_id
    """
    contact, transactions, contact_user, shared_groups = _load_snapshot(user_id, contact_id)

    config = current_app.config
    return reconcile_profile(
        serialize_contact(contact),
        transactions,
        shared_groups,
        user_id,
        contact_user.id if contact_user else None,
        feed_limit=config.get("PROFILE_FEED_LIMIT", 30),
        ledger_limit=config.get("PROFILE_LEDGER_LIMIT", 50),
    )


def settle_contact_balance(user_id, contact_id, payload):
    """
    Record a settlement between the user and a contact.

    amount > 0: the contact pays the user (ledger debit)
    amount < 0: the user pays the contact (ledger credit)

    One SettlementIntent is written and everything else is derived from it:
    a ledger transaction of |amount|, and a face-value Settlement row in each
    shared group. The group rows are bookkeeping only; group balances are
    always recomputed from expenses. The amount is taken as entered and is
    not checked against the combined balance, so partial settlements work.
    All rows are committed together.

    Raises:
        ValidationError: If amount is missing or zero
        ContactNotFoundError: If the contact isn't owned by user_id
    """
    data = parse(SettleRequest, payload)
    contact, transactions, contact_user, shared_groups = _load_snapshot(user_id, contact_id)

    ledger_balance, group_balance, _ = combined_balance(
        transactions, shared_groups, user_id, contact_user.id if contact_user else None
    )
    balance_before = ledger_balance + group_balance

    amount = abs(data.amount)
    contact_pays = data.amount > ZERO
    note = data.note or f"Settlement (Total: ₹{format_amount(amount)})"

    intent = SettlementIntent(
        user_id=user_id,
        contact_id=contact.id,
        amount=data.amount,
        note=note,
    )

    try:
        db.session.add(intent)
        db.session.flush()

        txn = Transaction(
            contact_id=contact.id,
            amount=amount,
            transaction_type="debit" if contact_pays else "credit",
            note=note,
            date=date.today(),
            category="other",
            intent_id=intent.id,
        )
        db.session.add(txn)

        group_settlements = []
        if contact_user is not None:
            payer, receiver = (contact_user.id, user_id) if contact_pays else (user_id, contact_user.id)
            for group, _ in shared_groups:
                settlement = Settlement(
                    group_id=group.id,
                    from_user=payer,
                    to_user=receiver,
                    amount=amount,
                    status="paid",
                    intent_id=intent.id,
                )
                db.session.add(settlement)
                group_settlements.append(settlement)

        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Settlement for contact %s failed, nothing written", contact.id)
        raise

    remaining = balance_before - data.amount

    current_app.logger.info(
        "Contact %s settled %s (%s group records), remaining %s",
        contact.id, format_amount(data.amount), len(group_settlements), format_amount(remaining),
    )

    return {
        "intent_id": intent.id,
        "transaction": serialize_transaction(parse(TransactionRecord, txn)),
        "group_settlements": [serialize_settlement(s) for s in group_settlements],
        "balance_before": format_amount(balance_before),
        "remaining_balance": format_amount(remaining),
    }
