"""
Ledger Service - personal 1:1 credit/debit balances

credit -> user gave money, contact owes the user more
debit  -> user received money, contact owes the user less

Balances are never stored, they are folded from the transactions every time.
"""
from datetime import datetime

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from models import db, Contact, Transaction
from schemas import TransactionRecord, TransactionCreate, parse, parse_many
from utils.money import ZERO, format_amount


class ContactNotFoundError(Exception):
    """Raised when a contact doesn't exist or belongs to another user"""
    pass


def _chronological_key(txn):
    return (txn.date, txn.created_at or datetime.min, txn.id or 0)


def ledger_net_balance(transactions):
    """Σ credit − Σ debit, at full precision."""
    return sum((txn.signed_amount for txn in transactions), ZERO)


def running_balances(transactions):
    """
    Attach a running balance to every transaction.

    The fold runs oldest to newest; the result is returned newest first
    (the order the ledger screen shows) as (transaction, balance) pairs.
    """
    ordered = sorted(transactions, key=_chronological_key)

    balance = ZERO
    annotated = []
    for txn in ordered:
        balance += txn.signed_amount
        annotated.append((txn, balance))

    annotated.reverse()
    return annotated


def serialize_transaction(txn, running_balance=None):
    data = {
        "id": txn.id,
        "contact_id": txn.contact_id,
        "amount": format_amount(txn.amount),
        "transaction_type": txn.transaction_type,
        "note": txn.note,
        "date": txn.date.isoformat(),
        "category": txn.category,
        "created_at": txn.created_at.isoformat() if txn.created_at else None,
    }
    if running_balance is not None:
        data["running_balance"] = format_amount(running_balance)
    return data


def serialize_contact(contact):
    return {
        "id": contact.id,
        "name": contact.name,
        "type": contact.type,
        "mobile": contact.mobile,
    }


# ---------------------------------------------------------------------------
# DB-backed operations
# ---------------------------------------------------------------------------

def get_contact_for_user(user_id, contact_id):
    contact = Contact.query.filter_by(id=contact_id, user_id=user_id).first()
    if not contact:
        raise ContactNotFoundError(f"Contact {contact_id} not found")
    return contact


def get_contact_transactions(contact_id):
    rows = (
        Transaction.query
        .filter_by(contact_id=contact_id)
        .order_by(Transaction.date.desc(), Transaction.created_at.desc())
        .all()
    )
    return parse_many(TransactionRecord, rows)


def get_contact_detail(user_id, contact_id):
    """
    Contact with its transactions (newest first, running balance attached).

    Raises:
        ContactNotFoundError: If the contact isn't owned by user_id
    """
    contact = get_contact_for_user(user_id, contact_id)
    transactions = get_contact_transactions(contact.id)

    annotated = running_balances(transactions)
    current = annotated[0][1] if annotated else ZERO

    return {
        "contact": serialize_contact(contact),
        "transactions": [serialize_transaction(t, b) for t, b in annotated],
        "current_balance": format_amount(current),
    }


def get_contact_balances(user_id, start=None, end=None):
    """
    Net ledger balance per contact as (Contact, Decimal, count) tuples,
    newest contact first.

    start/end limit the transactions folded to an inclusive date window.
    """
    contacts = (
        Contact.query
        .filter_by(user_id=user_id)
        .order_by(Contact.created_at.desc(), Contact.id.desc())
        .all()
    )
    if not contacts:
        return []

    by_contact = {c.id: [] for c in contacts}
    query = Transaction.query.filter(Transaction.contact_id.in_(list(by_contact)))
    if start is not None:
        query = query.filter(Transaction.date >= start)
    if end is not None:
        query = query.filter(Transaction.date <= end)

    for txn in parse_many(TransactionRecord, query.all()):
        by_contact[txn.contact_id].append(txn)

    return [
        (contact, ledger_net_balance(by_contact[contact.id]), len(by_contact[contact.id]))
        for contact in contacts
    ]


def get_contacts_with_balances(user_id):
    result = []
    for contact, balance, count in get_contact_balances(user_id):
        data = serialize_contact(contact)
        data["balance"] = format_amount(balance)
        data["transaction_count"] = count
        result.append(data)
    return result


def get_ledger_summary(user_id, start=None, end=None):
    from services.report_service import summarize_balances

    balances = [balance for _, balance, _ in get_contact_balances(user_id, start, end)]
    totals = summarize_balances(balances)
    return {key: format_amount(value) for key, value in totals.items()}


def add_transaction(user_id, payload):
    """
    Record a ledger entry for one of the user's contacts.

    Raises:
        ValidationError: If the payload is malformed
        ContactNotFoundError: If the contact isn't owned by user_id
    """
    data = parse(TransactionCreate, payload)
    get_contact_for_user(user_id, data.contact_id)

    txn = Transaction(
        contact_id=data.contact_id,
        amount=data.amount,
        transaction_type=data.transaction_type,
        note=data.note.strip() if data.note else None,
        date=data.date,
        category=data.category,
    )

    try:
        db.session.add(txn)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise

    current_app.logger.info(
        "Ledger %s of %s recorded for contact %s",
        txn.transaction_type, format_amount(txn.amount), txn.contact_id,
    )
    return parse(TransactionRecord, txn)
