from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from models import db, Settlement
from schemas import IntegrityWarning, SettlementPaidRequest, ValidationError, parse
from utils.money import ZERO, EPSILON, format_amount


class SettlementPermissionError(Exception):
    pass


class Payment:
    """One suggested transfer: from_entry pays to_entry amount."""

    def __init__(self, from_entry, to_entry, amount):
        self.from_entry = from_entry
        self.to_entry = to_entry
        self.amount = amount

    def __repr__(self):
        return f"Payment({self.from_entry.id} -> {self.to_entry.id}: {self.amount})"


class SettlementPlan:
    def __init__(self, payments, warnings):
        self.payments = payments
        self.warnings = warnings


def simplify_balances(entries):
    """
    Reduce member balances to a short list of payments.

    Greedy two-pointer matching: the largest creditor is paid by the
    largest debtor until one of them reaches zero, then the pointer moves
    on. Python's sort is stable, so equal balances keep their input order
    and the output is deterministic for a given input order.

    Args:
        entries: BalanceEntry list (balance > 0 is owed, < 0 owes)

    Returns:
        SettlementPlan. Whatever is left unmatched when one side runs out
        means the balances did not sum to zero and is reported as a warning.
    """
    creditors = [[e, e.balance] for e in entries if e.balance > EPSILON]
    debtors = [[e, -e.balance] for e in entries if e.balance < -EPSILON]

    # Sort by amount (largest first)
    creditors.sort(key=lambda x: x[1], reverse=True)
    debtors.sort(key=lambda x: x[1], reverse=True)

    payments = []
    i = j = 0

    while i < len(creditors) and j < len(debtors):
        creditor, creditor_amount = creditors[i]
        debtor, debtor_amount = debtors[j]

        settle_amount = min(creditor_amount, debtor_amount)
        payments.append(Payment(debtor, creditor, settle_amount))

        creditors[i][1] -= settle_amount
        debtors[j][1] -= settle_amount

        # Move to next if fully settled
        if creditors[i][1] < EPSILON:
            i += 1
        if debtors[j][1] < EPSILON:
            j += 1

    warnings = []
    unpaid_credit = sum((c[1] for c in creditors[i:]), ZERO)
    unpaid_debt = sum((d[1] for d in debtors[j:]), ZERO)

    if unpaid_credit >= EPSILON:
        warnings.append(IntegrityWarning(
            "unmatched_credit",
            f"{format_amount(unpaid_credit)} owed to creditors has no matching debtor",
            unpaid_credit,
        ))
    if unpaid_debt >= EPSILON:
        warnings.append(IntegrityWarning(
            "unmatched_debt",
            f"{format_amount(unpaid_debt)} owed by debtors has no matching creditor",
            unpaid_debt,
        ))

    return SettlementPlan(payments, warnings)


def apply_payments(entries, payments):
    """Balances after every payment is made, keyed by entry id."""
    balances = {e.id: e.balance for e in entries}
    for payment in payments:
        balances[payment.from_entry.id] += payment.amount
        balances[payment.to_entry.id] -= payment.amount
    return balances


def serialize_payment(payment):
    return {
        "from_user_id": payment.from_entry.id,
        "from_user_name": payment.from_entry.name,
        "to_user_id": payment.to_entry.id,
        "to_user_name": payment.to_entry.name,
        "amount": format_amount(payment.amount),
    }


def serialize_settlement(settlement):
    return {
        "id": settlement.id,
        "group_id": settlement.group_id,
        "from_user": settlement.from_user,
        "to_user": settlement.to_user,
        "amount": format_amount(settlement.amount),
        "status": settlement.status,
        "paid_at": settlement.paid_at.isoformat() if settlement.paid_at else None,
        "intent_id": settlement.intent_id,
    }


# ---------------------------------------------------------------------------
# DB-backed operations
# ---------------------------------------------------------------------------

def mark_settlement_paid(payload, actor_id):
    """
    Record that a suggested group payment was made.

    The row is informational: group balances are recomputed from expenses
    and do not read settlements.

    Raises:
        ValidationError: If data is invalid
        GroupNotFoundError: If the group doesn't exist
        SettlementPermissionError: If the actor isn't payer or receiver,
            or either party isn't in the group
    """
    from services.group_service import get_group_by_id, is_user_member

    data = parse(SettlementPaidRequest, payload)

    if data.from_user == data.to_user:
        raise ValidationError("Payer and receiver cannot be the same")

    if actor_id != data.from_user and actor_id != data.to_user:
        raise SettlementPermissionError(
            "You can only record a settlement if you are the payer or the receiver."
        )

    get_group_by_id(data.group_id)

    if not is_user_member(data.group_id, data.from_user) or not is_user_member(data.group_id, data.to_user):
        raise SettlementPermissionError("User not in group")

    settlement = Settlement(
        group_id=data.group_id,
        from_user=data.from_user,
        to_user=data.to_user,
        amount=data.amount,
        status="paid",
    )

    try:
        db.session.add(settlement)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise

    current_app.logger.info(
        "Settlement of %s recorded in group %s (%s -> %s)",
        format_amount(data.amount), data.group_id, data.from_user, data.to_user,
    )
    return settlement


def get_group_settlements(group_id):
    """
    Get all recorded settlements for a group, newest first.
    """
    return Settlement.query.filter_by(
        group_id=group_id
    ).order_by(Settlement.paid_at.desc(), Settlement.id.desc()).all()
