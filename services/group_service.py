"""
Group Service - per-member balances inside a group

balance > 0 -> member is owed money by the group
balance < 0 -> member owes the group

Rules:
- No Flask request/session access
- Balances come from expenses only, recorded Settlement rows never move them
"""
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from models import db, Group, GroupMember, User, Expense
from schemas import (
    BalanceEntry,
    ExpenseCreate,
    ExpenseRecord,
    IntegrityWarning,
    ValidationError,
    parse,
    parse_many,
)
from utils.money import ZERO, EPSILON, format_amount, split_equally


class GroupNotFoundError(Exception):
    """Raised when a group is not found"""
    pass


class NotGroupMemberError(Exception):
    """Raised when a user is not a member of a group"""
    pass


class GroupBalances:
    """Result of folding a group's expenses."""

    def __init__(self, balances, warnings, former_members):
        self.balances = balances
        self.warnings = warnings
        self.former_members = former_members

    def get(self, user_id, default=ZERO):
        return self.balances.get(user_id, default)

    def total(self):
        return sum(self.balances.values(), ZERO)


def compute_group_balances(member_ids, expenses):
    """
    Fold expenses into a net balance per member.

    The payer is credited the full amount, every split entry (the payer's
    own share included) is debited. A payer or split user who is no longer
    a member still gets a balance, so the total stays zero and they can be
    settled with.

    Args:
        member_ids: Current member user ids, in display order
        expenses: ExpenseRecord list

    Returns:
        GroupBalances
    """
    balances = {user_id: ZERO for user_id in member_ids}
    former_members = []
    warnings = []

    def account(user_id):
        if user_id not in balances:
            balances[user_id] = ZERO
            former_members.append(user_id)
        return user_id

    for expense in expenses:
        balances[account(expense.paid_by)] += expense.amount

        split_total = ZERO
        for share in expense.split_between:
            balances[account(share.user_id)] -= share.amount
            split_total += share.amount

        difference = expense.amount - split_total
        if not expense.split_between:
            warnings.append(IntegrityWarning(
                "split_mismatch",
                f"Expense {expense.id} has no split entries",
                difference,
            ))
        elif abs(difference) >= EPSILON:
            warnings.append(IntegrityWarning(
                "split_mismatch",
                f"Expense {expense.id}: splits add up to {format_amount(split_total)} "
                f"but the amount is {format_amount(expense.amount)}",
                difference,
            ))

    for user_id in former_members:
        warnings.append(IntegrityWarning(
            "former_member",
            f"User {user_id} appears in expenses but is not a current member",
            balances[user_id],
        ))

    result = GroupBalances(balances, warnings, former_members)
    if not balance_integrity_ok(result.balances):
        warnings.append(IntegrityWarning(
            "unbalanced_group",
            "Member balances do not sum to zero",
            result.total(),
        ))
    return result


def balance_integrity_ok(balances):
    """
    Check if balances sum to zero (within tolerance).

    Args:
        balances: Dict mapping user_id to balance

    Returns:
        bool: True if balances are balanced
    """
    total = sum(balances.values(), ZERO)
    return abs(total) < EPSILON


def display_name(user):
    return user.name or user.mobile


# ---------------------------------------------------------------------------
# DB-backed operations
# ---------------------------------------------------------------------------

def get_group_by_id(group_id):
    """
    Raises:
        GroupNotFoundError: If group doesn't exist
    """
    group = db.session.get(Group, group_id)
    if not group:
        raise GroupNotFoundError(f"Group {group_id} not found")
    return group


def is_user_member(group_id, user_id):
    return GroupMember.query.filter_by(
        group_id=group_id,
        user_id=user_id
    ).first() is not None


def require_member(group_id, user_id):
    get_group_by_id(group_id)
    if not is_user_member(group_id, user_id):
        raise NotGroupMemberError("Not a member of this group")


def get_user_group_ids(user_id):
    return [
        gm.group_id
        for gm in GroupMember.query.filter_by(user_id=user_id).order_by(GroupMember.group_id).all()
    ]


def get_group_members(group_id):
    """
    Get all members of a group as User objects, in join order.

    Raises:
        GroupNotFoundError: If group doesn't exist
    """
    get_group_by_id(group_id)

    return (
        db.session.query(User)
        .join(GroupMember, GroupMember.user_id == User.id)
        .filter(GroupMember.group_id == group_id)
        .order_by(GroupMember.id)
        .all()
    )


def get_group_expenses(group_id, start=None, end=None):
    query = Expense.query.filter_by(group_id=group_id)
    if start is not None:
        query = query.filter(Expense.date >= start)
    if end is not None:
        query = query.filter(Expense.date <= end)

    rows = query.order_by(Expense.date.desc(), Expense.created_at.desc()).all()
    return parse_many(ExpenseRecord, rows)


def calculate_balances(group_id, start=None, end=None):
    members = get_group_members(group_id)
    result = compute_group_balances(
        [m.id for m in members], get_group_expenses(group_id, start, end)
    )

    for warning in result.warnings:
        current_app.logger.warning("Group %s: %s", group_id, warning.message)
    return result


def get_group_balance_rows(group_id):
    """BalanceEntry per member (former members included) with display names."""
    result = calculate_balances(group_id)

    users = User.query.filter(User.id.in_(list(result.balances.keys()))).all()
    user_map = {u.id: u for u in users}

    entries = []
    for user_id, balance in result.balances.items():
        user = user_map.get(user_id)
        entries.append(BalanceEntry(
            id=user_id,
            name=display_name(user) if user else "Unknown",
            balance=balance,
        ))
    return entries, result


def serialize_balance(entry):
    return {
        "user_id": entry.id,
        "user_name": entry.name,
        "balance": format_amount(entry.balance),
    }


def get_group_balances_view(group_id, user_id):
    """
    Raises:
        GroupNotFoundError, NotGroupMemberError
    """
    require_member(group_id, user_id)
    entries, result = get_group_balance_rows(group_id)

    return {
        "group_id": group_id,
        "balances": [serialize_balance(e) for e in entries],
        "balanced": balance_integrity_ok(result.balances),
        "warnings": [w.to_dict() for w in result.warnings],
    }


def suggest_settlements(group_id):
    """
    Suggest payments that settle every balance in the group.

    Returns:
        Dict with keys: settlements, balances, warnings

    Raises:
        GroupNotFoundError: If group doesn't exist
    """
    from services.settlement_service import simplify_balances, serialize_payment

    entries, result = get_group_balance_rows(group_id)
    plan = simplify_balances(entries)

    for warning in plan.warnings:
        current_app.logger.warning("Group %s: %s", group_id, warning.message)

    return {
        "settlements": [serialize_payment(p) for p in plan.payments],
        "balances": [serialize_balance(e) for e in entries],
        "warnings": [w.to_dict() for w in result.warnings + plan.warnings],
    }


def get_group_settlement_suggestions(group_id, user_id):
    require_member(group_id, user_id)
    return suggest_settlements(group_id)


def get_all_settlement_suggestions(user_id):
    """Suggested payments for every group the user belongs to."""
    suggestions = []
    for group_id in get_user_group_ids(user_id):
        group = get_group_by_id(group_id)
        for payment in suggest_settlements(group_id)["settlements"]:
            payment["group_id"] = group.id
            payment["group_name"] = group.name
            suggestions.append(payment)
    return suggestions


def create_expense(user_id, group_id, payload):
    """
    Create an expense in a group.

    Without split_between the amount is split equally across the current
    members, rounding remainders onto the first members.

    Raises:
        ValidationError: If data is invalid, or the payer or a split user
            isn't a member
        GroupNotFoundError: If group doesn't exist
        NotGroupMemberError: If the caller isn't a member
    """
    data = parse(ExpenseCreate, payload)
    require_member(group_id, user_id)

    if not is_user_member(group_id, data.paid_by):
        raise ValidationError("Payer must be a member of the group")

    if data.split_between is None:
        member_ids = [m.id for m in get_group_members(group_id)]
        shares = split_equally(data.amount, member_ids)
    else:
        shares = [(s.user_id, s.amount) for s in data.split_between]
        for share_user_id, _ in shares:
            if not is_user_member(group_id, share_user_id):
                raise ValidationError(f"User {share_user_id} is not a member of the group")

    split_total = sum((amount for _, amount in shares), ZERO)
    if abs(split_total - data.amount) >= EPSILON:
        raise ValidationError(
            f"Split amounts add up to {format_amount(split_total)}, "
            f"expected {format_amount(data.amount)}"
        )

    expense = Expense(
        group_id=group_id,
        description=data.description.strip(),
        amount=data.amount,
        paid_by=data.paid_by,
        split_between=[
            {"user_id": share_user_id, "amount": format_amount(amount)}
            for share_user_id, amount in shares
        ],
        date=data.date,
        category=data.category,
    )

    try:
        db.session.add(expense)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise

    current_app.logger.info(
        "Expense %s of %s added to group %s", expense.id, format_amount(expense.amount), group_id
    )
    return parse(ExpenseRecord, expense)


def serialize_expense(expense):
    return {
        "id": expense.id,
        "group_id": expense.group_id,
        "description": expense.description,
        "amount": format_amount(expense.amount),
        "paid_by": expense.paid_by,
        "split_between": [
            {"user_id": s.user_id, "amount": format_amount(s.amount)}
            for s in expense.split_between
        ],
        "date": expense.date.isoformat(),
        "category": expense.category,
    }
