from datetime import date, timedelta
from decimal import Decimal

import pytest

from models import Settlement, SettlementIntent, Transaction
from schemas import ExpenseRecord, TransactionRecord, ValidationError
from services.contact_profile_service import (
    find_shared_group_ids,
    get_contact_profile,
    pairwise_expense_net,
    reconcile_profile,
    settle_contact_balance,
)
from services.group_service import calculate_balances

ME, FRIEND, OTHER = 1, 2, 3


class FakeGroup:
    def __init__(self, group_id, name):
        self.id = group_id
        self.name = name


def expense(amount, paid_by, splits, day=1):
    return ExpenseRecord(
        amount=Decimal(amount),
        paid_by=paid_by,
        split_between=[{"user_id": u, "amount": Decimal(s)} for u, s in splits],
        date=date(2024, 6, day),
    )


def test_pairwise_net_when_i_paid():
    e = expense("300", ME, [(ME, "100"), (FRIEND, "100"), (OTHER, "100")])
    assert pairwise_expense_net(e, ME, FRIEND) == Decimal("100")


def test_pairwise_net_when_contact_paid():
    e = expense("90", FRIEND, [(ME, "45"), (FRIEND, "45")])
    assert pairwise_expense_net(e, ME, FRIEND) == Decimal("-45")


def test_pairwise_net_ignores_third_party_payer():
    e = expense("90", OTHER, [(ME, "30"), (FRIEND, "30"), (OTHER, "30")])
    assert pairwise_expense_net(e, ME, FRIEND) == Decimal("0")


def test_pairwise_net_is_narrower_than_group_balance():
    expenses = [
        expense("300", ME, [(ME, "100"), (FRIEND, "100"), (OTHER, "100")]),
        expense("60", OTHER, [(FRIEND, "60")]),
    ]
    pairwise = sum(pairwise_expense_net(e, ME, FRIEND) for e in expenses)
    # friend's whole-group balance is -160, but only 100 of it is owed to me
    assert pairwise == Decimal("100")


def test_ghost_contact_ignores_group_data():
    contact = {"id": 5, "name": "Ravi", "type": "friend", "mobile": "+910000000000"}
    txns = [TransactionRecord(amount=Decimal("40"), transaction_type="credit", date=date(2024, 6, 2))]
    groups = [(FakeGroup(1, "Trip"), [expense("100", ME, [(ME, "50"), (FRIEND, "50")])])]

    profile = reconcile_profile(contact, txns, groups, ME, None)

    assert profile["balance"] == {
        "total_net_balance": "40.00",
        "ledger_balance": "40.00",
        "group_balance": "0.00",
    }
    assert profile["shared_groups"] == []
    assert profile["contact"]["has_user_account"] is False
    assert [item["type"] for item in profile["recent_activity"]] == ["ledger"]


def test_reconciled_profile_interleaves_feed():
    contact = {"id": 5, "name": "Ravi", "type": "friend", "mobile": "+919000000002"}
    txns = [
        TransactionRecord(id=1, amount=Decimal("500"), transaction_type="credit", date=date(2024, 6, 1)),
        TransactionRecord(id=2, amount=Decimal("200"), transaction_type="debit", date=date(2024, 6, 4)),
    ]
    groups = [
        (FakeGroup(1, "Trip"), [
            expense("120", FRIEND, [(ME, "60"), (FRIEND, "60")], day=3),
            expense("90", ME, [(ME, "30"), (FRIEND, "30"), (OTHER, "30")], day=5),
        ]),
    ]

    profile = reconcile_profile(contact, txns, groups, ME, FRIEND)

    assert profile["balance"] == {
        "total_net_balance": "270.00",
        "ledger_balance": "300.00",
        "group_balance": "-30.00",
    }
    assert profile["shared_groups"] == [{"id": 1, "name": "Trip", "balance": "-30.00"}]
    assert [item["date"] for item in profile["recent_activity"]] == [
        "2024-06-05", "2024-06-04", "2024-06-03", "2024-06-01",
    ]
    first = profile["recent_activity"][0]
    assert first["type"] == "group" and first["paid_by_you"] is True
    assert first["contact_split"] == "30.00"
    assert profile["summary"]["you_get"] == "270.00"
    assert profile["summary"]["you_owe"] == "0.00"


def test_feed_is_capped():
    contact = {"id": 5, "name": "Ravi", "type": "friend", "mobile": None}
    txns = [
        TransactionRecord(id=i, amount=Decimal("1"), transaction_type="credit", date=date(2024, 1, 1) + timedelta(days=i))
        for i in range(60)
    ]

    profile = reconcile_profile(contact, txns, [], ME, None, feed_limit=30, ledger_limit=50)

    assert len(profile["recent_activity"]) == 30
    assert profile["recent_activity"][0]["id"] == 59
    # the balance still covers every transaction
    assert profile["balance"]["ledger_balance"] == "60.00"


@pytest.fixture
def people(seed):
    me = seed.user("Asha", "+919000000001")
    friend = seed.user("Ravi", "+919000000002")
    other = seed.user("Kiran", "+919000000003")
    return me, friend, other


def test_profile_only_counts_shared_groups(seed, people):
    me, friend, other = people
    contact = seed.contact(me, "Ravi", mobile="90000 00002")
    seed.txn(contact, 100, "credit", on=date(2024, 6, 1))

    shared = seed.group("Trip", me, [friend, other])
    mine_only = seed.group("Office", me, [other])
    theirs_only = seed.group("Cricket", friend, [other])

    seed.expense(shared, 300, me, [(me, 100), (friend, 100), (other, 100)], on=date(2024, 6, 2))
    seed.expense(shared, 60, other, [(me, 30), (friend, 30)], on=date(2024, 6, 3))
    seed.expense(mine_only, 50, me, [(me, 25), (other, 25)])
    seed.expense(theirs_only, 80, friend, [(friend, 40), (other, 40)])

    assert find_shared_group_ids(me.id, friend.id) == [shared.id]

    profile = get_contact_profile(me.id, contact.id)

    assert profile["contact"]["has_user_account"] is True
    assert profile["contact"]["user_id"] == friend.id
    assert profile["balance"]["ledger_balance"] == "100.00"
    assert profile["balance"]["group_balance"] == "100.00"
    assert profile["balance"]["total_net_balance"] == "200.00"
    assert [g["id"] for g in profile["shared_groups"]] == [shared.id]
    # the third-party expense still shows up in the feed
    assert sum(1 for item in profile["recent_activity"] if item["type"] == "group") == 2


def test_unlinked_contact_has_no_group_balance(seed, people):
    me, friend, _ = people
    contact = seed.contact(me, "Stranger", mobile="+449999999999")
    group = seed.group("Trip", me, [friend])
    seed.expense(group, 100, me, [(me, 50), (friend, 50)])

    profile = get_contact_profile(me.id, contact.id)

    assert profile["balance"]["group_balance"] == "0.00"
    assert profile["shared_groups"] == []
    assert profile["contact"]["has_user_account"] is False


def test_settle_writes_intent_ledger_and_group_records(seed, people):
    me, friend, _ = people
    contact = seed.contact(me, "Ravi", mobile="9000000002")
    seed.txn(contact, 150, "credit")
    trip = seed.group("Trip", me, [friend])
    flat = seed.group("Flat", me, [friend])
    seed.expense(trip, 100, me, [(me, 50), (friend, 50)])

    result = settle_contact_balance(me.id, contact.id, {"amount": "200"})

    assert result["balance_before"] == "200.00"
    assert result["remaining_balance"] == "0.00"
    assert result["transaction"]["transaction_type"] == "debit"
    assert result["transaction"]["amount"] == "200.00"
    assert result["transaction"]["note"] == "Settlement (Total: ₹200.00)"

    intent = SettlementIntent.query.one()
    assert Transaction.query.filter_by(intent_id=intent.id).count() == 1

    settlements = Settlement.query.filter_by(intent_id=intent.id).order_by(Settlement.group_id).all()
    assert [s.group_id for s in settlements] == [trip.id, flat.id]
    assert all(s.from_user == friend.id and s.to_user == me.id for s in settlements)
    assert all(s.status == "paid" for s in settlements)

    # group balances are recomputed from expenses only
    assert calculate_balances(trip.id).get(me.id) == Decimal("50")

    profile = get_contact_profile(me.id, contact.id)
    assert profile["balance"]["ledger_balance"] == "-50.00"
    assert profile["balance"]["total_net_balance"] == "0.00"


def test_partial_settlement_where_user_pays(seed, people):
    me, _, _ = people
    contact = seed.contact(me, "Ghost", mobile=None)
    seed.txn(contact, 300, "debit")

    result = settle_contact_balance(me.id, contact.id, {"amount": -100, "note": "part"})

    assert result["transaction"]["transaction_type"] == "credit"
    assert result["transaction"]["note"] == "part"
    assert result["group_settlements"] == []
    assert result["balance_before"] == "-300.00"
    assert result["remaining_balance"] == "-200.00"


def test_settle_rejects_zero(seed, people):
    me, _, _ = people
    contact = seed.contact(me, "Ravi")

    with pytest.raises(ValidationError):
        settle_contact_balance(me.id, contact.id, {"amount": 0})
    assert SettlementIntent.query.count() == 0


@pytest.mark.parametrize("stored, entered", [
    ("9000000002", "9000000002"),
    ("9000000002", "+91 90000 00002"),
    ("09000000002", "90000-00002"),
])
def test_links_users_stored_without_country_code(seed, stored, entered):
    me = seed.user("Asha", "+919000000001")
    friend = seed.user("Ravi", stored)
    contact = seed.contact(me, "Ravi", mobile=entered)
    group = seed.group("Trip", me, [friend])
    seed.expense(group, 100, me, [(me, 50), (friend, 50)])

    profile = get_contact_profile(me.id, contact.id)

    assert profile["contact"]["has_user_account"] is True
    assert profile["contact"]["user_id"] == friend.id
    assert profile["balance"]["group_balance"] == "50.00"
