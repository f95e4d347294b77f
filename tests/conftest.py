from datetime import date
from decimal import Decimal

import pytest

from app import create_app
from config import TestConfig
from models import db, Contact, Expense, Group, GroupMember, Transaction, User


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def login(client):
    def _login(user):
        with client.session_transaction() as sess:
            sess["user_id"] = user.id
        return client
    return _login


class Seed:
    """Small factory for rows used across tests."""

    def user(self, name, mobile):
        user = User(name=name, mobile=mobile)
        db.session.add(user)
        db.session.commit()
        return user

    def contact(self, owner, name, mobile=None, type="friend"):
        contact = Contact(user_id=owner.id, name=name, mobile=mobile, type=type)
        db.session.add(contact)
        db.session.commit()
        return contact

    def txn(self, contact, amount, transaction_type, on=None, category=None, note=None):
        txn = Transaction(
            contact_id=contact.id,
            amount=Decimal(str(amount)),
            transaction_type=transaction_type,
            date=on or date.today(),
            category=category,
            note=note,
        )
        db.session.add(txn)
        db.session.commit()
        return txn

    def group(self, name, creator, members=()):
        group = Group(name=name, created_by=creator.id)
        db.session.add(group)
        db.session.flush()
        for user in (creator, *members):
            db.session.add(GroupMember(group_id=group.id, user_id=user.id))
        db.session.commit()
        return group

    def expense(self, group, amount, paid_by, splits, on=None, description="Expense", category=None):
        expense = Expense(
            group_id=group.id,
            description=description,
            amount=Decimal(str(amount)),
            paid_by=paid_by.id,
            split_between=[
                {"user_id": user.id, "amount": str(share)} for user, share in splits
            ],
            date=on or date.today(),
            category=category,
        )
        db.session.add(expense)
        db.session.commit()
        return expense


@pytest.fixture
def seed(app):
    return Seed()
