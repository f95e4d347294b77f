"""
Validated records used by the balance calculators.

Rows from the database and JSON request bodies are both converted into these
models before any balance is computed, so calculators never see untyped
split lists or negative amounts.
"""
import datetime as dt
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from utils.categories import sanitize_category
from utils.money import format_amount


class ValidationError(ValueError):
    """Raised when input to a calculator or service is malformed"""
    pass


class IntegrityWarning:
    """
    A total that should balance but doesn't.

    Never raised: calculators attach these to their result so callers can
    decide whether to surface them.
    """

    def __init__(self, code, message, amount=None):
        self.code = code
        self.message = message
        self.amount = amount

    def to_dict(self):
        data = {"code": self.code, "message": self.message}
        if self.amount is not None:
            data["amount"] = format_amount(self.amount)
        return data

    def __repr__(self):
        return f"IntegrityWarning({self.code!r}, {self.message!r})"


class Record(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class SplitShare(Record):
    user_id: int
    amount: Decimal = Field(..., ge=0)


class SplitShareCreate(SplitShare):
    # Stored in cents, anything finer would be rounded away on write
    amount: Decimal = Field(..., ge=0, decimal_places=2)


class TransactionRecord(Record):
    id: Optional[int] = None
    contact_id: Optional[int] = None
    amount: Decimal = Field(..., gt=0)
    transaction_type: Literal["credit", "debit"]
    note: Optional[str] = None
    date: dt.date
    category: Optional[str] = None
    created_at: Optional[dt.datetime] = None

    @property
    def signed_amount(self):
        return self.amount if self.transaction_type == "credit" else -self.amount


class ExpenseRecord(Record):
    id: Optional[int] = None
    group_id: Optional[int] = None
    description: Optional[str] = None
    amount: Decimal = Field(..., gt=0)
    paid_by: int
    # May be empty on stored rows; the group fold reports it as a mismatch
    split_between: List[SplitShare] = Field(default_factory=list)
    date: dt.date
    category: Optional[str] = None
    created_at: Optional[dt.datetime] = None

    @field_validator("split_between", mode="before")
    @classmethod
    def missing_split(cls, value):
        return [] if value is None else value

    def share_of(self, user_id):
        """Split amount owed by user_id, 0 when they are not in the split."""
        for share in self.split_between:
            if share.user_id == user_id:
                return share.amount
        return Decimal("0")


class BalanceEntry(Record):
    id: int
    name: Optional[str] = None
    balance: Decimal


class TransactionCreate(BaseModel):
    contact_id: int
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    transaction_type: Literal["credit", "debit"]
    note: Optional[str] = None
    date: dt.date = Field(default_factory=dt.date.today)
    category: str = "other"

    @field_validator("category", mode="before")
    @classmethod
    def default_category(cls, value):
        return sanitize_category(value)


class ExpenseCreate(BaseModel):
    description: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    paid_by: int
    # Omitted means an equal split across current members
    split_between: Optional[List[SplitShareCreate]] = None
    date: dt.date = Field(default_factory=dt.date.today)
    category: str = "other"

    @field_validator("split_between")
    @classmethod
    def non_empty_split(cls, value):
        if value is not None and len(value) == 0:
            raise ValueError("split_between must be a non-empty list")
        return value

    @field_validator("category", mode="before")
    @classmethod
    def default_category(cls, value):
        return sanitize_category(value)


class SettleRequest(BaseModel):
    # Positive: contact pays the user. Negative: user pays the contact.
    amount: Decimal = Field(..., decimal_places=2)
    note: Optional[str] = None

    @field_validator("amount")
    @classmethod
    def non_zero(cls, value):
        if value == 0:
            raise ValueError("amount must not be zero")
        return value


class SettlementPaidRequest(BaseModel):
    group_id: int
    from_user: int
    to_user: int
    amount: Decimal = Field(..., gt=0, decimal_places=2)


def _describe(error):
    first = error.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = first.get("msg", "invalid value")
    return f"{location}: {message}" if location else message


def parse(model, data):
    """
    Validate a dict or ORM object into model.

    Raises:
        ValidationError: With the first pydantic error as message
    """
    if data is None:
        raise ValidationError("Request body is required")
    try:
        if isinstance(data, dict):
            return model.model_validate(data)
        return model.model_validate(data, from_attributes=True)
    except PydanticValidationError as e:
        raise ValidationError(_describe(e)) from e


def parse_many(model, rows):
    return [parse(model, row) for row in rows]
