"""
Currency helpers.

Amounts are kept as Decimal at full precision while balances are folded and
only quantized to two places when they leave the service layer.
"""
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation


ZERO = Decimal("0")
CENT = Decimal("0.01")

# Anything smaller than a paisa is treated as settled
EPSILON = CENT


def to_decimal(value):
    """
    Convert int / float / str / Decimal to Decimal.

    Floats go through str() so 0.1 stays 0.1 instead of its binary expansion.

    Raises:
        ValueError: If the value cannot be read as a number
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError("Cannot convert boolean to an amount")
    if isinstance(value, float):
        value = str(value)
    try:
        return Decimal(value)
    except (InvalidOperation, TypeError):
        raise ValueError(f"Invalid amount: {value!r}")


def quantize(value):
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def format_amount(value):
    """Fixed 2-decimal string used in every API payload."""
    amount = quantize(value)
    if amount == ZERO:
        # avoid "-0.00"
        amount = abs(amount)
    return f"{amount:.2f}"


def is_effectively_zero(value):
    return abs(to_decimal(value)) < EPSILON


def split_equally(amount, user_ids):
    """
    Split amount into per-user shares rounded to the cent.

    The rounding remainder goes to the first users in the list so the shares
    always add back up to the original amount.
    """
    amount = quantize(amount)
    count = len(user_ids)
    if count == 0:
        return []

    per_person = (amount / count).quantize(CENT, rounding=ROUND_HALF_UP)
    remainder = amount - per_person * count
    step = CENT if remainder > ZERO else -CENT

    shares = []
    for user_id in user_ids:
        share = per_person
        if remainder != ZERO:
            share += step
            remainder -= step
        shares.append((user_id, share))
    return shares
