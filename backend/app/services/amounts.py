"""
Settlement - amount helpers
Cost price lookup in quotation form fields, closing balance and payment status.
Everything here is pure: no session, no I/O.
"""

from collections.abc import Mapping
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, NamedTuple, Optional

from app.models.enums import BalanceType, QuotationPaymentStatus


ZERO = Decimal("0")
# Money columns are Numeric(18, 2)
CENT = Decimal("0.01")
MONEY_LIMIT = Decimal("1E16")

# Keys the booking forms have used for the vendor cost price, most specific
# first. Bump the version whenever the list changes.
COST_AMOUNT_KEYS_VERSION = 2
COST_AMOUNT_KEYS: tuple[str, ...] = (
    "costAmount",
    "costPrice",
    "costprice",
    "cost_price",
    "vendorCost",
    "purchaseAmount",
)


class ClosingBalance(NamedTuple):
    amount: Decimal
    balance_type: BalanceType


def to_decimal(value: Any) -> Decimal:
    """Coerce DB/aggregate values (None, int, float, Decimal) to Decimal"""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def to_naive_utc(value: datetime) -> datetime:
    """Timestamps are stored as naive UTC"""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def parse_amount(value: Any) -> Optional[Decimal]:
    """
    Parse a form value to a finite Decimal.

    Numbers and numeric strings parse; None, booleans, blank strings,
    containers and NaN/Infinity do not.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        raw = str(value)
    elif isinstance(value, str):
        raw = value.strip()
        if not raw:
            return None
    else:
        return None

    try:
        number = Decimal(raw)
    except (InvalidOperation, ValueError):
        return None
    if not number.is_finite():
        return None
    return number


def is_whole_cents(amount: Decimal) -> bool:
    """True when ``amount`` fits the two decimal places money is stored with"""
    return amount.normalize().as_tuple().exponent >= CENT.as_tuple().exponent


def _field_lookup(form_fields: Any) -> Mapping:
    """
    Normalize the field bag to a mapping.

    Accepts a mapping, a list of (key, value) pairs, or a list of
    {"key": ..., "value": ...} records.
    """
    if form_fields is None:
        return {}
    if isinstance(form_fields, Mapping):
        return form_fields

    lookup: dict[str, Any] = {}
    try:
        items = list(form_fields)
    except TypeError:
        return {}
    for item in items:
        if isinstance(item, Mapping) and "key" in item:
            lookup.setdefault(str(item["key"]), item.get("value"))
        elif isinstance(item, (list, tuple)) and len(item) == 2:
            lookup.setdefault(str(item[0]), item[1])
    return lookup


def resolve_cost_amount(form_fields: Any, fallback: Any) -> Decimal:
    """First parseable cost price in COST_AMOUNT_KEYS order, else ``fallback``"""
    lookup = _field_lookup(form_fields)
    for key in COST_AMOUNT_KEYS:
        if key not in lookup:
            continue
        number = parse_amount(lookup[key])
        if number is not None:
            return number
    return to_decimal(fallback)


def closing_balance(total_debit: Any, total_credit: Any) -> ClosingBalance:
    """Net debit against credit; a zero balance is reported on the debit side"""
    balance = to_decimal(total_debit) - to_decimal(total_credit)
    if balance >= 0:
        return ClosingBalance(amount=balance, balance_type=BalanceType.DEBIT)
    return ClosingBalance(amount=abs(balance), balance_type=BalanceType.CREDIT)


def quotation_payment_status(
    total_amount: Decimal, allocated_amount: Decimal
) -> tuple[QuotationPaymentStatus, Decimal]:
    """(status, outstanding) for a quotation; outstanding never goes below zero"""
    if total_amount <= 0:
        return QuotationPaymentStatus.NONE, ZERO

    outstanding = max(total_amount - allocated_amount, ZERO)
    if allocated_amount <= 0:
        return QuotationPaymentStatus.NONE, outstanding
    if allocated_amount >= total_amount:
        return QuotationPaymentStatus.PAID, outstanding
    return QuotationPaymentStatus.PARTIAL, outstanding
