"""
Settlement - ledger builder
Party ledgers (opening balance, quotations, payments with running balance),
the per-quotation payment ledger and closing balances for a whole role.
Read only.
"""

from collections import defaultdict
from decimal import Decimal
from typing import Any, Iterable, Optional, Union
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.payment import Payment
from app.models.payment_allocation import PaymentAllocation
from app.models.quotation import Quotation
from app.models.enums import BalanceType, EntryType, LedgerEntryKind, PartyType
from app.schemas.settlement import (
    BalanceAmount, LedgerEntry, LedgerParty, LedgerResponse, LedgerTotals,
    PartyBalanceSummary, QuotationLedgerPayment, QuotationLedgerResponse,
)
from app.services.amounts import (
    ZERO, closing_balance, quotation_payment_status, to_decimal, to_naive_utc,
)
from app.services.party import PartyRole, get_party_role, infer_quotation_role
from app.services.queries import allocation_totals, get_quotation, linked_quotations


def _balance(debit: Decimal, credit: Decimal) -> BalanceAmount:
    result = closing_balance(debit, credit)
    return BalanceAmount(amount=result.amount, balance_type=result.balance_type)


def _payment_lines(payment: Payment) -> list[dict[str, Any]]:
    """
    Ledger lines for one payment: one per allocation plus the unallocated
    remainder. Zero-amount lines are never produced.
    """
    amount = to_decimal(payment.amount)
    unallocated = to_decimal(payment.unallocated_amount)
    base = {
        "type": LedgerEntryKind.PAYMENT,
        "entry_type": payment.entry_type,
        "reference_id": payment.id,
        "notes": payment.internal_notes,
    }

    if not payment.allocations:
        # A payment with neither allocations nor a remainder has nothing to show
        if unallocated <= 0 or amount <= 0:
            return []
        return [dict(base, date=payment.payment_date, amount=amount, is_unallocated=True)]

    lines = [
        dict(
            base,
            date=allocation.applied_at or payment.payment_date,
            amount=to_decimal(allocation.amount),
            quotation_id=allocation.quotation_id,
        )
        for allocation in payment.allocations
        if to_decimal(allocation.amount) > 0
    ]
    if unallocated > 0:
        lines.append(dict(base, date=payment.payment_date, amount=unallocated, is_unallocated=True))
    return lines


def order_entries(lines: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    """Oldest first; the opening balance always leads"""
    return sorted(
        lines,
        key=lambda line: (
            line["type"] != LedgerEntryKind.OPENING,
            to_naive_utc(line["date"]),
        ),
    )


def compose_ledger(
    party: Any,
    quotations: Iterable[Quotation],
    payments: Iterable[Payment],
    totals: dict[UUID, Decimal],
    role: PartyRole,
) -> LedgerResponse:
    """
    Assemble a party ledger from already loaded rows.

    ``totals`` maps quotation id to the amount allocated by all of the
    party's live payments. Entries are returned newest first, each carrying
    the closing balance as of that entry.
    """
    opening_amount = to_decimal(party.opening_balance)
    opening_side = party.balance_type or BalanceType.DEBIT

    lines: list[dict[str, Any]] = []
    if opening_amount > 0:
        lines.append({
            "type": LedgerEntryKind.OPENING,
            "entry_type": EntryType(BalanceType(opening_side).value),
            "date": party.created_at,
            "amount": opening_amount,
            "reference_id": party.id,
            "notes": "Opening balance",
        })

    for quotation in quotations:
        amount = role.resolve_amount(quotation)
        allocated = totals.get(quotation.id, ZERO)
        status, outstanding = quotation_payment_status(amount, allocated)
        lines.append({
            "type": LedgerEntryKind.QUOTATION,
            "entry_type": EntryType.DEBIT,
            "date": quotation.created_at,
            "amount": amount,
            "reference_id": quotation.id,
            "payment_status": status,
            "allocated_amount": allocated,
            "outstanding_amount": outstanding,
            "notes": quotation.remarks,
        })

    for payment in payments:
        lines.extend(_payment_lines(payment))

    debit = ZERO
    credit = ZERO
    entries = []
    for line in order_entries(lines):
        if line["entry_type"] == EntryType.DEBIT:
            debit += line["amount"]
        else:
            credit += line["amount"]
        entries.append(LedgerEntry(**line, closing_balance=_balance(debit, credit)))

    entries.reverse()
    return LedgerResponse(
        party=LedgerParty(type=role.party_type, id=party.id, name=party.display_name),
        opening_balance=BalanceAmount(amount=opening_amount, balance_type=opening_side),
        entries=entries,
        totals=LedgerTotals(debit=debit, credit=credit),
        closing_balance=_balance(debit, credit),
    )


async def build_ledger(
    db: AsyncSession,
    business_id: UUID,
    party: Union[PartyType, str],
    party_id: UUID,
) -> LedgerResponse:
    """Full ledger of one customer or vendor"""
    role = get_party_role(party)
    record = await role.get_party(db, business_id, party_id)

    quotations = await linked_quotations(db, business_id, role, party_id)
    totals = await allocation_totals(db, business_id, role.party_type, party_id)

    result = await db.execute(
        select(Payment)
        .where(
            Payment.business_id == business_id,
            Payment.party == role.party_type,
            Payment.party_id == party_id,
            Payment.is_deleted == False,  # noqa: E712
        )
        .order_by(Payment.payment_date)
    )
    payments = list(result.scalars().all())

    return compose_ledger(record, quotations, payments, totals, role)


async def quotation_ledger(
    db: AsyncSession,
    business_id: UUID,
    quotation_id: UUID,
    party: Union[PartyType, str, None] = None,
) -> QuotationLedgerResponse:
    """Payments allocated to one quotation, newest first"""
    quotation = await get_quotation(db, business_id, quotation_id)
    role = infer_quotation_role(quotation, party)
    party_id = role.linked_party_id(quotation)

    result = await db.execute(
        select(PaymentAllocation, Payment)
        .join(Payment, Payment.id == PaymentAllocation.payment_id)
        .where(
            PaymentAllocation.quotation_id == quotation.id,
            Payment.business_id == business_id,
            Payment.party == role.party_type,
            Payment.party_id == party_id,
            Payment.is_deleted == False,  # noqa: E712
        )
        .order_by(Payment.payment_date.desc(), PaymentAllocation.applied_at.desc())
    )

    payments = []
    total_allocated = ZERO
    for allocation, payment in result.all():
        total_allocated += to_decimal(allocation.amount)
        payments.append(QuotationLedgerPayment(
            payment_id=payment.id,
            party_id=payment.party_id,
            amount=payment.amount,
            entry_type=payment.entry_type,
            status=payment.status,
            payment_date=payment.payment_date,
            internal_notes=payment.internal_notes,
            allocation_amount=allocation.amount,
            amount_type=allocation.amount_type,
            applied_at=allocation.applied_at,
        ))

    total_amount = role.resolve_amount(quotation)
    status, outstanding = quotation_payment_status(total_amount, total_allocated)
    return QuotationLedgerResponse(
        quotation_id=quotation.id,
        party=role.party_type,
        party_id=party_id,
        total_amount=total_amount,
        total_allocated=total_allocated,
        outstanding_amount=outstanding,
        payment_status=status,
        payments=payments,
    )


async def party_closing_balances(
    db: AsyncSession,
    business_id: UUID,
    party: Union[PartyType, str],
) -> list[PartyBalanceSummary]:
    """
    Closing balance of every live customer (or vendor) of the business.

    Debit side: opening debit, resolved quotation amounts and debit payments.
    Credit side: opening credit and credit payments.
    """
    role = get_party_role(party)
    parties = await role.list_parties(db, business_id)

    # Quotation amounts are resolved in Python (vendor cost lives in form_fields)
    q_result = await db.execute(
        select(Quotation).where(
            Quotation.business_id == business_id,
            role.quotation_link.isnot(None),
            Quotation.is_deleted == False,  # noqa: E712
        )
    )
    owed: dict[Optional[UUID], Decimal] = defaultdict(lambda: ZERO)
    for quotation in q_result.scalars().all():
        owed[role.linked_party_id(quotation)] += role.resolve_amount(quotation)

    pay_result = await db.execute(
        select(
            Payment.party_id,
            Payment.entry_type,
            func.coalesce(func.sum(Payment.amount), 0),
        )
        .where(
            Payment.business_id == business_id,
            Payment.party == role.party_type,
            Payment.is_deleted == False,  # noqa: E712
        )
        .group_by(Payment.party_id, Payment.entry_type)
    )
    paid: dict[tuple[UUID, EntryType], Decimal] = {
        (row[0], EntryType(row[1])): to_decimal(row[2]) for row in pay_result.all()
    }

    summaries = []
    for record in parties:
        opening = to_decimal(record.opening_balance)
        opening_side = record.balance_type or BalanceType.DEBIT
        debit = owed[record.id] + paid.get((record.id, EntryType.DEBIT), ZERO)
        credit = paid.get((record.id, EntryType.CREDIT), ZERO)
        if opening_side == BalanceType.CREDIT:
            credit += opening
        else:
            debit += opening

        summaries.append(PartyBalanceSummary(
            party_id=record.id,
            name=record.display_name,
            total_debit=debit,
            total_credit=credit,
            closing_balance=_balance(debit, credit),
        ))
    return summaries
