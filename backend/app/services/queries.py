"""
Settlement - open item queries
Allocation totals per quotation, unsettled quotations and payments that still
carry unallocated money.
"""

from decimal import Decimal
from typing import Iterable, NamedTuple, Optional, Union
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError
from app.models.payment import Payment
from app.models.payment_allocation import PaymentAllocation
from app.models.quotation import Quotation
from app.models.enums import PartyType
from app.services.amounts import ZERO, to_decimal
from app.services.party import PartyRole, get_party_role


class QuotationBalance(NamedTuple):
    quotation: Quotation
    total_amount: Decimal
    allocated_amount: Decimal
    outstanding_amount: Decimal


async def allocation_totals(
    db: AsyncSession,
    business_id: UUID,
    party: Union[PartyType, str],
    party_id: UUID,
    quotation_ids: Optional[Iterable[UUID]] = None,
) -> dict[UUID, Decimal]:
    """
    Allocated amount per quotation across the party's live payments.

    One grouped query; quotations without allocations are absent from the
    result.
    """
    role = get_party_role(party)
    query = (
        select(
            PaymentAllocation.quotation_id,
            func.coalesce(func.sum(PaymentAllocation.amount), 0),
        )
        .join(Payment, Payment.id == PaymentAllocation.payment_id)
        .where(
            Payment.business_id == business_id,
            Payment.party == role.party_type,
            Payment.party_id == party_id,
            Payment.is_deleted == False,  # noqa: E712
        )
        .group_by(PaymentAllocation.quotation_id)
    )
    if quotation_ids is not None:
        ids = list(quotation_ids)
        if not ids:
            return {}
        query = query.where(PaymentAllocation.quotation_id.in_(ids))

    result = await db.execute(query)
    return {row[0]: to_decimal(row[1]) for row in result.all()}


async def linked_quotations(
    db: AsyncSession,
    business_id: UUID,
    role: PartyRole,
    party_id: UUID,
) -> list[Quotation]:
    """Live quotations carrying the role's link to ``party_id``, newest first"""
    result = await db.execute(
        select(Quotation)
        .where(
            Quotation.business_id == business_id,
            role.quotation_link == party_id,
            Quotation.is_deleted == False,  # noqa: E712
        )
        .order_by(Quotation.created_at.desc())
    )
    return list(result.scalars().all())


async def unsettled_quotations(
    db: AsyncSession,
    business_id: UUID,
    party: Union[PartyType, str],
    party_id: UUID,
) -> list[QuotationBalance]:
    """Linked quotations whose resolved amount is not yet fully allocated"""
    role = get_party_role(party)
    await role.get_party(db, business_id, party_id)

    quotations = await linked_quotations(db, business_id, role, party_id)
    totals = await allocation_totals(
        db, business_id, role.party_type, party_id, [q.id for q in quotations]
    )

    unsettled = []
    for quotation in quotations:
        total = role.resolve_amount(quotation)
        allocated = totals.get(quotation.id, ZERO)
        outstanding = total - allocated
        if outstanding > 0:
            unsettled.append(QuotationBalance(quotation, total, allocated, outstanding))
    return unsettled


async def unallocated_payments(
    db: AsyncSession,
    business_id: UUID,
    party: Union[PartyType, str],
    party_id: UUID,
) -> list[Payment]:
    """Live payments of the party with money left to allocate, newest first"""
    role = get_party_role(party)
    await role.get_party(db, business_id, party_id)

    result = await db.execute(
        select(Payment)
        .where(
            Payment.business_id == business_id,
            Payment.party == role.party_type,
            Payment.party_id == party_id,
            Payment.is_deleted == False,  # noqa: E712
            Payment.unallocated_amount > 0,
        )
        .order_by(Payment.payment_date.desc(), Payment.created_at.desc())
    )
    return list(result.scalars().all())


async def get_quotation(db: AsyncSession, business_id: UUID, quotation_id: UUID) -> Quotation:
    """Live quotation of the business or NotFoundError"""
    result = await db.execute(
        select(Quotation).where(
            Quotation.id == quotation_id,
            Quotation.business_id == business_id,
            Quotation.is_deleted == False,  # noqa: E712
        )
    )
    quotation = result.scalar_one_or_none()
    if not quotation:
        raise NotFoundError("Quotation not found", details={"quotation_id": str(quotation_id)})
    return quotation
