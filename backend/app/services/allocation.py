"""
Settlement - allocation engine
Payment lifecycle and the allocation of payment money to quotations.

Every payment keeps ``sum(allocations) + unallocated_amount == amount``.
Mutations run inside run_in_transaction, so a failure part way through
(including a broken balance) leaves nothing behind.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable, NamedTuple, Optional, Union
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import run_in_transaction
from app.core.exceptions import ConsistencyError, NotFoundError, ValidationError
from app.models.audit_log import AuditLog
from app.models.payment import Payment
from app.models.payment_allocation import PaymentAllocation
from app.models.quotation import Quotation
from app.models.enums import AmountType, AuditAction, PartyType
from app.schemas.settlement import (
    AllocationItem, BatchAllocationItem,
    PaymentCreate, PaymentUpdate, QuotationPaymentCreate,
)
from app.services.amounts import (
    CENT, MONEY_LIMIT, ZERO, is_whole_cents, parse_amount, to_decimal, to_naive_utc,
)
from app.services.party import PartyRole, get_party_role, infer_quotation_role
from app.services.queries import allocation_totals, get_quotation

logger = logging.getLogger(__name__)


class AllocationResult(NamedTuple):
    """Payments touched by an allocation and where the quotation now stands"""
    payments: list[Payment]
    quotation_id: UUID
    quotation_amount: Decimal
    allocated_total: Decimal
    outstanding_amount: Decimal
    over_allocated: bool


# =============================================================================
# Helpers
# =============================================================================

def _positive_amount(value: Any, field: str = "amount") -> Decimal:
    amount = parse_amount(value)
    if amount is None or amount <= 0:
        raise ValidationError(
            f"{field} must be a positive number",
            details={field: str(value)},
        )
    if not is_whole_cents(amount):
        raise ValidationError(
            f"{field} must have at most 2 decimal places",
            details={field: str(value)},
        )
    if amount >= MONEY_LIMIT:
        raise ValidationError(
            f"{field} is too large",
            details={field: str(value), "limit": str(MONEY_LIMIT)},
        )
    return amount.quantize(CENT)


def assert_conservation(payment: Payment) -> None:
    """Raise ConsistencyError unless allocations and remainder add up to the amount"""
    amount = to_decimal(payment.amount)
    unallocated = to_decimal(payment.unallocated_amount)
    allocated = sum((to_decimal(a.amount) for a in payment.allocations), ZERO)

    broken = (
        unallocated < 0
        or any(to_decimal(a.amount) <= 0 for a in payment.allocations)
        or allocated + unallocated != amount
    )
    if broken:
        logger.error(
            f"[Allocation] Balance broken on payment {payment.id}: "
            f"amount={amount}, allocated={allocated}, unallocated={unallocated}"
        )
        raise ConsistencyError(
            "Payment allocations do not add up to the payment amount",
            details={
                "payment_id": str(payment.id),
                "amount": str(amount),
                "allocated": str(allocated),
                "unallocated": str(unallocated),
            },
        )


def payment_snapshot(payment: Payment) -> dict:
    """JSON-safe snapshot for the audit log"""
    return {
        "amount": str(payment.amount),
        "unallocated_amount": str(payment.unallocated_amount),
        "entry_type": payment.entry_type.value,
        "status": payment.status.value,
        "is_deleted": payment.is_deleted,
        "allocations": [
            {
                "quotation_id": str(a.quotation_id),
                "amount": str(a.amount),
                "amount_type": a.amount_type.value,
            }
            for a in payment.allocations
        ],
    }


def _audit(
    db: AsyncSession,
    business_id: UUID,
    user_id: Optional[UUID],
    action: AuditAction,
    target_type: str,
    target_id: UUID,
    before: Optional[dict] = None,
    after: Optional[dict] = None,
    description: Optional[str] = None,
) -> None:
    db.add(AuditLog(
        business_id=business_id,
        user_id=user_id,
        action=action,
        target_type=target_type,
        target_id=target_id,
        before_data=before,
        after_data=after,
        description=description,
    ))


async def _lock_payment(
    db: AsyncSession,
    business_id: UUID,
    payment_id: UUID,
    party: Optional[PartyType] = None,
) -> Payment:
    """Re-read a live payment under a row lock, refreshing the identity map"""
    query = (
        select(Payment)
        .where(
            Payment.id == payment_id,
            Payment.business_id == business_id,
            Payment.is_deleted == False,  # noqa: E712
        )
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    if party is not None:
        query = query.where(Payment.party == party)

    payment = (await db.execute(query)).scalar_one_or_none()
    if not payment:
        raise NotFoundError("Payment not found", details={"payment_id": str(payment_id)})
    return payment


def _apply_allocation(
    payment: Payment,
    quotation_id: UUID,
    amount: Decimal,
    amount_type: AmountType,
) -> PaymentAllocation:
    """Move ``amount`` from the unallocated remainder onto ``quotation_id``"""
    unallocated = to_decimal(payment.unallocated_amount)
    if amount > unallocated:
        raise ValidationError(
            "Allocation exceeds the payment's unallocated amount",
            details={
                "payment_id": str(payment.id),
                "requested": str(amount),
                "unallocated": str(unallocated),
            },
        )

    next_order = max((a.allocation_order for a in payment.allocations), default=0) + 1
    allocation = PaymentAllocation(
        quotation_id=quotation_id,
        amount=amount,
        amount_type=amount_type,
        allocation_order=next_order,
        applied_at=datetime.utcnow(),
    )
    payment.allocations.append(allocation)
    payment.unallocated_amount = unallocated - amount
    assert_conservation(payment)
    return allocation


async def _validate_initial_allocations(
    db: AsyncSession,
    business_id: UUID,
    role: PartyRole,
    party_id: UUID,
    items: Iterable[AllocationItem],
    payment_amount: Decimal,
) -> list[tuple[UUID, Decimal]]:
    """Check an allocation list for a new (or rewritten) payment"""
    validated = []
    for item in items:
        amount = _positive_amount(item.amount, "allocation amount")
        if item.amount_type is not None and item.amount_type != role.amount_type:
            raise ValidationError(
                f"{role.label.capitalize()} payments allocate the {role.amount_type.value} amount",
                details={
                    "quotation_id": str(item.quotation_id),
                    "amount_type": item.amount_type.value,
                },
            )
        validated.append((item.quotation_id, amount))

    total = sum((amount for _, amount in validated), ZERO)
    if total > payment_amount:
        raise ValidationError(
            "Allocation total exceeds the payment amount",
            details={"allocated": str(total), "amount": str(payment_amount)},
        )

    for quotation_id in dict.fromkeys(qid for qid, _ in validated):
        quotation = await get_quotation(db, business_id, quotation_id)
        role.check_linked(quotation, party_id)

    return validated


async def _allocation_result(
    db: AsyncSession,
    business_id: UUID,
    role: PartyRole,
    quotation: Quotation,
    payments: list[Payment],
) -> AllocationResult:
    party_id = role.linked_party_id(quotation)
    totals = await allocation_totals(db, business_id, role.party_type, party_id, [quotation.id])
    quotation_amount = role.resolve_amount(quotation)
    allocated_total = totals.get(quotation.id, ZERO)
    over_allocated = allocated_total > quotation_amount
    if over_allocated:
        logger.warning(
            f"[Allocation] Quotation {quotation.id} over-allocated: "
            f"{allocated_total} against {quotation_amount}"
        )
    return AllocationResult(
        payments=payments,
        quotation_id=quotation.id,
        quotation_amount=quotation_amount,
        allocated_total=allocated_total,
        outstanding_amount=max(quotation_amount - allocated_total, ZERO),
        over_allocated=over_allocated,
    )


def _new_payment(
    business_id: UUID,
    role: PartyRole,
    party_id: UUID,
    data: Union[PaymentCreate, QuotationPaymentCreate],
    amount: Decimal,
    user_id: Optional[UUID],
) -> Payment:
    return Payment(
        business_id=business_id,
        party=role.party_type,
        party_id=party_id,
        bank_id=data.bank_id,
        amount=amount,
        currency=data.currency,
        entry_type=data.entry_type,
        unallocated_amount=amount,
        payment_date=to_naive_utc(data.payment_date) if data.payment_date else datetime.utcnow(),
        status=data.status,
        internal_notes=data.internal_notes,
        created_by=user_id,
    )


# =============================================================================
# Payment lifecycle
# =============================================================================

async def create_payment(
    db: AsyncSession,
    business_id: UUID,
    party: Union[PartyType, str],
    party_id: UUID,
    data: PaymentCreate,
    user_id: Optional[UUID] = None,
) -> Payment:
    """Record a payment for a customer or vendor, optionally pre-allocated"""
    role = get_party_role(party)
    await role.get_party(db, business_id, party_id)
    amount = _positive_amount(data.amount)
    items = await _validate_initial_allocations(
        db, business_id, role, party_id, data.allocations, amount
    )

    async def work(session: AsyncSession) -> Payment:
        payment = _new_payment(business_id, role, party_id, data, amount, user_id)
        session.add(payment)
        for quotation_id, allocation_amount in items:
            _apply_allocation(payment, quotation_id, allocation_amount, role.amount_type)
        assert_conservation(payment)
        return payment

    payment = await run_in_transaction(db, work)
    _audit(
        db, business_id, user_id, AuditAction.PAYMENT_CREATE, "payment", payment.id,
        after=payment_snapshot(payment),
    )
    logger.info(
        f"[Payment] Created {payment.id} for {role.label} {party_id}: "
        f"amount={amount}, allocations={len(items)}"
    )
    return payment


async def create_payment_for_quotation(
    db: AsyncSession,
    business_id: UUID,
    quotation_id: UUID,
    data: QuotationPaymentCreate,
    user_id: Optional[UUID] = None,
) -> Payment:
    """
    Record a payment and allocate it to one quotation in a single step.

    The party comes from the quotation's link. A quotation linked to both a
    customer and a vendor needs ``data.party``.
    """
    quotation = await get_quotation(db, business_id, quotation_id)
    role = infer_quotation_role(quotation, data.party, require_explicit=True)
    party_id = role.linked_party_id(quotation)
    await role.get_party(db, business_id, party_id)

    amount = _positive_amount(data.amount)
    if data.allocation_amount is None:
        allocation_amount = amount
    else:
        allocation_amount = _positive_amount(data.allocation_amount, "allocation_amount")
    if allocation_amount > amount:
        raise ValidationError(
            "Allocation amount exceeds the payment amount",
            details={"allocation_amount": str(allocation_amount), "amount": str(amount)},
        )

    async def work(session: AsyncSession) -> Payment:
        payment = _new_payment(business_id, role, party_id, data, amount, user_id)
        session.add(payment)
        _apply_allocation(payment, quotation.id, allocation_amount, role.amount_type)
        return payment

    payment = await run_in_transaction(db, work)
    _audit(
        db, business_id, user_id, AuditAction.PAYMENT_CREATE, "payment", payment.id,
        after=payment_snapshot(payment),
        description=f"Payment for quotation {quotation.id}",
    )
    logger.info(
        f"[Payment] Created {payment.id} for quotation {quotation.id} "
        f"({role.label} {party_id}): amount={amount}, allocated={allocation_amount}"
    )
    return payment


async def update_payment(
    db: AsyncSession,
    business_id: UUID,
    payment_id: UUID,
    data: PaymentUpdate,
    user_id: Optional[UUID] = None,
) -> Payment:
    """
    Partial update. Supplied ``allocations`` replace the existing list;
    otherwise the existing allocations stay and the remainder follows the
    new amount.
    """
    before: dict = {}

    async def work(session: AsyncSession) -> Payment:
        payment = await _lock_payment(session, business_id, payment_id)
        role = get_party_role(payment.party)
        before.update(payment_snapshot(payment))

        amount = (
            _positive_amount(data.amount) if data.amount is not None
            else to_decimal(payment.amount)
        )
        items = None
        if data.allocations is not None:
            items = await _validate_initial_allocations(
                session, business_id, role, payment.party_id, data.allocations, amount
            )
        elif payment.allocated_amount > amount:
            raise ValidationError(
                "Payment amount is below the amount already allocated",
                details={"allocated": str(payment.allocated_amount), "amount": str(amount)},
            )

        fields = data.model_dump(exclude_unset=True, exclude={"amount", "allocations"})
        for field, value in fields.items():
            if value is None and field in ("entry_type", "status", "payment_date"):
                continue
            if field == "payment_date":
                value = to_naive_utc(value)
            setattr(payment, field, value)

        payment.amount = amount
        if items is None:
            payment.unallocated_amount = amount - payment.allocated_amount
        else:
            payment.allocations.clear()
            payment.unallocated_amount = amount
            for quotation_id, allocation_amount in items:
                _apply_allocation(payment, quotation_id, allocation_amount, role.amount_type)
        assert_conservation(payment)
        return payment

    payment = await run_in_transaction(db, work)
    _audit(
        db, business_id, user_id, AuditAction.PAYMENT_UPDATE, "payment", payment.id,
        before=before, after=payment_snapshot(payment),
    )
    logger.info(f"[Payment] Updated {payment.id}: amount={payment.amount}")
    return payment


async def delete_payment(
    db: AsyncSession,
    business_id: UUID,
    payment_id: UUID,
    user_id: Optional[UUID] = None,
) -> Payment:
    """Soft delete; the payment and its allocations drop out of every total"""
    payment = await _lock_payment(db, business_id, payment_id)
    before = payment_snapshot(payment)
    payment.is_deleted = True
    await db.flush()

    _audit(
        db, business_id, user_id, AuditAction.PAYMENT_DELETE, "payment", payment.id,
        before=before, after={"is_deleted": True},
    )
    logger.info(f"[Payment] Deleted {payment.id}")
    return payment


# =============================================================================
# Allocation
# =============================================================================

async def allocate_payment(
    db: AsyncSession,
    business_id: UUID,
    payment_id: UUID,
    quotation_id: UUID,
    amount: Any,
    party: Union[PartyType, str, None] = None,
    user_id: Optional[UUID] = None,
) -> AllocationResult:
    """
    Allocate part of one payment to one quotation.

    ``party``, when given, asserts the payment's side; a payment of the other
    side is reported as not found. Allocating beyond the quotation's
    outstanding amount is allowed and flagged with ``over_allocated``.
    """
    amount = _positive_amount(amount)
    party_type = get_party_role(party).party_type if party is not None else None

    async def work(session: AsyncSession) -> tuple[Payment, PartyRole, Quotation, dict]:
        payment = await _lock_payment(session, business_id, payment_id, party_type)
        role = get_party_role(payment.party)
        quotation = await get_quotation(session, business_id, quotation_id)
        role.check_linked(quotation, payment.party_id)

        snapshot = payment_snapshot(payment)
        _apply_allocation(payment, quotation.id, amount, role.amount_type)
        return payment, role, quotation, snapshot

    payment, role, quotation, before = await run_in_transaction(db, work)
    _audit(
        db, business_id, user_id, AuditAction.ALLOCATION_CREATE, "payment", payment.id,
        before=before, after=payment_snapshot(payment),
    )
    logger.info(
        f"[Allocation] {amount} of payment {payment.id} → quotation {quotation.id}, "
        f"remaining={payment.unallocated_amount}"
    )
    return await _allocation_result(db, business_id, role, quotation, [payment])


async def allocate_payments_to_quotation(
    db: AsyncSession,
    business_id: UUID,
    quotation_id: UUID,
    party: Union[PartyType, str],
    items: list[BatchAllocationItem],
    user_id: Optional[UUID] = None,
) -> AllocationResult:
    """
    Allocate several payments to one quotation, all or nothing.

    ``party`` is required and picks which link of the quotation the payments
    must match. Any failure rolls back every allocation of the batch.
    """
    role = get_party_role(party)
    if not items:
        raise ValidationError("At least one allocation is required")

    requested: list[tuple[UUID, Decimal]] = []
    seen: set[UUID] = set()
    for item in items:
        if item.payment_id in seen:
            raise ValidationError(
                "Duplicate payment in allocation batch",
                details={"payment_id": str(item.payment_id)},
            )
        seen.add(item.payment_id)
        requested.append((item.payment_id, _positive_amount(item.amount)))

    quotation = await get_quotation(db, business_id, quotation_id)
    role = infer_quotation_role(quotation, role.party_type)

    async def work(session: AsyncSession) -> list[Payment]:
        payments = []
        for payment_id, amount in requested:
            payment = await _lock_payment(session, business_id, payment_id, role.party_type)
            role.check_linked(quotation, payment.party_id)
            _apply_allocation(payment, quotation.id, amount, role.amount_type)
            payments.append(payment)
        return payments

    payments = await run_in_transaction(db, work)
    _audit(
        db, business_id, user_id, AuditAction.ALLOCATION_BATCH, "quotation", quotation.id,
        after={
            "party": role.party_type.value,
            "allocations": [
                {"payment_id": str(payment_id), "amount": str(amount)}
                for payment_id, amount in requested
            ],
        },
    )
    logger.info(
        f"[Allocation] Batch of {len(payments)} payment(s) → quotation {quotation.id} "
        f"({role.label})"
    )
    return await _allocation_result(db, business_id, role, quotation, payments)
