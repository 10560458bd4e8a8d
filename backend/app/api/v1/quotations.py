"""
Travel desk settlement - quotation endpoints
Payment for a quotation, batch allocation and the quotation payment ledger
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.api.deps import CurrentUser, get_current_user
from app.api.v1.payments import allocation_response
from app.models.enums import PartyType
from app.schemas.settlement import (
    AllocationResultResponse, BatchAllocationRequest,
    PaymentResponse, QuotationLedgerResponse, QuotationPaymentCreate,
)
from app.services import allocation, ledger

router = APIRouter()


@router.post("/{quotation_id}/payments", response_model=PaymentResponse, status_code=201)
async def create_quotation_payment(
    quotation_id: UUID,
    data: QuotationPaymentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    """Record a payment and allocate it to this quotation"""
    payment = await allocation.create_payment_for_quotation(
        db, current_user.business_id, quotation_id, data, current_user.id
    )
    return PaymentResponse.model_validate(payment)


@router.post("/{quotation_id}/allocations", response_model=AllocationResultResponse)
async def allocate_payments(
    quotation_id: UUID,
    data: BatchAllocationRequest,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    """Allocate several payments to this quotation (all or nothing)"""
    result = await allocation.allocate_payments_to_quotation(
        db,
        current_user.business_id,
        quotation_id,
        data.party,
        data.allocations,
        current_user.id,
    )
    return allocation_response(result)


@router.get("/{quotation_id}/ledger", response_model=QuotationLedgerResponse)
async def get_quotation_ledger(
    quotation_id: UUID,
    party: Optional[PartyType] = Query(None, description="customer/vendor; inferred when omitted"),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    """Payments allocated to this quotation"""
    return await ledger.quotation_ledger(db, current_user.business_id, quotation_id, party)
