"""
Travel desk settlement - payment endpoints
Single allocation, partial update and soft delete
"""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.api.deps import CurrentUser, get_current_user
from app.schemas.settlement import (
    AllocationRequest, AllocationResultResponse, PaymentResponse, PaymentUpdate,
)
from app.services import allocation
from app.services.allocation import AllocationResult

router = APIRouter()


def allocation_response(result: AllocationResult) -> AllocationResultResponse:
    return AllocationResultResponse(
        payments=[PaymentResponse.model_validate(p) for p in result.payments],
        quotation_id=result.quotation_id,
        quotation_amount=result.quotation_amount,
        allocated_total=result.allocated_total,
        outstanding_amount=result.outstanding_amount,
        over_allocated=result.over_allocated,
    )


@router.post("/{payment_id}/allocations", response_model=AllocationResultResponse)
async def allocate_payment(
    payment_id: UUID,
    data: AllocationRequest,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    """Allocate part of a payment to one quotation"""
    result = await allocation.allocate_payment(
        db,
        current_user.business_id,
        payment_id,
        data.quotation_id,
        data.amount,
        party=data.party,
        user_id=current_user.id,
    )
    return allocation_response(result)


@router.patch("/{payment_id}", response_model=PaymentResponse)
async def update_payment(
    payment_id: UUID,
    data: PaymentUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    """Update a payment; supplied allocations replace the existing ones"""
    payment = await allocation.update_payment(
        db, current_user.business_id, payment_id, data, current_user.id
    )
    return PaymentResponse.model_validate(payment)


@router.delete("/{payment_id}", status_code=204)
async def delete_payment(
    payment_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    """Soft delete a payment"""
    await allocation.delete_payment(db, current_user.business_id, payment_id, current_user.id)
