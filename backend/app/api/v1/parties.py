"""
Travel desk settlement - customer / vendor endpoints
Ledger, open items, closing balances and payment recording per party.
Customers and vendors expose the same routes; build_party_router binds them
to one role.
"""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.api.deps import CurrentUser, get_current_user
from app.models.enums import PartyType
from app.schemas.settlement import (
    LedgerResponse, PartyBalanceListResponse,
    PaymentCreate, PaymentListResponse, PaymentResponse,
    QuotationSummary, UnsettledQuotationItem, UnsettledQuotationListResponse,
)
from app.services import allocation, ledger, queries


def build_party_router(party: PartyType) -> APIRouter:
    router = APIRouter()

    @router.get("/closing-balances", response_model=PartyBalanceListResponse)
    async def list_closing_balances(
        db: AsyncSession = Depends(get_db),
        current_user: CurrentUser = Depends(get_current_user),
    ):
        """Closing balance of every party"""
        parties = await ledger.party_closing_balances(db, current_user.business_id, party)
        return PartyBalanceListResponse(parties=parties)

    @router.get("/{party_id}/ledger", response_model=LedgerResponse)
    async def get_ledger(
        party_id: UUID,
        db: AsyncSession = Depends(get_db),
        current_user: CurrentUser = Depends(get_current_user),
    ):
        """Party ledger, newest entry first"""
        return await ledger.build_ledger(db, current_user.business_id, party, party_id)

    @router.get("/{party_id}/unsettled-quotations", response_model=UnsettledQuotationListResponse)
    async def list_unsettled_quotations(
        party_id: UUID,
        db: AsyncSession = Depends(get_db),
        current_user: CurrentUser = Depends(get_current_user),
    ):
        """Quotations with an outstanding amount"""
        rows = await queries.unsettled_quotations(db, current_user.business_id, party, party_id)
        return UnsettledQuotationListResponse(
            quotations=[
                UnsettledQuotationItem(
                    quotation=QuotationSummary.model_validate(row.quotation),
                    total_amount=row.total_amount,
                    allocated_amount=row.allocated_amount,
                    outstanding_amount=row.outstanding_amount,
                )
                for row in rows
            ]
        )

    @router.get("/{party_id}/unallocated-payments", response_model=PaymentListResponse)
    async def list_unallocated_payments(
        party_id: UUID,
        db: AsyncSession = Depends(get_db),
        current_user: CurrentUser = Depends(get_current_user),
    ):
        """Payments with money left to allocate"""
        payments = await queries.unallocated_payments(db, current_user.business_id, party, party_id)
        return PaymentListResponse(
            payments=[PaymentResponse.model_validate(p) for p in payments]
        )

    @router.post("/{party_id}/payments", response_model=PaymentResponse, status_code=201)
    async def create_payment(
        party_id: UUID,
        data: PaymentCreate,
        db: AsyncSession = Depends(get_db),
        current_user: CurrentUser = Depends(get_current_user),
    ):
        """Record a payment, optionally with initial allocations"""
        payment = await allocation.create_payment(
            db, current_user.business_id, party, party_id, data, current_user.id
        )
        return PaymentResponse.model_validate(payment)

    return router


customers_router = build_party_router(PartyType.CUSTOMER)
vendors_router = build_party_router(PartyType.VENDOR)
