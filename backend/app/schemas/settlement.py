"""
Travel desk settlement - Pydantic schemas
Payments, allocations, open items, ledgers and closing balances
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional, List
from uuid import UUID

from pydantic import BaseModel, Field

from app.models.enums import (
    PartyType, BalanceType, EntryType, AmountType, ChannelType,
    QuotationType, QuotationStatus, PaymentRecordStatus,
    QuotationPaymentStatus, LedgerEntryKind,
)


# ============================================================================
# Payments
# ============================================================================

class AllocationItem(BaseModel):
    """Initial allocation on a new payment"""
    quotation_id: UUID
    amount: Decimal = Field(..., gt=0, max_digits=18, decimal_places=2)
    amount_type: Optional[AmountType] = Field(None, description="selling/cost; must match the party")


class PaymentCreate(BaseModel):
    """Record a payment against a customer or vendor"""
    bank_id: Optional[UUID] = None
    amount: Decimal = Field(..., gt=0, max_digits=18, decimal_places=2, description="Payment amount")
    entry_type: EntryType = Field(..., description="credit/debit")
    payment_date: Optional[datetime] = None
    status: PaymentRecordStatus = PaymentRecordStatus.PENDING
    currency: Optional[str] = Field(None, max_length=3)
    internal_notes: Optional[str] = None
    allocations: List[AllocationItem] = Field(default_factory=list)


class QuotationPaymentCreate(BaseModel):
    """Record a payment straight against one quotation"""
    bank_id: Optional[UUID] = None
    amount: Decimal = Field(..., gt=0, max_digits=18, decimal_places=2)
    entry_type: EntryType
    payment_date: Optional[datetime] = None
    status: PaymentRecordStatus = PaymentRecordStatus.PENDING
    currency: Optional[str] = Field(None, max_length=3)
    internal_notes: Optional[str] = None
    allocation_amount: Optional[Decimal] = Field(None, gt=0, max_digits=18, decimal_places=2, description="Defaults to the payment amount")
    party: Optional[PartyType] = Field(None, description="Required when the quotation has both links")


class PaymentUpdate(BaseModel):
    """Partial update; ``allocations`` replaces the whole list when given"""
    bank_id: Optional[UUID] = None
    amount: Optional[Decimal] = Field(None, gt=0, max_digits=18, decimal_places=2)
    entry_type: Optional[EntryType] = None
    payment_date: Optional[datetime] = None
    status: Optional[PaymentRecordStatus] = None
    currency: Optional[str] = Field(None, max_length=3)
    internal_notes: Optional[str] = None
    allocations: Optional[List[AllocationItem]] = None


class PaymentAllocationResponse(BaseModel):
    id: UUID
    quotation_id: UUID
    amount: Decimal
    amount_type: AmountType
    allocation_order: int
    applied_at: datetime

    class Config:
        from_attributes = True


class PaymentResponse(BaseModel):
    id: UUID
    business_id: UUID
    party: PartyType
    party_id: UUID
    bank_id: Optional[UUID] = None
    amount: Decimal
    currency: Optional[str] = None
    entry_type: EntryType
    allocated_amount: Decimal
    unallocated_amount: Decimal
    payment_date: datetime
    status: PaymentRecordStatus
    internal_notes: Optional[str] = None
    allocations: List[PaymentAllocationResponse] = []
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class PaymentListResponse(BaseModel):
    payments: List[PaymentResponse]


# ============================================================================
# Allocation
# ============================================================================

class AllocationRequest(BaseModel):
    """One payment → one quotation"""
    quotation_id: UUID
    amount: Decimal = Field(..., gt=0, max_digits=18, decimal_places=2)
    party: Optional[PartyType] = Field(None, description="Asserted payment party")


class BatchAllocationItem(BaseModel):
    payment_id: UUID
    amount: Decimal = Field(..., gt=0, max_digits=18, decimal_places=2)


class BatchAllocationRequest(BaseModel):
    """Many payments → one quotation (all or nothing)"""
    party: PartyType = Field(..., description="customer/vendor, never inferred")
    allocations: List[BatchAllocationItem]


class AllocationResultResponse(BaseModel):
    """Updated payments plus the quotation's settlement position"""
    payments: List[PaymentResponse]
    quotation_id: UUID
    quotation_amount: Decimal
    allocated_total: Decimal
    outstanding_amount: Decimal
    over_allocated: bool = False


# ============================================================================
# Open items
# ============================================================================

class QuotationSummary(BaseModel):
    id: UUID
    quotation_type: QuotationType
    channel: ChannelType
    customer_id: Optional[UUID] = None
    vendor_id: Optional[UUID] = None
    total_amount: Decimal
    status: QuotationStatus
    remarks: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class UnsettledQuotationItem(BaseModel):
    quotation: QuotationSummary
    total_amount: Decimal = Field(..., description="Resolved amount for the party")
    allocated_amount: Decimal
    outstanding_amount: Decimal


class UnsettledQuotationListResponse(BaseModel):
    quotations: List[UnsettledQuotationItem]


# ============================================================================
# Ledger
# ============================================================================

class BalanceAmount(BaseModel):
    amount: Decimal = Decimal("0")
    balance_type: Optional[BalanceType] = None


class LedgerParty(BaseModel):
    type: PartyType
    id: UUID
    name: str


class LedgerEntry(BaseModel):
    """One line of a party ledger"""
    type: LedgerEntryKind
    entry_type: EntryType
    date: datetime
    amount: Decimal
    reference_id: Optional[UUID] = None   # quotation or payment id
    quotation_id: Optional[UUID] = None   # allocation lines only
    payment_status: Optional[QuotationPaymentStatus] = None
    allocated_amount: Optional[Decimal] = None
    outstanding_amount: Optional[Decimal] = None
    is_unallocated: bool = False
    notes: Optional[str] = None
    closing_balance: BalanceAmount


class LedgerTotals(BaseModel):
    debit: Decimal = Decimal("0")
    credit: Decimal = Decimal("0")


class LedgerResponse(BaseModel):
    """Party ledger, newest entry first"""
    party: LedgerParty
    opening_balance: BalanceAmount
    entries: List[LedgerEntry]
    totals: LedgerTotals
    closing_balance: BalanceAmount


class QuotationLedgerPayment(BaseModel):
    payment_id: UUID
    party_id: UUID
    amount: Decimal
    entry_type: EntryType
    status: PaymentRecordStatus
    payment_date: datetime
    internal_notes: Optional[str] = None
    allocation_amount: Decimal
    amount_type: AmountType
    applied_at: datetime


class QuotationLedgerResponse(BaseModel):
    """Money allocated against a single quotation"""
    quotation_id: UUID
    party: PartyType
    party_id: UUID
    total_amount: Decimal
    total_allocated: Decimal
    outstanding_amount: Decimal
    payment_status: QuotationPaymentStatus
    payments: List[QuotationLedgerPayment]


class PartyBalanceSummary(BaseModel):
    """Closing balance of one party"""
    party_id: UUID
    name: str
    total_debit: Decimal = Decimal("0")
    total_credit: Decimal = Decimal("0")
    closing_balance: BalanceAmount


class PartyBalanceListResponse(BaseModel):
    parties: List[PartyBalanceSummary]
