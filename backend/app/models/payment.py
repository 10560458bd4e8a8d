"""
Travel desk settlement - Payment model
Money movement against one party (customer or vendor). The amount is split
into allocations (earmarked against quotations) and an unallocated remainder.
"""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    String, Boolean, DateTime, Text, Numeric,
    Enum as SQLEnum, Index, CheckConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base
from app.models.enums import PartyType, EntryType, PaymentRecordStatus


class Payment(Base):
    """Payment table"""

    __tablename__ = "payments"

    # ==================== Primary key ====================
    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )

    # ==================== Party ====================
    business_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), nullable=False, comment="Owning business ID"
    )
    party: Mapped[PartyType] = mapped_column(
        SQLEnum(PartyType, name="party_type"),
        nullable=False,
        comment="customer/vendor",
    )
    party_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), nullable=False, comment="Customer or vendor ID"
    )

    # ==================== Money ====================
    bank_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), nullable=True, comment="Bank account ID"
    )
    amount: Mapped[Decimal] = mapped_column(
        Numeric(18, 2), nullable=False, comment="Amount (positive)"
    )
    currency: Mapped[str | None] = mapped_column(
        String(3), nullable=True, comment="Currency code (informational)"
    )
    entry_type: Mapped[EntryType] = mapped_column(
        SQLEnum(EntryType, name="entry_type"),
        nullable=False,
        comment="credit/debit side of the party account",
    )
    unallocated_amount: Mapped[Decimal] = mapped_column(
        Numeric(18, 2), nullable=False, comment="Amount not yet allocated"
    )
    payment_date: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )
    status: Mapped[PaymentRecordStatus] = mapped_column(
        SQLEnum(PaymentRecordStatus, name="payment_record_status"),
        nullable=False,
        default=PaymentRecordStatus.PENDING,
    )
    internal_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # ==================== System ====================
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), nullable=True, comment="Recorded by"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    # ==================== Relationships ====================
    allocations = relationship(
        "PaymentAllocation",
        back_populates="payment",
        cascade="all, delete-orphan",
        order_by="PaymentAllocation.allocation_order",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_payment_amount_positive"),
        CheckConstraint("unallocated_amount >= 0", name="ck_payment_unallocated_nonneg"),
        CheckConstraint("unallocated_amount <= amount", name="ck_payment_unallocated_lte_amount"),
        Index("ix_payment_business_party", "business_id", "party", "party_id"),
        Index("ix_payment_business_date", "business_id", "payment_date"),
        Index("ix_payment_business_status", "business_id", "status"),
    )

    @property
    def allocated_amount(self) -> Decimal:
        """Sum of all allocations"""
        return sum((a.amount for a in self.allocations), Decimal("0"))

    def __repr__(self) -> str:
        return (
            f"<Payment(id={self.id}, party={self.party}, amount={self.amount}, "
            f"unallocated={self.unallocated_amount})>"
        )
