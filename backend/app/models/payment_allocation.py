"""
Travel desk settlement - PaymentAllocation model
Portion of a payment earmarked against one quotation
"""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Integer, DateTime, Numeric,
    ForeignKey, Enum as SQLEnum, Index, CheckConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base
from app.models.enums import AmountType


class PaymentAllocation(Base):
    """Payment → quotation allocation table"""

    __tablename__ = "payment_allocations"

    # ==================== Primary key ====================
    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )

    # ==================== Links ====================
    payment_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("payments.id", ondelete="CASCADE"),
        nullable=False,
        comment="Payment ID",
    )
    quotation_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("quotations.id", ondelete="RESTRICT"),
        nullable=False,
        comment="Quotation ID",
    )

    # ==================== Allocation ====================
    amount: Mapped[Decimal] = mapped_column(
        Numeric(18, 2), nullable=False, comment="Allocated amount"
    )
    amount_type: Mapped[AmountType] = mapped_column(
        SQLEnum(AmountType, name="amount_type"),
        nullable=False,
        comment="selling (customer) / cost (vendor)",
    )
    allocation_order: Mapped[int] = mapped_column(
        Integer, nullable=False, default=1, comment="Position in the payment's allocation list"
    )
    applied_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )

    # ==================== Relationships ====================
    payment = relationship("Payment", back_populates="allocations")

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_pa_amount_positive"),
        Index("ix_pa_payment", "payment_id"),
        Index("ix_pa_quotation", "quotation_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<PaymentAllocation(payment={self.payment_id}, "
            f"quotation={self.quotation_id}, amount={self.amount})>"
        )
