"""
Travel desk settlement - Quotation model
Priced booking linked to a customer and/or a vendor. ``form_fields`` is the
free-form field bag filled by the booking form (may carry the cost price).
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    Boolean, DateTime, Text, Numeric, JSON,
    ForeignKey, Enum as SQLEnum, Index,
)
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base
from app.models.enums import QuotationType, ChannelType, QuotationStatus


class Quotation(Base):
    """Quotation (booking) table"""

    __tablename__ = "quotations"

    # ==================== Primary key ====================
    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )

    # ==================== Links ====================
    business_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), nullable=False, comment="Owning business ID"
    )
    customer_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("customers.id", ondelete="RESTRICT"),
        nullable=True,
        comment="Customer ID",
    )
    vendor_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("vendors.id", ondelete="RESTRICT"),
        nullable=True,
        comment="Vendor ID",
    )

    # ==================== Booking ====================
    quotation_type: Mapped[QuotationType] = mapped_column(
        SQLEnum(QuotationType, name="quotation_type"),
        nullable=False,
        comment="flight/train/hotel/activity",
    )
    channel: Mapped[ChannelType] = mapped_column(
        SQLEnum(ChannelType, name="channel_type"),
        nullable=False,
        default=ChannelType.B2C,
    )
    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(18, 2), nullable=False, comment="Selling price (customer side)"
    )
    form_fields: Mapped[dict[str, Any]] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"),
        nullable=False,
        default=dict,
        comment="Dynamic form fields (cost price keys live here)",
    )
    status: Mapped[QuotationStatus] = mapped_column(
        SQLEnum(QuotationStatus, name="quotation_status"),
        nullable=False,
        default=QuotationStatus.DRAFT,
    )
    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)

    # ==================== System ====================
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    __table_args__ = (
        Index("ix_quotation_business_customer", "business_id", "customer_id"),
        Index("ix_quotation_business_vendor", "business_id", "vendor_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<Quotation(id={self.id}, type={self.quotation_type}, "
            f"total={self.total_amount})>"
        )
