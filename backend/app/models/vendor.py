"""
Travel desk settlement - Vendor model
Supplier account of a business (airlines, hotels, activity operators, ...)
"""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import String, Boolean, DateTime, Numeric, Enum as SQLEnum, Index, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base
from app.models.enums import BalanceType


class Vendor(Base):
    """Vendor table"""

    __tablename__ = "vendors"

    # ==================== Primary key ====================
    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )

    # ==================== Tenant ====================
    business_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), nullable=False, comment="Owning business ID"
    )

    # ==================== Profile ====================
    company_name: Mapped[str] = mapped_column(String(200), nullable=False)
    contact_person: Mapped[str | None] = mapped_column(String(200), nullable=True)
    email: Mapped[str | None] = mapped_column(String(200), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # ==================== Opening balance ====================
    opening_balance: Mapped[Decimal | None] = mapped_column(
        Numeric(18, 2), nullable=True, comment="Opening balance (absent = 0)"
    )
    balance_type: Mapped[BalanceType | None] = mapped_column(
        SQLEnum(BalanceType, name="balance_type"),
        nullable=True,
        comment="Side of the opening balance: credit/debit",
    )

    # ==================== System ====================
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    __table_args__ = (
        CheckConstraint(
            "opening_balance IS NULL OR opening_balance >= 0",
            name="ck_vendor_opening_nonneg",
        ),
        Index("ix_vendor_business_created", "business_id", "created_at"),
    )

    @property
    def display_name(self) -> str:
        return self.company_name

    def __repr__(self) -> str:
        return f"<Vendor(id={self.id}, company_name={self.company_name})>"
