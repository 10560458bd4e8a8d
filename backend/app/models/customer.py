"""
Travel desk settlement - Customer model
Customer account of a business (debtor side of quotations)
"""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import String, Boolean, DateTime, Numeric, Enum as SQLEnum, Index, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base
from app.models.enums import BalanceType


class Customer(Base):
    """Customer table"""

    __tablename__ = "customers"

    # ==================== Primary key ====================
    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )

    # ==================== Tenant ====================
    business_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), nullable=False, comment="Owning business ID"
    )

    # ==================== Profile ====================
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(200), nullable=False)
    phone: Mapped[str] = mapped_column(String(50), nullable=False)
    company_name: Mapped[str | None] = mapped_column(String(200), nullable=True)

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
            name="ck_customer_opening_nonneg",
        ),
        Index("ix_customer_business_created", "business_id", "created_at"),
    )

    @property
    def display_name(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"<Customer(id={self.id}, name={self.name})>"
