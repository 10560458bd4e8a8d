"""
Travel desk settlement - SQLAlchemy models
Every model is imported here so Alembic sees the full metadata
"""

from app.models.customer import Customer
from app.models.vendor import Vendor
from app.models.quotation import Quotation
from app.models.payment import Payment
from app.models.payment_allocation import PaymentAllocation
from app.models.audit_log import AuditLog

__all__ = [
    "Customer",
    "Vendor",
    "Quotation",
    "Payment",
    "PaymentAllocation",
    "AuditLog",
]
