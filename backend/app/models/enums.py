"""
Travel desk settlement - shared enums
Values are part of the API contract and must match the frontend.
"""

import enum


class UserRole(str, enum.Enum):
    """Caller role"""
    ADMIN = "admin"     # business owner / admin
    MEMBER = "member"   # team member


# ============================================================================
# Parties / quotations
# ============================================================================

class PartyType(str, enum.Enum):
    """Which side of the booking a party sits on"""
    CUSTOMER = "customer"   # buys from us → owes the selling price
    VENDOR = "vendor"       # supplies us → is owed the cost price


class BalanceType(str, enum.Enum):
    """Side of the party account (opening / closing balances)"""
    DEBIT = "debit"
    CREDIT = "credit"


class QuotationType(str, enum.Enum):
    """Booking product"""
    FLIGHT = "flight"
    TRAIN = "train"
    HOTEL = "hotel"
    ACTIVITY = "activity"


class ChannelType(str, enum.Enum):
    """Sales channel"""
    B2B = "B2B"
    B2C = "B2C"


class QuotationStatus(str, enum.Enum):
    """Quotation status"""
    DRAFT = "draft"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


# ============================================================================
# Payments / allocations
# ============================================================================

class EntryType(str, enum.Enum):
    """Side of the party account a raw payment amount sits on"""
    CREDIT = "credit"
    DEBIT = "debit"


class AmountType(str, enum.Enum):
    """Which quotation price an allocation settles"""
    SELLING = "selling"   # customer payments
    COST = "cost"         # vendor payments


class PaymentRecordStatus(str, enum.Enum):
    """Payment review status (maker-checker is external)"""
    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"


class QuotationPaymentStatus(str, enum.Enum):
    """Settlement progress of a quotation (derived)"""
    NONE = "none"         # nothing allocated
    PARTIAL = "partial"   # partly allocated
    PAID = "paid"         # allocated >= amount owed


class LedgerEntryKind(str, enum.Enum):
    """Ledger entry source"""
    OPENING = "opening"
    QUOTATION = "quotation"
    PAYMENT = "payment"


class AuditAction(str, enum.Enum):
    """Audit log action"""
    PAYMENT_CREATE = "payment_create"
    PAYMENT_UPDATE = "payment_update"
    PAYMENT_DELETE = "payment_delete"
    ALLOCATION_CREATE = "allocation_create"
    ALLOCATION_BATCH = "allocation_batch"
