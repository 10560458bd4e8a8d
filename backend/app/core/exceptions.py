"""
Travel desk settlement - domain errors
Raised by the settlement services and rendered by the handlers in app.main.
"""

from typing import Any, Optional


class SettlementError(Exception):
    """Base class for settlement errors"""

    code = "SETTLEMENT_ERROR"
    status_code = 400

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
            }
        }


class ValidationError(SettlementError):
    """Malformed request: bad amount, duplicate payment, over unallocated balance, ..."""

    code = "VALIDATION_ERROR"
    status_code = 400


class NotFoundError(SettlementError):
    """Party, quotation or payment is missing or soft-deleted"""

    code = "NOT_FOUND"
    status_code = 404


class LinkageError(SettlementError):
    """Quotation is not linked to the party the money belongs to"""

    code = "LINKAGE_ERROR"
    status_code = 409


class ConsistencyError(SettlementError):
    """
    sum(allocations) + unallocated != amount.

    Signals a bug in the allocation code, never a bad request. The enclosing
    transaction must be aborted.
    """

    code = "CONSISTENCY_ERROR"
    status_code = 500
