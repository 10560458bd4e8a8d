"""
Travel desk settlement - API v1 router
All v1 endpoints are mounted here
"""

from fastapi import APIRouter

from app.api.v1 import payments, quotations
from app.api.v1.parties import customers_router, vendors_router
from app.schemas.common import ErrorResponse

# Error envelope, documented on every settlement route
ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid amount or request"},
    404: {"model": ErrorResponse, "description": "Party, quotation or payment not found"},
    409: {"model": ErrorResponse, "description": "Quotation not linked to the party"},
}

api_router = APIRouter(responses=ERROR_RESPONSES)

# Customers
api_router.include_router(
    customers_router,
    prefix="/customers",
    tags=["Customers"]
)

# Vendors
api_router.include_router(
    vendors_router,
    prefix="/vendors",
    tags=["Vendors"]
)

# Quotations
api_router.include_router(
    quotations.router,
    prefix="/quotations",
    tags=["Quotations"]
)

# Payments
api_router.include_router(
    payments.router,
    prefix="/payments",
    tags=["Payments"]
)
