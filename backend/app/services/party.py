"""
Settlement - party roles
Customer and vendor behave the same except for a handful of details (which
quotation link they use, which price they owe, which table they live in).
Those details live on a PartyRole, picked once per request by get_party_role.
"""

from decimal import Decimal
from typing import Optional, Union
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import LinkageError, NotFoundError, ValidationError
from app.models.customer import Customer
from app.models.vendor import Vendor
from app.models.quotation import Quotation
from app.models.enums import AmountType, PartyType
from app.services.amounts import resolve_cost_amount, to_decimal


class PartyRole:
    """Role-specific behaviour shared by the allocation engine and the ledger"""

    party_type: PartyType
    amount_type: AmountType
    model: type
    link_attr: str
    label: str

    @property
    def quotation_link(self):
        """Quotation column holding this role's party id"""
        return getattr(Quotation, self.link_attr)

    def linked_party_id(self, quotation: Quotation) -> Optional[UUID]:
        return getattr(quotation, self.link_attr)

    def resolve_amount(self, quotation: Quotation) -> Decimal:
        raise NotImplementedError

    def check_linked(self, quotation: Quotation, party_id: UUID) -> None:
        """Quotation must carry this role's link to ``party_id``"""
        if self.linked_party_id(quotation) != party_id:
            raise LinkageError(
                f"Quotation is not linked to this {self.label}",
                details={
                    "quotation_id": str(quotation.id),
                    "party": self.party_type.value,
                    "party_id": str(party_id),
                },
            )

    async def get_party(self, db: AsyncSession, business_id: UUID, party_id: UUID):
        result = await db.execute(
            select(self.model).where(
                self.model.id == party_id,
                self.model.business_id == business_id,
                self.model.is_deleted == False,  # noqa: E712
            )
        )
        party = result.scalar_one_or_none()
        if not party:
            raise NotFoundError(
                f"{self.label.capitalize()} not found",
                details={"party_id": str(party_id)},
            )
        return party

    async def list_parties(self, db: AsyncSession, business_id: UUID) -> list:
        result = await db.execute(
            select(self.model)
            .where(
                self.model.business_id == business_id,
                self.model.is_deleted == False,  # noqa: E712
            )
            .order_by(self.model.created_at.desc())
        )
        return list(result.scalars().all())


class CustomerRole(PartyRole):
    """Customers owe the selling price"""

    party_type = PartyType.CUSTOMER
    amount_type = AmountType.SELLING
    model = Customer
    link_attr = "customer_id"
    label = "customer"

    def resolve_amount(self, quotation: Quotation) -> Decimal:
        return to_decimal(quotation.total_amount)


class VendorRole(PartyRole):
    """Vendors are owed the cost price recorded on the booking form"""

    party_type = PartyType.VENDOR
    amount_type = AmountType.COST
    model = Vendor
    link_attr = "vendor_id"
    label = "vendor"

    def resolve_amount(self, quotation: Quotation) -> Decimal:
        return resolve_cost_amount(quotation.form_fields, quotation.total_amount)


_ROLES: dict[PartyType, PartyRole] = {
    PartyType.CUSTOMER: CustomerRole(),
    PartyType.VENDOR: VendorRole(),
}


def get_party_role(party: Union[PartyType, str, None]) -> PartyRole:
    """Look up the role for ``party``; unknown or missing values are rejected"""
    if party is None:
        raise ValidationError("party is required (customer or vendor)")
    try:
        return _ROLES[PartyType(party)]
    except ValueError:
        raise ValidationError(
            "party must be customer or vendor", details={"party": str(party)}
        )


def resolve_amount(quotation: Quotation, party: Union[PartyType, str]) -> Decimal:
    """Amount ``party`` owes (or is owed) on ``quotation``"""
    return get_party_role(party).resolve_amount(quotation)


def infer_quotation_role(
    quotation: Quotation,
    party: Union[PartyType, str, None] = None,
    require_explicit: bool = False,
) -> PartyRole:
    """
    Pick the role a quotation is settled under.

    With ``party`` given, the quotation must carry that link. Without it, a
    single link decides; with both links the customer side wins unless
    ``require_explicit`` is set, in which case the caller must choose.
    """
    if party is not None:
        role = get_party_role(party)
        if role.linked_party_id(quotation) is None:
            raise LinkageError(
                f"Quotation is not linked to a {role.label}",
                details={"quotation_id": str(quotation.id)},
            )
        return role

    has_customer = quotation.customer_id is not None
    has_vendor = quotation.vendor_id is not None
    if not has_customer and not has_vendor:
        raise LinkageError(
            "Quotation is missing customer or vendor",
            details={"quotation_id": str(quotation.id)},
        )
    if has_customer and has_vendor:
        if require_explicit:
            raise ValidationError(
                "party is required when the quotation has both a customer and a vendor",
                details={"quotation_id": str(quotation.id)},
            )
        return _ROLES[PartyType.CUSTOMER]
    return _ROLES[PartyType.CUSTOMER] if has_customer else _ROLES[PartyType.VENDOR]
