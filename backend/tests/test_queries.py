"""
Unsettled quotations and unallocated payments
"""

import uuid
from datetime import datetime
from decimal import Decimal

import pytest

from app.core.exceptions import NotFoundError
from app.models.enums import PartyType
from app.services.allocation import allocate_payment, delete_payment
from app.services.queries import (
    allocation_totals, unallocated_payments, unsettled_quotations,
)


class TestUnsettledQuotations:

    async def test_only_quotations_with_outstanding(self, db, factory, business_id):
        customer = await factory.customer()
        vendor = await factory.vendor()
        settled = await factory.quotation(customer=customer, total_amount="1000", created_at=datetime(2026, 1, 1))
        partly = await factory.quotation(customer=customer, total_amount="500", created_at=datetime(2026, 1, 2))
        fresh = await factory.quotation(customer=customer, total_amount="250", created_at=datetime(2026, 1, 3))
        await factory.quotation(vendor=vendor, total_amount="900")

        payment = await factory.payment(customer, "1500")
        await allocate_payment(db, business_id, payment.id, settled.id, Decimal("1000"))
        await allocate_payment(db, business_id, payment.id, partly.id, Decimal("200"))

        rows = await unsettled_quotations(db, business_id, PartyType.CUSTOMER, customer.id)

        assert [row.quotation.id for row in rows] == [fresh.id, partly.id]
        assert rows[1].allocated_amount == Decimal("200")
        assert rows[1].outstanding_amount == Decimal("300")
        assert rows[0].outstanding_amount == Decimal("250")

    async def test_deleted_payments_do_not_settle(self, db, factory, business_id):
        customer = await factory.customer()
        quotation = await factory.quotation(customer=customer, total_amount="400")
        payment = await factory.payment(customer, "400")
        await allocate_payment(db, business_id, payment.id, quotation.id, Decimal("400"))
        assert await unsettled_quotations(db, business_id, "customer", customer.id) == []

        await delete_payment(db, business_id, payment.id)

        rows = await unsettled_quotations(db, business_id, "customer", customer.id)
        assert [row.outstanding_amount for row in rows] == [Decimal("400")]

    async def test_vendor_outstanding_on_cost(self, db, factory, business_id):
        vendor = await factory.vendor()
        quotation = await factory.quotation(vendor=vendor, total_amount="1000", form_fields={"costPrice": "600"})

        rows = await unsettled_quotations(db, business_id, PartyType.VENDOR, vendor.id)

        assert rows[0].quotation.id == quotation.id
        assert rows[0].total_amount == Decimal("600")

    async def test_unknown_party(self, db, business_id):
        with pytest.raises(NotFoundError):
            await unsettled_quotations(db, business_id, PartyType.VENDOR, uuid.uuid4())


class TestUnallocatedPayments:

    async def test_newest_first_with_money_left(self, db, factory, business_id):
        customer = await factory.customer()
        quotation = await factory.quotation(customer=customer, total_amount="5000")
        older = await factory.payment(customer, "100", payment_date=datetime(2026, 1, 1))
        newer = await factory.payment(customer, "200", payment_date=datetime(2026, 2, 1))
        spent = await factory.payment(customer, "300", payment_date=datetime(2026, 3, 1))
        gone = await factory.payment(customer, "400", payment_date=datetime(2026, 4, 1))
        await allocate_payment(db, business_id, spent.id, quotation.id, Decimal("300"))
        await delete_payment(db, business_id, gone.id)

        payments = await unallocated_payments(db, business_id, PartyType.CUSTOMER, customer.id)

        assert [p.id for p in payments] == [newer.id, older.id]

    async def test_other_role_is_excluded(self, db, factory, business_id):
        customer = await factory.customer()
        vendor = await factory.vendor()
        await factory.payment(vendor, "100")

        assert await unallocated_payments(db, business_id, PartyType.CUSTOMER, customer.id) == []


class TestAllocationTotals:

    async def test_grouped_per_quotation(self, db, factory, business_id):
        customer = await factory.customer()
        q1 = await factory.quotation(customer=customer)
        q2 = await factory.quotation(customer=customer)
        p1 = await factory.payment(customer, "1000")
        p2 = await factory.payment(customer, "1000")
        await allocate_payment(db, business_id, p1.id, q1.id, Decimal("100"))
        await allocate_payment(db, business_id, p2.id, q1.id, Decimal("250"))
        await allocate_payment(db, business_id, p2.id, q2.id, Decimal("50"))

        totals = await allocation_totals(db, business_id, PartyType.CUSTOMER, customer.id)
        assert totals == {q1.id: Decimal("350"), q2.id: Decimal("50")}

        only_q2 = await allocation_totals(db, business_id, PartyType.CUSTOMER, customer.id, [q2.id])
        assert only_q2 == {q2.id: Decimal("50")}
        assert await allocation_totals(db, business_id, PartyType.CUSTOMER, customer.id, []) == {}
