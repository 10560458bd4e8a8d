"""
HTTP surface: routes, status codes and the error envelope
"""

import uuid
from datetime import timedelta
from decimal import Decimal

from app.core.security import create_access_token
from app.models.enums import BalanceType, EntryType


API = "/api/v1"


class TestHealth:

    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestAuth:

    async def test_missing_token(self, anonymous_client):
        response = await anonymous_client.get(f"{API}/customers/closing-balances")
        assert response.status_code in (401, 403)
        assert "error" in response.json()

    async def test_invalid_token(self, anonymous_client):
        response = await anonymous_client.get(
            f"{API}/customers/closing-balances",
            headers={"Authorization": "Bearer not-a-token"},
        )
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "INVALID_TOKEN"

    async def test_token_scopes_business(self, anonymous_client, factory, business_id):
        customer = await factory.customer()
        token = create_access_token(str(uuid.uuid4()), business_id=str(business_id))

        response = await anonymous_client.get(
            f"{API}/customers/closing-balances",
            headers={"Authorization": f"Bearer {token}"},
        )

        assert response.status_code == 200
        assert [p["party_id"] for p in response.json()["parties"]] == [str(customer.id)]

    async def test_business_falls_back_to_subject(self, anonymous_client, factory, business_id):
        vendor = await factory.vendor()
        token = create_access_token(str(business_id))

        response = await anonymous_client.get(
            f"{API}/vendors/closing-balances",
            headers={"Authorization": f"Bearer {token}"},
        )

        assert response.status_code == 200
        assert [p["party_id"] for p in response.json()["parties"]] == [str(vendor.id)]

    async def test_expired_token(self, anonymous_client, business_id):
        token = create_access_token(
            str(business_id), expires_delta=timedelta(minutes=-5)
        )
        response = await anonymous_client.get(
            f"{API}/vendors/closing-balances",
            headers={"Authorization": f"Bearer {token}"},
        )
        assert response.status_code == 401


class TestPaymentRoutes:

    async def test_create_customer_payment(self, client, factory):
        customer = await factory.customer()
        quotation = await factory.quotation(customer=customer, total_amount="800")

        response = await client.post(
            f"{API}/customers/{customer.id}/payments",
            json={
                "amount": "1000",
                "entry_type": "credit",
                "allocations": [{"quotation_id": str(quotation.id), "amount": "800"}],
            },
        )

        assert response.status_code == 201
        body = response.json()
        assert body["party"] == "customer"
        assert Decimal(body["unallocated_amount"]) == Decimal("200")
        assert Decimal(body["allocated_amount"]) == Decimal("800")
        assert body["allocations"][0]["amount_type"] == "selling"

    async def test_non_positive_amount_is_422(self, client, factory):
        customer = await factory.customer()

        response = await client.post(
            f"{API}/customers/{customer.id}/payments",
            json={"amount": "0", "entry_type": "credit"},
        )

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    async def test_sub_cent_amount_is_422(self, client, factory):
        customer = await factory.customer()
        quotation = await factory.quotation(customer=customer)
        payment = await factory.payment(customer, "100")

        response = await client.post(
            f"{API}/payments/{payment.id}/allocations",
            json={"quotation_id": str(quotation.id), "amount": "0.015"},
        )

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    async def test_allocate_over_unallocated(self, client, factory):
        customer = await factory.customer()
        q1 = await factory.quotation(customer=customer, total_amount="2000")
        q2 = await factory.quotation(customer=customer)
        payment = await factory.payment(customer, "1000")

        first = await client.post(
            f"{API}/payments/{payment.id}/allocations",
            json={"quotation_id": str(q1.id), "amount": "800"},
        )
        assert first.status_code == 200
        assert Decimal(first.json()["outstanding_amount"]) == Decimal("1200")

        second = await client.post(
            f"{API}/payments/{payment.id}/allocations",
            json={"quotation_id": str(q2.id), "amount": "300"},
        )
        assert second.status_code == 400
        error = second.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert Decimal(error["details"]["unallocated"]) == Decimal("200")

    async def test_over_allocation_flag(self, client, factory):
        customer = await factory.customer()
        quotation = await factory.quotation(customer=customer, total_amount="100")
        payment = await factory.payment(customer, "500")

        response = await client.post(
            f"{API}/payments/{payment.id}/allocations",
            json={"quotation_id": str(quotation.id), "amount": "150"},
        )

        assert response.status_code == 200
        assert response.json()["over_allocated"] is True

    async def test_unknown_payment(self, client, factory):
        customer = await factory.customer()
        quotation = await factory.quotation(customer=customer)

        response = await client.post(
            f"{API}/payments/{uuid.uuid4()}/allocations",
            json={"quotation_id": str(quotation.id), "amount": "10"},
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    async def test_linkage_conflict(self, client, factory):
        asha = await factory.customer("Asha Mehta")
        ravi = await factory.customer("Ravi Kumar")
        quotation = await factory.quotation(customer=ravi)
        payment = await factory.payment(asha)

        response = await client.post(
            f"{API}/payments/{payment.id}/allocations",
            json={"quotation_id": str(quotation.id), "amount": "10"},
        )

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "LINKAGE_ERROR"

    async def test_update_and_delete(self, client, factory):
        customer = await factory.customer()
        payment = await factory.payment(customer, "1000")

        patched = await client.patch(
            f"{API}/payments/{payment.id}",
            json={"amount": "1500", "internal_notes": "bank slip 4471"},
        )
        assert patched.status_code == 200
        assert Decimal(patched.json()["unallocated_amount"]) == Decimal("1500")
        assert patched.json()["internal_notes"] == "bank slip 4471"

        deleted = await client.delete(f"{API}/payments/{payment.id}")
        assert deleted.status_code == 204

        again = await client.delete(f"{API}/payments/{payment.id}")
        assert again.status_code == 404


class TestQuotationRoutes:

    async def test_payment_for_quotation(self, client, factory):
        vendor = await factory.vendor()
        quotation = await factory.quotation(vendor=vendor, form_fields={"costprice": "800"})

        response = await client.post(
            f"{API}/quotations/{quotation.id}/payments",
            json={"amount": "800", "entry_type": "debit"},
        )
        assert response.status_code == 201
        assert response.json()["party"] == "vendor"

        ledger = await client.get(f"{API}/quotations/{quotation.id}/ledger", params={"party": "vendor"})
        assert ledger.status_code == 200
        body = ledger.json()
        assert Decimal(body["total_amount"]) == Decimal("800")
        assert body["payment_status"] == "paid"
        assert len(body["payments"]) == 1

    async def test_both_links_without_party(self, client, factory):
        customer = await factory.customer()
        vendor = await factory.vendor()
        quotation = await factory.quotation(customer=customer, vendor=vendor)

        response = await client.post(
            f"{API}/quotations/{quotation.id}/payments",
            json={"amount": "100", "entry_type": "credit"},
        )
        assert response.status_code == 400

    async def test_batch_allocation(self, client, factory):
        vendor = await factory.vendor()
        quotation = await factory.quotation(vendor=vendor, total_amount="5000")
        p1 = await factory.payment(vendor, "1000", entry_type=EntryType.DEBIT)
        p2 = await factory.payment(vendor, "100", entry_type=EntryType.DEBIT)

        failed = await client.post(
            f"{API}/quotations/{quotation.id}/allocations",
            json={
                "party": "vendor",
                "allocations": [
                    {"payment_id": str(p1.id), "amount": "500"},
                    {"payment_id": str(p2.id), "amount": "200"},
                ],
            },
        )
        assert failed.status_code == 400

        ok = await client.post(
            f"{API}/quotations/{quotation.id}/allocations",
            json={
                "party": "vendor",
                "allocations": [
                    {"payment_id": str(p1.id), "amount": "500"},
                    {"payment_id": str(p2.id), "amount": "100"},
                ],
            },
        )
        assert ok.status_code == 200
        body = ok.json()
        assert Decimal(body["allocated_total"]) == Decimal("600")
        assert [Decimal(p["unallocated_amount"]) for p in body["payments"]] == [
            Decimal("500"), Decimal("0"),
        ]

    async def test_batch_requires_party(self, client, factory):
        customer = await factory.customer()
        quotation = await factory.quotation(customer=customer)

        response = await client.post(
            f"{API}/quotations/{quotation.id}/allocations",
            json={"allocations": []},
        )
        assert response.status_code == 422


class TestPartyRoutes:

    async def test_ledger(self, client, factory):
        customer = await factory.customer(opening_balance="1000", balance_type=BalanceType.DEBIT)
        quotation = await factory.quotation(customer=customer, total_amount="5000")
        payment = await factory.payment(customer, "5000")
        await client.post(
            f"{API}/payments/{payment.id}/allocations",
            json={"quotation_id": str(quotation.id), "amount": "5000"},
        )

        response = await client.get(f"{API}/customers/{customer.id}/ledger")

        assert response.status_code == 200
        body = response.json()
        assert [e["type"] for e in body["entries"]] == ["payment", "quotation", "opening"]
        assert Decimal(body["totals"]["debit"]) == Decimal("6000")
        assert Decimal(body["totals"]["credit"]) == Decimal("5000")
        assert body["closing_balance"]["balance_type"] == "debit"
        assert Decimal(body["closing_balance"]["amount"]) == Decimal("1000")

    async def test_ledger_unknown_party(self, client):
        response = await client.get(f"{API}/vendors/{uuid.uuid4()}/ledger")
        assert response.status_code == 404

    async def test_open_items(self, client, factory):
        vendor = await factory.vendor()
        quotation = await factory.quotation(vendor=vendor, total_amount="900")
        await factory.payment(vendor, "250", entry_type=EntryType.DEBIT)

        unsettled = await client.get(f"{API}/vendors/{vendor.id}/unsettled-quotations")
        assert unsettled.status_code == 200
        items = unsettled.json()["quotations"]
        assert items[0]["quotation"]["id"] == str(quotation.id)
        assert Decimal(items[0]["outstanding_amount"]) == Decimal("900")

        unallocated = await client.get(f"{API}/vendors/{vendor.id}/unallocated-payments")
        assert unallocated.status_code == 200
        assert len(unallocated.json()["payments"]) == 1

    async def test_closing_balances(self, client, factory):
        vendor = await factory.vendor(opening_balance="300", balance_type=BalanceType.CREDIT)

        response = await client.get(f"{API}/vendors/closing-balances")

        assert response.status_code == 200
        summary = response.json()["parties"][0]
        assert summary["party_id"] == str(vendor.id)
        assert summary["closing_balance"]["balance_type"] == "credit"
        assert Decimal(summary["closing_balance"]["amount"]) == Decimal("300")
