"""
Tests for the cash book
"""
import pytest
from datetime import datetime, timedelta
from httpx import AsyncClient


async def record(client, headers, **entry):
    return await client.post("/api/admin/transactions", json=entry, headers=headers)


class TestCashBook:

    @pytest.mark.integration
    async def test_record_expense(self, client: AsyncClient, admin_headers):
        response = await record(
            client, admin_headers,
            transaction_type="EXPENSE", category="OTHER", amount=250, name="Office rent", notes="October"
        )

        assert response.status_code == 201
        data = response.json()
        assert data["amount"] == 250
        assert data["added_by"] == "ADMIN"
        assert data["installment_id"] is None

    @pytest.mark.integration
    async def test_amount_must_be_positive(self, client: AsyncClient, admin_headers):
        response = await record(client, admin_headers, transaction_type="INCOME", amount=0)

        assert response.status_code == 400
        assert response.json() == {"error": "Amount must be greater than zero"}

    @pytest.mark.integration
    async def test_unknown_type_rejected(self, client: AsyncClient, admin_headers):
        response = await record(client, admin_headers, transaction_type="REFUND", amount=10)

        assert response.status_code == 400

    @pytest.mark.integration
    async def test_list_filters_and_pagination(self, client: AsyncClient, admin_headers):
        for index in range(3):
            await record(client, admin_headers, transaction_type="INCOME", amount=100 + index, name=f"Fee {index}")
        await record(client, admin_headers, transaction_type="EXPENSE", amount=40, name="Tea")

        incomes = await client.get(
            "/api/admin/transactions", params={"type": "INCOME", "page_size": 2}, headers=admin_headers
        )
        searched = await client.get("/api/admin/transactions", params={"search": "tea"}, headers=admin_headers)

        data = incomes.json()
        assert data["total"] == 3
        assert data["total_pages"] == 2
        assert len(data["transactions"]) == 2
        assert [item["name"] for item in searched.json()["transactions"]] == ["Tea"]

    @pytest.mark.integration
    async def test_date_range_filter(self, client: AsyncClient, admin_headers):
        old = datetime.utcnow() - timedelta(days=40)
        await record(
            client, admin_headers, transaction_type="INCOME", amount=10, name="Old", created_at=old.isoformat()
        )
        await record(client, admin_headers, transaction_type="INCOME", amount=20, name="New")

        recent = await client.get(
            "/api/admin/transactions",
            params={"start_date": (datetime.utcnow() - timedelta(days=7)).date().isoformat()},
            headers=admin_headers
        )
        today = await client.get("/api/admin/transactions/today", headers=admin_headers)

        assert [item["name"] for item in recent.json()["transactions"]] == ["New"]
        assert [item["name"] for item in today.json()] == ["New"]

    @pytest.mark.integration
    async def test_update_sanitizes_text(self, client: AsyncClient, admin_headers):
        created = await record(client, admin_headers, transaction_type="INCOME", amount=10, name="Fee")

        response = await client.patch(
            f"/api/admin/transactions/{created.json()['id']}",
            json={"notes": "<b>processing fee</b>", "category": "NEUTRAL"},
            headers=admin_headers
        )

        assert response.status_code == 200
        assert response.json()["notes"] == "bprocessing fee/b"
        assert response.json()["category"] == "NEUTRAL"
        assert response.json()["amount"] == 10

    @pytest.mark.integration
    async def test_delete_plain_entry(self, client: AsyncClient, admin_headers):
        created = await record(client, admin_headers, transaction_type="EXPENSE", amount=15)
        transaction_id = created.json()["id"]

        response = await client.delete(f"/api/admin/transactions/{transaction_id}", headers=admin_headers)

        assert response.status_code == 200
        missing = await client.get(f"/api/admin/transactions/{transaction_id}", headers=admin_headers)
        assert missing.status_code == 404
