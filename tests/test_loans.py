"""
Tests for the loan lifecycle: creation, preview, settlement, deletion and
continuation installments
"""
import pytest
from datetime import timedelta
from httpx import AsyncClient

from dateutil.relativedelta import relativedelta

from microfin.core.dates import business_today
from microfin.modules.loans.models import PaymentFrequency


def loan_payload(**overrides):
    payload = {
        "principal_amount": 50000,
        "interest_rate": 2,
        "duration": 6,
        "frequency": "MONTHLY",
        "start_date": business_today().isoformat(),
    }
    payload.update(overrides)
    return payload


class TestSchedulePreview:

    @pytest.mark.integration
    async def test_preview(self, client: AsyncClient, agent_headers):
        response = await client.post("/api/loans/preview", json=loan_payload(), headers=agent_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["periods"] == 6
        assert data["total_interest"] == 6000
        assert data["total_payable"] == 56000
        assert data["installments"][0]["amount"] == 9333.33
        assert data["installments"][-1]["principal"] == 8333.34

    @pytest.mark.integration
    async def test_preview_requires_token(self, client: AsyncClient):
        response = await client.post("/api/loans/preview", json=loan_payload())

        assert response.status_code == 401

    @pytest.mark.integration
    async def test_preview_rejects_invalid_terms(self, client: AsyncClient, agent_headers):
        response = await client.post(
            "/api/loans/preview", json=loan_payload(principal_amount=0), headers=agent_headers
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Principal amount must be greater than zero"}

    @pytest.mark.integration
    @pytest.mark.parametrize("overrides", [
        {"duration": 121},
        {"principal_amount": 100000000000},
        {"interest_rate": 101},
    ])
    async def test_preview_rejects_oversized_terms(self, client: AsyncClient, agent_headers, overrides):
        response = await client.post(
            "/api/loans/preview", json=loan_payload(**overrides), headers=agent_headers
        )

        assert response.status_code == 400
        assert "error" in response.json()

    @pytest.mark.integration
    async def test_long_daily_preview_has_no_negative_amounts(self, client: AsyncClient, agent_headers):
        response = await client.post(
            "/api/loans/preview",
            json=loan_payload(principal_amount=100, duration=12, frequency="DAILY"),
            headers=agent_headers
        )

        assert response.status_code == 200
        installments = response.json()["installments"]
        assert len(installments) == 360
        assert min(item["principal"] for item in installments) >= 0
        assert max(item["principal"] for item in installments) <= 0.28


class TestLoanCreation:

    @pytest.mark.integration
    async def test_admin_creates_loan_with_disbursement(self, client: AsyncClient, admin_headers, borrower):
        response = await client.post(
            f"/api/admin/borrowers/{borrower.id}/loans", json=loan_payload(), headers=admin_headers
        )

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "ACTIVE"
        assert data["borrower_name"] == "Ramesh Kumar"
        assert len(data["installments"]) == 6
        assert {item["status"] for item in data["installments"]} == {"PENDING"}

        ledger = await client.get(
            "/api/admin/transactions", params={"loan_id": data["id"]}, headers=admin_headers
        )
        entries = ledger.json()["transactions"]
        assert len(entries) == 1
        assert entries[0]["transaction_type"] == "EXPENSE"
        assert entries[0]["category"] == "LOAN"
        assert entries[0]["amount"] == 50000

    @pytest.mark.integration
    async def test_weekly_loan_has_four_periods_per_month(self, client: AsyncClient, agent_headers, borrower):
        response = await client.post(
            f"/api/agent/borrowers/{borrower.id}/loans",
            json=loan_payload(frequency="WEEKLY", duration=2),
            headers=agent_headers
        )

        assert response.status_code == 201
        assert len(response.json()["installments"]) == 8

    @pytest.mark.integration
    async def test_invalid_terms_create_nothing(self, client: AsyncClient, admin_headers, borrower):
        response = await client.post(
            f"/api/admin/borrowers/{borrower.id}/loans", json=loan_payload(duration=0), headers=admin_headers
        )

        assert response.status_code == 400
        loans = await client.get("/api/admin/loans", headers=admin_headers)
        assert loans.json() == []

    @pytest.mark.integration
    async def test_agent_cannot_lend_to_other_agents_borrower(
        self, client: AsyncClient, other_agent_headers, borrower
    ):
        response = await client.post(
            f"/api/agent/borrowers/{borrower.id}/loans", json=loan_payload(), headers=other_agent_headers
        )

        assert response.status_code == 403

    @pytest.mark.integration
    async def test_list_loans_by_status(self, client: AsyncClient, admin_headers, loan):
        active = await client.get("/api/admin/loans", params={"status": "ACTIVE"}, headers=admin_headers)
        settled = await client.get("/api/admin/loans", params={"status": "SETTLED"}, headers=admin_headers)

        assert [item["id"] for item in active.json()] == [loan.id]
        assert settled.json() == []


class TestSettlement:

    @pytest.mark.integration
    async def test_settle_with_final_payment(self, client: AsyncClient, agent_headers, admin_headers, loan):
        first = loan.installments[0].id
        await client.post(f"/api/agent/collect/{first}", json={"amount": 8333.33}, headers=agent_headers)

        response = await client.post(
            f"/api/admin/loans/{loan.id}/settle",
            json={"amount": 40000, "interest": 500, "notes": "Closed early"},
            headers=admin_headers
        )

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "SETTLED"
        statuses = [item["status"] for item in data["installments"]]
        assert statuses.count("PAID") == 2
        assert statuses.count("SKIPPED") == 5
        assert statuses.count("PENDING") == 0

        ledger = await client.get(
            "/api/admin/transactions",
            params={"loan_id": loan.id, "type": "INSTALLMENT", "category": "LOAN"},
            headers=admin_headers
        )
        entries = ledger.json()["transactions"]
        assert len(entries) == 1
        assert entries[0]["amount"] == 40000
        assert entries[0]["interest"] == 500
        assert entries[0]["name"] == "Ramesh Kumar - SETTLED"

    @pytest.mark.integration
    async def test_settle_without_payment(self, client: AsyncClient, admin_headers, loan):
        response = await client.post(f"/api/admin/loans/{loan.id}/settle", json={}, headers=admin_headers)

        data = response.json()
        assert data["status"] == "SETTLED"
        assert len(data["installments"]) == 6
        assert all(item["paid_at"] is not None for item in data["installments"])

    @pytest.mark.integration
    async def test_settle_twice_rejected(self, client: AsyncClient, admin_headers, loan):
        await client.post(f"/api/admin/loans/{loan.id}/settle", json={}, headers=admin_headers)

        response = await client.post(f"/api/admin/loans/{loan.id}/settle", json={}, headers=admin_headers)

        assert response.status_code == 400
        assert response.json() == {"error": "Only active loans can be settled"}

    @pytest.mark.integration
    async def test_skipped_installments_not_collectable(
        self, client: AsyncClient, agent_headers, admin_headers, loan
    ):
        await client.post(f"/api/admin/loans/{loan.id}/settle", json={}, headers=admin_headers)

        response = await client.post(
            f"/api/agent/collect/{loan.installments[0].id}", json={"amount": 100}, headers=agent_headers
        )

        assert response.status_code == 400

    @pytest.mark.integration
    async def test_settlement_payment_cannot_be_reverted(self, client: AsyncClient, admin_headers, loan):
        """Reverting the final payment would reopen an installment on a closed loan"""
        await client.post(f"/api/admin/loans/{loan.id}/settle", json={"amount": 5000}, headers=admin_headers)
        ledger = await client.get(
            "/api/admin/transactions",
            params={"loan_id": loan.id, "type": "INSTALLMENT", "category": "LOAN"},
            headers=admin_headers
        )
        entry = ledger.json()["transactions"][0]

        deleted = await client.delete(f"/api/admin/transactions/{entry['id']}", headers=admin_headers)
        unpaid = await client.post(
            f"/api/admin/installments/{entry['installment_id']}/unpaid", headers=admin_headers
        )

        assert deleted.status_code == 400
        assert deleted.json() == {"error": "Payments on a settled loan cannot be reverted"}
        assert unpaid.status_code == 400
        final = await client.get(f"/api/admin/installments/{entry['installment_id']}", headers=admin_headers)
        assert final.json()["status"] == "PAID"
        assert (await client.get(f"/api/admin/transactions/{entry['id']}", headers=admin_headers)).status_code == 200
        loans = await client.get("/api/admin/loans", params={"status": "SETTLED"}, headers=admin_headers)
        assert [item["id"] for item in loans.json()] == [loan.id]

    @pytest.mark.integration
    async def test_paid_installment_of_settled_loan_stays_paid(
        self, client: AsyncClient, agent_headers, admin_headers, loan
    ):
        first = loan.installments[0].id
        await client.post(f"/api/agent/collect/{first}", json={"amount": 8333.33}, headers=agent_headers)
        await client.post(f"/api/admin/loans/{loan.id}/settle", json={}, headers=admin_headers)

        response = await client.post(f"/api/admin/installments/{first}/unpaid", headers=admin_headers)

        assert response.status_code == 400
        installment = await client.get(f"/api/admin/installments/{first}", headers=admin_headers)
        assert installment.json()["status"] == "PAID"


class TestLoanDeletion:

    @pytest.mark.integration
    async def test_delete_loan_removes_schedule_and_ledger(
        self, client: AsyncClient, agent_headers, admin_headers, loan
    ):
        await client.post(
            f"/api/agent/collect/{loan.installments[0].id}", json={"amount": 8333.33}, headers=agent_headers
        )

        response = await client.delete(f"/api/admin/loans/{loan.id}", headers=admin_headers)

        assert response.status_code == 200
        installments = await client.get("/api/admin/installments", headers=admin_headers)
        assert installments.json()["total"] == 0
        ledger = await client.get("/api/admin/transactions", headers=admin_headers)
        assert ledger.json()["total"] == 0

    @pytest.mark.integration
    async def test_delete_unknown_loan(self, client: AsyncClient, admin_headers):
        response = await client.delete("/api/admin/loans/999", headers=admin_headers)

        assert response.status_code == 404


class TestInstallmentAdmin:

    @pytest.mark.integration
    async def test_list_and_search(self, client: AsyncClient, admin_headers, loan):
        response = await client.get(
            "/api/admin/installments", params={"search": "Ramesh", "page_size": 4}, headers=admin_headers
        )

        data = response.json()
        assert data["total"] == 6
        assert data["total_pages"] == 2
        assert len(data["installments"]) == 4
        assert data["installments"][0]["borrower_name"] == "Ramesh Kumar"
        assert data["installments"][0]["agent_name"] == "Anil Agent"

    @pytest.mark.integration
    async def test_edit_installment(self, client: AsyncClient, admin_headers, loan):
        installment_id = loan.installments[0].id

        response = await client.patch(
            f"/api/admin/installments/{installment_id}", json={"penalty_amount": 75}, headers=admin_headers
        )

        assert response.status_code == 200
        assert response.json()["penalty_amount"] == 75

    @pytest.mark.integration
    async def test_delete_installment_keeps_ledger_entry(
        self, client: AsyncClient, agent_headers, admin_headers, loan
    ):
        installment_id = loan.installments[0].id
        collected = await client.post(
            f"/api/agent/collect/{installment_id}", json={"amount": 8333.33}, headers=agent_headers
        )
        transaction_id = collected.json()["transaction"]["id"]

        response = await client.delete(f"/api/admin/installments/{installment_id}", headers=admin_headers)

        assert response.status_code == 200
        entry = await client.get(f"/api/admin/transactions/{transaction_id}", headers=admin_headers)
        assert entry.status_code == 200
        assert entry.json()["installment_id"] is None

    @pytest.mark.integration
    async def test_due_today(self, client: AsyncClient, admin_headers, agent_headers, loan_factory, borrower):
        start = business_today() - relativedelta(months=1)
        due = await loan_factory(borrower, start_date=start, duration=3)
        expected = [i.id for i in due.installments if i.due_date == business_today()]

        response = await client.get("/api/admin/installments/today", headers=admin_headers)
        stats = await client.get("/api/agent/stats", headers=agent_headers)

        assert [item["id"] for item in response.json()] == expected
        assert [item["id"] for item in stats.json()["dues_today"]] == expected


class TestContinuationInstallments:

    @pytest.mark.integration
    async def test_generate_interest_only_installments(
        self, client: AsyncClient, admin_headers, loan_factory, borrower
    ):
        start = business_today() - relativedelta(months=8)
        old = await loan_factory(borrower, start_date=start)
        weekly = await loan_factory(borrower, start_date=start, frequency=PaymentFrequency.WEEKLY, duration=1)
        horizon = business_today() + timedelta(days=7)

        response = await client.get("/api/admin/installments/generate", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["generated"] == 2
        for item in data["installments"]:
            assert item["loan_id"] == old.id
            assert item["principal"] == 0
            assert item["interest"] == 1000
            assert item["amount"] == 1000
            assert item["status"] == "PENDING"
            assert item["due_date"] < horizon.isoformat()
        assert weekly.id not in [item["loan_id"] for item in data["installments"]]

    @pytest.mark.integration
    async def test_generate_is_idempotent(self, client: AsyncClient, admin_headers, loan_factory, borrower):
        await loan_factory(borrower, start_date=business_today() - relativedelta(months=8))
        await client.get("/api/admin/installments/generate", headers=admin_headers)

        response = await client.get("/api/admin/installments/generate", headers=admin_headers)

        assert response.json()["generated"] == 0

    @pytest.mark.integration
    async def test_running_loan_not_extended(self, client: AsyncClient, admin_headers, loan):
        response = await client.get("/api/admin/installments/generate", headers=admin_headers)

        assert response.json()["generated"] == 0
