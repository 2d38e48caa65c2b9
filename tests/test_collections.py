"""
Tests for payment application, reversal and the overdue sweep
"""
import pytest
from datetime import timedelta
from httpx import AsyncClient

from dateutil.relativedelta import relativedelta

from microfin.core.dates import business_today
from microfin.modules.loans.models import PaymentFrequency


PAYMENT_FIELDS = ("status", "paid_at", "due_amount", "penalty_amount", "extra_amount")


async def collect(client, headers, installment_id, **payment):
    return await client.post(f"/api/agent/collect/{installment_id}", json=payment, headers=headers)


class TestApplyPayment:
    """Agent collections"""

    @pytest.mark.integration
    async def test_full_payment(self, client: AsyncClient, agent_headers, loan):
        """Full principal settles the installment with interest in the ledger entry"""
        installment_id = loan.installments[0].id

        response = await collect(client, agent_headers, installment_id, amount=8333.33)

        assert response.status_code == 200
        data = response.json()
        assert data["installment"]["status"] == "PAID"
        assert data["installment"]["due_amount"] == 0
        assert data["installment"]["paid_at"] is not None
        assert data["transaction"]["amount"] == 9333.33
        assert data["transaction"]["interest"] == 1000
        assert data["transaction"]["transaction_type"] == "INSTALLMENT"
        assert data["transaction"]["installment_id"] == installment_id
        assert data["transaction"]["loan_id"] == loan.id
        assert data["transaction"]["added_by"] == "AGENT"

    @pytest.mark.integration
    async def test_partial_payment_keeps_shortfall(self, client: AsyncClient, agent_headers, loan):
        """A partial payment still marks the installment paid"""
        response = await collect(client, agent_headers, loan.installments[0].id, amount=5000)

        data = response.json()
        assert data["installment"]["status"] == "PAID"
        assert data["installment"]["due_amount"] == 3333.33
        assert data["transaction"]["amount"] == 6000

    @pytest.mark.integration
    async def test_overpayment_is_capped(self, client: AsyncClient, agent_headers, loan):
        response = await collect(client, agent_headers, loan.installments[0].id, amount=20000)

        data = response.json()
        assert data["installment"]["due_amount"] == 0
        assert data["transaction"]["amount"] == 9333.33

    @pytest.mark.integration
    async def test_penalty_recorded_separately(self, client: AsyncClient, agent_headers, loan):
        """Penalties never enter the ledger amount; extras do"""
        response = await collect(
            client, agent_headers, loan.installments[0].id,
            amount=8333.33, penalty_amount=200, extra_amount=100
        )

        data = response.json()
        assert data["transaction"]["amount"] == 9433.33
        assert data["transaction"]["penalty_amount"] == 200
        assert data["transaction"]["extra_amount"] == 100
        assert data["installment"]["penalty_amount"] == 200

    @pytest.mark.integration
    async def test_zero_payment_on_monthly_loan_collects_interest(self, client: AsyncClient, agent_headers, loan):
        response = await collect(client, agent_headers, loan.installments[0].id, amount=0, extra_amount=50)

        data = response.json()
        assert data["installment"]["status"] == "PAID"
        assert data["installment"]["due_amount"] == 8333.33
        assert data["transaction"]["amount"] == 1050
        assert data["transaction"]["interest"] == 1000

    @pytest.mark.integration
    async def test_zero_payment_on_weekly_loan_collects_no_interest(
        self, client: AsyncClient, agent_headers, loan_factory, borrower
    ):
        weekly = await loan_factory(borrower, frequency=PaymentFrequency.WEEKLY)

        response = await collect(client, agent_headers, weekly.installments[0].id, amount=0, extra_amount=50)

        data = response.json()
        assert data["transaction"]["amount"] == 50
        assert data["transaction"]["interest"] == 0

    @pytest.mark.integration
    async def test_second_collection_rejected(self, client: AsyncClient, agent_headers, loan):
        installment_id = loan.installments[0].id
        await collect(client, agent_headers, installment_id, amount=8333.33)

        response = await collect(client, agent_headers, installment_id, amount=8333.33)

        assert response.status_code == 400
        assert "error" in response.json()

    @pytest.mark.integration
    async def test_amount_required(self, client: AsyncClient, agent_headers, loan):
        response = await collect(client, agent_headers, loan.installments[0].id)

        assert response.status_code == 400
        assert response.json()["error"] == "Amount is required"

    @pytest.mark.integration
    async def test_other_agent_cannot_collect(self, client: AsyncClient, other_agent_headers, loan):
        response = await collect(client, other_agent_headers, loan.installments[0].id, amount=8333.33)

        assert response.status_code == 403

    @pytest.mark.integration
    async def test_unknown_installment(self, client: AsyncClient, agent_headers, loan):
        response = await collect(client, agent_headers, 9999, amount=100)

        assert response.status_code == 404

    @pytest.mark.integration
    async def test_admin_installment_transaction_collects(self, client: AsyncClient, admin_headers, loan):
        """Admin INSTALLMENT entries go through payment application"""
        installment_id = loan.installments[1].id

        response = await client.post(
            "/api/admin/transactions",
            json={"transaction_type": "INSTALLMENT", "installment_id": installment_id, "amount": 8333.33},
            headers=admin_headers
        )

        assert response.status_code == 201
        assert response.json()["amount"] == 9333.33
        assert response.json()["added_by"] == "ADMIN"

        installment = await client.get(f"/api/admin/installments/{installment_id}", headers=admin_headers)
        assert installment.json()["status"] == "PAID"

    @pytest.mark.integration
    async def test_admin_installment_transaction_requires_installment(self, client: AsyncClient, admin_headers):
        response = await client.post(
            "/api/admin/transactions",
            json={"transaction_type": "INSTALLMENT", "amount": 100},
            headers=admin_headers
        )

        assert response.status_code == 400


class TestReversal:
    """Deleting a settling entry and marking unpaid"""

    @pytest.mark.integration
    async def test_deleting_transaction_restores_installment(
        self, client: AsyncClient, agent_headers, admin_headers, loan
    ):
        installment_id = loan.installments[0].id
        before = (await client.get(f"/api/admin/installments/{installment_id}", headers=admin_headers)).json()

        collected = await collect(
            client, agent_headers, installment_id, amount=4000, penalty_amount=100, extra_amount=20
        )
        transaction_id = collected.json()["transaction"]["id"]

        response = await client.delete(f"/api/admin/transactions/{transaction_id}", headers=admin_headers)
        assert response.status_code == 200

        after = (await client.get(f"/api/admin/installments/{installment_id}", headers=admin_headers)).json()
        assert {key: after[key] for key in PAYMENT_FIELDS} == {key: before[key] for key in PAYMENT_FIELDS}

        missing = await client.get(f"/api/admin/transactions/{transaction_id}", headers=admin_headers)
        assert missing.status_code == 404

    @pytest.mark.integration
    async def test_mark_unpaid_removes_ledger_entry(self, client: AsyncClient, agent_headers, admin_headers, loan):
        installment_id = loan.installments[0].id
        await collect(client, agent_headers, installment_id, amount=8333.33)

        response = await client.post(f"/api/admin/installments/{installment_id}/unpaid", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["status"] == "PENDING"
        assert response.json()["paid_at"] is None

        ledger = await client.get(
            "/api/admin/transactions",
            params={"type": "INSTALLMENT", "loan_id": loan.id},
            headers=admin_headers
        )
        assert ledger.json()["total"] == 0

    @pytest.mark.integration
    async def test_mark_unpaid_requires_paid(self, client: AsyncClient, admin_headers, loan):
        response = await client.post(
            f"/api/admin/installments/{loan.installments[0].id}/unpaid", headers=admin_headers
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Installment is not currently paid"

    @pytest.mark.integration
    async def test_reverted_installment_can_be_collected_again(
        self, client: AsyncClient, agent_headers, admin_headers, loan
    ):
        installment_id = loan.installments[0].id
        await collect(client, agent_headers, installment_id, amount=8333.33)
        await client.post(f"/api/admin/installments/{installment_id}/unpaid", headers=admin_headers)

        response = await collect(client, agent_headers, installment_id, amount=8333.33)

        assert response.status_code == 200


class TestOverdueSweep:
    """Marking past-due installments overdue"""

    @pytest.fixture
    async def past_loan(self, loan_factory, borrower):
        start = business_today() - relativedelta(months=3) - timedelta(days=1)
        return await loan_factory(borrower, start_date=start)

    @pytest.mark.integration
    async def test_sweep_marks_past_due_pending(self, client: AsyncClient, admin_headers, past_loan):
        today = business_today()
        past_due = [i.id for i in past_loan.installments if i.due_date < today]
        assert past_due

        response = await client.get("/api/admin/installments/overdue", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["updated"] == len(past_due)
        assert sorted(item["id"] for item in data["installments"]) == sorted(past_due)

        listing = await client.get(
            "/api/admin/installments", params={"status": "OVERDUE"}, headers=admin_headers
        )
        assert listing.json()["total"] == len(past_due)

    @pytest.mark.integration
    async def test_sweep_is_idempotent(self, client: AsyncClient, admin_headers, past_loan):
        await client.get("/api/admin/installments/overdue", headers=admin_headers)

        response = await client.get("/api/admin/installments/overdue", headers=admin_headers)

        assert response.json()["updated"] == 0

    @pytest.mark.integration
    async def test_sweep_leaves_paid_installments(
        self, client: AsyncClient, agent_headers, admin_headers, past_loan
    ):
        first = past_loan.installments[0].id
        await collect(client, agent_headers, first, amount=8333.33)

        response = await client.get("/api/admin/installments/overdue", headers=admin_headers)

        assert first not in [item["id"] for item in response.json()["installments"]]
        installment = await client.get(f"/api/admin/installments/{first}", headers=admin_headers)
        assert installment.json()["status"] == "PAID"

    @pytest.mark.integration
    async def test_overdue_installment_is_collectable(
        self, client: AsyncClient, agent_headers, admin_headers, past_loan
    ):
        await client.get("/api/admin/installments/overdue", headers=admin_headers)

        response = await collect(client, agent_headers, past_loan.installments[0].id, amount=8333.33)

        assert response.status_code == 200
        assert response.json()["installment"]["status"] == "PAID"

    @pytest.mark.integration
    async def test_collectable_installments_for_borrower(
        self, client: AsyncClient, admin_headers, past_loan, borrower
    ):
        """Overdue installments followed by the next pending one"""
        await client.get("/api/admin/installments/overdue", headers=admin_headers)
        today = business_today()
        overdue = [i.id for i in past_loan.installments if i.due_date < today]
        upcoming = [i.id for i in past_loan.installments if i.due_date >= today]

        response = await client.get(f"/api/admin/borrowers/{borrower.id}/installments", headers=admin_headers)

        assert [item["id"] for item in response.json()] == overdue + upcoming[:1]
