"""
Smoke check against a running server:

    python seed_admin.py && uvicorn main:app &
    python verify_api.py
"""
import requests
import time
import sys
import uuid

BASE_URL = "http://localhost:8000"
ADMIN_EMAIL = "admin@microfin.in"
ADMIN_PASSWORD = "admin123"


def auth_headers(token):
    return {"Authorization": f"Bearer {token}"}


def check_health():
    print("Checking Health...")
    try:
        resp = requests.get(f"{BASE_URL}/health")
        assert resp.status_code == 200
        print(f"✅ Health Check Passed: {resp.json()}")
    except Exception as e:
        print(f"❌ Health Check Failed: {e}")
        sys.exit(1)


def login(email, password):
    resp = requests.post(f"{BASE_URL}/api/auth/login", json={"email": email, "password": password})
    if resp.status_code != 200:
        print(f"❌ Login Failed for {email}: {resp.text}")
        sys.exit(1)
    print(f"✅ Login Passed for {email}")
    return resp.json()["access_token"]


def check_agents(admin_token):
    print("\nChecking Agents...")
    suffix = uuid.uuid4().hex[:8]
    agent_data = {
        "name": f"Agent {suffix}",
        "email": f"agent_{suffix}@microfin.in",
        "password": "password123",
        "phone": "9876543210",
        "address": "Main Road, Indore"
    }
    resp = requests.post(f"{BASE_URL}/api/admin/agents", json=agent_data, headers=auth_headers(admin_token))
    if resp.status_code != 201:
        print(f"❌ Create Agent Failed: {resp.text}")
        return None, None
    print("✅ Create Agent Passed")
    return resp.json(), login(agent_data["email"], agent_data["password"])


def check_borrower_and_loan(agent_token):
    print("\nChecking Borrowers & Loans...")
    pan = "ABCDE" + str(uuid.uuid4().int)[:4] + "F"
    borrower_data = {
        "name": "Ramesh Kumar",
        "father_name": "Suresh Kumar",
        "phone": "9123456780",
        "address": "Ward 4, Bhopal",
        "pan_id": pan
    }
    resp = requests.post(f"{BASE_URL}/api/agent/borrowers", json=borrower_data, headers=auth_headers(agent_token))
    if resp.status_code != 201:
        print(f"❌ Create Borrower Failed: {resp.text}")
        return None
    borrower = resp.json()
    print("✅ Create Borrower Passed")

    loan_data = {
        "principal_amount": 50000,
        "interest_rate": 2,
        "duration": 6,
        "frequency": "MONTHLY",
        "start_date": time.strftime("%Y-%m-%d")
    }
    resp = requests.post(
        f"{BASE_URL}/api/agent/borrowers/{borrower['id']}/loans",
        json=loan_data,
        headers=auth_headers(agent_token)
    )
    if resp.status_code != 201:
        print(f"❌ Create Loan Failed: {resp.text}")
        return None
    loan = resp.json()
    assert len(loan["installments"]) == 6
    print(f"✅ Create Loan Passed: first installment {loan['installments'][0]['amount']}")
    return loan


def check_collection(agent_token, admin_token, loan):
    print("\nChecking Collection & Reversal...")
    installment = loan["installments"][0]
    resp = requests.post(
        f"{BASE_URL}/api/agent/collect/{installment['id']}",
        json={"amount": installment["installment_amount"]},
        headers=auth_headers(agent_token)
    )
    if resp.status_code != 200:
        print(f"❌ Collect Failed: {resp.text}")
        return
    collected = resp.json()
    assert collected["installment"]["status"] == "PAID"
    print(f"💰 Collected: {collected['transaction']['amount']}")
    print("✅ Collect Passed")

    resp = requests.delete(
        f"{BASE_URL}/api/admin/transactions/{collected['transaction']['id']}",
        headers=auth_headers(admin_token)
    )
    assert resp.status_code == 200
    resp = requests.get(f"{BASE_URL}/api/admin/installments/{installment['id']}", headers=auth_headers(admin_token))
    assert resp.json()["status"] == "PENDING"
    print("✅ Reversal Passed")


def check_stats(admin_token, agent_token):
    print("\nChecking Dashboards...")
    resp = requests.get(f"{BASE_URL}/api/admin/stats", headers=auth_headers(admin_token))
    assert resp.status_code == 200
    print(f"📊 Admin Stats: {resp.json()}")
    resp = requests.get(f"{BASE_URL}/api/agent/stats", headers=auth_headers(agent_token))
    assert resp.status_code == 200
    print("✅ Dashboards Passed")


if __name__ == "__main__":
    # Wait for server to start
    time.sleep(2)

    check_health()
    admin_token = login(ADMIN_EMAIL, ADMIN_PASSWORD)
    agent, agent_token = check_agents(admin_token)
    if agent:
        loan = check_borrower_and_loan(agent_token)
        if loan:
            check_collection(agent_token, admin_token, loan)
        check_stats(admin_token, agent_token)

    print("\n🎉 All API Checks Passed!")
