from __future__ import annotations

from fastapi.testclient import TestClient

from bulkpay.main import app

MAKER = {"X-Actor-Id": "smoke-maker", "X-Actor-Roles": "MAKER"}
APPROVER = {"X-Actor-Id": "smoke-approver", "X-Actor-Roles": "APPROVER"}


def run_smoke() -> None:
    """Draft -> validate -> submit -> approve against the mock registry."""
    with TestClient(app) as client:
        client.get("/health/ping").raise_for_status()
        client.get("/health/ready").raise_for_status()

        resp = client.post("/drafts", json={"organization_id": "smoke-org"}, headers=MAKER)
        resp.raise_for_status()
        draft = resp.json()
        recipient_id = draft["recipients"][0]["id"]
        client.patch(
            f"/drafts/{draft['id']}/recipients/{recipient_id}",
            json={"name": "John Doe", "phone_number": "256701234567", "amount": "1000"},
            headers=MAKER,
        ).raise_for_status()

        resp = client.post(f"/drafts/{draft['id']}/validate", headers=MAKER)
        resp.raise_for_status()
        if not resp.json()["ready"]:
            raise SystemExit("Draft not ready; is REGISTRY_MOCK_MODE enabled?")

        resp = client.post(f"/drafts/{draft['id']}/submit", headers=MAKER)
        resp.raise_for_status()
        payment = resp.json()

        resp = client.post(f"/bulk-payments/{payment['id']}/approve", headers=APPROVER)
        resp.raise_for_status()
        print("Smoke test completed. reference=", payment["reference"], "status=", resp.json()["status"])


if __name__ == "__main__":
    run_smoke()
