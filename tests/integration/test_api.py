"""Integration tests for API endpoints"""

import pytest
from datetime import date
from fastapi.testclient import TestClient


@pytest.fixture
def tenancy_payload() -> dict:
    return {
        "landlord_id": "landlord_1",
        "lodger_id": "lodger_1",
        "property_address": {
            "house_number": "12",
            "street": "Mill Lane",
            "city": "Bristol",
            "county": "Avon",
            "postcode": "BS1 4DJ",
        },
        "room_description": "Double room, first floor",
        "start_date": "2024-01-01",
        "initial_term_months": 6,
        "monthly_rent": "800.00",
        "deposit_amount": "800.00",
        "payment_type": "cycle",
        "payment_frequency": "4-weekly",
        "shared_areas": ["kitchen", "bathroom"],
    }


@pytest.fixture
def signed_id(client: TestClient, tenancy_payload: dict) -> str:
    tenancy_id = client.post("/v1/tenancies", json=tenancy_payload).json()["id"]
    response = client.post(f"/v1/tenancies/{tenancy_id}/sign", json={"signature_text": "Jane Lodger"})
    assert response.status_code == 200
    return tenancy_id


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_metrics_endpoint(client: TestClient, signed_id: str):
    """Test Prometheus metrics endpoint"""
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "lodger_command_total" in response.text


def test_request_id_is_echoed(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"


def test_create_tenancy(client: TestClient, tenancy_payload: dict, dispatcher):
    """Test POST /v1/tenancies creates a draft and queues the lodger notification"""
    response = client.post("/v1/tenancies", json=tenancy_payload)

    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "draft"
    assert data["monthly_rent"] == "800.00"
    assert data["end_date"] == "2024-07-01"
    assert data["shared_areas"] == ["bathroom", "kitchen"]
    dispatcher.dispatch.assert_called_once()

    listed = client.get("/v1/tenancies", params={"user_id": "lodger_1", "role": "lodger"}).json()
    assert [t["id"] for t in listed["tenancies"]] == [data["id"]]


def test_create_tenancy_invalid_frequency(client: TestClient, tenancy_payload: dict):
    tenancy_payload["payment_frequency"] = "fortnightly-ish"
    response = client.post("/v1/tenancies", json=tenancy_payload)

    assert response.status_code == 422
    assert response.json()["code"] == "validation_error"


def test_create_tenancy_rejects_negative_rent(client: TestClient, tenancy_payload: dict):
    tenancy_payload["monthly_rent"] = "-5.00"
    assert client.post("/v1/tenancies", json=tenancy_payload).status_code == 422


def test_third_open_tenancy_conflicts(client: TestClient, tenancy_payload: dict):
    assert client.post("/v1/tenancies", json=tenancy_payload).status_code == 201
    assert client.post("/v1/tenancies", json=tenancy_payload).status_code == 201

    response = client.post("/v1/tenancies", json=tenancy_payload)

    assert response.status_code == 409
    assert response.json()["code"] == "capacity_exceeded"


def test_unknown_tenancy_is_404(client: TestClient):
    response = client.get("/v1/tenancies/does-not-exist")
    assert response.status_code == 404
    assert response.json()["code"] == "not_found"


def test_sign_generates_schedule(client: TestClient, signed_id: str):
    payments = client.get(f"/v1/tenancies/{signed_id}/payments").json()["payments"]

    assert len(payments) == 7
    assert payments[0]["rent_due"] == "1600.00"
    assert payments[1]["due_date"] == "2024-01-29"
    assert client.get(f"/v1/tenancies/{signed_id}").json()["status"] == "active"


def test_cancel_signed_tenancy_conflicts(client: TestClient, signed_id: str):
    response = client.post(f"/v1/tenancies/{signed_id}/cancel")
    assert response.status_code == 409
    assert response.json()["code"] == "invalid_state"


def test_submit_then_confirm_payment(client: TestClient, signed_id: str):
    """Test the lodger's submission leaves the balance, the landlord's confirmation clears it"""
    submitted = client.post(
        f"/v1/tenancies/{signed_id}/payments/1/submit",
        json={"amount": "1600.00", "method": "bank_transfer", "reference": "JAN"},
    )
    assert submitted.status_code == 200
    assert submitted.json()["status"] == "submitted"
    assert submitted.json()["rent_paid"] == "0.00"

    confirmed = client.post(f"/v1/tenancies/{signed_id}/payments/1/confirm", json={"amount": "1600.00"})
    assert confirmed.status_code == 200
    assert confirmed.json()["status"] == "confirmed"
    assert confirmed.json()["balance"] == "0.00"

    again = client.post(f"/v1/tenancies/{signed_id}/payments/1/confirm", json={"amount": "1600.00"})
    assert again.status_code == 409
    assert again.json()["code"] == "already_confirmed"

    summary = client.get(f"/v1/tenancies/{signed_id}/payments/summary").json()
    assert summary["total_paid"] == "1600.00"
    assert summary["confirmed_count"] == 1


def test_remind_payment(client: TestClient, signed_id: str, dispatcher):
    dispatcher.dispatch.reset_mock()
    response = client.post(f"/v1/tenancies/{signed_id}/payments/2/remind")

    assert response.status_code == 202
    dispatcher.dispatch.assert_called_once()


def test_rent_a_room_summary(client: TestClient, signed_id: str):
    response = client.get(f"/v1/tenancies/{signed_id}/rent-a-room", params={"tax_year_start": 2023})

    assert response.status_code == 200
    assert response.json()["tax_year"] == "2023-2024"
    assert response.json()["allowance"] == "7500.00"


def test_deductions(client: TestClient, signed_id: str):
    """Test £150 succeeds against an £800 deposit, then £700 more is refused"""
    created = client.post(
        f"/v1/tenancies/{signed_id}/deductions",
        json={"deduction_type": "damage", "description": "Broken chair", "total_amount": "150.00", "from_deposit": "150.00"},
    )
    assert created.status_code == 201

    refused = client.post(
        f"/v1/tenancies/{signed_id}/deductions",
        json={"deduction_type": "damage", "description": "Carpet", "total_amount": "700.00", "from_deposit": "700.00"},
    )
    assert refused.status_code == 422
    body = refused.json()
    assert body["code"] == "insufficient_funds"
    assert body["available"] == "650.00"

    funds = client.get(f"/v1/tenancies/{signed_id}/funds").json()
    assert funds["available_deposit"] == "650.00"
    assert funds["total_available"] == "1450.00"
    assert len(funds["deductions"]) == 1

    statement = client.post(f"/v1/tenancies/{signed_id}/deductions/{created.json()['id']}/statement")
    assert statement.status_code == 202
    assert statement.json()["statement_generated"] is True


def test_termination_notice(client: TestClient, signed_id: str, clock):
    clock.set(date(2024, 2, 1))
    response = client.post(
        f"/v1/tenancies/{signed_id}/notices/termination",
        json={"issued_by": "landlord_1", "reason": "landlord_needs", "notice_period_days": 28},
    )

    assert response.status_code == 201
    assert response.json()["effective_date"] == "2024-02-29"
    assert response.json()["settlement_amount"] == "-1514.29"
    assert client.get(f"/v1/tenancies/{signed_id}").json()["status"] == "notice_given"


def test_invalid_notice_period(client: TestClient, signed_id: str):
    response = client.post(
        f"/v1/tenancies/{signed_id}/notices/termination",
        json={"issued_by": "landlord_1", "reason": "end_term", "notice_period_days": 10},
    )
    assert response.status_code == 422


def test_breach_escalation_too_early(client: TestClient, signed_id: str):
    breach = client.post(
        f"/v1/tenancies/{signed_id}/notices/breach",
        json={"issued_by": "landlord_1", "breach_type": "smoking", "description": "Smoking indoors"},
    )
    assert breach.status_code == 201
    assert breach.json()["remedy_deadline"] == "2024-01-08"

    response = client.post(
        f"/v1/tenancies/{signed_id}/notices/{breach.json()['id']}/escalate", json={"issued_by": "landlord_1"}
    )
    assert response.status_code == 409


def test_extension_over_cap_rejected(client: TestClient, signed_id: str):
    response = client.post(
        f"/v1/tenancies/{signed_id}/notices/extension",
        json={"issued_by": "landlord_1", "extension_months": 6, "new_monthly_rent": "820.01"},
    )

    assert response.status_code == 422
    assert response.json()["code"] == "rent_cap_exceeded"
    assert response.json()["maximum_rent"] == "820.00"


def test_extension_accepted(client: TestClient, signed_id: str):
    offer = client.post(
        f"/v1/tenancies/{signed_id}/notices/extension",
        json={"issued_by": "landlord_1", "extension_months": 6, "new_monthly_rent": "820.00"},
    ).json()

    response = client.post(f"/v1/tenancies/{signed_id}/notices/{offer['id']}/respond", json={"accept": True})

    assert response.status_code == 200
    assert response.json()["extension_status"] == "accepted"
    tenancy = client.get(f"/v1/tenancies/{signed_id}").json()
    assert tenancy["status"] == "extended"
    assert tenancy["monthly_rent"] == "820.00"
    assert tenancy["end_date"] == "2025-01-01"
    assert len(client.get(f"/v1/tenancies/{signed_id}/notices").json()["notices"]) == 1


def test_sweeps(client: TestClient, signed_id: str, clock, dispatcher):
    client.post(
        f"/v1/tenancies/{signed_id}/notices/extension",
        json={"issued_by": "landlord_1", "extension_months": 3},
    )
    clock.set(date(2024, 1, 16))
    dispatcher.dispatch.reset_mock()

    response = client.post("/v1/sweeps/extensions")

    assert response.status_code == 200
    assert response.json()["changed"] == [signed_id]
    dispatcher.dispatch.assert_called_once()
    assert client.post("/v1/sweeps/terminations").json()["checked"] == 0
