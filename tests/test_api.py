import pytest
from fastapi.testclient import TestClient

from accommodation.api.deps import get_workflow
from accommodation.api.routes.auth import create_access_token, decode_access_token, get_current_user
from accommodation.models.request import PaymentStatus, RequestStatus
from main import app


@pytest.fixture
def client(workflow):
    app.dependency_overrides[get_workflow] = lambda: workflow
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def login():
    def as_user(user):
        app.dependency_overrides[get_current_user] = lambda: user
    return as_user


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_requires_token(client):
    response = client.get("/api/requests/")
    assert response.status_code == 401


def test_token_round_trip():
    token = create_access_token({"sub": "M10234", "role": "employee"})
    data = decode_access_token(token)
    assert data.employee_code == "M10234"
    assert data.role == "employee"


def test_create_and_list(client, login, employee, requests_repo):
    login(employee)
    response = client.post("/api/requests/", json={
        "destination": "Ouargla",
        "start_date": "2025-05-01T00:00:00",
        "end_date": "2025-05-04T00:00:00",
        "motive": "Formation",
    })
    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "AWAITING_MANAGER"
    assert body["region_tag"] == "HMD"
    assert body["id"] in requests_repo.items

    listing = client.get("/api/requests/").json()
    assert listing["total"] == 1
    assert listing["requests"][0]["destination"] == "Ouargla"


def test_invalid_dates_are_rejected(client, login, employee):
    login(employee)
    response = client.post("/api/requests/", json={
        "destination": "Ouargla",
        "start_date": "2025-05-04T00:00:00",
        "end_date": "2025-05-01T00:00:00",
    })
    assert response.status_code == 422


def test_full_lifecycle(client, login, make_request, manager, logistics, finance_officer, oasis):
    request = make_request()
    request_id = str(request.id)

    login(manager)
    response = client.patch(f"/api/requests/{request_id}/manager", json={"approved": True, "comment": "OK"})
    assert response.status_code == 200
    assert response.json()["status"] == RequestStatus.AWAITING_RESERVATION.value

    login(logistics)
    response = client.patch(f"/api/requests/{request_id}/reservation", json={
        "hotel_id": str(oasis.id),
        "formula": "DEMI_PENSION",
        "room_type": "Single",
    })
    assert response.status_code == 200
    finance = response.json()["finance"]
    assert finance["nights"] == 2
    assert finance["total"] == 16000
    po_number = finance["po_number"]

    response = client.get(f"/api/requests/{request_id}/purchase-order")
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.headers["content-disposition"] == f'inline; filename="{po_number}.pdf"'
    assert response.content.startswith(b"%PDF")

    login(finance_officer)
    response = client.patch(f"/api/finance/{request_id}/payment", json={
        "payment_status": "PAID",
        "payment_reference": "VIR-7",
    })
    assert response.status_code == 200
    assert response.json()["finance"]["payment_status"] == PaymentStatus.PAID.value

    stats = client.get("/api/finance/stats").json()
    assert stats["count"] == 1
    assert stats["paid_amount"] == 16000

    response = client.get("/api/finance/export", params={"payment_status": "PAID", "region": "HMD"})
    assert response.status_code == 200
    assert response.headers["content-disposition"].startswith('attachment; filename="bons_de_commande_')
    assert response.content[:2] == b"PK"


def test_workflow_errors_are_mapped(client, login, make_request, manager, users):
    request = make_request()
    outsider = users.add(employee_code="M555", name="Other Manager", region_tag="OHT", role=manager.role)

    login(outsider)
    response = client.patch(f"/api/requests/{request.id}/manager", json={"approved": True})
    assert response.status_code == 403
    assert response.json()["kind"] == "REGION_MISMATCH"

    login(manager)
    response = client.patch("/api/requests/64b0000000000000000000ff/manager", json={"approved": True})
    assert response.status_code == 404
    assert response.json()["kind"] == "NOT_FOUND"


def test_roles_are_enforced(client, login, employee, approved_request, oasis):
    login(employee)
    response = client.patch(f"/api/requests/{approved_request.id}/reservation", json={"hotel_id": str(oasis.id)})
    assert response.status_code == 403

    response = client.get("/api/finance/export")
    assert response.status_code == 403


def test_missing_purchase_order(client, login, logistics, approved_request):
    login(logistics)
    response = client.get(f"/api/requests/{approved_request.id}/purchase-order")
    assert response.status_code == 404
    assert response.json()["kind"] == "NO_DOCUMENT_GENERATED"
