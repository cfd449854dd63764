"""Integration tests for the employee API."""
from datetime import datetime, timedelta
from pathlib import Path

import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from trustpass.database import AsyncSessionLocal
from trustpass.main import app
from trustpass.models import Notification, Verification
from trustpass.services import notifications as notifications_service


def employee_payload(**overrides) -> dict:
    payload = {
        "employee_code": "MCS-2024-001",
        "full_name": "Ada Lovelace",
        "email": "ada@example.com",
        "dbs_number": "001234567890",
        "dbs_expiry_date": (datetime.utcnow() + timedelta(days=365)).isoformat(),
        "position": "Cleaning Operative",
        "start_date": "2024-01-15T00:00:00",
    }
    payload.update(overrides)
    return payload


async def count_rows(model, **filters) -> int:
    async with AsyncSessionLocal() as session:
        stmt = select(func.count()).select_from(model)
        for column, value in filters.items():
            stmt = stmt.where(getattr(model, column) == value)
        return (await session.execute(stmt)).scalar_one()


async def create(client, headers, **overrides) -> dict:
    response = await client.post("/employees/", json=employee_payload(**overrides), headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_bootstrap_login_and_employee_flow(client: AsyncClient) -> None:
    """An admin can bootstrap, log in, create an employee, and list employees."""

    credentials = {"email": "Owner@Example.com", "password": "secret123"}
    response = await client.post("/auth/bootstrap", json=credentials)
    assert response.status_code == 201
    assert response.json()["email"] == "owner@example.com"
    assert "password_hash" not in response.json()

    login_response = await client.post("/auth/login", json=credentials)
    assert login_response.status_code == 200
    token = login_response.json()["access_token"]
    headers = {"Authorization": f"Bearer {token}"}

    me = await client.get("/auth/me", headers=headers)
    assert me.json()["email"] == "owner@example.com"

    employee = await create(client, headers)
    assert employee["employee_code"] == "MCS-2024-001"
    assert employee["employment_type"] == "permanent"
    assert employee["status"] == "active"

    list_response = await client.get("/employees/", headers=headers)
    assert list_response.status_code == 200
    employees = list_response.json()
    assert len(employees) == 1
    assert employees[0]["full_name"] == "Ada Lovelace"


@pytest.mark.asyncio
async def test_bootstrap_only_once(client: AsyncClient, admin_headers) -> None:
    response = await client.post(
        "/auth/bootstrap", json={"email": "second@example.com", "password": "another-pass"}
    )
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_bootstrap_requires_long_password(client: AsyncClient) -> None:
    response = await client.post("/auth/bootstrap", json={"email": "a@example.com", "password": "short"})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_login_rejects_bad_password(client: AsyncClient, admin_headers) -> None:
    response = await client.post(
        "/auth/login", json={"email": "admin@example.com", "password": "wrong-password"}
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_admin_routes_require_token(client: AsyncClient) -> None:
    assert (await client.get("/employees/")).status_code == 401
    assert (await client.get("/stats")).status_code == 401
    bad = {"Authorization": "Bearer not-a-jwt"}
    assert (await client.get("/employees/", headers=bad)).status_code == 401


@pytest.mark.asyncio
async def test_duplicate_employee_code(client: AsyncClient, admin_headers) -> None:
    await create(client, admin_headers)
    response = await client.post("/employees/", json=employee_payload(), headers=admin_headers)
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_temporary_staff_need_end_date(client: AsyncClient, admin_headers) -> None:
    response = await client.post(
        "/employees/",
        json=employee_payload(employment={"type": "temporary"}),
        headers=admin_headers,
    )
    assert response.status_code == 422

    employee = await create(
        client,
        admin_headers,
        employment={"type": "temporary", "valid_until": "2025-09-30T00:00:00+01:00"},
    )
    assert employee["employment_type"] == "temporary"
    assert employee["valid_until_date"] == "2025-09-29T23:00:00"


@pytest.mark.asyncio
async def test_switching_to_permanent_clears_end_date(client: AsyncClient, admin_headers) -> None:
    employee = await create(
        client, admin_headers, employment={"type": "temporary", "valid_until": "2025-09-30T00:00:00"}
    )
    response = await client.patch(
        f"/employees/{employee['id']}",
        json={"employment": {"type": "permanent"}, "position": "Supervisor"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["employment_type"] == "permanent"
    assert body["valid_until_date"] is None
    assert body["position"] == "Supervisor"


@pytest.mark.asyncio
async def test_public_verification_logs_each_lookup(client: AsyncClient, admin_headers) -> None:
    employee = await create(
        client,
        admin_headers,
        dbs_expiry_date=(datetime.utcnow() - timedelta(days=3)).isoformat(),
    )

    for _ in range(2):
        response = await client.get("/employees/verify/MCS-2024-001")
        assert response.status_code == 200
        assert response.json()["status"] == "clearance_expired"

    assert await count_rows(Verification, employee_id=employee["id"]) == 2
    stats = (await client.get("/stats", headers=admin_headers)).json()
    assert stats["today_verifications"] == 2

    missing = await client.get("/employees/verify/NOPE-000")
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_stats_counts(client: AsyncClient, admin_headers) -> None:
    await create(client, admin_headers, employee_code="A-1")
    await create(client, admin_headers, employee_code="A-2", is_suspended=True)
    await create(client, admin_headers, employee_code="A-3", is_active=False)

    stats = (await client.get("/stats", headers=admin_headers)).json()
    assert stats == {
        "active_employees": 1,
        "inactive_employees": 1,
        "suspended_employees": 1,
        "total_employees": 3,
        "today_verifications": 0,
    }


@pytest.mark.asyncio
async def test_deactivation_notifies_once_per_day(client: AsyncClient, admin_headers, mailer) -> None:
    employee = await create(client, admin_headers)
    url = f"/employees/{employee['id']}"

    response = await client.patch(url, json={"is_active": False}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "inactive"
    assert await count_rows(Notification, type="employee_deactivated") == 1
    assert mailer.sent[0]["subject"] == "Employee(s) Deactivated - 1 Employee(s)"

    await client.patch(url, json={"is_active": True}, headers=admin_headers)
    await client.patch(url, json={"is_active": False}, headers=admin_headers)
    assert await count_rows(Notification, type="employee_deactivated") == 1
    assert len(mailer.sent) == 1


@pytest.mark.asyncio
async def test_suspension_notifies(client: AsyncClient, admin_headers, mailer) -> None:
    employee = await create(client, admin_headers)
    response = await client.patch(
        f"/employees/{employee['id']}", json={"is_suspended": True}, headers=admin_headers
    )
    assert response.json()["status"] == "suspended"
    assert await count_rows(Notification, type="employee_suspended") == 1

    # Unrelated edits do not re-alert
    await client.patch(
        f"/employees/{employee['id']}", json={"position": "Driver"}, headers=admin_headers
    )
    assert len(mailer.sent) == 1


@pytest.mark.asyncio
async def test_failed_mail_keeps_update(client: AsyncClient, admin_headers, mailer) -> None:
    mailer.succeed = False
    employee = await create(client, admin_headers)
    response = await client.patch(
        f"/employees/{employee['id']}", json={"is_suspended": True}, headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json()["is_suspended"] is True
    assert await count_rows(Notification) == 0


@pytest.mark.asyncio
async def test_patch_rejects_null_required_fields(client: AsyncClient, admin_headers) -> None:
    employee = await create(client, admin_headers)
    response = await client.patch(
        f"/employees/{employee['id']}", json={"full_name": None}, headers=admin_headers
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_delete_removes_history(client: AsyncClient, admin_headers) -> None:
    employee = await create(client, admin_headers)
    await client.get("/employees/verify/MCS-2024-001")
    await client.patch(
        f"/employees/{employee['id']}", json={"is_suspended": True}, headers=admin_headers
    )

    response = await client.delete(f"/employees/{employee['id']}", headers=admin_headers)
    assert response.status_code == 200
    assert await count_rows(Verification) == 0
    assert await count_rows(Notification) == 0
    assert (await client.get(f"/employees/{employee['id']}", headers=admin_headers)).status_code == 404


@pytest.mark.asyncio
async def test_qr_endpoints(client: AsyncClient, admin_headers, settings) -> None:
    employee = await create(client, admin_headers)

    url_response = await client.get(f"/employees/{employee['id']}/qr-url", headers=admin_headers)
    verification_url = httpx.URL(url_response.json()["verification_url"])
    assert str(verification_url).startswith(settings.public_base_url.rstrip("/"))

    # The encoded link must open from outside the company network
    transport = ASGITransport(app=app, client=("203.0.113.9", 4321))
    async with AsyncClient(transport=transport, base_url="http://testserver") as outsider:
        scanned = await outsider.get(verification_url.raw_path.decode("ascii"))
    assert scanned.status_code == 200
    assert scanned.json()["employee_code"] == "MCS-2024-001"
    assert scanned.json()["status"] == "active"

    png = await client.get(f"/employees/{employee['id']}/qr.png", headers=admin_headers)
    assert png.status_code == 200
    assert png.headers["content-type"] == "image/png"
    assert png.content.startswith(b"\x89PNG")


@pytest.mark.asyncio
async def test_photo_upload_and_cleanup(client: AsyncClient, admin_headers, settings) -> None:
    employee = await create(client, admin_headers)
    url = f"/employees/{employee['id']}/photo"

    rejected = await client.post(
        url, files={"photo": ("notes.txt", b"hello", "text/plain")}, headers=admin_headers
    )
    assert rejected.status_code == 415

    empty = await client.post(
        url, files={"photo": ("empty.png", b"", "image/png")}, headers=admin_headers
    )
    assert empty.status_code == 400

    response = await client.post(
        url, files={"photo": ("badge.PNG", b"\x89PNG fake image", "image/png")}, headers=admin_headers
    )
    assert response.status_code == 200
    photo_url = response.json()["photo_url"]
    assert photo_url.startswith("/uploads/employee-") and photo_url.endswith(".png")

    served = await client.get(photo_url)
    assert served.status_code == 200

    listed = (await client.get("/employees/", headers=admin_headers)).json()
    assert listed[0]["photo_url"] == photo_url

    (Path(settings.upload_dir) / Path(photo_url).name).unlink()
    listed = (await client.get("/employees/", headers=admin_headers)).json()
    assert listed[0]["photo_url"] is None


@pytest.mark.asyncio
async def test_manual_dbs_check(client: AsyncClient, admin_headers, mailer) -> None:
    await create(
        client, admin_headers,
        dbs_expiry_date=(datetime.utcnow() + timedelta(days=10)).isoformat(),
    )
    response = await client.post("/notifications/check-dbs-expiry", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["expiring_notified"] == ["MCS-2024-001"]

    again = await client.post("/notifications/check-dbs-expiry", headers=admin_headers)
    assert again.json()["expiring_notified"] == []
    assert len(mailer.sent) == 1


@pytest.mark.asyncio
async def test_test_email(client: AsyncClient, admin_headers, mailer) -> None:
    response = await client.post("/notifications/test-email", headers=admin_headers)
    assert response.json() == {"success": True, "message": "Test email sent successfully!"}
    assert mailer.sent[0]["recipients"] == ["ops@example.com", "hr@example.com"]


@pytest.mark.asyncio
async def test_admin_area_blocked_from_public_networks(prepare_database, mailer) -> None:
    transport = ASGITransport(app=app, client=("203.0.113.7", 4321))
    async with AsyncClient(transport=transport, base_url="http://testserver") as outsider:
        blocked = await outsider.post(
            "/auth/login", json={"email": "admin@example.com", "password": "whatever1"}
        )
        assert blocked.status_code == 403
        assert (await outsider.get("/employees/")).status_code == 403

        # QR scans stay public
        assert (await outsider.get("/employees/verify/MCS-2024-001")).status_code == 404
        assert (await outsider.get("/health")).status_code == 200


@pytest.mark.asyncio
async def test_request_id_header(client: AsyncClient) -> None:
    response = await client.get("/health", headers={"X-Request-ID": "abc-123"})
    assert response.headers["X-Request-ID"] == "abc-123"


@pytest.mark.asyncio
async def test_update_survives_notification_storage_error(
    client: AsyncClient, admin_headers, mailer, monkeypatch
) -> None:
    employee = await create(client, admin_headers)

    async def unavailable(*args, **kwargs):
        raise OperationalError("SELECT notifications", {}, Exception("database is locked"))

    monkeypatch.setattr(notifications_service, "was_recently_notified", unavailable)
    response = await client.patch(
        f"/employees/{employee['id']}", json={"is_suspended": True}, headers=admin_headers
    )

    assert response.status_code == 200
    assert response.json()["status"] == "suspended"
    assert mailer.sent == []
    stored = await client.get(f"/employees/{employee['id']}", headers=admin_headers)
    assert stored.json()["is_suspended"] is True
