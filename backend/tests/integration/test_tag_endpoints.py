"""End-to-end tests of the /api/v1/tags routes over an in-memory record store."""

import pytest
from httpx import ASGITransport, AsyncClient

from scanback.config import Settings
from scanback.domain.entities import DeliveryStatus, LifecycleEvent
from scanback.main import app, wire_components
from tests.fakes import FakeRecordStore

OWNER = {"X-User-Id": "user-1"}
STRANGER = {"X-User-Id": "user-2"}

CONTACT = {"name": "Jane Doe", "phone": "0821234567", "email": "jane@example.com"}


@pytest.fixture
async def client():
    wire_components(app, FakeRecordStore(), Settings(_env_file=None))
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    await app.state.outbox.drain()


async def _issue(client: AsyncClient, kind: str = "pet") -> str:
    response = await client.post(
        "/api/v1/tags",
        json={"kind": kind, "details": {"name": "Rex"}, "contact": CONTACT},
        headers=OWNER,
    )
    assert response.status_code == 201
    return response.json()["code"]


async def _activate(client: AsyncClient, code: str, headers=OWNER, **extra):
    body = {"details": {"name": "Rex", "colour": "brown"}, "contact": CONTACT, **extra}
    return await client.post(f"/api/v1/tags/{code}/activate", json=body, headers=headers)


@pytest.mark.asyncio
async def test_issue_requires_identity(client):
    response = await client.post(
        "/api/v1/tags", json={"kind": "pet", "details": {"name": "Rex"}, "contact": CONTACT}
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_issue_validates_details_name(client):
    response = await client.post(
        "/api/v1/tags",
        json={"kind": "item", "details": {"colour": "red"}, "contact": CONTACT},
        headers=OWNER,
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_issued_tag_is_not_activated(client):
    response = await client.post(
        "/api/v1/tags",
        json={"kind": "item", "details": {"name": "Backpack"}, "contact": CONTACT},
        headers=OWNER,
    )

    data = response.json()
    assert data["is_activated"] is False
    assert data["scan_count"] == 0
    assert data["scan_url"].endswith(f"/{data['code']}")


@pytest.mark.asyncio
@pytest.mark.parametrize("code", ["FFFFFFFFFFFF", "not-a-code"])
async def test_lookup_of_unknown_code_is_404(client, code):
    response = await client.get(f"/api/v1/tags/{code}")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_activate_scan_and_lookup(client):
    code = await _issue(client)

    activated = await _activate(client, code)
    assert activated.status_code == 200
    assert activated.json()["is_activated"] is True
    assert activated.json()["owner"] == "user-1"

    scan = await client.post(
        f"/api/v1/tags/{code.lower()}/scan",
        json={"location": "Park"},
        headers={"User-Agent": "pytest-scanner"},
    )
    assert scan.status_code == 200
    assert scan.json()["scan_count"] == 1
    assert scan.json()["contact"]["email"] == "jane@example.com"

    lookup = await client.get(f"/api/v1/tags/{code}")
    assert lookup.status_code == 200
    assert lookup.json()["details"] == {"name": "Rex", "colour": "brown"}
    assert "owner" not in lookup.json()

    [mine] = (await client.get("/api/v1/tags", headers=OWNER)).json()
    assert mine["scan_history"][0]["user_agent"] == "pytest-scanner"
    assert mine["scan_history"][0]["location"] == "Park"


@pytest.mark.asyncio
async def test_scan_before_activation_is_conflict(client):
    code = await _issue(client)
    response = await client.post(f"/api/v1/tags/{code}/scan")
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_activation_by_someone_else_is_conflict(client):
    code = await _issue(client)
    await _activate(client, code)

    assert (await _activate(client, code)).status_code == 200
    assert (await _activate(client, code, headers=STRANGER)).status_code == 409


@pytest.mark.asyncio
async def test_found_report_only_once(client):
    code = await _issue(client)
    await _activate(client, code)
    report = {"finder_name": "Sam", "finder_phone": "0831112222", "found_location": "Main Rd"}

    first = await client.post(f"/api/v1/tags/{code}/found", json=report)
    second = await client.post(f"/api/v1/tags/{code}/found", json=report)

    assert first.status_code == 200
    assert first.json()["status"] == "found"
    assert second.status_code == 409

    await app.state.outbox.drain()
    [delivery] = app.state.outbox.deliveries(code)
    assert delivery.event is LifecycleEvent.FOUND
    assert delivery.status is DeliveryStatus.SENT


@pytest.mark.asyncio
async def test_owner_only_routes_reject_strangers(client):
    code = await _issue(client)
    await _activate(client, code)

    assert (await client.put(f"/api/v1/tags/{code}", json={}, headers=STRANGER)).status_code == 403
    assert (
        await client.post(f"/api/v1/tags/{code}/toggle-status", headers=STRANGER)
    ).status_code == 403
    assert (await client.delete(f"/api/v1/tags/{code}", headers=STRANGER)).status_code == 403


@pytest.mark.asyncio
async def test_direct_email_change_is_refused(client):
    code = await _issue(client)
    await _activate(client, code)

    response = await client.put(
        f"/api/v1/tags/{code}",
        json={"contact": {"email": "other@example.com"}},
        headers=OWNER,
    )

    assert response.status_code == 400
    assert "verification" in response.json()["detail"]


@pytest.mark.asyncio
async def test_partial_update_and_hidden_contact(client):
    code = await _issue(client)
    await _activate(client, code)
    await client.get(f"/api/v1/tags/{code}")

    response = await client.put(
        f"/api/v1/tags/{code}",
        json={
            "contact": {"message": "Reward offered"},
            "settings": {"show_contact_on_lookup": False},
        },
        headers=OWNER,
    )

    assert response.status_code == 200
    assert response.json()["contact"]["message"] == "Reward offered"
    assert response.json()["contact"]["email"] == "jane@example.com"
    assert (await client.get(f"/api/v1/tags/{code}")).json()["contact"] is None


@pytest.mark.asyncio
async def test_toggle_and_deactivate(client):
    code = await _issue(client)
    await _activate(client, code)

    toggled = await client.post(f"/api/v1/tags/{code}/toggle-status", headers=OWNER)
    assert toggled.json()["status"] == "inactive"

    deactivated = await client.delete(f"/api/v1/tags/{code}", headers=OWNER)
    assert deactivated.json()["is_activated"] is False

    assert (await _activate(client, code, headers=STRANGER)).status_code == 200


@pytest.mark.asyncio
async def test_toggle_of_found_tag_is_conflict(client):
    code = await _issue(client)
    await _activate(client, code)
    await client.post(
        f"/api/v1/tags/{code}/found",
        json={"finder_name": "Sam", "finder_phone": "0831112222", "found_location": "Park"},
    )

    response = await client.post(f"/api/v1/tags/{code}/toggle-status", headers=OWNER)
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_contact_update_flow(client):
    code = await _issue(client)
    await _activate(client, code)

    challenge = await client.post(
        f"/api/v1/tags/{code}/contact-update",
        json={"new_email": "new@example.com"},
        headers=OWNER,
    )
    assert challenge.status_code == 202
    assert challenge.json()["deliver_to"] == "new@example.com"
    assert "otp" not in challenge.json()

    await app.state.outbox.drain()
    [delivery] = app.state.outbox.deliveries(code)
    assert delivery.event is LifecycleEvent.CONTACT_UPDATE_OTP

    pending = await app.state.contact_update_service.pending_for(code)
    wrong = "000000" if pending.otp != "000000" else "111111"

    rejected = await client.post(
        f"/api/v1/tags/{code}/contact-update/verify",
        json={"otp": wrong},
        headers=OWNER,
    )
    assert rejected.status_code == 400

    applied = await client.post(
        f"/api/v1/tags/{code}/contact-update/verify",
        json={"otp": pending.otp, "update": {"contact": {"message": "New number soon"}}},
        headers=OWNER,
    )
    assert applied.status_code == 200
    assert applied.json()["contact"]["email"] == "new@example.com"
    assert applied.json()["contact"]["message"] == "New number soon"

    replay = await client.post(
        f"/api/v1/tags/{code}/contact-update/verify",
        json={"otp": pending.otp},
        headers=OWNER,
    )
    assert replay.status_code == 400


@pytest.mark.asyncio
async def test_qr_image_of_issued_tag(client):
    code = await _issue(client)

    response = await client.get(f"/api/v1/tags/{code.lower()}/qr")

    assert response.status_code == 200
    assert response.headers["content-type"] == "image/png"
    assert response.content.startswith(b"\x89PNG\r\n\x1a\n")


@pytest.mark.asyncio
@pytest.mark.parametrize("code", ["FFFFFFFFFFFF", "not-a-code"])
async def test_qr_image_of_unknown_code_is_404(client, code):
    response = await client.get(f"/api/v1/tags/{code}/qr")
    assert response.status_code == 404
