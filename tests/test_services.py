"""
tests/test_services.py
Tests for the service catalog: validation of the location rule and duration
steps, and ownership-scoped update/delete.
"""

import uuid

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from shared.models.models import Advocate, Service, User, UserRole
from tests.conftest import auth_headers, make_advocate, make_user


def _payload(**overrides):
    body = {
        "title": "Contract Review",
        "description": "Clause-by-clause review of a commercial contract.",
        "service_type": "offline",
        "category": "Corporate",
        "price": 2500,
        "duration_minutes": 45,
        "location": "New Delhi",
    }
    body.update(overrides)
    return body


async def _other_advocate(db: AsyncSession):
    other_user = await make_user(db, UserRole.ADVOCATE, "Other Advocate", "other@example.com")
    await make_advocate(db, other_user, specialization="Tax Law", location="Pune")
    return other_user


# ── Creation & Validation ──────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_create_service(
    client: AsyncClient,
    advocate_user: User,
    advocate: Advocate,
):
    response = await client.post(
        "/api/services", headers=auth_headers(advocate_user), json=_payload()
    )
    assert response.status_code == 201
    data = response.json()
    assert data["advocate_id"] == str(advocate.id)
    assert data["price"] == 2500.0
    assert data["location"] == "New Delhi"
    assert data["is_active"] is True


@pytest.mark.asyncio
async def test_online_service_location_forced(
    client: AsyncClient,
    advocate_user: User,
    advocate: Advocate,
    db: AsyncSession,
):
    """Whatever location is sent, an online service is stored as "Online"."""
    response = await client.post(
        "/api/services",
        headers=auth_headers(advocate_user),
        json=_payload(service_type="online", location="Somewhere Else"),
    )
    assert response.status_code == 201

    stored = await db.scalar(select(Service).where(Service.id == uuid.UUID(response.json()["id"])))
    assert stored.location == "Online"


@pytest.mark.asyncio
@pytest.mark.parametrize("service_type", ["offline", "both"])
async def test_blank_location_rejected(
    client: AsyncClient,
    advocate_user: User,
    advocate: Advocate,
    service_type: str,
):
    response = await client.post(
        "/api/services",
        headers=auth_headers(advocate_user),
        json=_payload(service_type=service_type, location="   "),
    )
    assert response.status_code == 400
    assert "Location is required" in response.json()["error"]


@pytest.mark.asyncio
async def test_duration_must_be_quarter_hours(
    client: AsyncClient,
    advocate_user: User,
    advocate: Advocate,
):
    response = await client.post(
        "/api/services",
        headers=auth_headers(advocate_user),
        json=_payload(duration_minutes=50),
    )
    assert response.status_code == 400
    assert response.json()["error"].startswith("duration_minutes:")


@pytest.mark.asyncio
async def test_negative_price_rejected(
    client: AsyncClient,
    advocate_user: User,
    advocate: Advocate,
):
    response = await client.post(
        "/api/services",
        headers=auth_headers(advocate_user),
        json=_payload(price=-1),
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_blank_category_stored_as_null(
    client: AsyncClient,
    advocate_user: User,
    advocate: Advocate,
):
    response = await client.post(
        "/api/services",
        headers=auth_headers(advocate_user),
        json=_payload(category=""),
    )
    assert response.json()["category"] is None


@pytest.mark.asyncio
async def test_client_cannot_create_service(client: AsyncClient, user: User):
    response = await client.post("/api/services", headers=auth_headers(user), json=_payload())
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_advocate_without_profile_gets_404(client: AsyncClient, db: AsyncSession):
    bare = await make_user(db, UserRole.ADVOCATE, "No Profile", "noprofile@example.com")
    response = await client.post("/api/services", headers=auth_headers(bare), json=_payload())
    assert response.status_code == 404
    assert response.json() == {"error": "Advocate profile not found"}


# ── Update & Delete ────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_update_own_service(
    client: AsyncClient,
    advocate_user: User,
    service: Service,
):
    response = await client.put(
        f"/api/services/{service.id}",
        headers=auth_headers(advocate_user),
        json=_payload(title="Bail Hearing", price=1800, is_active=False),
    )
    assert response.status_code == 200
    data = response.json()
    assert data["title"] == "Bail Hearing"
    assert data["price"] == 1800.0
    assert data["is_active"] is False


@pytest.mark.asyncio
async def test_update_to_online_forces_online_location(
    client: AsyncClient,
    advocate_user: User,
    service: Service,
    db: AsyncSession,
):
    response = await client.put(
        f"/api/services/{service.id}",
        headers=auth_headers(advocate_user),
        json=_payload(service_type="online", location="Somewhere"),
    )
    assert response.status_code == 200
    assert response.json()["location"] == "Online"

    await db.refresh(service)
    assert service.location == "Online"


@pytest.mark.asyncio
@pytest.mark.parametrize("service_type", ["offline", "both"])
async def test_update_blank_location_rejected(
    client: AsyncClient,
    advocate_user: User,
    service: Service,
    db: AsyncSession,
    service_type: str,
):
    response = await client.put(
        f"/api/services/{service.id}",
        headers=auth_headers(advocate_user),
        json=_payload(service_type=service_type, location=""),
    )
    assert response.status_code == 400
    assert "Location is required" in response.json()["error"]

    await db.refresh(service)
    assert service.location == "New Delhi"


@pytest.mark.asyncio
async def test_update_other_advocates_service_404(
    client: AsyncClient,
    service: Service,
    db: AsyncSession,
):
    other_user = await _other_advocate(db)

    response = await client.put(
        f"/api/services/{service.id}",
        headers=auth_headers(other_user),
        json=_payload(title="Hijacked"),
    )
    assert response.status_code == 404
    assert response.json() == {"error": "Service not found or unauthorized"}

    await db.refresh(service)
    assert service.title == "Bail Consultation"


@pytest.mark.asyncio
async def test_delete_other_advocates_service_404(
    client: AsyncClient,
    service: Service,
    db: AsyncSession,
):
    other_user = await _other_advocate(db)

    response = await client.delete(f"/api/services/{service.id}", headers=auth_headers(other_user))
    assert response.status_code == 404

    assert await db.scalar(select(Service.id).where(Service.id == service.id)) is not None


@pytest.mark.asyncio
async def test_delete_own_service(
    client: AsyncClient,
    advocate_user: User,
    service: Service,
    db: AsyncSession,
):
    response = await client.delete(f"/api/services/{service.id}", headers=auth_headers(advocate_user))
    assert response.status_code == 200
    assert await db.scalar(select(Service.id).where(Service.id == service.id)) is None


@pytest.mark.asyncio
async def test_delete_unknown_service_404(client: AsyncClient, advocate_user: User, advocate: Advocate):
    response = await client.delete(f"/api/services/{uuid.uuid4()}", headers=auth_headers(advocate_user))
    assert response.status_code == 404


# ── Listing ────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_my_services_newest_first(
    client: AsyncClient,
    advocate_user: User,
    service: Service,
):
    await client.post(
        "/api/services", headers=auth_headers(advocate_user), json=_payload(title="Newer")
    )

    response = await client.get("/api/services/my-services", headers=auth_headers(advocate_user))
    assert response.status_code == 200
    assert [s["title"] for s in response.json()] == ["Newer", "Bail Consultation"]


@pytest.mark.asyncio
async def test_public_listing_hides_inactive(
    client: AsyncClient,
    advocate_user: User,
    advocate: Advocate,
    service: Service,
):
    await client.put(
        f"/api/services/{service.id}",
        headers=auth_headers(advocate_user),
        json=_payload(is_active=False),
    )

    response = await client.get(f"/api/services/advocate/{advocate.id}")
    assert response.status_code == 200
    assert response.json() == []
