"""
tests/test_directory.py
Tests for the advocate directory filters: exact specialization, case-insensitive
location substring, minimum experience, and their intersection.
"""

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from services.advocate.directory import build_directory_query
from shared.models.models import UserRole
from tests.conftest import make_advocate, make_user


async def _seed_directory(db: AsyncSession):
    rows = [
        ("Rajesh", "Criminal Law", "New Delhi", 15),
        ("Priya", "Corporate Law", "Mumbai", 12),
        ("Amit", "Family Law", "Bangalore", 10),
        ("Neha", "Criminal Law", "Navi Mumbai", 4),
    ]
    for name, spec, city, years in rows:
        u = await make_user(db, UserRole.ADVOCATE, name, f"{name.lower()}@example.com")
        await make_advocate(
            db, u, specialization=spec, location=city, experience_years=years
        )


def _names(response):
    return sorted(row["name"] for row in response.json())


# ── Query builder ──────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_query_without_criteria_returns_everyone(db: AsyncSession):
    await _seed_directory(db)
    rows = (await db.execute(build_directory_query())).mappings().all()
    assert len(rows) == 4


@pytest.mark.asyncio
async def test_query_min_experience_threshold(db: AsyncSession):
    """minExperience 10 keeps the 15-year advocate; 20 leaves nobody."""
    u = await make_user(db, UserRole.ADVOCATE, "Rajesh", "rajesh@example.com")
    await make_advocate(
        db, u, specialization="Criminal Law", location="New Delhi", experience_years=15
    )

    rows = (await db.execute(build_directory_query(min_experience=10))).mappings().all()
    assert [r["name"] for r in rows] == ["Rajesh"]

    rows = (await db.execute(build_directory_query(min_experience=20))).mappings().all()
    assert rows == []


# ── Endpoint ───────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_specialization_is_exact_match(client: AsyncClient, db: AsyncSession):
    await _seed_directory(db)

    response = await client.get("/api/advocates", params={"specialization": "Criminal Law"})
    assert response.status_code == 200
    assert _names(response) == ["Neha", "Rajesh"]

    response = await client.get("/api/advocates", params={"specialization": "Criminal"})
    assert response.json() == []


@pytest.mark.asyncio
async def test_location_is_case_insensitive_substring(client: AsyncClient, db: AsyncSession):
    await _seed_directory(db)

    response = await client.get("/api/advocates", params={"location": "mumbai"})
    assert _names(response) == ["Neha", "Priya"]


@pytest.mark.asyncio
async def test_location_wildcards_are_literal(client: AsyncClient, db: AsyncSession):
    await _seed_directory(db)

    response = await client.get("/api/advocates", params={"location": "%"})
    assert response.json() == []


@pytest.mark.asyncio
async def test_combined_filters_intersect(client: AsyncClient, db: AsyncSession):
    await _seed_directory(db)

    response = await client.get(
        "/api/advocates",
        params={"specialization": "Criminal Law", "location": "Mumbai", "minExperience": "1"},
    )
    assert _names(response) == ["Neha"]

    response = await client.get(
        "/api/advocates",
        params={"specialization": "Criminal Law", "location": "Mumbai", "minExperience": "5"},
    )
    assert response.json() == []


@pytest.mark.asyncio
async def test_empty_parameters_impose_no_constraint(client: AsyncClient, db: AsyncSession):
    await _seed_directory(db)

    response = await client.get(
        "/api/advocates", params={"specialization": "", "location": "", "minExperience": ""}
    )
    assert len(response.json()) == 4


@pytest.mark.asyncio
async def test_non_numeric_min_experience_rejected(client: AsyncClient):
    response = await client.get("/api/advocates", params={"minExperience": "ten"})
    assert response.status_code == 400
    assert "minExperience" in response.json()["error"]


@pytest.mark.asyncio
async def test_unavailable_advocates_hidden(client: AsyncClient, db: AsyncSession):
    u = await make_user(db, UserRole.ADVOCATE, "Away", "away@example.com")
    await make_advocate(db, u, specialization="Tax Law", location="Pune", is_available=False)

    response = await client.get("/api/advocates", params={"specialization": "Tax Law"})
    assert response.json() == []


@pytest.mark.asyncio
async def test_directory_rows_carry_contact_details(client: AsyncClient, db: AsyncSession):
    u = await make_user(db, UserRole.ADVOCATE, "Rajesh", "rajesh@example.com", "9876543220")
    await make_advocate(
        db, u, specialization="Criminal Law", location="New Delhi", experience_years=15
    )

    row = (await client.get("/api/advocates")).json()[0]
    assert row["email"] == "rajesh@example.com"
    assert row["phone"] == "9876543220"
    assert row["experience_years"] == 15
    assert row["rating"] == 0


@pytest.mark.asyncio
async def test_specializations_distinct_and_sorted(client: AsyncClient, db: AsyncSession):
    await _seed_directory(db)
    u = await make_user(db, UserRole.ADVOCATE, "Blank", "blank@example.com")
    await make_advocate(db, u, specialization="", location="Goa")

    response = await client.get("/api/advocates/specializations")
    assert response.status_code == 200
    assert response.json() == ["Corporate Law", "Criminal Law", "Family Law"]
