"""
services/advocate/directory.py
Advocate directory query builder.

Criteria are combined with AND; a criterion that is None or an empty string
imposes no constraint:
- specialization: exact match
- location: case-insensitive literal substring
- min_experience: experience_years >= threshold
Rows come back in storage order; there is no ranking or pagination.
"""

from typing import Optional

from sqlalchemy import Select, select

from shared.models.models import Advocate, User


DIRECTORY_COLUMNS = (
    Advocate.id,
    Advocate.user_id,
    Advocate.specialization,
    Advocate.location,
    Advocate.experience_years,
    Advocate.rating,
    User.name,
    User.email,
    User.phone,
)


def build_directory_query(
    specialization: Optional[str] = None,
    location: Optional[str] = None,
    min_experience: Optional[int] = None,
) -> Select:
    query = (
        select(*DIRECTORY_COLUMNS)
        .select_from(Advocate)
        .join(User, User.id == Advocate.user_id)
        .where(Advocate.is_available.is_(True))
    )

    if specialization:
        query = query.where(Advocate.specialization == specialization)

    if location:
        # autoescape: "%" and "_" in the input match themselves
        query = query.where(Advocate.location.icontains(location, autoescape=True))

    if min_experience is not None:
        query = query.where(Advocate.experience_years >= min_experience)

    return query


def build_specializations_query() -> Select:
    return (
        select(Advocate.specialization)
        .where(Advocate.specialization.is_not(None), Advocate.specialization != "")
        .distinct()
        .order_by(Advocate.specialization)
    )
