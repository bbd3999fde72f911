"""
services/review/rating.py
Advocate rating aggregate: mean of review ratings to two places, 0 with no reviews.
Shared by the review route (async) and the beat repair task (sync).
"""

from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import func, select

from shared.models.models import Review


def average_rating_query(advocate_id):
    return select(func.avg(Review.rating)).where(Review.advocate_id == advocate_id)


def round_rating(avg) -> Decimal:
    return Decimal(str(avg or 0)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
