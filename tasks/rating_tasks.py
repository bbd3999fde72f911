"""
tasks/rating_tasks.py
Beat task that keeps Advocate.rating in step with the reviews table.

The review route recomputes the rating in its own transaction; this job
repairs drift from writes that bypass the API. Idempotent: running twice
writes the same value.
"""

import logging
from uuid import UUID

from celery import Task
from sqlalchemy import select

from services.review.rating import average_rating_query, round_rating
from tasks.celery_app import celery_app

logger = logging.getLogger(__name__)


def sync_database_url(url: str) -> str:
    """Celery runs sync: swap the async driver for its blocking counterpart."""
    return url.replace("+asyncpg", "+psycopg2").replace("+aiosqlite", "")


# ── Base Task with DB session ──────────────────────────────────────────────────

class DatabaseTask(Task):
    """Base class that provides a synchronous DB session and Redis client for tasks."""
    abstract = True
    _sessionmaker = None

    def get_session(self):
        if self._sessionmaker is None:
            from sqlalchemy import create_engine
            from sqlalchemy.orm import sessionmaker
            from config.settings import settings

            engine = create_engine(sync_database_url(settings.DATABASE_URL), pool_pre_ping=True)
            DatabaseTask._sessionmaker = sessionmaker(bind=engine)
        return self._sessionmaker()

    def get_redis(self):
        import redis as redis_lib
        from config.settings import settings

        return redis_lib.from_url(settings.REDIS_URL, decode_responses=True)


# ── Core ───────────────────────────────────────────────────────────────────────

def refresh_advocate_rating(db, advocate_id):
    """
    Set the advocate's rating to the mean of their reviews, rounded to two
    places (0 with no reviews). Caller commits.
    """
    from shared.models.models import Advocate

    if isinstance(advocate_id, str):
        advocate_id = UUID(advocate_id)

    rating = round_rating(db.execute(average_rating_query(advocate_id)).scalar())

    advocate = db.get(Advocate, advocate_id)
    if advocate is None:
        logger.warning(f"refresh_advocate_rating: advocate {advocate_id} not found")
        return rating

    advocate.rating = rating
    return rating


def clear_cached_profiles(r, advocates) -> None:
    """Drop both cached profile forms for each (advocate_id, user_id) pair."""
    from config.redis_client import advocate_profile_key

    keys = [advocate_profile_key(ident) for pair in advocates for ident in pair]
    if keys:
        r.delete(*keys)


# ── Tasks ──────────────────────────────────────────────────────────────────────

@celery_app.task(bind=True, base=DatabaseTask)
def recalculate_all_ratings(self):
    """
    Beat task: recompute every advocate's rating in one transaction, then
    clear the cached profile of each advocate whose rating moved.
    """
    from shared.models.models import Advocate

    db = self.get_session()
    changed = []
    try:
        advocates = db.execute(select(Advocate)).scalars().all()
        for advocate in advocates:
            previous = advocate.rating
            if refresh_advocate_rating(db, advocate.id) != previous:
                changed.append((advocate.id, advocate.user_id))
        db.commit()
        logger.info(
            f"Recalculated ratings for {len(advocates)} advocates, {len(changed)} changed"
        )
    except Exception as e:
        db.rollback()
        logger.exception(f"recalculate_all_ratings failed: {e}")
        return
    finally:
        db.close()

    if not changed:
        return

    r = self.get_redis()
    try:
        clear_cached_profiles(r, changed)
    except Exception as e:
        # Cached profiles still expire after REDIS_CACHE_TTL
        logger.error(f"recalculate_all_ratings: could not clear cached profiles: {e}")
    finally:
        r.close()
