"""
shared/utils/errors.py
Maps database failures to generic 500 responses.
The session dependency rolls the transaction back when the HTTPException
propagates out of the route.
"""

import logging
from contextlib import contextmanager
from typing import Iterator

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


@contextmanager
def persistence_errors(message: str) -> Iterator[None]:
    """
    Usage:
        with persistence_errors("Failed to create service"):
            db.add(service)
            await db.commit()
    """
    try:
        yield
    except SQLAlchemyError as e:
        logger.error(f"{message}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=message,
        )
