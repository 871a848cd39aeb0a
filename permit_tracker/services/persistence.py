"""Commit and flush helpers shared by the workflow services."""

import logging
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from permit_tracker.core.errors import ConflictError, PersistenceError

logger = logging.getLogger(__name__)


async def commit_or_rollback(db: AsyncSession, action: str) -> None:
    """Commit the session or roll it back and raise a domain error.

    Args:
        db: Database session holding the pending writes
        action: Short description used in logs and error messages

    Raises:
        ConflictError: On a uniqueness or foreign key violation
        PersistenceError: On any other store failure
    """
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await _rollback_and_raise(db, action, e)


async def flush_or_rollback(db: AsyncSession, action: str) -> None:
    """Flush pending writes mid-transaction; failures roll back like a commit."""
    try:
        await db.flush()
    except SQLAlchemyError as e:
        await _rollback_and_raise(db, action, e)


async def _rollback_and_raise(db: AsyncSession, action: str, error: SQLAlchemyError) -> None:
    await db.rollback()
    if isinstance(error, IntegrityError):
        logger.warning("Constraint violation while trying to %s: %s", action, error.orig)
        raise ConflictError(f"Failed to {action}: conflicting data") from error
    logger.error("Store failure while trying to %s: %s", action, error)
    raise PersistenceError(f"Failed to {action}") from error
