"""
Error taxonomy for the transfer core.

Every core operation is fallible and raises one of these. Routes never build
HTTP errors themselves; a single exception handler in ``cambio.main`` renders
any ``CambioError`` with its ``status_code``.
"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


class CambioError(Exception):
    """Base class for errors surfaced to callers."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(CambioError):
    """Malformed input; nothing was written."""

    status_code = 400


class GuardFailure(CambioError):
    """A state-machine precondition was not met."""

    status_code = 409


class PermissionDenied(GuardFailure):
    """The actor's role does not allow the operation."""

    status_code = 403


class ConflictError(CambioError):
    """A uniqueness invariant would be violated."""

    status_code = 409


class NotFoundError(CambioError):
    status_code = 404


class TransientError(CambioError):
    """Store or network failure. Callers may retry; the core never does."""

    status_code = 503


@asynccontextmanager
async def store_errors(
    db: AsyncSession,
    conflict_message: str = "Record conflicts with an existing one",
) -> AsyncIterator[None]:
    """
    Map store failures raised inside the block onto the taxonomy.

    A uniqueness violation reported by the store is the source of truth for
    cross-record invariants, so ``IntegrityError`` becomes ``ConflictError``.
    Anything else from SQLAlchemy, or a raw socket error from the driver, is
    treated as transient. The session is rolled back on any failure so no
    half-applied change survives.
    """
    try:
        yield
    except IntegrityError as e:
        await _rollback(db)
        logger.warning(f"Store rejected write: {e.orig}")
        raise ConflictError(conflict_message) from e
    except (SQLAlchemyError, OSError) as e:
        await _rollback(db)
        logger.error(f"Store access failed: {e}")
        raise TransientError("The data store is unavailable, please retry") from e
    except CambioError:
        await _rollback(db)
        raise


async def _rollback(db: AsyncSession) -> None:
    try:
        await db.rollback()
    except (SQLAlchemyError, OSError) as e:
        logger.error(f"Rollback failed: {e}")
