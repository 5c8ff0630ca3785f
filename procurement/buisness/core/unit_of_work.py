"""
Transaction boundary for write operations

Every mutation entry point runs inside unit_of_work(): validate, mutate, commit.
Any exception rolls the whole session back so no row is left advanced without its siblings.
"""

from contextlib import contextmanager

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from procurement import db
from procurement.buisness.workflow.errors import ConflictError, ProcurementDomainError
from procurement.logger import get_logger

logger = get_logger("procurement.buisness.core.unit_of_work")


@contextmanager
def unit_of_work(operation: str):
    """
    Run a block as one atomic write.

    Args:
        operation: Short name used in log lines (e.g. "approve_request")

    Raises:
        ConflictError: if a concurrent write bumped a version counter or hit a unique constraint
    """
    context = {"operation": operation}
    try:
        yield db.session
        db.session.commit()
    except StaleDataError as e:
        db.session.rollback()
        logger.warning(f"{operation} lost an optimistic-lock race: {e}", extra=context)
        raise ConflictError(
            "This record was modified by another user. Reload and try again."
        ) from e
    except IntegrityError as e:
        db.session.rollback()
        logger.warning(f"{operation} violated a database constraint: {e.orig}", extra=context)
        raise ConflictError("The change conflicts with an existing record.") from e
    except ProcurementDomainError as e:
        db.session.rollback()
        logger.warning(f"{operation} rejected ({type(e).__name__}): {e.message}", extra=context)
        raise
    except Exception:
        db.session.rollback()
        logger.exception(f"{operation} failed unexpectedly; transaction rolled back", extra=context)
        raise
    else:
        logger.debug(f"{operation} committed", extra=context)
