"""Translation of SQLAlchemy failures into ledger errors."""
import logging
from contextlib import contextmanager

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from chart_ledger.errors import ConflictError, StorageError

logger = logging.getLogger(__name__)


@contextmanager
def storage_errors(db: Session, operation: str):
    """Roll back and re-raise database failures as ConflictError / StorageError."""
    try:
        yield
    except StaleDataError as exc:
        db.rollback()
        logger.warning("Lost update during %s: %s", operation, exc)
        raise ConflictError(f"{operation}: record was modified concurrently. Re-fetch and retry.") from exc
    except IntegrityError as exc:
        db.rollback()
        logger.warning("Integrity violation during %s: %s", operation, exc.orig)
        raise ConflictError(f"{operation}: conflicting write rejected by storage") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Storage failure during %s: %s", operation, exc)
        raise StorageError(f"{operation}: storage unavailable") from exc
