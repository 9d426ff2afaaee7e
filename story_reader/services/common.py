"""Transaction helpers shared by the services.

Store errors are logged here and translated into the ``errors`` taxonomy so
no driver text ever reaches a client.
"""
import logging
from typing import Callable, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import Conflict, InternalError

logger = logging.getLogger(__name__)


def commit(db: Session, conflict_message: Optional[str] = None) -> None:
    """Commit the unit of work.

    A unique-constraint violation becomes ``Conflict(conflict_message)`` when a
    message is given; every other store failure becomes ``InternalError``.
    """
    _write(db, db.commit, conflict_message)


def flush(db: Session, conflict_message: Optional[str] = None) -> None:
    """Flush pending rows so generated ids are known. Failures translate as in ``commit``."""
    _write(db, db.flush, conflict_message)


def _write(db: Session, operation: Callable[[], None], conflict_message: Optional[str]) -> None:
    try:
        operation()
    except IntegrityError as exc:
        db.rollback()
        if conflict_message is None:
            logger.error("integrity error on write: %s", exc.orig)
            raise InternalError() from exc
        logger.info("write rejected by unique constraint: %s", conflict_message)
        raise Conflict(conflict_message) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("database write failed")
        raise InternalError() from exc


def best_effort(db: Session, action: str, statement) -> bool:
    """Execute and commit a non-critical statement, swallowing store errors."""
    try:
        db.execute(statement)
        db.commit()
        return True
    except SQLAlchemyError:
        db.rollback()
        logger.warning("best-effort %s failed", action, exc_info=True)
        return False


def like_pattern(keyword: str) -> str:
    escaped = keyword.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"
