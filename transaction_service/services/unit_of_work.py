"""Commit-or-rollback boundary around a multi-step operation."""
from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.orm import Session

from transaction_service.utils.errors import TransactionServiceError

logger = logging.getLogger(__name__)


@contextmanager
def unit_of_work(db: Session, *, operation: str) -> Iterator[Session]:
    """Run the enclosed steps as one unit: commit once on success, roll back on any error.

    The rollback expires every instance in the session, so objects mutated by
    the failed steps are reloaded from their last committed state on next access.
    """

    try:
        yield db
        db.commit()
    except TransactionServiceError as exc:
        db.rollback()
        logger.warning(
            "Rolled back %s",
            operation,
            extra={"operation": operation, "error_code": exc.code, "reason": exc.message},
        )
        raise
    except Exception:
        db.rollback()
        logger.exception("Rolled back %s after unexpected error", operation, extra={"operation": operation})
        raise


__all__ = ["unit_of_work"]
