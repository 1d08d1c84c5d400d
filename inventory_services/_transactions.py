"""
Unit-of-work boundary shared by the orchestrating services.

Each public service call runs its kernel writes inside ``unit_of_work``:
commit on success, roll back on any exception.  Domain errors propagate
unchanged after the rollback; SQLAlchemy failures are re-raised as
PersistenceError so callers see one transient, retryable error type.
"""

from __future__ import annotations

import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from inventory_kernel.exceptions import PersistenceError
from inventory_kernel.logging_config import get_logger

logger = get_logger("services.unit_of_work")


@contextmanager
def unit_of_work(
    session: Session, operation: str, **log_fields: Any
) -> Iterator[Session]:
    t0 = time.monotonic()
    try:
        yield session
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        logger.error(
            f"{operation}_persistence_failed",
            extra={**log_fields, "error_type": type(exc).__name__},
            exc_info=True,
        )
        raise PersistenceError(operation, exc) from exc
    except Exception:
        session.rollback()
        logger.info(f"{operation}_rolled_back", extra=log_fields)
        raise
    logger.debug(
        f"{operation}_committed",
        extra={**log_fields, "duration_ms": round((time.monotonic() - t0) * 1000, 2)},
    )
