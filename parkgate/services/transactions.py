# parkgate/services/transactions.py
"""
Runs a synchronous decision body as one DB transaction with bounded retries.

The body re-reads and re-checks everything on each attempt, so a retry after
a write conflict sees the winner's state (e.g. "already parked").
"""

from typing import Callable, Optional, TypeVar

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from parkgate.config import settings
from parkgate.services.errors import ParkingError, StaleRecordError, StorageConflictError
from parkgate.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def run_in_transaction(db: Session, operation: Callable[[], T], attempts: Optional[int] = None,
                       label: str = "transaction") -> T:
    attempts = max(1, attempts or settings.STORAGE_RETRY_ATTEMPTS)
    for attempt in range(1, attempts + 1):
        try:
            result = operation()
            db.commit()
            return result
        except ParkingError:
            db.rollback()
            raise
        except (IntegrityError, OperationalError, StaleRecordError) as e:
            db.rollback()
            logger.warning(f"[{label}] storage conflict on attempt {attempt}/{attempts}: {e.__class__.__name__}")
        except Exception:
            db.rollback()
            raise

    raise StorageConflictError("The request could not be completed, please try again.")
