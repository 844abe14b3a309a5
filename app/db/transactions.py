"""
Transaction helpers for the pending-code store (SQLAlchemy)
Commit on success, rollback on any failure, optional deadlock retry
"""
import time
from functools import wraps
from typing import Callable

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session
import logging

logger = logging.getLogger(__name__)


def atomic_transaction(func: Callable) -> Callable:
    """
    Decorator that runs a store operation as a single transaction.
    Commits when the function returns and rolls back when it raises.

    The decorated function must accept 'db: Session' as first parameter
    """
    @wraps(func)
    def wrapper(db: Session, *args, **kwargs):
        try:
            result = func(db, *args, **kwargs)
            db.commit()
            logger.debug(f"✅ Transaction committed: {func.__name__}")
            return result
        except Exception as e:
            db.rollback()
            logger.error(f"❌ Transaction rolled back: {func.__name__} - Error: {e}")
            raise

    return wrapper


def retry_on_deadlock(max_attempts: int = 3, initial_delay: float = 0.1):
    """
    Retry a store operation when the database reports a deadlock.
    Any other OperationalError is re-raised immediately.

    Usage:
        @retry_on_deadlock(max_attempts=3)
        @atomic_transaction
        def concurrent_operation(db: Session, ...):
            pass
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs):
            attempt = 0
            delay = initial_delay

            while True:
                try:
                    return func(*args, **kwargs)
                except OperationalError as e:
                    if "deadlock" not in str(e).lower():
                        raise
                    attempt += 1
                    if attempt >= max_attempts:
                        logger.error(f"❌ Max retry attempts ({max_attempts}) reached for deadlock")
                        raise
                    logger.warning(f"⚠️  Deadlock detected, retrying (attempt {attempt}/{max_attempts})")
                    time.sleep(delay)
                    delay *= 2

        return wrapper
    return decorator
