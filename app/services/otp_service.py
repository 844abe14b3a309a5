"""
One-time code generation and the pending-code store
Store operations run inside atomic transactions; expiry is checked by callers
"""
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from app.core.config import CODE_LENGTH, CODE_TTL_SECONDS
from app.db.transactions import atomic_transaction, retry_on_deadlock
from app.models.pending_code import PendingCode
import logging

logger = logging.getLogger(__name__)

_random = secrets.SystemRandom()

_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _to_db(value: datetime) -> datetime:
    # Columns hold naive UTC
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def generate_code() -> Tuple[str, datetime]:
    """
    Produce a 4-digit code in 1000..9999 and its absolute expiry.
    Codes below 1000 are never issued, so every code is four digits without padding.
    """
    code = str(_random.randint(10 ** (CODE_LENGTH - 1), 10 ** CODE_LENGTH - 1))
    expires_at = utcnow() + timedelta(seconds=CODE_TTL_SECONDS)
    return code, expires_at


def is_expired(pending: PendingCode, now: Optional[datetime] = None) -> bool:
    now = now or utcnow()
    return as_utc(pending.expires_at) <= now


@retry_on_deadlock(max_attempts=3)
@atomic_transaction
def upsert_pending_code(db: Session, email: str, code: str, expires_at: datetime, issued_at: Optional[datetime] = None) -> PendingCode:
    """
    Store the code for an email, replacing any earlier unconsumed code.

    Args:
        db: Database session
        email: Address exactly as submitted
        code: Generated code
        expires_at: Absolute expiry
        issued_at: Issue time, defaults to now

    Returns:
        PendingCode: The stored row
    """
    issued_at = issued_at or utcnow()
    dialect = db.get_bind().dialect.name
    if dialect not in _UPSERT_INSERTS:
        raise NotImplementedError(f"No upsert for database dialect: {dialect}")

    # Single INSERT ... ON CONFLICT statement, the last writer wins
    stmt = _UPSERT_INSERTS[dialect](PendingCode).values(
        email=email,
        code=code,
        expires_at=_to_db(expires_at),
        created_at=_to_db(issued_at),
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[PendingCode.email],
        set_={
            "code": stmt.excluded.code,
            "expires_at": stmt.excluded.expires_at,
            "created_at": stmt.excluded.created_at,
        },
    )
    db.execute(stmt)

    logger.info(f"✅ Pending code stored for: {email}")
    return db.get(PendingCode, email, populate_existing=True)


def get_pending_code(db: Session, email: str) -> Optional[PendingCode]:
    return db.get(PendingCode, email)


def find_pending_code(db: Session, email: str, code: str) -> Optional[PendingCode]:
    """Exact match on both email and code; a wrong code looks the same as no code."""
    return db.query(PendingCode).filter_by(email=email, code=code).first()


@atomic_transaction
def delete_pending_code(db: Session, email: str) -> None:
    deleted = db.query(PendingCode).filter_by(email=email).delete(synchronize_session=False)
    if deleted:
        logger.info(f"✅ Pending code consumed for: {email}")


def seconds_until_resend(pending: Optional[PendingCode], cooldown_seconds: int, now: Optional[datetime] = None) -> float:
    """Seconds left before another code may be issued for the same email (0 when allowed)."""
    if pending is None or cooldown_seconds <= 0 or pending.created_at is None:
        return 0
    now = now or utcnow()
    elapsed = (now - as_utc(pending.created_at)).total_seconds()
    return max(0.0, cooldown_seconds - elapsed)
