"""
Per-user pending-checkout marker.

A unique row per user serializes checkout initiation; a second concurrent
attempt fails on insert and is rejected. Expired markers are reclaimed so a
crashed request cannot block the user for longer than the TTL.
"""
import logging
from contextlib import contextmanager
from datetime import datetime, timedelta

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from socialboost.core.errors import CheckoutInProgressError
from socialboost.db.models.checkout_lock import CheckoutLock

logger = logging.getLogger(__name__)


def acquire_checkout_lock(db: Session, user_id: int, ttl_seconds: int = 60) -> CheckoutLock:
    now = datetime.utcnow()

    db.query(CheckoutLock).filter(
        CheckoutLock.user_id == user_id,
        CheckoutLock.expires_at <= now,
    ).delete(synchronize_session=False)

    lock = CheckoutLock(
        user_id=user_id,
        acquired_at=now,
        expires_at=now + timedelta(seconds=ttl_seconds),
    )
    try:
        db.add(lock)
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning(f"Checkout already in progress: user_id={user_id}")
        raise CheckoutInProgressError("A checkout is already in progress for this account")

    return lock


def release_checkout_lock(db: Session, user_id: int) -> None:
    db.query(CheckoutLock).filter(CheckoutLock.user_id == user_id).delete(synchronize_session=False)
    db.commit()


@contextmanager
def checkout_lock(db: Session, user_id: int, ttl_seconds: int = 60):
    acquire_checkout_lock(db, user_id, ttl_seconds)
    try:
        yield
    finally:
        # The session may hold a failed transaction from the guarded block
        db.rollback()
        release_checkout_lock(db, user_id)
