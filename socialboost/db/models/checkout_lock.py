from sqlalchemy import Column, Integer, DateTime, ForeignKey
from socialboost.db.base import Base


class CheckoutLock(Base):
    """
    Pending-checkout marker. The unique user_id makes a second concurrent
    checkout initiation for the same user fail on insert.
    """
    __tablename__ = "checkout_locks"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, unique=True)
    acquired_at = Column(DateTime, nullable=False)
    expires_at = Column(DateTime, nullable=False)
