from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from socialboost.db.base import Base


class SubscriptionStatus:
    ACTIVE = "active"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class BillingType:
    MONTHLY = "monthly"
    ANNUAL = "annual"


class Subscription(Base):
    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    plan_id = Column(Integer, ForeignKey("plans.id"), nullable=False)
    campaign_id = Column(Integer, ForeignKey("campaigns.id"), nullable=True)

    plan_name = Column(String, nullable=True)
    amount = Column(Float, nullable=False)
    billing_type = Column(String, nullable=False, default=BillingType.MONTHLY)  # monthly | annual
    status = Column(String, nullable=False, default=SubscriptionStatus.ACTIVE)  # active | cancelled | expired

    start_date = Column(DateTime, server_default=func.now())
    next_billing_date = Column(DateTime, nullable=True)

    # Unique so a concurrent duplicate checkout delivery fails on insert
    stripe_subscription_id = Column(String, nullable=True, unique=True)
    stripe_customer_id = Column(String, nullable=True)

    created_at = Column(DateTime, server_default=func.now(), index=True)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    plan = relationship("Plan")
    campaign = relationship("Campaign", foreign_keys=[campaign_id])

    __table_args__ = (
        Index("idx_subscription_user_status", "user_id", "status"),
    )
