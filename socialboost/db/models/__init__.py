"""
Database models module.

This module imports all database models to ensure they are registered with SQLAlchemy's Base.metadata
before table creation.

All models must be imported here to be included in database migrations and table creation.
"""
from socialboost.db.models.user import User, UserRole
from socialboost.db.models.plan import Plan
from socialboost.db.models.campaign import Campaign, CampaignStatus
from socialboost.db.models.subscription import Subscription, SubscriptionStatus, BillingType
from socialboost.db.models.payment import Payment, PaymentStatus
from socialboost.db.models.checkout_lock import CheckoutLock

# Explicitly export all models for clarity
__all__ = [
    "User",
    "UserRole",
    "Plan",
    "Campaign",
    "CampaignStatus",
    "Subscription",
    "SubscriptionStatus",
    "BillingType",
    "Payment",
    "PaymentStatus",
    "CheckoutLock",
]
