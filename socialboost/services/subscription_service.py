"""
User and admin subscription management.
"""
import logging
from datetime import datetime

from sqlalchemy.orm import Session

from socialboost.core.errors import (
    BillingValidationError,
    NotFoundError,
    SubscriptionConflictError,
)
from socialboost.db.models.subscription import Subscription, SubscriptionStatus
from socialboost.db.models.user import User
from socialboost.services import ledger

logger = logging.getLogger(__name__)


def cancel_user_subscription(db: Session, provider, user: User) -> Subscription:
    """Cancel the user's active subscription at the end of the paid period."""
    subscription = ledger.find_active_subscription_by_user(db, user.id)
    if not subscription:
        raise NotFoundError("No active subscription found")

    if subscription.stripe_subscription_id:
        provider.update_subscription(subscription.stripe_subscription_id, cancel_at_period_end=True)

    subscription.status = SubscriptionStatus.CANCELLED
    db.commit()
    db.refresh(subscription)

    logger.info(f"Subscription cancelled by user: subscription_id={subscription.id}, user_id={user.id}")
    return subscription


def _get_subscription(db: Session, subscription_id: int) -> Subscription:
    subscription = db.get(Subscription, subscription_id)
    if not subscription:
        raise NotFoundError("Subscription not found")
    return subscription


def admin_cancel_subscription(db: Session, provider, subscription_id: int, immediately: bool = False) -> Subscription:
    """
    Cancel a subscription on behalf of a user.

    Immediate cancellation ends the Stripe subscription now and moves the next
    billing date to the current time; otherwise Stripe cancels at period end
    and the billing date is kept as the end of service.
    """
    subscription = _get_subscription(db, subscription_id)
    if subscription.status == SubscriptionStatus.CANCELLED:
        raise BillingValidationError("Subscription is already cancelled")

    if subscription.stripe_subscription_id:
        if immediately:
            provider.cancel_subscription(subscription.stripe_subscription_id)
        else:
            provider.update_subscription(subscription.stripe_subscription_id, cancel_at_period_end=True)

    subscription.status = SubscriptionStatus.CANCELLED
    if immediately:
        subscription.next_billing_date = datetime.utcnow()

    db.commit()
    db.refresh(subscription)

    logger.info(f"Subscription cancelled by admin: subscription_id={subscription.id}, immediately={immediately}")
    return subscription


def admin_reactivate_subscription(db: Session, provider, subscription_id: int) -> Subscription:
    """Undo a period-end cancellation, keeping one active subscription per user."""
    subscription = _get_subscription(db, subscription_id)
    if subscription.status != SubscriptionStatus.CANCELLED:
        raise BillingValidationError("Subscription is not cancelled")

    active = ledger.find_active_subscription_by_user(db, subscription.user_id)
    if active and active.id != subscription.id:
        raise SubscriptionConflictError(
            "User already has an active subscription",
            detail={"active_subscription_id": active.id},
        )

    if subscription.stripe_subscription_id:
        provider.update_subscription(subscription.stripe_subscription_id, cancel_at_period_end=False)

    subscription.status = SubscriptionStatus.ACTIVE
    db.commit()
    db.refresh(subscription)

    logger.info(f"Subscription reactivated by admin: subscription_id={subscription.id}")
    return subscription
