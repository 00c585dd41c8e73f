"""
Subscription ledger data access.

Pure query helpers over Plan, Subscription, Payment and Campaign. Business
rules live in the services that call these.
"""
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func, and_
from sqlalchemy.orm import Session, joinedload

from socialboost.db.models.campaign import Campaign
from socialboost.db.models.payment import Payment
from socialboost.db.models.subscription import Subscription, SubscriptionStatus


def find_active_subscription_by_user(db: Session, user_id: int) -> Optional[Subscription]:
    return (
        db.query(Subscription)
        .filter(Subscription.user_id == user_id, Subscription.status == SubscriptionStatus.ACTIVE)
        .order_by(Subscription.created_at.desc(), Subscription.id.desc())
        .first()
    )


def find_subscription_by_external_id(db: Session, stripe_subscription_id: str) -> Optional[Subscription]:
    if not stripe_subscription_id:
        return None
    return (
        db.query(Subscription)
        .filter(Subscription.stripe_subscription_id == stripe_subscription_id)
        .first()
    )


def find_subscription_with_plan(db: Session, user_id: int) -> Optional[Subscription]:
    """Active subscription with Plan and Campaign loaded for display."""
    return (
        db.query(Subscription)
        .options(joinedload(Subscription.plan), joinedload(Subscription.campaign))
        .filter(Subscription.user_id == user_id, Subscription.status == SubscriptionStatus.ACTIVE)
        .order_by(Subscription.created_at.desc(), Subscription.id.desc())
        .first()
    )


def list_user_subscriptions(db: Session, user_id: int, status: Optional[str] = None) -> List[Subscription]:
    query = (
        db.query(Subscription)
        .options(joinedload(Subscription.plan), joinedload(Subscription.campaign))
        .filter(Subscription.user_id == user_id)
    )
    if status:
        query = query.filter(Subscription.status == status)
    return query.order_by(Subscription.created_at.desc(), Subscription.id.desc()).all()


def list_user_campaigns(db: Session, user_id: int) -> List[Campaign]:
    return (
        db.query(Campaign)
        .filter(Campaign.user_id == user_id)
        .order_by(Campaign.created_at.desc(), Campaign.id.desc())
        .all()
    )


def find_campaign_for_user(db: Session, campaign_id: int, user_id: int) -> Optional[Campaign]:
    return (
        db.query(Campaign)
        .filter(Campaign.id == campaign_id, Campaign.user_id == user_id)
        .first()
    )


def find_payment_by_invoice_id(db: Session, stripe_invoice_id: str, status: Optional[str] = None) -> Optional[Payment]:
    if not stripe_invoice_id:
        return None
    query = db.query(Payment).filter(Payment.stripe_invoice_id == stripe_invoice_id)
    if status:
        query = query.filter(Payment.status == status)
    return query.first()


def find_payment_by_event_id(db: Session, stripe_event_id: str) -> Optional[Payment]:
    if not stripe_event_id:
        return None
    return db.query(Payment).filter(Payment.stripe_event_id == stripe_event_id).first()


def list_user_payments(db: Session, user_id: int, page: int = 1, limit: int = 50) -> Tuple[List[Payment], int]:
    """
    One page of a user's payments, newest first, with the subscription loaded.

    Returns:
        (payments on the page, total payments for the user)
    """
    query = db.query(Payment).filter(Payment.user_id == user_id)
    total = query.count()
    payments = (
        query.options(joinedload(Payment.subscription))
        .order_by(Payment.created_at.desc(), Payment.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return payments, total


def first_payment_for_subscription(db: Session, subscription_id: int) -> Optional[Payment]:
    return (
        db.query(Payment)
        .filter(Payment.subscription_id == subscription_id)
        .order_by(Payment.id.asc())
        .first()
    )


def aggregate_payments_by_status_and_date_range(
    db: Session,
    start: datetime,
    end: datetime,
    status: Optional[str] = None,
) -> Dict[str, Dict[str, float]]:
    """
    Count and sum payments per status with created_at in [start, end].

    Args:
        db: Database session
        start: Inclusive lower bound
        end: Inclusive upper bound
        status: Restrict to a single payment status

    Returns:
        Dictionary mapping status to {"count": int, "total": float}
    """
    conditions = [Payment.created_at >= start, Payment.created_at <= end]
    if status:
        conditions.append(Payment.status == status)

    rows = db.query(
        Payment.status,
        func.count(Payment.id).label("count"),
        func.coalesce(func.sum(Payment.amount), 0).label("total"),
    ).filter(and_(*conditions)).group_by(Payment.status).all()

    return {row_status: {"count": int(count), "total": float(total)} for row_status, count, total in rows}
