"""
Admin dashboard reporting over the subscription ledger.
"""
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from socialboost.db.models.payment import Payment, PaymentStatus
from socialboost.db.models.subscription import Subscription, SubscriptionStatus
from socialboost.services.ledger import aggregate_payments_by_status_and_date_range

REPORTING_WINDOW_DAYS = 30


def calculate_growth_rate(current: float, previous: float) -> float:
    if not previous:
        return 0.0
    return (current - previous) / previous * 100


def revenue_summary(db: Session, now: Optional[datetime] = None) -> Dict:
    """Succeeded revenue over the last window versus the one before it."""
    now = now or datetime.utcnow()
    window_start = now - timedelta(days=REPORTING_WINDOW_DAYS)
    previous_start = window_start - timedelta(days=REPORTING_WINDOW_DAYS)

    current = aggregate_payments_by_status_and_date_range(db, window_start, now, PaymentStatus.SUCCEEDED)
    previous = aggregate_payments_by_status_and_date_range(db, previous_start, window_start, PaymentStatus.SUCCEEDED)
    current_revenue = current.get(PaymentStatus.SUCCEEDED, {}).get("total", 0.0)
    previous_revenue = previous.get(PaymentStatus.SUCCEEDED, {}).get("total", 0.0)

    avg_value = db.query(func.avg(Subscription.amount)).filter(
        Subscription.status == SubscriptionStatus.ACTIVE
    ).scalar()

    return {
        "monthly_revenue": current_revenue,
        "previous_revenue": previous_revenue,
        "revenue_growth_rate": calculate_growth_rate(current_revenue, previous_revenue),
        "avg_subscription_value": float(avg_value or 0.0),
    }


def payment_status_distribution(db: Session) -> List[Dict]:
    rows = db.query(Payment.status, func.count(Payment.id)).group_by(Payment.status).all()
    return [{"status": status, "count": int(count)} for status, count in rows]


def subscription_plan_distribution(db: Session) -> List[Dict]:
    rows = (
        db.query(Subscription.plan_name, func.count(Subscription.id))
        .filter(Subscription.status == SubscriptionStatus.ACTIVE)
        .group_by(Subscription.plan_name)
        .all()
    )
    total = sum(count for _, count in rows)
    return [
        {
            "name": plan_name,
            "count": int(count),
            "percentage": round(count / total * 100) if total else 0,
        }
        for plan_name, count in rows
    ]


def recent_payments(db: Session, limit: int = 5) -> List[Dict]:
    payments = (
        db.query(Payment)
        .options(joinedload(Payment.user), joinedload(Payment.subscription))
        .order_by(Payment.created_at.desc(), Payment.id.desc())
        .limit(limit)
        .all()
    )
    return [
        {
            "id": payment.id,
            "order_id": payment.order_id,
            "user_email": payment.user.email if payment.user else None,
            "plan_name": payment.subscription.plan_name if payment.subscription else None,
            "amount": payment.amount,
            "currency": payment.currency,
            "status": payment.status,
            "created_at": payment.created_at,
        }
        for payment in payments
    ]
