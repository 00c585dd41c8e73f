"""
Order history for the signed-in user: payments and a one-call summary.
"""
import math
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from socialboost.core.auth_dependency import get_current_user_obj
from socialboost.db.models.payment import Payment
from socialboost.db.models.user import User
from socialboost.db.session import get_db
from socialboost.schemas.billing import OrdersSummary, PaymentHistoryResponse, PaymentOut
from socialboost.services import ledger

router = APIRouter(prefix="/api/user-orders", tags=["User Orders"])

SUMMARY_PAYMENTS = 10


def _payment_out(payment: Payment) -> PaymentOut:
    return PaymentOut(
        id=payment.id,
        order_id=payment.order_id,
        amount=payment.amount,
        currency=payment.currency or "usd",
        status=payment.status,
        date=payment.created_at,
        payment_method=payment.payment_method,
        receipt_url=payment.receipt_url,
        subscription_name=payment.subscription.plan_name if payment.subscription else None,
    )


def _payments_out(payments: List[Payment]) -> List[PaymentOut]:
    return [_payment_out(payment) for payment in payments]


@router.get("/payments", response_model=PaymentHistoryResponse)
def payment_history(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    user: User = Depends(get_current_user_obj),
    db: Session = Depends(get_db),
):
    payments, total = ledger.list_user_payments(db, user.id, page=page, limit=limit)
    return {
        "payments": _payments_out(payments),
        "pagination": {"current": page, "total": math.ceil(total / limit), "count": total},
    }


@router.get("/summary", response_model=OrdersSummary)
def orders_summary(
    user: User = Depends(get_current_user_obj),
    db: Session = Depends(get_db),
):
    payments, _ = ledger.list_user_payments(db, user.id, page=1, limit=SUMMARY_PAYMENTS)
    return {
        "subscription": ledger.find_subscription_with_plan(db, user.id),
        "payments": _payments_out(payments),
        "campaigns": ledger.list_user_campaigns(db, user.id),
    }
