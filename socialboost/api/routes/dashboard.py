"""
Admin dashboard endpoints over the subscription ledger.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from socialboost.core.auth_dependency import require_admin
from socialboost.db.session import get_db
from socialboost.services import dashboard_service

router = APIRouter(prefix="/api/dashboard", tags=["Dashboard"], dependencies=[Depends(require_admin)])


@router.get("/revenue")
def revenue(db: Session = Depends(get_db)):
    return dashboard_service.revenue_summary(db)


@router.get("/payment-status")
def payment_status(db: Session = Depends(get_db)):
    return dashboard_service.payment_status_distribution(db)


@router.get("/subscription-plans")
def subscription_plans(db: Session = Depends(get_db)):
    return dashboard_service.subscription_plan_distribution(db)


@router.get("/recent-payments")
def recent_payments(
    limit: int = Query(5, ge=1, le=100),
    db: Session = Depends(get_db),
):
    return dashboard_service.recent_payments(db, limit)
