import logging
from typing import Optional
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from socialboost.api.deps import get_billing_provider
from socialboost.core.auth_dependency import require_admin
from socialboost.db.models.user import User
from socialboost.db.session import get_db
from socialboost.schemas.billing import AdminCancelRequest, SubscriptionActionResponse
from socialboost.services.subscription_service import (
    admin_cancel_subscription,
    admin_reactivate_subscription,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/subscriptions", tags=["Admin Subscriptions"])


@router.post("/{subscription_id}/cancel", response_model=SubscriptionActionResponse)
def cancel(
    subscription_id: int,
    payload: Optional[AdminCancelRequest] = None,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    provider=Depends(get_billing_provider),
):
    immediately = payload.cancel_immediately if payload else False
    subscription = admin_cancel_subscription(db, provider, subscription_id, immediately)
    logger.info(f"Admin cancel: admin_id={admin.id}, subscription_id={subscription_id}")
    message = (
        "Subscription cancelled immediately"
        if immediately
        else "Subscription will be cancelled at period end"
    )
    return {"message": message, "subscription": subscription}


@router.post("/{subscription_id}/reactivate", response_model=SubscriptionActionResponse)
def reactivate(
    subscription_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    provider=Depends(get_billing_provider),
):
    subscription = admin_reactivate_subscription(db, provider, subscription_id)
    logger.info(f"Admin reactivate: admin_id={admin.id}, subscription_id={subscription_id}")
    return {"message": "Subscription reactivated successfully", "subscription": subscription}
