import logging
from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from socialboost.api.deps import get_billing_provider
from socialboost.core.auth_dependency import get_current_user_obj
from socialboost.core.errors import NotFoundError
from socialboost.db.models.subscription import SubscriptionStatus
from socialboost.db.models.user import User
from socialboost.db.session import get_db
from socialboost.schemas.billing import SubscriptionActionResponse, SubscriptionOut
from socialboost.services import ledger
from socialboost.services.subscription_service import cancel_user_subscription

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/subscriptions", tags=["Subscriptions"])


@router.get("/current", response_model=SubscriptionOut)
def current_subscription(
    user: User = Depends(get_current_user_obj),
    db: Session = Depends(get_db),
):
    subscription = ledger.find_subscription_with_plan(db, user.id)
    if not subscription:
        raise NotFoundError("No active subscription found")
    return subscription


@router.get("/my-subscriptions", response_model=List[SubscriptionOut])
def my_subscriptions(
    user: User = Depends(get_current_user_obj),
    db: Session = Depends(get_db),
):
    return ledger.list_user_subscriptions(db, user.id, status=SubscriptionStatus.ACTIVE)


@router.post("/cancel", response_model=SubscriptionActionResponse)
def cancel_subscription(
    user: User = Depends(get_current_user_obj),
    db: Session = Depends(get_db),
    provider=Depends(get_billing_provider),
):
    subscription = cancel_user_subscription(db, provider, user)
    return {"message": "Subscription cancelled successfully", "subscription": subscription}
