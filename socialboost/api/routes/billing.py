"""
Checkout endpoints.

POST /api/stripe/create-checkout-session opens a Stripe Checkout Session;
GET /api/stripe/checkout-session materializes a paid session for the
success page.
"""
import logging
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from socialboost.api.deps import get_billing_provider, get_billing_settings, get_notifier
from socialboost.core.auth_dependency import get_current_user_obj
from socialboost.core.config import BillingSettings
from socialboost.db.models.user import User
from socialboost.db.session import get_db
from socialboost.schemas.billing import (
    BillingErrorResponse,
    CheckoutSessionResult,
    CreateCheckoutSessionRequest,
    CreateCheckoutSessionResponse,
)
from socialboost.services.checkout_service import create_checkout_session, get_checkout_session_result

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/stripe",
    tags=["Billing"],
    responses={400: {"model": BillingErrorResponse}, 500: {"model": BillingErrorResponse}},
)


@router.post("/create-checkout-session", response_model=CreateCheckoutSessionResponse)
def create_checkout(
    payload: CreateCheckoutSessionRequest,
    user: User = Depends(get_current_user_obj),
    db: Session = Depends(get_db),
    provider=Depends(get_billing_provider),
    settings: BillingSettings = Depends(get_billing_settings),
):
    preferences = payload.preferences.model_dump(exclude_none=True) if payload.preferences else None

    session_id = create_checkout_session(
        db,
        provider,
        settings,
        user,
        plan_name=payload.plan_name,
        plan_price=payload.plan_price,
        billing=payload.billing,
        features=payload.features,
        preferences=preferences,
        campaign_id=payload.campaign_id,
    )
    return {"session_id": session_id}


@router.get("/checkout-session", response_model=CheckoutSessionResult)
def checkout_session_result(
    session_id: str = Query(..., description="Stripe checkout session ID"),
    db: Session = Depends(get_db),
    provider=Depends(get_billing_provider),
    notifier=Depends(get_notifier),
):
    """
    Called from the payment success page, possibly before the webhook lands.
    """
    result = get_checkout_session_result(db, provider, notifier, session_id)
    return {"success": True, **result}
