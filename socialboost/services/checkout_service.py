"""
Checkout session initiation and the synchronous checkout result read path.

Initiation supersedes the user's active subscription, binds the Stripe
customer, and opens a subscription-mode Checkout Session whose metadata is the
only channel through which the webhook learns what to create.
"""
import json
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from socialboost.core.config import BillingSettings
from socialboost.core.errors import BillingError, BillingValidationError, NotFoundError
from socialboost.db.models.campaign import Campaign, CampaignStatus
from socialboost.db.models.subscription import BillingType, SubscriptionStatus
from socialboost.db.models.user import User
from socialboost.services import ledger
from socialboost.services.billing_service import expanded_id, materialize_checkout
from socialboost.services.checkout_lock import checkout_lock
from socialboost.services.customer_binder import ensure_billing_customer
from socialboost.services.plan_resolver import resolve_plan, validate_plan_input

logger = logging.getLogger(__name__)

PREFERENCE_FIELDS = ("demographics", "interests", "behaviors", "social_media")


def _resolve_campaign(
    db: Session,
    user: User,
    campaign_id: Optional[int],
    preferences: Optional[Dict[str, Any]],
) -> Campaign:
    """Load the user's campaign (refreshing its targeting) or create a draft one."""
    if campaign_id is not None:
        campaign = ledger.find_campaign_for_user(db, campaign_id, user.id)
        if not campaign:
            raise NotFoundError("Campaign not found")

        if preferences:
            for field in PREFERENCE_FIELDS:
                if preferences.get(field):
                    setattr(campaign, field, preferences[field])
            db.commit()
            db.refresh(campaign)
        return campaign

    if not preferences:
        raise BillingValidationError("Campaign preferences are required for new campaigns")

    campaign = Campaign(
        user_id=user.id,
        demographics=preferences.get("demographics") or {},
        interests=preferences.get("interests") or [],
        behaviors=preferences.get("behaviors") or [],
        social_media=preferences.get("social_media") or {"platform": "instagram", "username": None},
        status=CampaignStatus.DRAFT,
    )
    db.add(campaign)
    db.commit()
    db.refresh(campaign)
    logger.info(f"Created draft campaign: campaign_id={campaign.id}, user_id={user.id}")
    return campaign


def supersede_active_subscription(db: Session, provider, user_id: int):
    """
    Cancel the user's active subscription ahead of a new checkout.

    Provider cancellation is best-effort; the local row is always marked
    cancelled. Returns the superseded subscription, if any.
    """
    existing = ledger.find_active_subscription_by_user(db, user_id)
    if not existing:
        return None

    logger.info(f"User has existing subscription: subscription_id={existing.id}, user_id={user_id}")

    if existing.stripe_subscription_id:
        try:
            provider.cancel_subscription(existing.stripe_subscription_id)
            logger.info(f"Cancelled old Stripe subscription: {existing.stripe_subscription_id}")
        except BillingError as e:
            logger.error(
                f"Error cancelling old subscription in Stripe: "
                f"stripe_subscription_id={existing.stripe_subscription_id}, error={e.message}, detail={e.detail}"
            )

    existing.status = SubscriptionStatus.CANCELLED
    db.commit()
    db.refresh(existing)
    logger.info(f"Marked old subscription as cancelled: subscription_id={existing.id}")
    return existing


def _line_items(plan_name: str, price: float, billing: str, features: List[str], currency: str) -> List[dict]:
    cadence = "Annual" if billing == BillingType.ANNUAL else "Monthly"
    return [{
        "price_data": {
            "currency": currency,
            "product_data": {
                "name": f"{plan_name} Plan - {cadence} Billing",
                "description": f"Instagram Growth Campaign - {', '.join(features) if features else 'Standard features'}",
            },
            "unit_amount": int(round(price * 100)),
            "recurring": {
                "interval": "year" if billing == BillingType.ANNUAL else "month",
                "interval_count": 1,
            },
        },
        "quantity": 1,
    }]


def create_checkout_session(
    db: Session,
    provider,
    settings: BillingSettings,
    user: User,
    plan_name: Optional[str],
    plan_price,
    billing: str = BillingType.MONTHLY,
    features: Optional[List[str]] = None,
    preferences: Optional[Dict[str, Any]] = None,
    campaign_id: Optional[int] = None,
) -> str:
    """
    Open a Stripe Checkout Session for a campaign and plan.

    Args:
        db: Database session
        provider: Billing provider client
        settings: Billing settings (redirect URLs, currency, lock TTL)
        user: Authenticated user
        plan_name: Plan name, non-empty
        plan_price: Price for the chosen cadence, positive
        billing: "monthly" or "annual"
        features: Plan feature list shown at checkout
        preferences: Targeting preferences for a new or refreshed campaign
        campaign_id: Existing campaign owned by the user

    Returns:
        Checkout session id for client-side redirection

    Raises:
        BillingValidationError: Bad plan input or missing campaign data (400)
        NotFoundError: Campaign does not belong to the user (404)
        CheckoutInProgressError: Another checkout for this user is running (409)
        BillingProviderError: Stripe failure (500)
    """
    name, price = validate_plan_input(plan_name, plan_price)
    if billing not in (BillingType.MONTHLY, BillingType.ANNUAL):
        raise BillingValidationError("Billing must be 'monthly' or 'annual'")
    features = list(features or [])

    with checkout_lock(db, user.id, settings.checkout_lock_ttl_seconds):
        campaign = _resolve_campaign(db, user, campaign_id, preferences)
        plan = resolve_plan(db, name, price, billing, features)
        customer_id = ensure_billing_customer(db, provider, user)
        superseded = supersede_active_subscription(db, provider, user.id)

        metadata = {
            "user_id": str(user.id),
            "campaign_id": str(campaign.id),
            "plan_id": str(plan.id),
            "plan_name": name,
            "billing": billing,
            "amount": str(price),
            "features": json.dumps(features),
            "is_upgrade": "true" if superseded else "false",
            "old_subscription_id": str(superseded.id) if superseded else "",
        }

        session = provider.create_checkout_session(
            payment_method_types=["card"],
            customer=customer_id,
            line_items=_line_items(name, price, billing, features, settings.currency),
            mode="subscription",
            success_url=settings.success_url,
            cancel_url=settings.cancel_url,
            metadata=metadata,
            subscription_data={"metadata": metadata},
        )

    logger.info(
        f"Created checkout session: session_id={session['id']}, user_id={user.id}, "
        f"plan={name}, billing={billing}, is_upgrade={metadata['is_upgrade']}"
    )
    return session["id"]


def get_checkout_session_result(db: Session, provider, notifier, session_id: str) -> Dict[str, Any]:
    """
    Materialize a completed checkout from the success page.

    Races with the webhook for the same session, so it goes through the same
    idempotent materialization.
    """
    if not session_id:
        raise BillingValidationError("Session ID is required")

    session = provider.retrieve_checkout_session(session_id, expand=["subscription", "customer"])
    if session.get("payment_status") != "paid":
        raise BillingValidationError("Payment not completed")

    normalized = dict(session)
    normalized["subscription"] = expanded_id(session.get("subscription"))
    normalized["customer"] = expanded_id(session.get("customer"))

    subscription = materialize_checkout(db, provider, notifier, normalized)
    payment = ledger.first_payment_for_subscription(db, subscription.id)

    return {
        "order_id": payment.order_id if payment else f"SB{subscription.id:08d}",
        "plan_name": subscription.plan_name,
        "amount": subscription.amount,
        "billing": subscription.billing_type,
    }
