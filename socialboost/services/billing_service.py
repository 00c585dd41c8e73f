"""
Billing service for completed Stripe checkouts.

Turns a completed Checkout Session into the ledger records it paid for:
one active Subscription, one succeeded Payment and an activated Campaign.
Shared by the webhook and the success-page read path, so every step is
idempotent on the Stripe subscription id.
"""
import calendar
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from socialboost.core.errors import BillingError, BillingValidationError, LedgerWriteError
from socialboost.core.logging_config import sanitize_log_data
from socialboost.db.models.campaign import Campaign, CampaignStatus
from socialboost.db.models.payment import Payment, PaymentStatus
from socialboost.db.models.subscription import BillingType, Subscription, SubscriptionStatus
from socialboost.db.models.user import User
from socialboost.services import ledger
from socialboost.services.notification_service import subscription_confirmation_html

logger = logging.getLogger(__name__)

REQUIRED_METADATA = ("user_id", "campaign_id", "plan_id")


def from_unix(timestamp) -> Optional[datetime]:
    """Stripe epoch seconds to a naive UTC datetime."""
    if timestamp is None:
        return None
    return datetime.fromtimestamp(int(timestamp), tz=timezone.utc).replace(tzinfo=None)


def add_billing_period(start: datetime, billing: str) -> datetime:
    if billing == BillingType.ANNUAL:
        year, month = start.year + 1, start.month
    else:
        year, month = (start.year + 1, 1) if start.month == 12 else (start.year, start.month + 1)
    day = min(start.day, calendar.monthrange(year, month)[1])
    return start.replace(year=year, month=month, day=day)


def expanded_id(value) -> Optional[str]:
    """Stripe fields hold either an id string or the expanded object."""
    if value is None or isinstance(value, str):
        return value
    return value.get("id")


def subscription_period_end(stripe_subscription) -> Optional[datetime]:
    """
    current_period_end of a Stripe subscription.

    Newer API versions report it per subscription item instead of on the
    subscription itself.
    """
    period_end = stripe_subscription.get("current_period_end")
    if period_end is None:
        items = (stripe_subscription.get("items") or {}).get("data") or []
        if items:
            period_end = items[0].get("current_period_end")
    return from_unix(period_end)


def _parse_int(metadata: Dict[str, Any], key: str) -> int:
    try:
        return int(metadata[key])
    except (TypeError, ValueError):
        raise BillingValidationError(f"Invalid {key} in session metadata: {metadata.get(key)!r}")


def parse_checkout_metadata(session: Dict[str, Any]) -> Dict[str, Any]:
    """Validate and type the metadata written at checkout initiation."""
    metadata = session.get("metadata")
    if not metadata:
        raise BillingValidationError("Session metadata is missing")

    missing = [key for key in REQUIRED_METADATA if not metadata.get(key)]
    if missing:
        raise BillingValidationError(
            "Missing required metadata",
            detail={key: metadata.get(key) for key in REQUIRED_METADATA},
        )

    try:
        amount = float(metadata.get("amount"))
    except (TypeError, ValueError):
        raise BillingValidationError(f"Invalid amount value: {metadata.get('amount')!r}")

    billing = metadata.get("billing") or BillingType.MONTHLY
    if billing not in (BillingType.MONTHLY, BillingType.ANNUAL):
        raise BillingValidationError(f"Invalid billing value: {billing!r}")

    old_subscription_id = metadata.get("old_subscription_id") or None

    return {
        "user_id": _parse_int(metadata, "user_id"),
        "campaign_id": _parse_int(metadata, "campaign_id"),
        "plan_id": _parse_int(metadata, "plan_id"),
        "plan_name": metadata.get("plan_name"),
        "billing": billing,
        "amount": amount,
        "is_upgrade": metadata.get("is_upgrade") == "true",
        "old_subscription_id": _parse_int(metadata, "old_subscription_id") if old_subscription_id else None,
    }


def _retire_superseded_subscription(
    db: Session,
    provider,
    user_id: int,
    old_subscription_id: Optional[int],
) -> None:
    """
    Re-confirm the cancellation of the subscription a plan change replaced.

    Only the subscription named in the checkout metadata is touched, and only
    while it is still active and owned by the same user. Provider errors are
    logged; the local row is cancelled regardless.
    """
    if not old_subscription_id:
        return

    old = db.get(Subscription, old_subscription_id)
    if not old or old.user_id != user_id or old.status != SubscriptionStatus.ACTIVE:
        return

    if old.stripe_subscription_id:
        try:
            provider.cancel_subscription(old.stripe_subscription_id)
            logger.info(f"Cancelled old Stripe subscription: {old.stripe_subscription_id}")
        except BillingError as e:
            logger.info(
                f"Old subscription already cancelled in Stripe or unreachable: "
                f"stripe_subscription_id={old.stripe_subscription_id}, error={e.message}"
            )

    old.status = SubscriptionStatus.CANCELLED
    try:
        db.commit()
        logger.info(f"Marked old subscription as cancelled: subscription_id={old.id}, user_id={user_id}")
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error handling old subscription: user_id={user_id}, error={e}", exc_info=True)


def _provider_created(provider, subscription: Subscription) -> int:
    """Creation timestamp of a ledger row's provider subscription; 0 when unknown."""
    if not subscription.stripe_subscription_id:
        return 0
    try:
        return int(provider.retrieve_subscription(subscription.stripe_subscription_id).get("created") or 0)
    except BillingError as e:
        logger.warning(
            f"Could not retrieve subscription for comparison: "
            f"stripe_subscription_id={subscription.stripe_subscription_id}, error={e.message}"
        )
        return 0


def _resolve_unrelated_active(db: Session, provider, user_id: int, stripe_subscription) -> Tuple[str, Optional[Subscription]]:
    """
    Pick the active subscription when another paid checkout is already recorded.

    Checkouts that did not supersede each other can be delivered in either
    order. The most recently created provider subscription stays active and
    the other one is cancelled in the ledger only. Nothing is cancelled at
    the provider: the displaced subscription may still be billing and is
    logged for manual reconciliation.

    Returns:
        Status for the incoming Subscription, and the ledger row to cancel
    """
    current = ledger.find_active_subscription_by_user(db, user_id)
    incoming_id = stripe_subscription.get("id")
    if not current or current.stripe_subscription_id == incoming_id:
        return SubscriptionStatus.ACTIVE, None

    incoming_created = int(stripe_subscription.get("created") or 0)
    current_created = _provider_created(provider, current)

    if incoming_created > current_created:
        logger.warning(
            f"Unrelated active subscription displaced, needs reconciliation: user_id={user_id}, "
            f"displaced stripe_subscription_id={current.stripe_subscription_id}, kept={incoming_id}"
        )
        return SubscriptionStatus.ACTIVE, current

    logger.warning(
        f"Late checkout for an older subscription recorded as cancelled, needs reconciliation: "
        f"user_id={user_id}, stripe_subscription_id={incoming_id}, kept={current.stripe_subscription_id}"
    )
    return SubscriptionStatus.CANCELLED, None


def _send_confirmation(db: Session, notifier, subscription: Subscription, payment: Payment) -> None:
    user = db.get(User, subscription.user_id)
    if not user:
        logger.error(f"User not found for confirmation email: user_id={subscription.user_id}")
        return

    try:
        notifier.send(
            user.email,
            "Your SocialBoost Subscription Confirmation",
            subscription_confirmation_html(
                user.first_name,
                subscription.plan_name,
                subscription.amount,
                subscription.billing_type,
                payment.order_id,
                subscription.next_billing_date,
            ),
        )
        logger.info(f"Confirmation email sent: user_id={user.id}, subscription_id={subscription.id}")
    except Exception as e:
        logger.error(f"Failed to send confirmation email: user_id={user.id}, error={e}")


def materialize_checkout(db: Session, provider, notifier, session: Dict[str, Any]) -> Subscription:
    """
    Apply a completed Checkout Session to the ledger exactly once.

    Args:
        db: Database session
        provider: Billing provider client
        notifier: Notification sender for the confirmation email
        session: Checkout Session payload (subscription/customer as ids)

    Returns:
        The Subscription for the session's Stripe subscription, new or existing

    Raises:
        BillingValidationError: Metadata or subscription id missing/malformed
        BillingProviderError: Stripe subscription could not be retrieved
        LedgerWriteError: The Subscription/Payment/Campaign write failed (rolled back)
    """
    logger.info(f"Processing checkout session: session_id={session.get('id')}")
    meta = parse_checkout_metadata(session)
    logger.debug(f"Session metadata: {sanitize_log_data(session.get('metadata'))}")

    stripe_subscription_id = expanded_id(session.get("subscription"))
    if not stripe_subscription_id:
        raise BillingValidationError("Checkout session has no subscription")

    existing = ledger.find_subscription_by_external_id(db, stripe_subscription_id)
    if existing:
        logger.info(f"Subscription already processed: subscription_id={existing.id}, stripe_subscription_id={stripe_subscription_id}")
        return existing

    if meta["is_upgrade"]:
        logger.info(f"Plan change, handling old subscription: old_subscription_id={meta['old_subscription_id']}")
        _retire_superseded_subscription(db, provider, meta["user_id"], meta["old_subscription_id"])

    stripe_subscription = provider.retrieve_subscription(stripe_subscription_id)
    status, displaced = _resolve_unrelated_active(db, provider, meta["user_id"], stripe_subscription)
    now = datetime.utcnow()
    next_billing_date = subscription_period_end(stripe_subscription) or add_billing_period(now, meta["billing"])

    customer_id = expanded_id(session.get("customer"))
    context = (
        f"user_id={meta['user_id']}, campaign_id={meta['campaign_id']}, plan_id={meta['plan_id']}, "
        f"stripe_subscription_id={stripe_subscription_id}, session_id={session.get('id')}"
    )

    try:
        subscription = Subscription(
            user_id=meta["user_id"],
            plan_id=meta["plan_id"],
            plan_name=meta["plan_name"],
            amount=meta["amount"],
            billing_type=meta["billing"],
            status=status,
            start_date=now,
            next_billing_date=next_billing_date,
            stripe_subscription_id=stripe_subscription_id,
            stripe_customer_id=customer_id,
            campaign_id=meta["campaign_id"],
        )
        db.add(subscription)
        if displaced:
            displaced.status = SubscriptionStatus.CANCELLED
        db.flush()

        payment = Payment(
            user_id=meta["user_id"],
            subscription_id=subscription.id,
            amount=meta["amount"],
            currency=session.get("currency") or "usd",
            stripe_payment_intent_id=expanded_id(session.get("payment_intent")),
            stripe_invoice_id=expanded_id(session.get("invoice")),
            stripe_customer_id=customer_id,
            status=PaymentStatus.SUCCEEDED,
            payment_method="card",
        )
        db.add(payment)

        campaign = db.get(Campaign, meta["campaign_id"])
        if not campaign or campaign.user_id != meta["user_id"]:
            raise LedgerWriteError(f"Failed to update campaign {meta['campaign_id']}", detail=context)
        campaign.subscription_id = subscription.id
        if status == SubscriptionStatus.ACTIVE:
            campaign.status = CampaignStatus.ACTIVE
            campaign.start_date = now

        db.commit()
    except IntegrityError as e:
        db.rollback()
        existing = ledger.find_subscription_by_external_id(db, stripe_subscription_id)
        if existing:
            logger.info(f"Concurrent delivery already created subscription: subscription_id={existing.id}, {context}")
            return existing
        logger.error(f"Ledger write failed: {context}, error={e}", exc_info=True)
        raise LedgerWriteError("Failed to record subscription", detail=context) from e
    except LedgerWriteError:
        db.rollback()
        logger.error(f"Ledger write failed, campaign missing: {context}")
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Ledger write failed: {context}, error={e}", exc_info=True)
        raise LedgerWriteError("Failed to record subscription", detail=context) from e

    db.refresh(subscription)
    db.refresh(payment)
    logger.info(
        f"Checkout completed: subscription_id={subscription.id}, status={subscription.status}, payment_id={payment.id}, "
        f"campaign_id={meta['campaign_id']}, user_id={meta['user_id']}, plan={meta['plan_name']}"
    )

    if subscription.status == SubscriptionStatus.ACTIVE:
        _send_confirmation(db, notifier, subscription, payment)
    return subscription


def handle_checkout_session_completed(event_data: Dict, db: Session, provider, notifier) -> Subscription:
    """
    Handle checkout.session.completed webhook event.

    Args:
        event_data: Stripe event data object
        db: Database session
        provider: Billing provider client
        notifier: Notification sender

    Returns:
        Subscription created for (or already recorded against) the session
    """
    session = dict(event_data.get("object") or {})
    return materialize_checkout(db, provider, notifier, session)
