"""
Invoice event handlers for Stripe webhooks.

Handles invoice.payment_succeeded / invoice.paid and invoice.payment_failed
events by recording a Payment against the matching Subscription.
"""
import logging
from typing import Dict, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from socialboost.db.models.payment import Payment, PaymentStatus
from socialboost.db.models.subscription import Subscription
from socialboost.services import ledger
from socialboost.services.billing_service import expanded_id, from_unix

logger = logging.getLogger(__name__)

# First invoice of a subscription; the checkout path already records it
SUBSCRIPTION_CREATE = "subscription_create"


def _invoice_subscription_id(invoice: Dict) -> Optional[str]:
    subscription_id = expanded_id(invoice.get("subscription"))
    if subscription_id:
        return subscription_id
    # Newer API versions nest it under parent.subscription_details
    details = (invoice.get("parent") or {}).get("subscription_details") or {}
    return expanded_id(details.get("subscription"))


def _invoice_period_end(invoice: Dict):
    lines = (invoice.get("lines") or {}).get("data") or []
    if not lines:
        return None
    return from_unix((lines[0].get("period") or {}).get("end"))


def _record_payment(
    db: Session,
    subscription: Subscription,
    invoice: Dict,
    amount_cents,
    status: str,
    event_id: Optional[str],
) -> Optional[Payment]:
    payment = Payment(
        user_id=subscription.user_id,
        subscription_id=subscription.id,
        amount=(amount_cents or 0) / 100,
        currency=invoice.get("currency") or "usd",
        stripe_payment_intent_id=expanded_id(invoice.get("payment_intent")),
        stripe_invoice_id=invoice.get("id"),
        stripe_event_id=event_id,
        stripe_customer_id=expanded_id(invoice.get("customer")),
        status=status,
        payment_method="card",
        receipt_url=invoice.get("hosted_invoice_url"),
    )
    db.add(payment)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        logger.info(f"Invoice event already recorded by a concurrent delivery: event_id={event_id}, invoice_id={invoice.get('id')}")
        return None
    return payment


def _find_subscription(db: Session, invoice: Dict, event_type: str) -> Optional[Subscription]:
    subscription_id = _invoice_subscription_id(invoice)
    if not subscription_id:
        logger.warning(f"{event_type}: No subscription ID in invoice {invoice.get('id')}")
        return None

    subscription = ledger.find_subscription_by_external_id(db, subscription_id)
    if not subscription:
        logger.warning(f"{event_type}: Subscription not found for subscription_id={subscription_id}, invoice_id={invoice.get('id')}")
        return None
    return subscription


def _already_recorded(db: Session, invoice: Dict, event_type: str, event_id: Optional[str], status: Optional[str] = None) -> bool:
    if ledger.find_payment_by_event_id(db, event_id):
        logger.info(f"{event_type}: Event already processed, event_id={event_id}")
        return True
    if status and ledger.find_payment_by_invoice_id(db, invoice.get("id"), status=status):
        logger.info(f"{event_type}: Invoice already recorded as {status}, invoice_id={invoice.get('id')}")
        return True
    return False


def handle_invoice_payment_succeeded(event_data: Dict, db: Session, event_id: Optional[str] = None) -> Optional[Payment]:
    """
    Handle invoice.payment_succeeded webhook event.

    Records the renewal payment and moves next_billing_date forward to the
    invoice period end. The billing date never moves backwards.
    """
    invoice = event_data.get("object") or {}
    event_type = "invoice.payment_succeeded"

    subscription = _find_subscription(db, invoice, event_type)
    if not subscription or _already_recorded(db, invoice, event_type, event_id, PaymentStatus.SUCCEEDED):
        return None

    if invoice.get("billing_reason") == SUBSCRIPTION_CREATE:
        logger.info(f"{event_type}: Initial invoice recorded at checkout, skipping invoice_id={invoice.get('id')}")
        return None

    payment = _record_payment(db, subscription, invoice, invoice.get("amount_paid"), PaymentStatus.SUCCEEDED, event_id)
    if payment is None:
        return None

    period_end = _invoice_period_end(invoice)
    if period_end and (subscription.next_billing_date is None or period_end > subscription.next_billing_date):
        subscription.next_billing_date = period_end
    elif period_end:
        logger.warning(
            f"{event_type}: Ignoring non-advancing billing date, subscription_id={subscription.id}, "
            f"current={subscription.next_billing_date}, invoice_period_end={period_end}"
        )

    db.commit()
    db.refresh(payment)

    logger.info(
        f"Renewal payment created: payment_id={payment.id}, user_id={subscription.user_id}, "
        f"subscription_id={subscription.id}, next_billing_date={subscription.next_billing_date}"
    )
    return payment


def handle_invoice_payment_failed(event_data: Dict, db: Session, event_id: Optional[str] = None) -> Optional[Payment]:
    """
    Handle invoice.payment_failed webhook event.

    Records a failed payment for the amount due. Subscription status is left
    unchanged; there is no automatic suspension.
    """
    invoice = event_data.get("object") or {}
    event_type = "invoice.payment_failed"

    subscription = _find_subscription(db, invoice, event_type)
    if not subscription or _already_recorded(db, invoice, event_type, event_id):
        return None

    payment = _record_payment(db, subscription, invoice, invoice.get("amount_due"), PaymentStatus.FAILED, event_id)
    if payment is None:
        return None

    db.commit()
    db.refresh(payment)

    logger.warning(f"Invoice payment failed: payment_id={payment.id}, user_id={subscription.user_id}, subscription_id={subscription.id}")
    return payment
