"""
Dispatch verified Stripe webhook events to their ledger handlers.
"""
import logging
from typing import Any, Dict

from sqlalchemy.orm import Session

from socialboost.services.billing_invoice_handlers import (
    handle_invoice_payment_failed,
    handle_invoice_payment_succeeded,
)
from socialboost.services.billing_service import handle_checkout_session_completed

logger = logging.getLogger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"
INVOICE_SUCCEEDED = ("invoice.payment_succeeded", "invoice.paid")
INVOICE_FAILED = "invoice.payment_failed"


def process_event(db: Session, provider, notifier, event: Dict[str, Any]) -> Dict[str, Any]:
    """
    Apply one verified event to the ledger.

    Returns a small summary for logging and the acknowledgement body. Errors
    propagate; the webhook route decides how to acknowledge them.
    """
    event_type = event.get("type")
    event_id = event.get("id")
    event_data = event.get("data") or {}

    if event_type == CHECKOUT_COMPLETED:
        subscription = handle_checkout_session_completed(event_data, db, provider, notifier)
        return {"handled": True, "subscription_id": subscription.id}

    if event_type in INVOICE_SUCCEEDED:
        payment = handle_invoice_payment_succeeded(event_data, db, event_id=event_id)
        return {"handled": True, "payment_id": payment.id if payment else None}

    if event_type == INVOICE_FAILED:
        payment = handle_invoice_payment_failed(event_data, db, event_id=event_id)
        return {"handled": True, "payment_id": payment.id if payment else None}

    logger.info(f"Unhandled event type: {event_type}, id={event_id}")
    return {"handled": False}
