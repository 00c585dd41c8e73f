import logging
from fastapi import APIRouter, Depends, Header, Request
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from socialboost.api.deps import get_billing_provider, get_notifier
from socialboost.core.logging_config import sanitize_log_data
from socialboost.db.session import get_db
from socialboost.schemas.billing import BillingErrorResponse, WebhookAck
from socialboost.services.webhook_processor import process_event

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/stripe", tags=["Billing Webhook"])


@router.post(
    "/webhooks/stripe",
    response_model=WebhookAck,
    response_model_exclude_none=True,
    responses={400: {"model": BillingErrorResponse}},
)
async def stripe_webhook(
    request: Request,
    stripe_signature: str = Header(None),
    db: Session = Depends(get_db),
    provider=Depends(get_billing_provider),
    notifier=Depends(get_notifier),
):
    # Signature covers the exact bytes, so read the body unparsed
    payload = await request.body()

    # WebhookSignatureError propagates to the error handler as a 400
    event = provider.construct_verified_event(payload, stripe_signature)
    logger.debug(f"Webhook payload: {sanitize_log_data(event.get('data'))}")

    try:
        # Ledger writes and Stripe calls block, keep them off the event loop
        result = await run_in_threadpool(process_event, db, provider, notifier, event)
    except Exception as e:
        # Acknowledge anyway so Stripe does not retry a non-transient failure
        logger.error(f"Error processing webhook {event.get('type')} id={event.get('id')}: {e}", exc_info=True)
        db.rollback()
        return {
            "received": True,
            "error": str(e),
            "note": "Error occurred but webhook receipt acknowledged",
        }

    logger.info(f"Webhook processed: type={event.get('type')}, id={event.get('id')}, result={result}")
    return {"received": True}
