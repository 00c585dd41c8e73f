"""
Stripe adapter for customers, checkout sessions, subscriptions and webhooks.

Credentials are passed in through BillingSettings; the SDK's global api_key is
never set, so tests can swap the whole provider for a fake. Every method
returns plain dictionaries, so callers never depend on the SDK's object model.
"""
import logging
from typing import Any, Dict, Optional

import stripe

from socialboost.core.config import BillingSettings
from socialboost.core.errors import (
    BillingProviderError,
    ProviderNotFoundError,
    WebhookSignatureError,
)

logger = logging.getLogger(__name__)

RESOURCE_MISSING = "resource_missing"


def _translate(error: stripe.StripeError, action: str) -> BillingProviderError:
    """Map an SDK error onto the billing error taxonomy."""
    message = getattr(error, "user_message", None) or str(error)
    if isinstance(error, stripe.InvalidRequestError) and getattr(error, "code", None) == RESOURCE_MISSING:
        return ProviderNotFoundError(f"Stripe object not found while trying to {action}", detail=message)
    return BillingProviderError(f"Stripe request failed while trying to {action}", detail=message)


def _plain(obj) -> Dict[str, Any]:
    return obj.to_dict()


class StripeBillingProvider:
    """Billing provider client backed by the stripe SDK."""

    def __init__(self, settings: BillingSettings):
        self.settings = settings
        if not settings.stripe_secret_key:
            logger.warning("STRIPE_SECRET_KEY not configured - Stripe calls will fail")

    @property
    def _api_key(self) -> Optional[str]:
        return self.settings.stripe_secret_key

    def create_customer(self, email: str, name: str, metadata: Dict[str, str]) -> Dict[str, Any]:
        try:
            customer = stripe.Customer.create(
                email=email,
                name=name,
                metadata=metadata,
                api_key=self._api_key,
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe error creating customer: {e}")
            raise _translate(e, "create customer") from e
        logger.info(f"Created Stripe customer: customer_id={customer['id']}")
        return _plain(customer)

    def retrieve_customer(self, customer_id: str) -> Dict[str, Any]:
        try:
            return _plain(stripe.Customer.retrieve(customer_id, api_key=self._api_key))
        except stripe.StripeError as e:
            raise _translate(e, "retrieve customer") from e

    def create_checkout_session(self, **params) -> Dict[str, Any]:
        try:
            session = stripe.checkout.Session.create(api_key=self._api_key, **params)
        except stripe.StripeError as e:
            logger.error(f"Stripe error creating checkout session: {e}")
            raise _translate(e, "create checkout session") from e
        logger.info(f"Created checkout session: session_id={session['id']}")
        return _plain(session)

    def retrieve_checkout_session(self, session_id: str, expand: Optional[list] = None) -> Dict[str, Any]:
        try:
            session = stripe.checkout.Session.retrieve(
                session_id,
                expand=expand or [],
                api_key=self._api_key,
            )
        except stripe.StripeError as e:
            raise _translate(e, "retrieve checkout session") from e
        return _plain(session)

    def retrieve_subscription(self, subscription_id: str) -> Dict[str, Any]:
        try:
            return _plain(stripe.Subscription.retrieve(subscription_id, api_key=self._api_key))
        except stripe.StripeError as e:
            raise _translate(e, "retrieve subscription") from e

    def cancel_subscription(self, subscription_id: str) -> Dict[str, Any]:
        try:
            subscription = stripe.Subscription.cancel(subscription_id, api_key=self._api_key)
        except stripe.StripeError as e:
            raise _translate(e, "cancel subscription") from e
        logger.info(f"Cancelled Stripe subscription: subscription_id={subscription_id}")
        return _plain(subscription)

    def update_subscription(self, subscription_id: str, **params) -> Dict[str, Any]:
        try:
            return _plain(stripe.Subscription.modify(subscription_id, api_key=self._api_key, **params))
        except stripe.StripeError as e:
            raise _translate(e, "update subscription") from e

    def construct_verified_event(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        """
        Verify a webhook payload against its Stripe-Signature header.

        Args:
            payload: Raw request body bytes, exactly as received
            signature: Stripe-Signature header value

        Returns:
            Event as a plain dictionary

        Raises:
            WebhookSignatureError: Missing secret/header, bad signature or unparsable body
        """
        secret = self.settings.stripe_webhook_secret
        if not secret:
            raise WebhookSignatureError("Webhook secret not configured", status_code=500)
        if not signature:
            raise WebhookSignatureError("No signature provided")

        try:
            event = stripe.Webhook.construct_event(payload, signature, secret, api_key=self._api_key)
        except stripe.SignatureVerificationError as e:
            logger.error(f"Webhook signature verification failed: {e}")
            raise WebhookSignatureError("Invalid signature", detail=str(e)) from e
        except ValueError as e:
            # UnicodeDecodeError and json.JSONDecodeError are both ValueErrors
            logger.error(f"Invalid webhook payload: {e}")
            raise WebhookSignatureError("Invalid webhook payload", detail=str(e)) from e

        logger.info(f"Verified webhook event: {event['type']}, id={event['id']}")
        return _plain(event)
