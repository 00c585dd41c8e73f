"""
Dependencies that hand configured collaborators to the routes.

Tests replace these through app.dependency_overrides.
"""
from socialboost.core.config import (
    BillingSettings,
    load_billing_settings,
    load_smtp_settings,
)
from socialboost.services.notification_service import SmtpNotificationSender
from socialboost.services.stripe_service import StripeBillingProvider


def get_billing_settings() -> BillingSettings:
    return load_billing_settings()


def get_billing_provider() -> StripeBillingProvider:
    return StripeBillingProvider(load_billing_settings())


def get_notifier() -> SmtpNotificationSender:
    return SmtpNotificationSender(load_smtp_settings())
