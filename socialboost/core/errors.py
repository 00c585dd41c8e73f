"""
Billing error taxonomy.

Services raise these; the API layer renders them with their status code.
"""
from typing import Any, Optional


class BillingError(Exception):
    status_code = 400

    def __init__(self, message: str, detail: Optional[Any] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail
        if status_code is not None:
            self.status_code = status_code


class BillingValidationError(BillingError):
    """Bad plan name/price, missing campaign data or malformed webhook metadata."""
    status_code = 400


class NotFoundError(BillingError):
    status_code = 404


class CheckoutInProgressError(BillingError):
    status_code = 409


class SubscriptionConflictError(BillingError):
    status_code = 409


class WebhookSignatureError(BillingError):
    status_code = 400


class BillingProviderError(BillingError):
    status_code = 500


class ProviderNotFoundError(BillingProviderError):
    """The provider reported the referenced object does not exist."""
    status_code = 404


class LedgerWriteError(BillingError):
    """A multi-record ledger write failed and was rolled back."""
    status_code = 500
