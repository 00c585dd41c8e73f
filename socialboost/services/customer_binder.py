"""
Bind each local user to exactly one Stripe customer, healing stale ids.
"""
import logging

from sqlalchemy.orm import Session

from socialboost.core.errors import ProviderNotFoundError
from socialboost.db.models.user import User

logger = logging.getLogger(__name__)


def _create_and_store_customer(db: Session, provider, user: User) -> str:
    customer = provider.create_customer(
        email=user.email,
        name=user.full_name,
        metadata={"user_id": str(user.id)},
    )
    user.stripe_customer_id = customer["id"]
    db.commit()
    db.refresh(user)
    return user.stripe_customer_id


def ensure_billing_customer(db: Session, provider, user: User) -> str:
    """
    Return a Stripe customer id that resolves at the provider.

    Checked on every checkout because local and provider state can diverge
    (test-mode resets, customers deleted from the dashboard).

    Raises:
        BillingProviderError: Any provider failure other than "not found"
    """
    if not user.stripe_customer_id:
        customer_id = _create_and_store_customer(db, provider, user)
        logger.info(f"Bound new Stripe customer: user_id={user.id}, customer_id={customer_id}")
        return customer_id

    stale_id = user.stripe_customer_id
    try:
        customer = provider.retrieve_customer(stale_id)
        missing = bool(customer.get("deleted"))
    except ProviderNotFoundError:
        missing = True

    if not missing:
        return stale_id

    logger.warning(f"Customer {stale_id} not found in Stripe, creating new customer for user_id={user.id}")
    customer_id = _create_and_store_customer(db, provider, user)
    logger.info(f"Replaced Stripe customer: user_id={user.id}, old={stale_id}, new={customer_id}")
    return customer_id
