"""
Tests for binding users to Stripe customers.
"""
import pytest

from socialboost.core.errors import BillingProviderError
from socialboost.services.customer_binder import ensure_billing_customer


def test_creates_customer_when_none_stored(db_session, provider, test_user):
    customer_id = ensure_billing_customer(db_session, provider, test_user)

    assert customer_id.startswith("cus_test")
    assert test_user.stripe_customer_id == customer_id
    assert provider.called("create_customer") == ["test@example.com"]
    assert provider.customers[customer_id]["metadata"] == {"user_id": str(test_user.id)}


def test_reuses_customer_that_resolves(db_session, provider, test_user):
    existing = provider.create_customer(test_user.email, "Test User", {})
    test_user.stripe_customer_id = existing["id"]
    db_session.commit()
    provider.calls.clear()

    customer_id = ensure_billing_customer(db_session, provider, test_user)

    assert customer_id == existing["id"]
    assert provider.called("create_customer") == []


def test_replaces_customer_missing_at_provider(db_session, provider, test_user):
    test_user.stripe_customer_id = "cus_from_old_test_mode"
    db_session.commit()

    customer_id = ensure_billing_customer(db_session, provider, test_user)

    assert customer_id != "cus_from_old_test_mode"
    db_session.expire_all()
    assert test_user.stripe_customer_id == customer_id
    assert len(provider.called("create_customer")) == 1


def test_replaces_deleted_customer(db_session, provider, test_user):
    deleted = provider.create_customer(test_user.email, "Test User", {})
    deleted["deleted"] = True
    test_user.stripe_customer_id = deleted["id"]
    db_session.commit()

    customer_id = ensure_billing_customer(db_session, provider, test_user)

    assert customer_id != deleted["id"]
    assert test_user.stripe_customer_id == customer_id


def test_other_provider_errors_propagate(db_session, provider, test_user):
    test_user.stripe_customer_id = "cus_existing"
    db_session.commit()
    provider.customer_error = BillingProviderError("Stripe request failed while trying to retrieve customer")

    with pytest.raises(BillingProviderError):
        ensure_billing_customer(db_session, provider, test_user)

    assert test_user.stripe_customer_id == "cus_existing"
    assert provider.called("create_customer") == []
