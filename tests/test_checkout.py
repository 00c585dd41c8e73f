"""
Tests for checkout session initiation and the success-page result path.
"""
import json
from datetime import datetime, timedelta

import pytest

from conftest import PREFERENCES
from socialboost.core.errors import (
    BillingProviderError,
    BillingValidationError,
    CheckoutInProgressError,
    NotFoundError,
)
from socialboost.db.models.campaign import Campaign, CampaignStatus
from socialboost.db.models.checkout_lock import CheckoutLock
from socialboost.db.models.payment import Payment
from socialboost.db.models.plan import Plan
from socialboost.db.models.subscription import Subscription, SubscriptionStatus
from socialboost.services.checkout_service import create_checkout_session, get_checkout_session_result


@pytest.fixture
def active_subscription(db_session, test_user):
    plan = Plan(name="Starter", monthly_price=19, annual_price=19 * 12 / 11, features=[])
    db_session.add(plan)
    db_session.commit()
    subscription = Subscription(
        user_id=test_user.id,
        plan_id=plan.id,
        plan_name="Starter",
        amount=19,
        billing_type="monthly",
        status=SubscriptionStatus.ACTIVE,
        stripe_subscription_id="sub_old",
        next_billing_date=datetime.utcnow() + timedelta(days=10),
    )
    db_session.add(subscription)
    db_session.commit()
    db_session.refresh(subscription)
    return subscription


def test_create_checkout_session_for_new_campaign(db_session, provider, billing_settings, test_user):
    session_id = create_checkout_session(
        db_session, provider, billing_settings, test_user,
        plan_name="Pro", plan_price=49, billing="monthly",
        features=["Targeted growth"], preferences=PREFERENCES,
    )

    params = provider.called("create_checkout_session")[0]
    assert session_id == provider.sessions[session_id]["id"]
    assert params["mode"] == "subscription"
    assert params["customer"] == test_user.stripe_customer_id
    assert params["success_url"] == "http://localhost:5173/payment-success?session_id={CHECKOUT_SESSION_ID}"
    assert params["cancel_url"] == "http://localhost:5173/campaign-preferences"

    price_data = params["line_items"][0]["price_data"]
    assert price_data["unit_amount"] == 4900
    assert price_data["currency"] == "usd"
    assert price_data["recurring"]["interval"] == "month"
    assert price_data["product_data"]["name"] == "Pro Plan - Monthly Billing"

    campaign = db_session.query(Campaign).one()
    plan = db_session.query(Plan).one()
    metadata = params["metadata"]
    assert metadata == {
        "user_id": str(test_user.id),
        "campaign_id": str(campaign.id),
        "plan_id": str(plan.id),
        "plan_name": "Pro",
        "billing": "monthly",
        "amount": "49.0",
        "features": json.dumps(["Targeted growth"]),
        "is_upgrade": "false",
        "old_subscription_id": "",
    }
    assert params["subscription_data"] == {"metadata": metadata}

    assert campaign.status == CampaignStatus.DRAFT
    assert campaign.interests == ["fitness", "travel"]
    assert campaign.social_media["username"] == "testbrand"
    assert db_session.query(CheckoutLock).count() == 0


def test_annual_checkout_bills_yearly(db_session, provider, billing_settings, test_user):
    create_checkout_session(
        db_session, provider, billing_settings, test_user,
        plan_name="Pro", plan_price=528, billing="annual", preferences=PREFERENCES,
    )

    price_data = provider.called("create_checkout_session")[0]["line_items"][0]["price_data"]
    assert price_data["unit_amount"] == 52800
    assert price_data["recurring"]["interval"] == "year"

    plan = db_session.query(Plan).one()
    assert plan.annual_price == 528
    assert plan.monthly_price == 44


@pytest.mark.parametrize("plan_name,plan_price,message", [
    ("", 49, "Plan name is required"),
    ("Pro", "abc", "Plan price must be a valid positive number"),
    ("Pro", -10, "Plan price must be a valid positive number"),
])
def test_invalid_plan_input_has_no_side_effects(
    db_session, provider, billing_settings, test_user, active_subscription, plan_name, plan_price, message
):
    with pytest.raises(BillingValidationError) as exc_info:
        create_checkout_session(
            db_session, provider, billing_settings, test_user,
            plan_name=plan_name, plan_price=plan_price, preferences=PREFERENCES,
        )

    assert exc_info.value.message == message
    assert provider.calls == []
    db_session.refresh(active_subscription)
    assert active_subscription.status == SubscriptionStatus.ACTIVE
    assert db_session.query(Campaign).count() == 0
    assert db_session.query(CheckoutLock).count() == 0


def test_new_campaign_requires_preferences(db_session, provider, billing_settings, test_user):
    with pytest.raises(BillingValidationError):
        create_checkout_session(db_session, provider, billing_settings, test_user, plan_name="Pro", plan_price=49)
    assert provider.calls == []


def test_campaign_must_belong_to_user(db_session, provider, billing_settings, test_user, admin_user):
    other = Campaign(user_id=admin_user.id)
    db_session.add(other)
    db_session.commit()

    with pytest.raises(NotFoundError):
        create_checkout_session(
            db_session, provider, billing_settings, test_user,
            plan_name="Pro", plan_price=49, campaign_id=other.id,
        )
    assert provider.called("create_checkout_session") == []


def test_existing_campaign_preferences_are_refreshed(db_session, provider, billing_settings, test_user):
    campaign = Campaign(user_id=test_user.id, interests=["cooking"])
    db_session.add(campaign)
    db_session.commit()

    create_checkout_session(
        db_session, provider, billing_settings, test_user,
        plan_name="Pro", plan_price=49, campaign_id=campaign.id,
        preferences={"interests": ["fitness"]},
    )

    db_session.refresh(campaign)
    assert campaign.interests == ["fitness"]
    assert db_session.query(Campaign).count() == 1
    assert provider.called("create_checkout_session")[0]["metadata"]["campaign_id"] == str(campaign.id)


def test_checkout_supersedes_active_subscription(
    db_session, provider, billing_settings, test_user, active_subscription
):
    create_checkout_session(
        db_session, provider, billing_settings, test_user,
        plan_name="Pro", plan_price=49, preferences=PREFERENCES,
    )

    db_session.refresh(active_subscription)
    assert active_subscription.status == SubscriptionStatus.CANCELLED
    assert provider.called("cancel_subscription") == ["sub_old"]

    metadata = provider.called("create_checkout_session")[0]["metadata"]
    assert metadata["is_upgrade"] == "true"
    assert metadata["old_subscription_id"] == str(active_subscription.id)


def test_supersession_survives_provider_cancel_failure(
    db_session, provider, billing_settings, test_user, active_subscription
):
    provider.cancel_error = BillingProviderError("Stripe request failed while trying to cancel subscription")

    session_id = create_checkout_session(
        db_session, provider, billing_settings, test_user,
        plan_name="Pro", plan_price=49, preferences=PREFERENCES,
    )

    assert session_id
    db_session.refresh(active_subscription)
    assert active_subscription.status == SubscriptionStatus.CANCELLED


def test_concurrent_checkout_is_rejected(db_session, provider, billing_settings, test_user):
    now = datetime.utcnow()
    db_session.add(CheckoutLock(user_id=test_user.id, acquired_at=now, expires_at=now + timedelta(seconds=60)))
    db_session.commit()

    with pytest.raises(CheckoutInProgressError) as exc_info:
        create_checkout_session(
            db_session, provider, billing_settings, test_user,
            plan_name="Pro", plan_price=49, preferences=PREFERENCES,
        )

    assert exc_info.value.status_code == 409
    assert provider.calls == []


def test_expired_checkout_lock_is_reclaimed(db_session, provider, billing_settings, test_user):
    past = datetime.utcnow() - timedelta(minutes=5)
    db_session.add(CheckoutLock(user_id=test_user.id, acquired_at=past, expires_at=past + timedelta(seconds=60)))
    db_session.commit()

    assert create_checkout_session(
        db_session, provider, billing_settings, test_user,
        plan_name="Pro", plan_price=49, preferences=PREFERENCES,
    )
    assert db_session.query(CheckoutLock).count() == 0


def test_lock_released_when_provider_fails(db_session, provider, billing_settings, test_user):
    def failing_create(**params):
        raise BillingProviderError("Stripe request failed while trying to create checkout session")

    provider.create_checkout_session = failing_create

    with pytest.raises(BillingProviderError):
        create_checkout_session(
            db_session, provider, billing_settings, test_user,
            plan_name="Pro", plan_price=49, preferences=PREFERENCES,
        )
    assert db_session.query(CheckoutLock).count() == 0


def test_checkout_result_materializes_paid_session(db_session, provider, notifier, billing_settings, test_user):
    session_id = create_checkout_session(
        db_session, provider, billing_settings, test_user,
        plan_name="Pro", plan_price=49, preferences=PREFERENCES,
    )
    provider.complete_session(session_id, subscription_id="sub_new")

    result = get_checkout_session_result(db_session, provider, notifier, session_id)
    again = get_checkout_session_result(db_session, provider, notifier, session_id)

    payment = db_session.query(Payment).one()
    assert result == {"order_id": f"SB{payment.id:08d}", "plan_name": "Pro", "amount": 49.0, "billing": "monthly"}
    assert again == result
    assert db_session.query(Subscription).count() == 1
    assert len(notifier.sent) == 1


def test_checkout_result_requires_payment(db_session, provider, notifier, billing_settings, test_user):
    session_id = create_checkout_session(
        db_session, provider, billing_settings, test_user,
        plan_name="Pro", plan_price=49, preferences=PREFERENCES,
    )

    with pytest.raises(BillingValidationError) as exc_info:
        get_checkout_session_result(db_session, provider, notifier, session_id)
    assert exc_info.value.message == "Payment not completed"
    assert db_session.query(Subscription).count() == 0


def test_create_checkout_endpoint(client, provider, auth_headers):
    response = client.post(
        "/api/stripe/create-checkout-session",
        json={"plan_name": "Pro", "plan_price": 49, "billing": "monthly", "preferences": PREFERENCES},
        headers=auth_headers,
    )

    assert response.status_code == 200
    session_id = response.json()["session_id"]
    assert session_id in provider.sessions


def test_create_checkout_endpoint_rejects_bad_price(client, provider, auth_headers):
    response = client.post(
        "/api/stripe/create-checkout-session",
        json={"plan_name": "Pro", "plan_price": "free", "preferences": PREFERENCES},
        headers=auth_headers,
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Plan price must be a valid positive number"
    assert provider.calls == []


def test_create_checkout_endpoint_requires_auth(client):
    response = client.post("/api/stripe/create-checkout-session", json={"plan_name": "Pro", "plan_price": 49})
    assert response.status_code == 401


def test_checkout_session_endpoint_unknown_session(client):
    response = client.get("/api/stripe/checkout-session", params={"session_id": "cs_missing"})
    assert response.status_code == 404
