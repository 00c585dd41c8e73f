"""
Tests for admin dashboard reporting.
"""
from datetime import datetime, timedelta

import pytest

from socialboost.db.models.payment import Payment, PaymentStatus
from socialboost.db.models.plan import Plan
from socialboost.db.models.subscription import Subscription, SubscriptionStatus
from socialboost.services.dashboard_service import (
    calculate_growth_rate,
    payment_status_distribution,
    recent_payments,
    revenue_summary,
    subscription_plan_distribution,
)

NOW = datetime(2024, 6, 30, 12, 0, 0)


@pytest.fixture
def ledger_data(db_session, test_user):
    pro = Plan(name="Pro", monthly_price=49, annual_price=53.45, features=[])
    growth = Plan(name="Growth", monthly_price=99, annual_price=108, features=[])
    db_session.add_all([pro, growth])
    db_session.commit()

    subs = [
        Subscription(user_id=test_user.id, plan_id=pro.id, plan_name="Pro", amount=49, status=SubscriptionStatus.ACTIVE, stripe_subscription_id="sub_a"),
        Subscription(user_id=test_user.id, plan_id=pro.id, plan_name="Pro", amount=49, status=SubscriptionStatus.ACTIVE, stripe_subscription_id="sub_b"),
        Subscription(user_id=test_user.id, plan_id=growth.id, plan_name="Growth", amount=99, status=SubscriptionStatus.ACTIVE, stripe_subscription_id="sub_c"),
        Subscription(user_id=test_user.id, plan_id=growth.id, plan_name="Growth", amount=99, status=SubscriptionStatus.CANCELLED, stripe_subscription_id="sub_d"),
    ]
    db_session.add_all(subs)
    db_session.commit()

    payments = [
        Payment(user_id=test_user.id, subscription_id=subs[0].id, amount=49, status=PaymentStatus.SUCCEEDED, created_at=NOW - timedelta(days=2)),
        Payment(user_id=test_user.id, subscription_id=subs[2].id, amount=99, status=PaymentStatus.SUCCEEDED, created_at=NOW - timedelta(days=10)),
        Payment(user_id=test_user.id, subscription_id=subs[2].id, amount=99, status=PaymentStatus.FAILED, created_at=NOW - timedelta(days=1)),
        Payment(user_id=test_user.id, subscription_id=subs[3].id, amount=100, status=PaymentStatus.SUCCEEDED, created_at=NOW - timedelta(days=45)),
    ]
    db_session.add_all(payments)
    db_session.commit()
    return payments


def test_calculate_growth_rate():
    assert calculate_growth_rate(150, 100) == 50.0
    assert calculate_growth_rate(50, 0) == 0.0


def test_revenue_summary(db_session, ledger_data):
    summary = revenue_summary(db_session, now=NOW)

    assert summary["monthly_revenue"] == 148
    assert summary["previous_revenue"] == 100
    assert summary["revenue_growth_rate"] == pytest.approx(48.0)
    assert summary["avg_subscription_value"] == pytest.approx((49 + 49 + 99) / 3)


def test_payment_status_distribution(db_session, ledger_data):
    distribution = {row["status"]: row["count"] for row in payment_status_distribution(db_session)}
    assert distribution == {PaymentStatus.SUCCEEDED: 3, PaymentStatus.FAILED: 1}


def test_subscription_plan_distribution_counts_active_only(db_session, ledger_data):
    distribution = {row["name"]: row for row in subscription_plan_distribution(db_session)}

    assert distribution["Pro"]["count"] == 2
    assert distribution["Pro"]["percentage"] == 67
    assert distribution["Growth"]["count"] == 1
    assert distribution["Growth"]["percentage"] == 33


def test_recent_payments_newest_first(db_session, ledger_data):
    rows = recent_payments(db_session, limit=2)

    assert [row["status"] for row in rows] == [PaymentStatus.FAILED, PaymentStatus.SUCCEEDED]
    assert rows[0]["user_email"] == "test@example.com"
    assert rows[0]["plan_name"] == "Growth"
    assert rows[0]["order_id"].startswith("SB")


def test_dashboard_requires_admin(client, auth_headers):
    response = client.get("/api/dashboard/revenue", headers=auth_headers)
    assert response.status_code == 403


def test_dashboard_endpoints(client, admin_headers, ledger_data):
    assert client.get("/api/dashboard/revenue", headers=admin_headers).status_code == 200
    assert client.get("/api/dashboard/payment-status", headers=admin_headers).status_code == 200
    assert client.get("/api/dashboard/subscription-plans", headers=admin_headers).status_code == 200

    response = client.get("/api/dashboard/recent-payments", params={"limit": 3}, headers=admin_headers)
    assert response.status_code == 200
    assert len(response.json()) == 3
