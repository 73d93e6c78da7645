"""
Tests for the Stripe payment bridge. Stripe itself is never called.
"""
import threading
from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest
import stripe

from app.core.config import Settings, get_settings
from app.core.exceptions import ValidationException
from app.db.models.subscription import Subscription
from app.main import app
from app.services import stripe_service, subscription_service


@pytest.fixture
def stripe_calls(monkeypatch):
    calls = {}

    def fake_session_create(**kwargs):
        calls["checkout"] = kwargs
        return SimpleNamespace(id="cs_test_123", url="https://checkout.stripe.com/c/pay/cs_test_123")

    def fake_intent_create(**kwargs):
        calls["intent"] = kwargs
        return SimpleNamespace(id="pi_test_123", client_secret="pi_test_123_secret_abc")

    monkeypatch.setattr(stripe.checkout.Session, "create", fake_session_create)
    monkeypatch.setattr(stripe.PaymentIntent, "create", fake_intent_create)
    return calls


@pytest.fixture
def webhook_event(monkeypatch):
    """Make verify_webhook return whatever event the test sets."""
    holder = {}

    def fake_verify(payload, signature, settings=None):
        if signature != "valid":
            raise ValidationException("Invalid signature")
        return holder["event"]

    monkeypatch.setattr(stripe_service, "verify_webhook", fake_verify)
    return holder


def checkout_completed(session_id, user_id, plan_id, payment_status="paid"):
    return {
        "id": "evt_1",
        "type": "checkout.session.completed",
        "data": {"object": {
            "id": session_id,
            "payment_status": payment_status,
            "metadata": {"userId": str(user_id), "planId": str(plan_id)},
        }},
    }


def test_to_cents_rounds_half_up():
    assert stripe_service.to_cents("9.99") == 999
    assert stripe_service.to_cents(19.5) == 1950
    assert stripe_service.to_cents("0.005") == 1


def test_checkout_session_uses_plan_price_and_metadata(client, make_plan, user_headers, test_user, stripe_calls):
    plan = make_plan(name="Pro", price="29.90")
    response = client.post(
        "/api/payments/create-checkout-session",
        json={"planId": plan.id},
        headers={**user_headers, "Origin": "https://app.example.com"},
    )
    assert response.status_code == 200
    assert response.json() == {
        "sessionId": "cs_test_123",
        "url": "https://checkout.stripe.com/c/pay/cs_test_123",
    }

    sent = stripe_calls["checkout"]
    assert sent["mode"] == "payment"
    line = sent["line_items"][0]
    assert line["price_data"]["unit_amount"] == 2990
    assert line["price_data"]["currency"] == "eur"
    assert line["price_data"]["product_data"]["name"] == "Pro"
    assert sent["metadata"] == {"planId": str(plan.id), "userId": str(test_user.id)}
    assert sent["success_url"] == "https://app.example.com/payment/success?session_id={CHECKOUT_SESSION_ID}"
    assert sent["customer_email"] == test_user.email


def test_checkout_session_unknown_plan(client, user_headers, stripe_calls):
    response = client.post("/api/payments/create-checkout-session", json={"planId": 999}, headers=user_headers)
    assert response.status_code == 404
    assert "checkout" not in stripe_calls


def test_checkout_session_provider_error_is_502(client, make_plan, user_headers, monkeypatch):
    plan = make_plan()

    def boom(**kwargs):
        raise stripe.APIConnectionError("network down")

    monkeypatch.setattr(stripe.checkout.Session, "create", boom)
    response = client.post("/api/payments/create-checkout-session", json={"planId": plan.id}, headers=user_headers)
    assert response.status_code == 502


def test_stripe_not_configured_is_501(client, make_plan, user_headers):
    plan = make_plan()
    unconfigured = Settings()
    unconfigured.STRIPE_SECRET_KEY = None
    app.dependency_overrides[get_settings] = lambda: unconfigured

    response = client.post("/api/payments/create-checkout-session", json={"planId": plan.id}, headers=user_headers)
    assert response.status_code == 501
    assert response.json()["detail"] == "Payment provider not configured"

    response = client.post(
        "/api/payments/create-intent", json={"planId": plan.id, "amount": 999}, headers=user_headers
    )
    assert response.status_code == 501


def test_payment_intent_amount_must_match_plan(client, make_plan, user_headers, stripe_calls):
    plan = make_plan(price="9.99")

    response = client.post("/api/payments/create-intent", json={"planId": plan.id, "amount": 0}, headers=user_headers)
    assert response.status_code == 400

    response = client.post("/api/payments/create-intent", json={"planId": plan.id, "amount": 500}, headers=user_headers)
    assert response.status_code == 400
    assert "intent" not in stripe_calls

    response = client.post("/api/payments/create-intent", json={"planId": plan.id, "amount": 999}, headers=user_headers)
    assert response.status_code == 200
    assert response.json() == {"clientSecret": "pi_test_123_secret_abc"}
    assert stripe_calls["intent"]["amount"] == 999


def test_webhook_rejects_bad_signature(client, webhook_event):
    response = client.post("/api/payments/webhook", content=b"{}", headers={"Stripe-Signature": "forged"})
    assert response.status_code == 400


def test_webhook_materializes_subscription_once(client, make_plan, test_user, db_session, webhook_event):
    old_plan = make_plan(name="Old", price="5.00")
    plan = make_plan(name="Paid", price="19.00", duration=90)
    db_session.add(Subscription(
        user_id=test_user.id, plan_id=old_plan.id,
        start_date=datetime.utcnow(),
        end_date=datetime.utcnow() + timedelta(days=5),
        status="active",
    ))
    db_session.commit()

    webhook_event["event"] = checkout_completed("cs_paid_1", test_user.id, plan.id)
    for _ in range(2):
        response = client.post("/api/payments/webhook", content=b"{}", headers={"Stripe-Signature": "valid"})
        assert response.status_code == 200
        assert response.json() == {"received": True}

    db_session.expire_all()
    rows = db_session.query(Subscription).filter(Subscription.user_id == test_user.id).all()
    paid = [s for s in rows if s.stripe_session_id == "cs_paid_1"]
    assert len(paid) == 1
    assert paid[0].status == "active"
    assert (paid[0].end_date - paid[0].start_date).days == 90
    assert [s.status for s in rows if s.plan_id == old_plan.id] == ["cancelled"]


def test_webhook_handles_payment_intent_succeeded(client, make_plan, test_user, db_session, webhook_event):
    plan = make_plan()
    webhook_event["event"] = {
        "id": "evt_2",
        "type": "payment_intent.succeeded",
        "data": {"object": {
            "id": "pi_test_999",
            "metadata": {"userId": str(test_user.id), "planId": str(plan.id)},
        }},
    }
    assert client.post("/api/payments/webhook", content=b"{}", headers={"Stripe-Signature": "valid"}).status_code == 200

    db_session.expire_all()
    assert db_session.query(Subscription).filter(Subscription.stripe_session_id == "pi_test_999").count() == 1


def test_webhook_ignores_unpaid_and_unrelated_events(client, make_plan, test_user, db_session, webhook_event):
    plan = make_plan()

    webhook_event["event"] = checkout_completed("cs_unpaid", test_user.id, plan.id, payment_status="unpaid")
    assert client.post("/api/payments/webhook", content=b"{}", headers={"Stripe-Signature": "valid"}).status_code == 200

    webhook_event["event"] = {"id": "evt_3", "type": "customer.created", "data": {"object": {"id": "cus_1"}}}
    assert client.post("/api/payments/webhook", content=b"{}", headers={"Stripe-Signature": "valid"}).status_code == 200

    db_session.expire_all()
    assert db_session.query(Subscription).count() == 0


def test_webhook_with_bad_metadata_is_acknowledged(client, test_user, db_session, webhook_event):
    webhook_event["event"] = checkout_completed("cs_bad", test_user.id, "not-a-number")
    response = client.post("/api/payments/webhook", content=b"{}", headers={"Stripe-Signature": "valid"})
    assert response.status_code == 200
    db_session.expire_all()
    assert db_session.query(Subscription).count() == 0


def test_webhook_without_session_id_leaves_existing_subscription(
    client, make_plan, test_user, user_headers, db_session, webhook_event
):
    basic = make_plan(name="Basic")
    paid = make_plan(name="Paid", price="19.00")
    client.post("/api/subscriptions", json={"planId": basic.id}, headers=user_headers)

    event = checkout_completed(None, test_user.id, paid.id)
    webhook_event["event"] = event
    response = client.post("/api/payments/webhook", content=b"{}", headers={"Stripe-Signature": "valid"})
    assert response.status_code == 200

    db_session.expire_all()
    rows = db_session.query(Subscription).filter(Subscription.user_id == test_user.id).all()
    assert [(s.plan_id, s.status) for s in rows] == [(basic.id, "active")]


def test_activate_from_payment_requires_session_id(db_session, make_plan, test_user):
    plan = make_plan()
    metadata = {"userId": str(test_user.id), "planId": str(plan.id)}
    assert subscription_service.activate_from_payment(db_session, None, metadata) is None
    assert subscription_service.activate_from_payment(db_session, "", metadata) is None
    assert db_session.query(Subscription).count() == 0


def test_webhook_database_work_runs_off_the_event_loop(client, make_plan, test_user, monkeypatch):
    plan = make_plan()
    threads = {}

    def fake_verify(payload, signature, settings=None):
        threads["verify"] = threading.get_ident()
        return checkout_completed("cs_thread", test_user.id, plan.id)

    def fake_activate(db, stripe_session_id, metadata):
        threads["activate"] = threading.get_ident()

    monkeypatch.setattr(stripe_service, "verify_webhook", fake_verify)
    monkeypatch.setattr(subscription_service, "activate_from_payment", fake_activate)

    response = client.post("/api/payments/webhook", content=b"{}", headers={"Stripe-Signature": "valid"})
    assert response.status_code == 200
    assert threads["activate"] != threads["verify"]


def test_get_session_only_for_owner(client, user_headers, other_headers, test_user, monkeypatch):
    session = {
        "id": "cs_test_abc",
        "status": "complete",
        "payment_status": "paid",
        "amount_total": 999,
        "currency": "eur",
        "metadata": {"userId": str(test_user.id), "planId": "1"},
    }
    monkeypatch.setattr(stripe.checkout.Session, "retrieve", lambda session_id: session)

    response = client.get("/api/payments/session/cs_test_abc", headers=user_headers)
    assert response.status_code == 200
    assert response.json()["paymentStatus"] == "paid"
    assert response.json()["amountTotal"] == 999

    assert client.get("/api/payments/session/cs_test_abc", headers=other_headers).status_code == 404
