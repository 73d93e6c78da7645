"""
Tests for plans listing and the subscription lifecycle.
"""
from datetime import datetime, timedelta

from app.db.models.subscription import Subscription
from app.services import subscription_service


def test_public_plans_only_active_sorted_by_price(client, make_plan):
    make_plan(name="Pro", price="29.00")
    make_plan(name="Legacy", price="1.00", is_active=False)
    make_plan(name="Basic", price="9.99")
    make_plan(name="Free", price="0")

    response = client.get("/api/plans/public")
    assert response.status_code == 200
    plans = response.json()
    assert [p["name"] for p in plans] == ["Free", "Basic", "Pro"]
    assert plans[1]["price"] == 9.99
    assert plans[1]["features"] == {"interviews": 10}
    assert plans[1]["isActive"] is True


def test_authenticated_plan_endpoints(client, make_plan, user_headers):
    plan = make_plan()
    assert client.get("/api/plans").status_code == 401
    assert len(client.get("/api/plans", headers=user_headers).json()) == 1
    assert client.get(f"/api/plans/{plan.id}", headers=user_headers).json()["name"] == "Basic"
    assert client.get("/api/plans/9999", headers=user_headers).status_code == 404


def test_no_current_subscription_is_null(client, user_headers):
    response = client.get("/api/subscriptions/current", headers=user_headers)
    assert response.status_code == 200
    assert response.json() is None


def test_subscribe_creates_active_subscription(client, make_plan, user_headers, test_user):
    plan = make_plan(duration=30)
    response = client.post("/api/subscriptions", json={"planId": plan.id}, headers=user_headers)
    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "active"
    assert data["userId"] == test_user.id
    assert data["plan"]["name"] == "Basic"
    assert data["plan"]["price"] == 9.99

    start = datetime.fromisoformat(data["startDate"])
    end = datetime.fromisoformat(data["endDate"])
    assert end - start == timedelta(days=30)

    current = client.get("/api/subscriptions/current", headers=user_headers).json()
    assert current["id"] == data["id"]
    assert current["plan"]["features"] == {"interviews": 10}


def test_subscribe_twice_leaves_exactly_one_active(client, make_plan, user_headers, test_user, db_session):
    plan_a = make_plan(name="A", price="5.00")
    plan_b = make_plan(name="B", price="15.00")

    client.post("/api/subscriptions", json={"planId": plan_a.id}, headers=user_headers)
    client.post("/api/subscriptions", json={"planId": plan_b.id}, headers=user_headers)

    db_session.expire_all()
    active = (
        db_session.query(Subscription)
        .filter(Subscription.user_id == test_user.id, Subscription.status == "active")
        .all()
    )
    assert len(active) == 1
    assert active[0].plan_id == plan_b.id

    history = client.get("/api/subscriptions", headers=user_headers).json()
    assert [s["plan"]["name"] for s in history] == ["B", "A"]
    assert [s["status"] for s in history] == ["active", "cancelled"]


def test_subscribe_unknown_plan(client, user_headers):
    response = client.post("/api/subscriptions", json={"planId": 4242}, headers=user_headers)
    assert response.status_code == 404
    assert response.json()["detail"] == "Plan not found"


def test_cancel_current_subscription(client, make_plan, user_headers):
    plan = make_plan()
    client.post("/api/subscriptions", json={"planId": plan.id}, headers=user_headers)

    response = client.delete("/api/subscriptions/current", headers=user_headers)
    assert response.status_code == 200
    assert response.json()["cancelled"] == 1
    assert client.get("/api/subscriptions/current", headers=user_headers).json() is None

    # Nothing left to cancel
    assert client.delete("/api/subscriptions/current", headers=user_headers).json()["cancelled"] == 0


def test_expired_subscription_is_derived_not_current(client, make_plan, user_headers, test_user, db_session):
    plan = make_plan()
    past = datetime.utcnow() - timedelta(days=60)
    db_session.add(Subscription(
        user_id=test_user.id,
        plan_id=plan.id,
        start_date=past,
        end_date=past + timedelta(days=30),
        status="active",
    ))
    db_session.commit()

    assert client.get("/api/subscriptions/current", headers=user_headers).json() is None
    history = client.get("/api/subscriptions", headers=user_headers).json()
    assert history[0]["status"] == "expired"

    db_session.expire_all()
    assert db_session.query(Subscription).one().status == "active"


def test_materialize_subscription_respects_explicit_duration(db_session, make_plan, test_user):
    plan = make_plan(duration=30)
    subscription = subscription_service.materialize_subscription(db_session, test_user.id, plan, duration_days=7)
    db_session.commit()
    assert subscription.end_date - subscription.start_date == timedelta(days=7)
