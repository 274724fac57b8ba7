"""Recipient flow through the token-gated public link."""

from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy import update

from app.db.base import utcnow
from app.db.models import Order, OrderHistory


@pytest.fixture
def sent_order(create_order) -> dict:
    return create_order(status="SENT")


def _expire(db_session, token: str) -> None:
    db_session.execute(
        update(Order)
        .where(Order.token == token)
        .values(token_expires_at=utcnow() - timedelta(seconds=1))
    )
    db_session.commit()


def test_public_view_hides_secrets(client, sent_order) -> None:
    resp = client.get(f"/v1/public/orders/{sent_order['token']}")
    assert resp.status_code == 200
    order = resp.json()["order"]

    assert order["order_number"] == sent_order["order_number"]
    assert order["supplier"] == {
        "name": "Kim Supplier",
        "business_name": "Fresh Foods",
        "phone": "010-9999-8888",
        "email": "owner@example.com",
    }
    assert len(order["items"]) == 2
    for hidden in ("token", "verification_code", "user_id", "recipient_phone2", "view_count"):
        assert hidden not in order


def test_draft_order_link_is_not_found(client, create_order) -> None:
    draft = create_order()
    resp = client.get(f"/v1/public/orders/{draft['token']}")
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "order_not_found"


def test_cancelled_order_link_is_not_found(client, auth_headers, sent_order) -> None:
    client.delete(f"/v1/orders/{sent_order['id']}", headers=auth_headers)
    assert client.get(f"/v1/public/orders/{sent_order['token']}").status_code == 404


def test_unknown_token_is_not_found(client) -> None:
    assert client.get("/v1/public/orders/does-not-exist").status_code == 404


def test_expired_link_is_gone_not_missing(client, sent_order, db_session) -> None:
    _expire(db_session, sent_order["token"])
    token = sent_order["token"]

    for resp in (
        client.get(f"/v1/public/orders/{token}"),
        client.post(f"/v1/public/orders/{token}", json={"verification_code": "5678"}),
        client.put(f"/v1/public/orders/{token}", json={"response": "ACCEPTED"}),
    ):
        assert resp.status_code == 410
        assert resp.json()["error"]["code"] == "token_expired"


def test_verify_success_marks_viewed_once(client, auth_headers, sent_order) -> None:
    token = sent_order["token"]

    first = client.post(
        f"/v1/public/orders/{token}",
        json={"verification_code": "5678"},
        headers={"User-Agent": "phone-browser", "X-Forwarded-For": "203.0.113.7"},
    )
    assert first.status_code == 200
    assert first.json() == {"success": True, "message": "Verification succeeded.", "status": "VIEWED"}

    second = client.post(f"/v1/public/orders/{token}", json={"verification_code": "5678"})
    assert second.json()["status"] == "VIEWED"

    detail = client.get(f"/v1/orders/{sent_order['id']}", headers=auth_headers).json()["order"]
    assert detail["view_count"] == 2
    assert detail["last_viewed_at"] is not None
    viewed = [h for h in detail["histories"] if h["status"] == "VIEWED"]
    assert len(viewed) == 1
    assert viewed[0]["changed_by"] == "recipient"
    assert viewed[0]["ip_address"] == "203.0.113.7"
    assert viewed[0]["user_agent"] == "phone-browser"


@pytest.mark.parametrize(
    ("body", "status", "code"),
    [
        ({}, 400, "missing_verification_code"),
        ({"verification_code": "  "}, 400, "missing_verification_code"),
        ({"verification_code": "0000"}, 401, "verification_code_mismatch"),
        ({"verification_code": "567"}, 401, "verification_code_mismatch"),
        ({"verification_code": " 5678 "}, 401, "verification_code_mismatch"),
        ({"verification_code": "5678\n"}, 401, "verification_code_mismatch"),
        ({"verification_code": "\uff15\uff16\uff17\uff18"}, 401, "verification_code_mismatch"),
    ],
)
def test_verify_failures(client, sent_order, body, status, code) -> None:
    resp = client.post(f"/v1/public/orders/{sent_order['token']}", json=body)
    assert resp.status_code == status
    assert resp.json()["error"]["code"] == code


def test_failed_verification_does_not_count_as_view(client, auth_headers, sent_order) -> None:
    client.post(f"/v1/public/orders/{sent_order['token']}", json={"verification_code": "1111"})

    detail = client.get(f"/v1/orders/{sent_order['id']}", headers=auth_headers).json()["order"]
    assert detail["status"] == "SENT"
    assert detail["view_count"] == 0


def test_verify_attempts_are_rate_limited(client, sent_order) -> None:
    url = f"/v1/public/orders/{sent_order['token']}"
    for _ in range(5):
        assert client.post(url, json={"verification_code": "0000"}).status_code == 401

    blocked = client.post(url, json={"verification_code": "5678"})
    assert blocked.status_code == 429
    assert blocked.json()["error"]["code"] == "rate_limit_blocked"


@pytest.mark.parametrize("response", ["ACCEPTED", "REJECTED", "REVIEWING"])
def test_respond_from_sent(client, auth_headers, sent_order, response) -> None:
    resp = client.put(
        f"/v1/public/orders/{sent_order['token']}",
        json={"response": response, "reason": "Price too high"},
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == response

    detail = client.get(f"/v1/orders/{sent_order['id']}", headers=auth_headers).json()["order"]
    assert detail["status"] == response
    latest = detail["histories"][0]
    assert latest["status"] == response
    assert latest["reason"] == "Price too high"
    assert latest["changed_by"] == "recipient"


def test_respond_after_view(client, sent_order) -> None:
    token = sent_order["token"]
    client.post(f"/v1/public/orders/{token}", json={"verification_code": "5678"})

    resp = client.put(f"/v1/public/orders/{token}", json={"response": "ACCEPTED"})
    assert resp.status_code == 200
    assert resp.json()["status"] == "ACCEPTED"


def test_second_response_reports_already_processed(client, sent_order, db_session) -> None:
    token = sent_order["token"]
    assert client.put(f"/v1/public/orders/{token}", json={"response": "ACCEPTED"}).status_code == 200

    resp = client.put(f"/v1/public/orders/{token}", json={"response": "REJECTED"})
    assert resp.status_code == 409
    error = resp.json()["error"]
    assert error["code"] == "order_already_processed"
    assert error["details"]["status"] == "ACCEPTED"

    assert db_session.query(OrderHistory).filter(OrderHistory.status == "REJECTED").count() == 0


def test_accepted_order_is_still_viewable(client, sent_order) -> None:
    token = sent_order["token"]
    client.put(f"/v1/public/orders/{token}", json={"response": "ACCEPTED"})

    resp = client.get(f"/v1/public/orders/{token}")
    assert resp.status_code == 200
    assert resp.json()["order"]["status"] == "ACCEPTED"


@pytest.mark.parametrize(
    "body", [{}, {"response": "CANCELLED"}, {"response": "accepted"}, {"response": "VIEWED"}]
)
def test_respond_rejects_invalid_response(client, sent_order, body) -> None:
    resp = client.put(f"/v1/public/orders/{sent_order['token']}", json=body)
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "invalid_response"


def test_owner_can_cancel_after_acceptance(client, auth_headers, sent_order) -> None:
    client.put(f"/v1/public/orders/{sent_order['token']}", json={"response": "ACCEPTED"})

    resp = client.delete(f"/v1/orders/{sent_order['id']}", headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["order"]["status"] == "CANCELLED"
    assert client.get(f"/v1/public/orders/{sent_order['token']}").status_code == 404
