"""Owner-side order endpoints: create, edit, delete/cancel, list."""

from __future__ import annotations

import re

import pytest

from app.db.models import Order, RecentItem, SavedAddress, SavedDestination
from app.domain.order_status import OrderStatus
from app.services import order_service


def test_requires_authentication(client) -> None:
    resp = client.get("/v1/orders")
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "authentication_required"

    resp = client.get("/v1/orders", headers={"Authorization": "Bearer not-a-real-token"})
    assert resp.status_code == 401


def test_create_order_issues_number_token_and_code(create_order) -> None:
    order = create_order()

    assert re.fullmatch(r"\d{8}-[A-Z0-9]{4}", order["order_number"])
    assert order["status"] == "DRAFT"
    assert order["token"]
    assert order["verification_code"] == "5678"
    assert order["recipient_phone1"] == "010-1234-5678"
    assert order["view_count"] == 0
    assert [item["sort_order"] for item in order["items"]] == [0, 1]
    assert order["items"][1]["quantity"] == 2.5
    assert order["items"][1]["item_spec"] is None


def test_create_order_writes_initial_history(client, auth_headers, create_order) -> None:
    order = create_order(status="SENT")

    resp = client.get(f"/v1/orders/{order['id']}", headers=auth_headers)
    assert resp.status_code == 200
    histories = resp.json()["order"]["histories"]
    assert len(histories) == 1
    assert histories[0]["status"] == "SENT"
    assert histories[0]["changed_by"] != "recipient"


@pytest.mark.parametrize("status", ["VIEWED", "ACCEPTED", "CANCELLED"])
def test_create_order_rejects_non_initial_status(client, auth_headers, order_payload, status) -> None:
    resp = client.post("/v1/orders", json=order_payload(status=status), headers=auth_headers)
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "invalid_status"


@pytest.mark.parametrize(
    "overrides",
    [
        {"items": []},
        {"recipient_name": ""},
        {"recipient_address": "   "},
        {"items": [{"item_name": "Salt", "quantity": 0, "unit": "kg"}]},
        {"items": [{"item_name": "Salt", "quantity": 1, "unit": ""}]},
        {"delivery_date": "not-a-date"},
    ],
)
def test_create_order_validation_errors(client, auth_headers, order_payload, overrides) -> None:
    resp = client.post("/v1/orders", json=order_payload(**overrides), headers=auth_headers)
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "validation_error"


def test_create_order_rejects_phone_without_four_digits(client, auth_headers, order_payload) -> None:
    resp = client.post("/v1/orders", json=order_payload(recipient_phone1="12-3"), headers=auth_headers)
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "invalid_phone"


def test_create_order_upserts_recent_items(client, auth_headers, create_order, db_session) -> None:
    create_order()
    create_order(items=[{"item_name": "Cabbage", "item_spec": "10kg box", "quantity": 1, "unit": "box"}])

    resp = client.get("/v1/recent-items", headers=auth_headers)
    items = resp.json()["items"]
    assert [(i["item_name"], i["usage_count"]) for i in items] == [("Cabbage", 2), ("Onion", 1)]
    assert items[1]["item_spec"] == ""
    assert db_session.query(RecentItem).count() == 2

    resp = client.get("/v1/recent-items", params={"search": "oni"}, headers=auth_headers)
    assert [i["item_name"] for i in resp.json()["items"]] == ["Onion"]


def test_repeated_lines_each_count_towards_recent_item_usage(
    client, auth_headers, create_order, db_session
) -> None:
    cabbage = {"item_name": "Cabbage", "item_spec": "10kg box", "quantity": 1, "unit": "box"}
    create_order(items=[cabbage, {**cabbage, "quantity": 2}, {**cabbage, "item_spec": "5kg box"}])

    items = client.get("/v1/recent-items", headers=auth_headers).json()["items"]
    assert [(i["item_spec"], i["usage_count"]) for i in items] == [("10kg box", 2), ("5kg box", 1)]
    assert db_session.query(RecentItem).count() == 2


def test_create_order_bumps_saved_record_usage(client, auth_headers, order_payload, db_session) -> None:
    address_id = client.post(
        "/v1/addresses", json={"nickname": "Shop", "address": "1 Main St"}, headers=auth_headers
    ).json()["address"]["id"]
    destination_id = client.post(
        "/v1/destinations",
        json={
            "nickname": "Lee",
            "business_name": "Lee Mart",
            "contact_name": "Lee Buyer",
            "phone1": "01012345678",
            "address": "12 Market St",
        },
        headers=auth_headers,
    ).json()["destination"]["id"]

    resp = client.post(
        "/v1/orders",
        json=order_payload(saved_address_id=address_id, saved_destination_id=destination_id),
        headers=auth_headers,
    )
    assert resp.status_code == 201

    address = client.get(f"/v1/addresses/{address_id}", headers=auth_headers).json()["address"]
    destination = client.get(f"/v1/destinations/{destination_id}", headers=auth_headers).json()[
        "destination"
    ]
    assert address["usage_count"] == 1
    assert address["last_used_at"] is not None
    assert destination["usage_count"] == 1


def test_create_order_with_foreign_saved_address_fails_atomically(
    client, auth_headers, make_user, order_payload, db_session
) -> None:
    other = make_user("other@example.com")
    foreign_id = client.post(
        "/v1/addresses", json={"nickname": "Theirs", "address": "2 Side St"}, headers=other["headers"]
    ).json()["address"]["id"]

    resp = client.post("/v1/orders", json=order_payload(saved_address_id=foreign_id), headers=auth_headers)
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "address_not_found"
    assert db_session.query(Order).count() == 0
    assert db_session.query(RecentItem).count() == 0


def test_order_number_collision_is_retried(monkeypatch, client, auth_headers, create_order) -> None:
    first = create_order()
    candidates = iter([first["order_number"], first["order_number"], "20240101-ZZZZ"])
    monkeypatch.setattr(order_service, "generate_order_number", lambda now: next(candidates))

    second = create_order()
    assert second["order_number"] == "20240101-ZZZZ"


def test_order_number_gives_up_after_retry_budget(monkeypatch, client, auth_headers, order_payload, create_order) -> None:
    first = create_order()
    calls = []

    def _always_taken(now):
        calls.append(now)
        return first["order_number"]

    monkeypatch.setattr(order_service, "generate_order_number", _always_taken)

    resp = client.post("/v1/orders", json=order_payload(), headers=auth_headers)
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "order_number_conflict"
    # initial draw plus five retries
    assert len(calls) == 6


def test_update_draft_replaces_items(client, auth_headers, create_order) -> None:
    order = create_order()

    resp = client.put(
        f"/v1/orders/{order['id']}",
        json={
            "memo": "Leave at the back door",
            "items": [{"item_name": "Garlic", "quantity": 1, "unit": "kg"}],
        },
        headers=auth_headers,
    )
    assert resp.status_code == 200
    updated = resp.json()["order"]
    assert updated["memo"] == "Leave at the back door"
    assert [i["item_name"] for i in updated["items"]] == ["Garlic"]
    assert updated["items"][0]["sort_order"] == 0
    assert updated["recipient_name"] == order["recipient_name"]


def test_update_draft_to_sent_logs_history(client, auth_headers, create_order) -> None:
    order = create_order()

    resp = client.put(f"/v1/orders/{order['id']}", json={"status": "SENT"}, headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["order"]["status"] == "SENT"

    detail = client.get(f"/v1/orders/{order['id']}", headers=auth_headers).json()["order"]
    assert [h["status"] for h in detail["histories"]] == ["SENT", "DRAFT"]


def test_update_keeps_token_and_code(client, auth_headers, create_order) -> None:
    order = create_order()

    resp = client.put(
        f"/v1/orders/{order['id']}", json={"recipient_phone1": "010-5555-0000"}, headers=auth_headers
    )
    updated = resp.json()["order"]
    assert updated["recipient_phone1"] == "010-5555-0000"
    assert updated["verification_code"] == order["verification_code"]
    assert updated["token"] == order["token"]


def test_update_rejects_invalid_status_transition(client, auth_headers, create_order) -> None:
    order = create_order()

    resp = client.put(f"/v1/orders/{order['id']}", json={"status": "ACCEPTED"}, headers=auth_headers)
    assert resp.status_code == 409
    error = resp.json()["error"]
    assert error["code"] == "invalid_status_transition"
    assert error["details"]["allowed"] == ["SENT"]


def test_update_rejects_clearing_required_field(client, auth_headers, create_order) -> None:
    order = create_order()

    resp = client.put(f"/v1/orders/{order['id']}", json={"recipient_name": None}, headers=auth_headers)
    assert resp.status_code == 400
    assert resp.json()["error"]["details"]["fields"] == ["recipient_name"]


@pytest.mark.parametrize("status", ["SENT", "CANCELLED"])
def test_non_draft_orders_are_not_editable(client, auth_headers, create_order, status) -> None:
    order = create_order(status="SENT")
    if status == "CANCELLED":
        client.delete(f"/v1/orders/{order['id']}", headers=auth_headers)

    resp = client.put(f"/v1/orders/{order['id']}", json={"memo": "late change"}, headers=auth_headers)
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "order_not_editable"


def test_delete_draft_removes_order(client, auth_headers, create_order, db_session) -> None:
    order = create_order()

    resp = client.delete(f"/v1/orders/{order['id']}", headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["deleted"] is True

    assert client.get(f"/v1/orders/{order['id']}", headers=auth_headers).status_code == 404
    assert db_session.query(Order).count() == 0


def test_delete_sent_order_cancels_and_keeps_history(client, auth_headers, create_order) -> None:
    order = create_order(status="SENT")

    resp = client.delete(f"/v1/orders/{order['id']}", headers=auth_headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["deleted"] is False
    assert body["order"]["status"] == "CANCELLED"

    detail = client.get(f"/v1/orders/{order['id']}", headers=auth_headers).json()["order"]
    assert [h["status"] for h in detail["histories"]] == ["CANCELLED", "SENT"]

    again = client.delete(f"/v1/orders/{order['id']}", headers=auth_headers)
    assert again.status_code == 409
    assert again.json()["error"]["code"] == "order_already_cancelled"


def test_orders_are_scoped_to_owner(client, auth_headers, make_user, create_order) -> None:
    order = create_order()
    other = make_user("intruder@example.com")["headers"]

    assert client.get(f"/v1/orders/{order['id']}", headers=other).status_code == 404
    assert client.put(f"/v1/orders/{order['id']}", json={"memo": "x"}, headers=other).status_code == 404
    assert client.delete(f"/v1/orders/{order['id']}", headers=other).status_code == 404
    assert client.get("/v1/orders", headers=other).json()["pagination"]["total"] == 0


def test_unknown_or_malformed_order_id(client, auth_headers) -> None:
    resp = client.get("/v1/orders/00000000-0000-0000-0000-000000000000", headers=auth_headers)
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "order_not_found"

    assert client.get("/v1/orders/not-a-uuid", headers=auth_headers).status_code == 400


def test_list_orders_filters_and_paginates(client, auth_headers, create_order) -> None:
    for _ in range(3):
        create_order()
    sent = create_order(status="SENT")

    resp = client.get("/v1/orders", params={"limit": 2, "page": 1}, headers=auth_headers)
    body = resp.json()
    assert body["pagination"] == {"page": 1, "limit": 2, "total": 4, "total_pages": 2}
    assert len(body["orders"]) == 2
    assert body["orders"][0]["id"] == sent["id"]

    page_two = client.get("/v1/orders", params={"limit": 2, "page": 2}, headers=auth_headers).json()
    assert len(page_two["orders"]) == 2

    only_sent = client.get("/v1/orders", params={"status": "SENT"}, headers=auth_headers).json()
    assert [o["id"] for o in only_sent["orders"]] == [sent["id"]]

    assert client.get("/v1/orders", params={"status": "BOGUS"}, headers=auth_headers).status_code == 400
    assert client.get("/v1/orders", params={"limit": 0}, headers=auth_headers).status_code == 400


def test_list_orders_service_defaults_to_configured_page_size(make_user, create_order, db_session) -> None:
    owner = make_user("pager@example.com")
    for _ in range(2):
        create_order(headers=owner["headers"])

    orders, pagination = order_service.list_orders(db_session, owner["user"], status=OrderStatus.DRAFT)
    assert len(orders) == 2
    assert pagination.limit == 10
    assert pagination.total_pages == 1
