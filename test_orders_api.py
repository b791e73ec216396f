# test_orders_api.py
from decimal import Decimal

from theatre_pos.services.receipt import CUT


def jprint(step, r):
    """Helper to print response and assert on failure."""
    assert 200 <= r.status_code < 300, f"{step} -> {r.status_code}: {r.text}"
    return r.json() if r.headers.get("content-type", "").startswith("application/json") else r.text


def _create(client, headers, product_id, qty=2, **extra):
    r = client.post("/orders/", headers=headers, json={
        "customer_name": "Ravi", "customer_phone": "9876543210",
        "items": [{"product_id": product_id, "quantity": qty}], **extra,
    })
    return jprint("POST /orders", r)


def _advance(client, headers, order_id, *statuses):
    for s in statuses:
        jprint(f"PATCH status {s}", client.patch(f"/orders/{order_id}/status", headers=headers, json={"status": s}))


def test_requires_token(client):
    assert client.get("/orders/").status_code == 401


def test_two_popcorns_at_18_percent(client, auth_headers, products):
    o = _create(client, auth_headers, products["Caramel Popcorn"])
    assert Decimal(o["subtotal"]) == Decimal("300.00")
    assert Decimal(o["tax_amount"]) == Decimal("54.00")
    assert Decimal(o["total_amount"]) == Decimal("354.00")
    assert o["status"] == "draft"
    assert o["payment_status"] == "pending"
    assert o["order_number"].startswith("ORD-")
    assert o["items"][0]["product"]["name"] == "Caramel Popcorn"
    assert o["created_by"]["first_name"] == "Admin"


def test_client_prices_are_ignored(client, auth_headers, products):
    o = _create(client, auth_headers, products["Masala Soda"], qty=1, total_amount="1.00",
                items=[{"product_id": products["Masala Soda"], "quantity": 1, "unit_price": "1.00"}])
    assert Decimal(o["items"][0]["unit_price"]) == Decimal("80.00")
    assert Decimal(o["total_amount"]) == Decimal("94.40")


def test_price_change_does_not_touch_existing_orders(client, auth_headers, products):
    o = _create(client, auth_headers, products["Caramel Popcorn"])
    jprint("PATCH product", client.patch(f"/products/{products['Caramel Popcorn']}", headers=auth_headers,
                                         json={"price": "199.00"}))
    again = jprint("GET order", client.get(f"/orders/{o['id']}", headers=auth_headers))
    assert Decimal(again["items"][0]["unit_price"]) == Decimal("150.00")
    assert Decimal(again["total_amount"]) == Decimal("354.00")


def test_bad_carts(client, auth_headers, products):
    r = client.post("/orders/", headers=auth_headers, json={"items": []})
    assert r.status_code == 400
    assert r.json()["error"] == "ValidationError"

    r = client.post("/orders/", headers=auth_headers, json={"items": [{"product_id": "nope", "quantity": 1}]})
    assert r.status_code == 404
    assert r.json()["error"] == "NotFound"

    r = client.post("/orders/", headers=auth_headers, json={
        "items": [{"product_id": products["Masala Soda"], "quantity": 0}],
    })
    assert r.status_code == 400

    r = client.post("/orders/", headers=auth_headers, json={
        "items": [{"product_id": products["Masala Soda"], "quantity": 1}], "discount_amount": "500.00",
    })
    assert r.status_code == 400


def test_cancel_ready_order_keeps_reason(client, auth_headers, products):
    o = _create(client, auth_headers, products["Caramel Popcorn"], notes="no salt")
    _advance(client, auth_headers, o["id"], "confirmed", "preparing", "ready")

    r = client.patch(f"/orders/{o['id']}/cancel", headers=auth_headers, json={"reason": "customer left"})
    out = jprint("PATCH cancel", r)
    assert out["status"] == "cancelled"
    assert out["notes"] == "no salt\nCancellation reason: customer left"


def test_completed_order_cannot_be_cancelled(client, auth_headers, products):
    o = _create(client, auth_headers, products["Caramel Popcorn"])
    _advance(client, auth_headers, o["id"], "confirmed", "preparing", "ready", "completed")

    r = client.patch(f"/orders/{o['id']}/cancel", headers=auth_headers, json={"reason": "too late"})
    assert r.status_code == 409
    body = r.json()
    assert body["error"] == "InvalidTransition"
    assert body["details"] == {"current": "completed", "requested": "cancelled"}
    again = jprint("GET order", client.get(f"/orders/{o['id']}", headers=auth_headers))
    assert again["status"] == "completed"
    assert again["notes"] is None


def test_illegal_status_change_leaves_order_alone(client, auth_headers, products):
    o = _create(client, auth_headers, products["Caramel Popcorn"])
    r = client.patch(f"/orders/{o['id']}/status", headers=auth_headers, json={"status": "ready"})
    assert r.status_code == 409
    assert jprint("GET", client.get(f"/orders/{o['id']}", headers=auth_headers))["status"] == "draft"


def test_update_customer_details_only(client, auth_headers, products):
    o = _create(client, auth_headers, products["Caramel Popcorn"])
    out = jprint("PATCH order", client.patch(f"/orders/{o['id']}", headers=auth_headers,
                                             json={"customer_email": "ravi@example.com"}))
    assert out["customer_email"] == "ravi@example.com"

    r = client.patch(f"/orders/{o['id']}", headers=auth_headers, json={"total_amount": "1.00"})
    assert r.status_code == 422


def test_list_and_search(client, auth_headers, products):
    a = _create(client, auth_headers, products["Caramel Popcorn"])
    client.post("/orders/", headers=auth_headers, json={
        "customer_name": "Lakshmi", "items": [{"product_id": products["Masala Soda"], "quantity": 1}],
    })
    page = jprint("GET orders", client.get("/orders/", headers=auth_headers, params={"limit": 1}))
    assert page["total"] == 2
    assert len(page["items"]) == 1

    found = jprint("search", client.get("/orders/", headers=auth_headers, params={"search": "laksh"}))
    assert [o["customer_name"] for o in found["items"]] == ["Lakshmi"]

    by_number = jprint("search", client.get("/orders/", headers=auth_headers, params={"search": a["order_number"]}))
    assert by_number["total"] == 1


def test_print_to_default_printer(client, auth_headers, products, printer_sink):
    port = printer_sink.server_address[1]
    jprint("POST printer", client.post("/printers/", headers=auth_headers, json={
        "name": "Counter", "connection_type": "network", "ip_address": "127.0.0.1", "port": port,
        "paper_width": 40, "is_default": True,
    }))
    o = _create(client, auth_headers, products["Caramel Popcorn"])

    out = jprint("POST print", client.post(f"/orders/{o['id']}/print", headers=auth_headers))
    assert out == {"printed": True}
    assert len(printer_sink.received) == 1
    payload = printer_sink.received[0]
    assert payload.endswith(CUT.encode())
    assert o["order_number"].encode() in payload


def test_print_failure_is_reported_not_raised(client, auth_headers, products, dead_port):
    pr = jprint("POST printer", client.post("/printers/", headers=auth_headers, json={
        "name": "Unplugged", "connection_type": "network", "ip_address": "127.0.0.1", "port": dead_port,
    }))
    o = _create(client, auth_headers, products["Caramel Popcorn"])

    r = client.post(f"/orders/{o['id']}/print", headers=auth_headers, json={"printer_id": pr["id"]})
    assert r.status_code == 200
    assert r.json()["printed"] is False
    assert "connection failed" in r.json()["error"]


def test_print_unknown_order(client, auth_headers):
    assert client.post("/orders/missing/print", headers=auth_headers).status_code == 404
