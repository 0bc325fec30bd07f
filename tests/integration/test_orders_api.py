def _pending_order(fake_backend):
    order = fake_backend.add_paid_order()
    order.update(status="pending", paymentStatus="pending")
    return order


def test_get_order_exposes_payment_display_state(client, fake_backend):
    order = fake_backend.add_paid_order(
        total="220.00",
        refunds=[{"refundId": "rfnd_1", "refundAmount": "100.00", "refundStatus": "processed"}],
    )

    r = client.get(f"/api/v1/orders/{order['id']}")

    assert r.status_code == 200
    body = r.json()
    assert body["paymentDisplayState"] == "partially_refunded"
    assert body["refundableAmount"] == "120.00"
    assert body["refunds"][0]["refundStatus"] == "processed"


def test_get_order_by_number(client, fake_backend):
    order = fake_backend.add_paid_order()
    r = client.get(f"/api/v1/orders/number/{order['orderNumber']}")
    assert r.status_code == 200
    assert r.json()["id"] == order["id"]
    assert r.json()["paymentDisplayState"] == "paid"


def test_unknown_order_is_404(client, fake_backend):
    r = client.get("/api/v1/orders/nope")
    assert r.status_code == 404
    assert r.json()["detail"] == "Commande introuvable"


def test_list_orders(client, fake_backend):
    fake_backend.add_paid_order()
    _pending_order(fake_backend)
    r = client.get("/api/v1/orders")
    assert r.status_code == 200
    assert len(r.json()["data"]) == 2
    assert fake_backend.calls("GET", "/orders")[0]["auth"] == "Bearer fake-token"


def test_cancel_pending_order(client, fake_backend):
    order = _pending_order(fake_backend)
    r = client.put(f"/api/v1/orders/{order['id']}/cancel")
    assert r.status_code == 200
    assert r.json()["status"] == "cancelled"


def test_cancel_paid_order_is_rejected(client, fake_backend):
    order = fake_backend.add_paid_order()
    r = client.put(f"/api/v1/orders/{order['id']}/cancel")
    assert r.status_code == 400
    assert r.json()["code"] == "validation_error"
    assert fake_backend.calls("PUT", r"/orders/.+/cancel") == []
