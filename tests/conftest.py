import os

# Pas de Redis en tests: le lifespan désactive le limiter
os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")

import json
import re
import pytest
import httpx
from typing import Generator, Dict, Any, List, Optional
from fastapi.testclient import TestClient

from storefront.app import app as fastapi_app
from storefront.infra import api_client
from storefront.infra.api_client import BackendClient
from storefront.payments.context import get_attempt_store
from storefront.utils.security import require_user, require_admin

BACKEND_URL = "http://backend.test/api/v1"

# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "tests/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)


class FakeBackend:
    """
    Backend REST en mémoire derrière httpx.MockTransport.
    Les attributs publics pilotent les cas d'erreur (statuts, montants, verified...).
    """

    def __init__(self):
        self.remote_cart: List[Dict[str, Any]] = []
        self.orders: Dict[str, Dict[str, Any]] = {}
        self.gateway_orders: List[Dict[str, Any]] = []
        self.refunds: Dict[str, Dict[str, Any]] = {}
        self.requests: List[Dict[str, Any]] = []
        self.order_total = "220.00"
        self.public_key: Optional[str] = "rzp_test_key"
        self.fail_cart_products: set = set()
        self.cart_status: Optional[int] = None
        self.order_status: Optional[int] = None
        self.order_error = "Requête invalide"
        self.gateway_status: Optional[int] = None
        self.gateway_amount_delta = 0
        self.verify_status: Optional[int] = None
        self.verified = True
        self.refund_status_value: Optional[str] = "pending"
        self.refund_http_status: Optional[int] = None
        self.user = {"id": "test-user", "email": "test@example.com", "name": "Test User", "role": "user"}
        self._seq = 0

    # --- helpers ---
    def _next(self, prefix: str) -> str:
        self._seq += 1
        return f"{prefix}{self._seq:04d}"

    def calls(self, method: str, path_regex: str) -> List[Dict[str, Any]]:
        return [r for r in self.requests if r["method"] == method and re.fullmatch(path_regex, r["path"])]

    def add_paid_order(self, total: str = "220.00", refunds: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
        order_id = self._next("order-")
        order = {
            "id": order_id,
            "orderNumber": f"ORD-20260101-{order_id[-4:]}",
            "total": total,
            "status": "paid",
            "paymentStatus": "paid",
            "paymentMethod": "razorpay",
            "refunds": refunds or [],
        }
        self.orders[order_id] = order
        return order

    @staticmethod
    def _json(status: int, body: Any) -> httpx.Response:
        return httpx.Response(status, json=body)

    # --- transport ---
    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path[len("/api/v1"):]
        body = json.loads(request.content) if request.content else None
        self.requests.append({
            "method": request.method,
            "path": path,
            "json": body,
            "params": dict(request.url.params),
            "auth": request.headers.get("authorization"),
        })
        m = request.method

        if path == "/health":
            return self._json(200, {"status": "ok"})
        if path == "/auth/me":
            if request.headers.get("authorization") != "Bearer good-token":
                return self._json(401, {"message": "Unauthorized"})
            return self._json(200, {"data": self.user})

        if path == "/cart" and m == "GET":
            if self.cart_status:
                return self._json(self.cart_status, {"message": "cart down"})
            return self._json(200, {"items": list(self.remote_cart)})
        if path == "/cart/items" and m == "POST":
            if body["productId"] in self.fail_cart_products:
                return self._json(400, {"message": ["Produit indisponible"]})
            self.remote_cart.append({"productId": body["productId"], "variantId": body.get("variantId"), "quantity": body["quantity"]})
            return self._json(201, {"ok": True})
        match = re.fullmatch(r"/cart/items/([^/]+)", path)
        if match and m == "PUT":
            pid = match.group(1)
            if pid in self.fail_cart_products:
                return self._json(400, {"message": "Stock insuffisant"})
            for line in self.remote_cart:
                if line["productId"] == pid and (line.get("variantId") or None) == (body.get("variantId") or None):
                    line["quantity"] = body["quantity"]
            return self._json(200, {"ok": True})

        if path == "/orders" and m == "POST":
            if self.order_status:
                return self._json(self.order_status, {"message": self.order_error})
            order_id = self._next("order-")
            order = {
                "id": order_id,
                "orderNumber": f"ORD-20260101-{order_id[-4:]}",
                "total": self.order_total,
                "subtotal": self.order_total,
                "shippingCost": body.get("shippingCost", 0),
                "status": "pending",
                "paymentStatus": "pending",
                "paymentMethod": body.get("paymentMethod"),
                "shippingAddress": body.get("shippingAddress"),
                "items": [dict(l, price="110.00") for l in self.remote_cart],
            }
            self.orders[order_id] = order
            return self._json(201, {"data": order})
        if path == "/orders" and m == "GET":
            return self._json(200, {"data": list(self.orders.values()), "meta": {"page": 1, "total": len(self.orders)}})
        if path == "/orders/admin" and m == "GET":
            status = request.url.params.get("status")
            rows = [o for o in self.orders.values() if not status or o["status"] == status]
            return self._json(200, {"data": rows, "meta": {"total": len(rows)}})
        match = re.fullmatch(r"/orders/order-number/([^/]+)", path)
        if match:
            for order in self.orders.values():
                if order["orderNumber"] == match.group(1):
                    return self._json(200, order)
            return self._json(404, {"message": "Commande introuvable"})
        match = re.fullmatch(r"/orders/([^/]+)(/cancel|/status)?", path)
        if match:
            order = self.orders.get(match.group(1))
            if order is None:
                return self._json(404, {"message": "Commande introuvable"})
            if match.group(2) == "/cancel":
                order["status"] = "cancelled"
                return self._json(200, order)
            if match.group(2) == "/status":
                order["status"] = body["status"]
                return self._json(200, {"data": order})
            return self._json(200, order)

        if path == "/payments/gateway-order":
            if self.gateway_status:
                return self._json(self.gateway_status, {"message": "Razorpay indisponible"})
            gateway_id = self._next("order_rzp")
            entry = {
                "id": gateway_id,
                "amount": body["amountMinorUnits"] + self.gateway_amount_delta,
                "currency": body["currency"],
                "receipt": body["receipt"],
                "notes": body["notes"],
            }
            if self.public_key:
                entry["key"] = self.public_key
            self.gateway_orders.append(entry)
            return self._json(200, entry)
        if path == "/payments/verify":
            if self.verify_status:
                return self._json(self.verify_status, {"message": "Signature invalide"})
            order = self.orders.get(body["orderId"])
            if self.verified and order is not None:
                order["status"] = "paid"
                order["paymentStatus"] = "paid"
            return self._json(200, {"verified": self.verified, "order": order if self.verified else None})
        match = re.fullmatch(r"/payments/([^/]+)/refund", path)
        if match:
            if self.refund_http_status:
                return self._json(self.refund_http_status, {"message": "Remboursement refusé par la passerelle"})
            refund_id = self._next("rfnd_")
            refund = {"refundId": refund_id, "refundAmount": body.get("amount"), "refundStatus": self.refund_status_value}
            self.refunds[refund_id] = refund
            order = self.orders[match.group(1)]
            order.setdefault("refunds", []).append(dict(refund))
            return self._json(200, {"success": True, "message": "Refund initiated", "data": refund})
        match = re.fullmatch(r"/payments/([^/]+)/refunds/([^/]+)", path)
        if match:
            refund = self.refunds.get(match.group(2))
            if refund is None:
                return self._json(404, {"message": "Remboursement introuvable"})
            # le backend enregistre le statut relu auprès de la passerelle
            order = self.orders.get(match.group(1), {})
            for row in order.get("refunds", []):
                if row.get("refundId") == refund["refundId"]:
                    row.update(refund)
            return self._json(200, {"data": refund})

        return self._json(404, {"message": f"route inconnue {m} {path}"})


@pytest.fixture
def fake_backend(monkeypatch) -> FakeBackend:
    backend = FakeBackend()
    client = BackendClient(base_url=BACKEND_URL, timeout=5, transport=httpx.MockTransport(backend.handler))
    monkeypatch.setattr(api_client, "_api_client", client)
    return backend

@pytest.fixture(scope="session")
def app():
    return fastapi_app

@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c

@pytest.fixture(autouse=True)
def _reset_attempt_store():
    get_attempt_store().clear()
    yield
    get_attempt_store().clear()

# Simuler un utilisateur authentifié pour les endpoints protégés
@pytest.fixture(autouse=True)
def _override_require_user(app):
    fake_user: Dict[str, Any] = {
        "id": "test-user",
        "email": "test@example.com",
        "name": "Test User",
        "role": "user",
        "metadata": {"full_name": "Test User"},
        "token": "fake-token",
    }
    app.dependency_overrides[require_user] = lambda: fake_user
    try:
        yield
    finally:
        app.dependency_overrides.pop(require_user, None)

@pytest.fixture
def authenticated_admin_client(app, client):
    def _override_require_admin():
        return {"id": "admin-user-id", "role": "admin", "email": "admin@example.com", "token": "admin-token"}
    app.dependency_overrides[require_admin] = _override_require_admin
    yield client
    app.dependency_overrides.pop(require_admin, None)

@pytest.fixture
def shipping_address() -> Dict[str, Any]:
    return {
        "street": "12 MG Road",
        "city": "Bengaluru",
        "state": "KA",
        "zipCode": "560001",
        "country": "IN",
        "name": "Test User",
        "phone": "9999999999",
    }
