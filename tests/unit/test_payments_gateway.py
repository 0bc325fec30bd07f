from decimal import Decimal
import pytest

from storefront.errors import (
    BackendError,
    BackendUnavailable,
    ConfigurationError,
    GatewayUnavailable,
    PricingError,
    ValidationError,
)
from storefront.orders.models import Order
from storefront.payments import gateway


def _order(total="220.00", **kw):
    return Order(order_id="ord_1", order_number="ORD-20260101-00000001", total=Decimal(total), **kw)


@pytest.fixture
def gateway_backend(monkeypatch):
    state = {"calls": [], "response": None, "error": None}

    async def _create(token, body):
        state["calls"].append(body)
        if state["error"]:
            raise state["error"]
        if state["response"] is not None:
            return state["response"]
        return {"id": "order_RZP1", "amount": body["amountMinorUnits"], "currency": body["currency"], "key": "rzp_test_x"}

    monkeypatch.setattr("storefront.payments.repository.create_gateway_order", _create)
    monkeypatch.setattr("storefront.config.RAZORPAY_KEY_ID", "")
    return state


@pytest.mark.asyncio
async def test_gateway_order_amount_is_minor_units_of_order_total(gateway_backend):
    result = await gateway.create_gateway_order("tok", _order("220.00"), "INR")

    body = gateway_backend["calls"][0]
    assert body["amountMinorUnits"] == 22000
    assert body["receipt"] == "ORD-20260101-00000001"
    assert body["notes"] == {"orderId": "ord_1", "orderNumber": "ORD-20260101-00000001"}
    assert result.gateway_order_id == "order_RZP1"
    assert result.linked_order_id == "ord_1"
    assert result.amount_minor_units == 22000
    assert result.key == "rzp_test_x"


@pytest.mark.asyncio
async def test_returned_amount_mismatch_is_pricing_error(gateway_backend):
    gateway_backend["response"] = {"id": "order_RZP1", "amount": 2200, "currency": "INR", "key": "k"}
    with pytest.raises(PricingError):
        await gateway.create_gateway_order("tok", _order("220.00"), "INR")


@pytest.mark.asyncio
async def test_configured_key_used_when_response_has_none(gateway_backend, monkeypatch):
    gateway_backend["response"] = {"data": {"id": "order_RZP2", "amount": 100, "currency": "INR"}}
    monkeypatch.setattr("storefront.config.RAZORPAY_KEY_ID", "rzp_live_cfg")
    result = await gateway.create_gateway_order("tok", _order("1.00"), "INR")
    assert result.key == "rzp_live_cfg"
    assert result.gateway_order_id == "order_RZP2"


@pytest.mark.asyncio
async def test_missing_public_key_is_configuration_error(gateway_backend):
    gateway_backend["response"] = {"id": "order_RZP3", "amount": 22000, "currency": "INR"}
    with pytest.raises(ConfigurationError):
        await gateway.create_gateway_order("tok", _order(), "INR")


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [
    BackendUnavailable("Erreur réseau. Vérifiez votre connexion."),
    BackendUnavailable("Bad gateway", upstream_status=502),
    BackendError("Razorpay error", upstream_status=500),
])
async def test_unreachable_gateway_is_gateway_unavailable(gateway_backend, error):
    gateway_backend["error"] = error
    with pytest.raises(GatewayUnavailable) as exc:
        await gateway.create_gateway_order("tok", _order(), "INR")
    assert exc.value.extra["order_id"] == "ord_1"


@pytest.mark.asyncio
async def test_backend_configuration_code_is_configuration_error(gateway_backend):
    gateway_backend["error"] = BackendError("Razorpay keys missing", upstream_status=500, payload={"code": "GATEWAY_NOT_CONFIGURED"})
    with pytest.raises(ConfigurationError):
        await gateway.create_gateway_order("tok", _order(), "INR")


@pytest.mark.asyncio
async def test_paid_or_zero_orders_never_reach_gateway(gateway_backend):
    with pytest.raises(ValidationError):
        await gateway.create_gateway_order("tok", _order(payment_status="paid"), "INR")
    with pytest.raises(PricingError):
        await gateway.create_gateway_order("tok", _order("0"), "INR")
    assert gateway_backend["calls"] == []
