import httpx
import pytest

from storefront.errors import BackendError, BackendUnavailable
from storefront.infra.api_client import BackendClient, error_message


def _client(handler):
    return BackendClient(base_url="http://backend.test/api/v1", timeout=5, transport=httpx.MockTransport(handler))


@pytest.mark.parametrize("payload,expected", [
    ({"message": "Commande introuvable"}, "Commande introuvable"),
    ({"message": ["quantity must be positive", "productId required"]}, "quantity must be positive. productId required"),
    ({"detail": "Not allowed"}, "Not allowed"),
    ({"error": "Boom"}, "Boom"),
    ({}, "Erreur serveur (500)"),
    ("", "Erreur serveur (500)"),
])
def test_error_message(payload, expected):
    assert error_message(payload, 500) == expected


@pytest.mark.asyncio
async def test_request_joins_base_path_and_sends_bearer():
    seen = {}

    def handler(request: httpx.Request):
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("authorization")
        return httpx.Response(200, json={"items": []})

    client = _client(handler)
    data = await client.get("/cart", token="tok123", params={"page": 2})
    await client.aclose()

    assert data == {"items": []}
    assert seen["url"] == "http://backend.test/api/v1/cart?page=2"
    assert seen["auth"] == "Bearer tok123"


@pytest.mark.asyncio
async def test_empty_body_returns_empty_dict():
    client = _client(lambda request: httpx.Response(204))
    assert await client.put("/orders/1/cancel") == {}


@pytest.mark.asyncio
async def test_error_status_raises_backend_error_with_message():
    client = _client(lambda request: httpx.Response(400, json={"message": ["a", "b"]}))
    with pytest.raises(BackendError) as exc:
        await client.post("/orders", json={})
    assert not isinstance(exc.value, BackendUnavailable)
    assert exc.value.upstream_status == 400
    assert exc.value.message == "a. b"
    assert exc.value.payload == {"message": ["a", "b"]}


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [502, 503, 504])
async def test_gateway_statuses_are_unavailable(status):
    client = _client(lambda request: httpx.Response(status, text="upstream down"))
    with pytest.raises(BackendUnavailable) as exc:
        await client.get("/health")
    assert exc.value.upstream_status == status


@pytest.mark.asyncio
async def test_transport_error_is_unavailable():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = _client(handler)
    with pytest.raises(BackendUnavailable) as exc:
        await client.get("/cart")
    assert exc.value.upstream_status is None
    assert "réseau" in exc.value.message
