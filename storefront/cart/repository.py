"""
Accès au panier distant (backend REST).
"""
from typing import Any, Dict, List, Optional
import logging

import storefront.infra.api_client as api_client
from storefront.cart.models import CartLine

logger = logging.getLogger(__name__)

# module storefront.cart.repository
async def fetch_remote_cart(token: Optional[str]) -> List[CartLine]:
    """
    GET /cart -> lignes du panier distant.
    - Accepte {"items": [...]} ou directement une liste.
    - Les lignes illisibles sont ignorées.
    """
    data = await api_client.get_api_client().get("/cart", token=token)
    if isinstance(data, dict):
        items = data.get("items") or []
    else:
        items = data or []
    lines = [CartLine.from_payload(it) for it in items if isinstance(it, dict)]
    return [l for l in lines if l is not None]


async def add_remote_item(token: Optional[str], line: CartLine) -> Any:
    body: Dict[str, Any] = {"productId": line.product_id, "quantity": line.quantity}
    if line.variant_id:
        body["variantId"] = line.variant_id
    return await api_client.get_api_client().post("/cart/items", token=token, json=body)


async def update_remote_item(token: Optional[str], line: CartLine) -> Any:
    body: Dict[str, Any] = {"quantity": line.quantity}
    if line.variant_id:
        body["variantId"] = line.variant_id
    return await api_client.get_api_client().put(f"/cart/items/{line.product_id}", token=token, json=body)
