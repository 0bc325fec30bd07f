from typing import Any, Dict, Optional
import logging

import storefront.infra.api_client as api_client

logger = logging.getLogger(__name__)

# module storefront.orders.repository
async def create_order(token: Optional[str], body: Dict[str, Any]) -> Dict[str, Any]:
    """POST /orders -> {id, orderNumber, total, ...}"""
    return await api_client.get_api_client().post("/orders", token=token, json=body)


async def fetch_order(token: Optional[str], order_id: str) -> Dict[str, Any]:
    return await api_client.get_api_client().get(f"/orders/{order_id}", token=token)


async def fetch_order_by_number(token: Optional[str], order_number: str) -> Dict[str, Any]:
    return await api_client.get_api_client().get(f"/orders/order-number/{order_number}", token=token)


async def fetch_user_orders(token: Optional[str], page: int = 1, limit: int = 10) -> Any:
    return await api_client.get_api_client().get("/orders", token=token, params={"page": page, "limit": limit})


async def cancel_order(token: Optional[str], order_id: str) -> Dict[str, Any]:
    """PUT /orders/{id}/cancel (commande 'pending' uniquement)."""
    return await api_client.get_api_client().put(f"/orders/{order_id}/cancel", token=token)
