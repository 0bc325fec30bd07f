from typing import Any, Dict, Optional
import logging

import storefront.infra.api_client as api_client

logger = logging.getLogger(__name__)

# module storefront.admin.repository
async def fetch_admin_orders(token: Optional[str], status: Optional[str] = None, page: int = 1, limit: int = 20) -> Any:
    """GET /orders/admin?status=&page=&limit= -> {data: [...], meta: {...}}"""
    params: Dict[str, Any] = {"page": page, "limit": limit}
    if status:
        params["status"] = status
    return await api_client.get_api_client().get("/orders/admin", token=token, params=params)


async def update_order_status(token: Optional[str], order_id: str, status: str) -> Dict[str, Any]:
    return await api_client.get_api_client().put(f"/orders/{order_id}/status", token=token, json={"status": status})
