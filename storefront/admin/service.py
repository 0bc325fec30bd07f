# module storefront.admin.service

from typing import Any, Dict, Optional
import logging

from storefront.admin import repository as admin_repository
from storefront.errors import BackendError, ValidationError
from storefront.orders import service as orders_service
from storefront.orders.models import ORDER_STATUSES, Order

logger = logging.getLogger(__name__)

async def list_orders(token: Optional[str], status: Optional[str] = None, page: int = 1, limit: int = 20) -> Dict[str, Any]:
    if status and status not in ORDER_STATUSES:
        raise ValidationError(f"Statut inconnu: {status}", fields=["status"])
    data = await admin_repository.fetch_admin_orders(token, status=status, page=page, limit=limit)
    return orders_service.parse_order_page(data)

async def update_order_status(token: Optional[str], order_id: str, status: str) -> Order:
    status = (status or "").strip().lower()
    if status not in ORDER_STATUSES:
        raise ValidationError(f"Statut inconnu: {status or '(vide)'}", fields=["status"])
    try:
        data = await admin_repository.update_order_status(token, order_id, status)
    except BackendError as e:
        if e.upstream_status in (400, 422):
            raise ValidationError(e.message, fields=["status"]) from e
        raise
    logger.info("admin.orders status order_id=%s -> %s", order_id, status)
    if isinstance(data, dict) and (data.get("id") or data.get("_id") or isinstance(data.get("data"), dict)):
        return Order.from_payload(data)
    return await orders_service.get_order(token, order_id)

