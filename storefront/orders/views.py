# module storefront.orders.views
from typing import Any, Dict

from fastapi import APIRouter, Depends, Query

from storefront.payments.refunds import order_summary
from storefront.orders import service as orders_service
from storefront.utils.security import require_user

router = APIRouter(prefix="/api/v1/orders", tags=["Orders API"])


@router.get("")
async def list_my_orders(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    user: Dict[str, Any] = Depends(require_user),
):
    result = await orders_service.list_orders(user.get("token"), page=page, limit=limit)
    return {"data": [order_summary(o) for o in result["data"]], "meta": result["meta"]}


@router.get("/number/{order_number}")
async def get_my_order_by_number(order_number: str, user: Dict[str, Any] = Depends(require_user)):
    return order_summary(await orders_service.get_order_by_number(user.get("token"), order_number))


@router.get("/{order_id}")
async def get_my_order(order_id: str, user: Dict[str, Any] = Depends(require_user)):
    """Commande + paymentDisplayState (remboursement total/partiel/en attente)."""
    return order_summary(await orders_service.get_order(user.get("token"), order_id))


@router.put("/{order_id}/cancel")
async def cancel_my_order(order_id: str, user: Dict[str, Any] = Depends(require_user)):
    return order_summary(await orders_service.cancel_order(user.get("token"), order_id))
