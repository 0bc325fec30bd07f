from typing import Any, Dict, Optional
from decimal import Decimal

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from storefront.admin import service as admin_service
from storefront.config import CHECKOUT_CURRENCY
from storefront.payments import refunds
from storefront.utils.rate_limit import optional_rate_limit
from storefront.utils.security import require_admin

# module storefront.admin.views
router = APIRouter(prefix="/admin/api", tags=["Admin"])


class StatusUpdateRequest(BaseModel):
    status: str = Field(min_length=1)


class RefundRequest(BaseModel):
    # absent -> reste remboursable (total si aucun remboursement)
    amount: Optional[Decimal] = None
    reason: Optional[str] = Field(default=None, max_length=500)


@router.get("/orders")
async def admin_list_orders(
    status: Optional[str] = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    user: Dict[str, Any] = Depends(require_admin),
):
    result = await admin_service.list_orders(user.get("token"), status=status, page=page, limit=limit)
    return {"data": [refunds.order_summary(o) for o in result["data"]], "meta": result["meta"]}


@router.put("/orders/{order_id}/status")
async def admin_update_order_status(order_id: str, req: StatusUpdateRequest, user: Dict[str, Any] = Depends(require_admin)):
    order = await admin_service.update_order_status(user.get("token"), order_id, req.status)
    return refunds.order_summary(order)


@router.post("/orders/{order_id}/refund", dependencies=[Depends(optional_rate_limit(times=5, seconds=60))])
async def admin_refund_order(order_id: str, req: RefundRequest, user: Dict[str, Any] = Depends(require_admin)):
    """
    Rembourse tout ou partie d'une commande payée.
    - 400 invalid_refund_amount: montant <= 0, > total ou > reste remboursable (aucun appel passerelle)
    - 502 refund_failed: refus/indisponibilité de la passerelle
    - refundStatus reste 'pending' tant que la passerelle ne confirme pas
    """
    record = await refunds.initiate_refund(
        user.get("token"), order_id, amount=req.amount, reason=req.reason, currency=CHECKOUT_CURRENCY,
    )
    return {"success": True, "message": "Remboursement initié", "data": record.to_dict()}


@router.post("/orders/{order_id}/refunds/{refund_id}/refresh")
async def admin_refresh_refund(order_id: str, refund_id: str, user: Dict[str, Any] = Depends(require_admin)):
    record = await refunds.refresh_refund(user.get("token"), order_id, refund_id)
    return {"success": True, "data": record.to_dict()}
