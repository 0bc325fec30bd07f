"""
Endpoints du checkout (Razorpay).
- POST /api/v1/checkout: sync panier -> commande -> commande passerelle -> options du widget
- Callbacks du widget par tentative: complete / dismiss / failed, puis retry
Sécurité: require_user; la création est rate-limitée.
"""
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Request
from pydantic import BaseModel, Field

from storefront.cart import local as local_cart
from storefront.orders.service import DEFAULT_PAYMENT_METHOD
from storefront.payments import service as checkout_service
from storefront.payments.context import CheckoutState
from storefront.utils.rate_limit import optional_rate_limit
from storefront.utils.security import require_user

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/checkout", tags=["Checkout API"])


class AddressRequest(BaseModel):
    street: str = ""
    city: str = ""
    state: str = ""
    zipCode: str = ""
    country: str = ""
    name: Optional[str] = None
    phone: Optional[str] = None


class CheckoutRequest(BaseModel):
    shippingAddress: AddressRequest
    # absent -> panier de session
    items: Optional[List[Dict[str, Any]]] = None
    shippingCost: Decimal = Field(default=Decimal("0"))
    couponId: Optional[str] = None
    paymentMethod: str = DEFAULT_PAYMENT_METHOD
    expectedTotal: Optional[Decimal] = None


def _base_url(request: Request) -> str:
    return str(request.base_url).rstrip("/")


# module storefront.payments.views
@router.post("", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
async def start_checkout(req: CheckoutRequest, request: Request, user: dict = Depends(require_user)):
    """
    Lance une tentative de paiement.
    - Retour: tentative {attemptId, state: widget_open, widget: options Razorpay, context, sync}
      (cod/cash: state placed, sans widget, panier de session vidé)
    - Erreurs: 400 validation, 409 pricing, 503 passerelle indisponible (attemptId/orderId fournis pour retry)
    """
    items = req.items if req.items is not None else [l.to_dict() for l in local_cart.load_cart(request.session)]
    attempt = await checkout_service.start_checkout(
        user,
        items,
        req.shippingAddress.model_dump(),
        shipping_cost=req.shippingCost,
        coupon_id=req.couponId,
        payment_method=req.paymentMethod,
        expected_total=req.expectedTotal,
        base_url=_base_url(request),
    )
    if attempt.state == CheckoutState.PLACED:
        local_cart.clear_cart(request.session)
    return attempt.to_dict()


@router.get("/{attempt_id}")
async def get_attempt(attempt_id: str, user: dict = Depends(require_user)):
    return checkout_service.get_attempt(user, attempt_id).to_dict()


@router.post("/{attempt_id}/complete")
async def complete_checkout(attempt_id: str, request: Request, payload: Any = Body(default=None), user: dict = Depends(require_user)):
    """
    Callback de succès du widget (payload Razorpay brut, objet ou chaîne JSON).
    Succès: panier de session vidé, commande payée renvoyée.
    """
    attempt = await checkout_service.complete_checkout(user, attempt_id, payload)
    local_cart.clear_cart(request.session)
    return attempt.to_dict()


@router.post("/{attempt_id}/dismiss")
async def dismiss_checkout(attempt_id: str, user: dict = Depends(require_user)):
    """Fermeture du widget sans paiement: pas une erreur, la commande reste en attente."""
    attempt = checkout_service.dismiss_checkout(user, attempt_id)
    body = attempt.to_dict()
    body["message"] = "Paiement annulé"
    return body


@router.post("/{attempt_id}/failed")
async def payment_failed(attempt_id: str, payload: Any = Body(default=None), user: dict = Depends(require_user)):
    return checkout_service.report_payment_failure(user, attempt_id, payload).to_dict()


@router.post("/{attempt_id}/retry", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
async def retry_checkout(attempt_id: str, request: Request, user: dict = Depends(require_user)):
    """Nouvelle tentative, nouveau contexte, même commande."""
    attempt = await checkout_service.retry_checkout(user, attempt_id, base_url=_base_url(request))
    return attempt.to_dict()
