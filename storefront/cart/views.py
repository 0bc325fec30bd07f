# module storefront.cart.views

"""Panier local de la vitrine (session signée).
- Aucun appel backend ici: le panier distant n'est réconcilié qu'au checkout.
- Lignes identifiées par (productId, variantId): deux variantes restent distinctes.
"""
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from storefront.cart import local as local_cart
from storefront.cart.models import CartLine

router = APIRouter(prefix="/api/v1/cart", tags=["Cart API"])


class CartItemRequest(BaseModel):
    productId: str = Field(min_length=1)
    variantId: Optional[str] = None
    quantity: int = Field(default=1, ge=1)
    unitPrice: Decimal = Field(default=Decimal("0"), ge=0)


class CartQuantityRequest(BaseModel):
    quantity: int
    variantId: Optional[str] = None


@router.get("")
def get_cart(request: Request):
    return local_cart.cart_view(local_cart.load_cart(request.session))


@router.post("/items")
def add_cart_item(req: CartItemRequest, request: Request):
    line = CartLine(product_id=req.productId, variant_id=req.variantId, quantity=req.quantity, unit_price=req.unitPrice)
    return local_cart.cart_view(local_cart.add_item(request.session, line))


@router.put("/items/{product_id}")
def update_cart_item(product_id: str, req: CartQuantityRequest, request: Request):
    """quantity < 1 retire la ligne."""
    lines = local_cart.update_quantity(request.session, product_id, req.quantity, variant_id=req.variantId)
    return local_cart.cart_view(lines)


@router.delete("/items/{product_id}")
def remove_cart_item(product_id: str, request: Request, variantId: Optional[str] = None):
    return local_cart.cart_view(local_cart.remove_item(request.session, product_id, variant_id=variantId))


@router.delete("")
def clear_cart(request: Request):
    local_cart.clear_cart(request.session)
    return local_cart.cart_view([])
