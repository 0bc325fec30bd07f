"""Couche service des commandes (Order Initiator + consultation/annulation).
Rôles:
- Valider l'adresse et les frais de port, puis créer la commande backend (une par tentative).
- Ne jamais recalculer les prix: le backend est l'unique source de vérité monétaire.
- Signaler un écart entre le total backend et le total affiché (PricingError).
"""
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union
import logging

from storefront.errors import BackendError, PricingError, ValidationError
from storefront.orders import repository
from storefront.orders.models import Order, ShippingAddress
from storefront.payments.amounts import as_decimal, same_amount

logger = logging.getLogger(__name__)

DEFAULT_PAYMENT_METHOD = "razorpay"
# payé au widget Razorpay
GATEWAY_PAYMENT_METHODS = ("razorpay",)
# payé à la livraison: la commande est passée sans commande passerelle
OFFLINE_PAYMENT_METHODS = ("cod", "cash")
PAYMENT_METHODS = GATEWAY_PAYMENT_METHODS + OFFLINE_PAYMENT_METHODS


def _parse_order(data: Any) -> Order:
    try:
        return Order.from_payload(data if isinstance(data, dict) else {})
    except ValueError as e:
        logger.error("orders.service invalid order payload: %s", e)
        raise BackendError("Réponse commande invalide du backend") from e


def _raise_translated(e: BackendError) -> None:
    if e.upstream_status in (400, 422):
        raise ValidationError(e.message) from e
    if e.upstream_status == 409:
        raise PricingError(e.message) from e
    raise e


def validate_address(address: Union[ShippingAddress, Dict[str, Any], None]) -> ShippingAddress:
    if not isinstance(address, ShippingAddress):
        address = ShippingAddress.from_payload(address or {})
    missing = address.missing_fields()
    if missing:
        raise ValidationError(f"Adresse de livraison incomplète: {', '.join(missing)}", fields=missing)
    return address


def validate_payment_method(value: Optional[str]) -> str:
    method = (value or DEFAULT_PAYMENT_METHOD).strip().lower()
    if method not in PAYMENT_METHODS:
        raise ValidationError(
            f"Moyen de paiement inconnu: {value} (attendu: {', '.join(PAYMENT_METHODS)})",
            fields=["paymentMethod"],
        )
    return method


def is_offline_payment(method: Optional[str]) -> bool:
    return (method or "").strip().lower() in OFFLINE_PAYMENT_METHODS


def validate_shipping_cost(value: Any) -> Decimal:
    if value is None or value == "":
        return Decimal("0")
    try:
        return as_decimal(value)
    except ValueError:
        raise ValidationError("Frais de port invalides (montant >= 0 attendu)", fields=["shippingCost"])


async def create_order(
    token: Optional[str],
    shipping_address: Union[ShippingAddress, Dict[str, Any]],
    shipping_cost: Any = 0,
    coupon_id: Optional[str] = None,
    payment_method: str = DEFAULT_PAYMENT_METHOD,
    expected_total: Any = None,
    currency: str = "INR",
) -> Order:
    """
    Crée la commande backend à partir du panier distant réconcilié.
    - ValidationError: adresse incomplète, frais de port négatifs, refus 400/422 du backend
    - PricingError: conflit 409 backend, ou total backend != expected_total (à l'unité mineure)
    L'appelant empêche la double soumission pendant la requête.
    """
    address = validate_address(shipping_address)
    cost = validate_shipping_cost(shipping_cost)
    method = validate_payment_method(payment_method)

    body: Dict[str, Any] = {
        "shippingAddress": address.to_dict(),
        "shippingCost": str(cost),
        "paymentMethod": method,
    }
    if coupon_id:
        body["couponId"] = coupon_id

    try:
        data = await repository.create_order(token, body)
    except BackendError as e:
        _raise_translated(e)

    order = _parse_order(data)
    logger.info("orders.create order_id=%s order_number=%s total=%s", order.order_id, order.order_number, order.total)

    if expected_total is not None:
        try:
            matches = same_amount(order.total, expected_total, currency)
        except ValueError:
            matches = False
        if not matches:
            logger.error(
                "orders.create pricing mismatch order_id=%s backend_total=%s shown_total=%s",
                order.order_id, order.total, expected_total,
            )
            raise PricingError(
                "Le total de la commande ne correspond pas au montant affiché",
                order_id=order.order_id,
            )
    return order


async def get_order(token: Optional[str], order_id: str) -> Order:
    return _parse_order(await repository.fetch_order(token, order_id))


async def get_order_by_number(token: Optional[str], order_number: str) -> Order:
    return _parse_order(await repository.fetch_order_by_number(token, order_number))


def parse_order_page(data: Any) -> Dict[str, Any]:
    """Réponse paginée {data: [...], meta: {...}} ou liste brute -> {data: [Order], meta}."""
    if isinstance(data, dict):
        rows = data.get("data") or []
        meta = data.get("meta") or {}
    else:
        rows = data or []
        meta = {}
    orders: List[Order] = []
    for row in rows:
        if not isinstance(row, dict):
            continue
        try:
            orders.append(Order.from_payload(row))
        except ValueError:
            logger.warning("orders.service skipped order row without id")
    return {"data": orders, "meta": meta}


async def list_orders(token: Optional[str], page: int = 1, limit: int = 10) -> Dict[str, Any]:
    return parse_order_page(await repository.fetch_user_orders(token, page=page, limit=limit))


async def cancel_order(token: Optional[str], order_id: str) -> Order:
    """Annule une commande 'pending' (ex: paiement abandonné). Toute autre commande -> ValidationError."""
    order = await get_order(token, order_id)
    if order.status != "pending" or order.payment_status == "paid":
        raise ValidationError(f"Seule une commande en attente peut être annulée (statut: {order.status})")
    try:
        data = await repository.cancel_order(token, order_id)
    except BackendError as e:
        _raise_translated(e)
    logger.info("orders.cancel order_id=%s", order_id)
    if isinstance(data, dict) and (data.get("id") or data.get("_id") or isinstance(data.get("data"), dict)):
        return _parse_order(data)
    return await get_order(token, order_id)
