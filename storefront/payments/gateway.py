"""
Gateway Order Broker: une commande passerelle (Razorpay) par commande backend.
- Montant converti une seule fois en unités mineures (amounts.to_minor_units).
- Le montant renvoyé doit être identique au montant envoyé: sinon bug de correction (PricingError).
- Passerelle/backend injoignable -> GatewayUnavailable (retriable via une nouvelle tentative).
- Clé publique absente (config et réponse) -> ConfigurationError (action opérateur).
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional
import logging

from storefront import config
from storefront.errors import (
    BackendError,
    BackendUnavailable,
    ConfigurationError,
    GatewayUnavailable,
    PricingError,
    ValidationError,
)
from storefront.orders.models import Order
from storefront.payments import repository
from storefront.payments.amounts import to_minor_units

logger = logging.getLogger(__name__)

CONFIGURATION_CODES = ("GATEWAY_NOT_CONFIGURED", "CONFIGURATION_ERROR", "configuration_error")


@dataclass(frozen=True)
class GatewayOrder:
    gateway_order_id: str
    amount_minor_units: int
    currency: str
    linked_order_id: str
    key: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "gatewayOrderId": self.gateway_order_id,
            "amountMinorUnits": self.amount_minor_units,
            "currency": self.currency,
            "linkedOrderId": self.linked_order_id,
        }


def _unwrap(data: Any) -> Dict[str, Any]:
    if isinstance(data, dict) and isinstance(data.get("data"), dict):
        return data["data"]
    return data if isinstance(data, dict) else {}


def _returned_amount(data: Dict[str, Any]) -> Optional[int]:
    value = data.get("amountMinorUnits", data.get("amount"))
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise PricingError(f"Montant passerelle illisible: {value!r}")


async def create_gateway_order(token: Optional[str], order: Order, currency: Optional[str] = None) -> GatewayOrder:
    """
    Crée la commande passerelle liée à `order` (reçu = numéro de commande, notes = ids).
    Aucune commande passerelle sans commande backend préalable: `order` est le retour de l'Order Initiator.
    """
    currency = (currency or config.CHECKOUT_CURRENCY).upper()
    if order.payment_status == "paid":
        raise ValidationError(f"Commande {order.order_number} déjà payée")
    if order.status == "cancelled":
        raise ValidationError(f"Commande {order.order_number} annulée")

    try:
        amount = to_minor_units(order.total, currency)
    except ValueError as e:
        raise PricingError(str(e), order_id=order.order_id) from e
    if amount <= 0:
        raise PricingError("Montant de commande nul: paiement impossible", order_id=order.order_id)

    body = {
        "orderId": order.order_id,
        "amountMinorUnits": amount,
        "currency": currency,
        "receipt": order.order_number,
        "notes": {"orderId": order.order_id, "orderNumber": order.order_number},
    }
    try:
        data = _unwrap(await repository.create_gateway_order(token, body))
    except BackendUnavailable as e:
        logger.warning("payments.gateway unavailable order_id=%s: %s", order.order_id, e)
        raise GatewayUnavailable("Service de paiement indisponible, réessayez dans un instant", order_id=order.order_id) from e
    except BackendError as e:
        code = e.payload.get("code") if isinstance(e.payload, dict) else None
        if code in CONFIGURATION_CODES:
            logger.error("payments.gateway not configured: %s", e)
            raise ConfigurationError("Paiement non configuré sur le serveur") from e
        if e.upstream_status == 409:
            raise PricingError(e.message, order_id=order.order_id) from e
        if e.upstream_status in (400, 422):
            raise ValidationError(e.message) from e
        logger.warning("payments.gateway error order_id=%s status=%s: %s", order.order_id, e.upstream_status, e)
        raise GatewayUnavailable(e.message, order_id=order.order_id) from e

    gateway_order_id = str(data.get("gatewayOrderId") or data.get("razorpayOrderId") or data.get("id") or "")
    if not gateway_order_id:
        logger.error("payments.gateway response without gateway order id order_id=%s", order.order_id)
        raise GatewayUnavailable("Réponse passerelle invalide (identifiant manquant)", order_id=order.order_id)

    returned = _returned_amount(data)
    if returned is not None and returned != amount:
        logger.error(
            "payments.gateway amount mismatch order_id=%s sent=%s returned=%s",
            order.order_id, amount, returned,
        )
        raise PricingError("Montant de la commande passerelle incohérent", order_id=order.order_id)

    returned_currency = str(data.get("currency") or currency).upper()
    if returned_currency != currency:
        raise PricingError(f"Devise passerelle incohérente ({returned_currency} != {currency})", order_id=order.order_id)

    key = str(data.get("key") or data.get("keyId") or config.RAZORPAY_KEY_ID or "").strip()
    if not key:
        logger.error("payments.gateway missing public key (RAZORPAY_KEY_ID)")
        raise ConfigurationError("Clé publique de paiement manquante (RAZORPAY_KEY_ID)")

    logger.info(
        "payments.gateway created gateway_order_id=%s order_id=%s amount=%s %s",
        gateway_order_id, order.order_id, amount, currency,
    )
    return GatewayOrder(
        gateway_order_id=gateway_order_id,
        amount_minor_units=amount,
        currency=currency,
        linked_order_id=order.order_id,
        key=key,
    )
