# module storefront.payments.session
"""Payment Session Launcher: options du widget Razorpay (checkout.js) pour une tentative."""
from typing import Any, Dict, Optional

from storefront import config
from storefront.orders.models import Order
from storefront.payments.context import CheckoutContext


def _prefill(user: Dict[str, Any], order: Optional[Order]) -> Dict[str, str]:
    metadata = user.get("user_metadata") or user.get("metadata") or {}
    address = order.shipping_address if order else None
    name = user.get("name") or metadata.get("full_name") or (address.name if address else None)
    contact = user.get("phone") or metadata.get("phone") or (address.phone if address else None)
    prefill = {"name": name, "email": user.get("email"), "contact": contact}
    return {k: str(v) for k, v in prefill.items() if v}


def build_widget_launch(
    context: CheckoutContext,
    key: str,
    user: Dict[str, Any],
    order: Optional[Order] = None,
    base_url: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Options passées telles quelles à `new Razorpay(options)`.
    Les callbacks pointent vers la tentative (attemptId), jamais vers un état global.
    """
    root = (base_url or config.BASE_URL).rstrip("/")
    callbacks = f"{root}/api/v1/checkout/{context.attempt_id}"
    return {
        "key": key,
        "amount": context.amount_minor_units,
        "currency": context.currency,
        "name": config.STORE_NAME,
        "description": f"Commande {context.order_number}",
        "order_id": context.gateway_order_id,
        "prefill": _prefill(user, order),
        "notes": {"orderId": context.order_id, "orderNumber": context.order_number},
        "theme": {"color": config.STORE_THEME_COLOR},
        "method": {m: True for m in config.CHECKOUT_METHODS},
        "callbacks": {
            "complete": f"{callbacks}/complete",
            "dismiss": f"{callbacks}/dismiss",
            "failed": f"{callbacks}/failed",
        },
    }
