"""
Refund Manager: remboursements totaux ou partiels d'une commande payée (côté admin).
- Montant validé avant tout appel passerelle: 0 < montant <= total et <= reste remboursable.
- Le statut passerelle est lu explicitement; inconnu/absent -> pending (jamais de succès implicite).
- Un remboursement terminal (processed/failed) n'est plus modifié; un nouvel essai = un nouvel enregistrement.
"""
from decimal import Decimal
from typing import Any, Dict, Optional
import logging

from storefront.errors import BackendError, BackendUnavailable, InvalidRefundAmount, RefundFailure, ValidationError
from storefront.orders import service as orders_service
from storefront.orders.models import (
    REFUND_FAILED,
    REFUND_PENDING,
    REFUND_PROCESSED,
    Order,
    RefundRecord,
)
from storefront.payments import repository
from storefront.payments.amounts import quantize_amount

logger = logging.getLogger(__name__)


def refunded_amount(order: Order, statuses=(REFUND_PENDING, REFUND_PROCESSED)) -> Decimal:
    return sum((r.amount for r in order.refunds if r.refund_status in statuses), Decimal("0"))


def refundable_amount(order: Order) -> Decimal:
    remaining = order.total - refunded_amount(order)
    return remaining if remaining > 0 else Decimal("0")


def validate_refund_amount(order: Order, amount: Any = None, currency: str = "INR") -> Decimal:
    """
    - None -> reste remboursable (= total si aucun remboursement antérieur)
    - <= 0, > total, > reste remboursable, illisible -> InvalidRefundAmount
    """
    remaining = refundable_amount(order)
    if amount is None or amount == "":
        if remaining <= 0:
            raise InvalidRefundAmount("Commande déjà entièrement remboursée", fields=["amount"], order_id=order.order_id)
        return quantize_amount(remaining, currency)
    try:
        value = quantize_amount(amount, currency)
    except ValueError:
        raise InvalidRefundAmount(f"Montant de remboursement invalide: {amount!r}", fields=["amount"], order_id=order.order_id)
    if value <= 0:
        raise InvalidRefundAmount("Le montant du remboursement doit être positif", fields=["amount"], order_id=order.order_id)
    if value > order.total:
        raise InvalidRefundAmount(
            f"Le montant du remboursement ({value}) dépasse le total de la commande ({order.total})",
            fields=["amount"],
            order_id=order.order_id,
        )
    if value > remaining:
        raise InvalidRefundAmount(
            f"Le montant du remboursement ({value}) dépasse le reste remboursable ({remaining})",
            fields=["amount"],
            order_id=order.order_id,
        )
    return value


def _unwrap(data: Any) -> Dict[str, Any]:
    if isinstance(data, dict) and isinstance(data.get("data"), dict):
        return data["data"]
    return data if isinstance(data, dict) else {}


async def initiate_refund(
    token: Optional[str],
    order_id: str,
    amount: Any = None,
    reason: Optional[str] = None,
    currency: str = "INR",
) -> RefundRecord:
    order = await orders_service.get_order(token, order_id)
    if order.payment_status != "paid":
        raise ValidationError(
            f"Seule une commande payée peut être remboursée (paiement: {order.payment_status})",
            order_id=order.order_id,
        )
    value = validate_refund_amount(order, amount, currency)

    body: Dict[str, Any] = {"amount": str(value)}
    if reason:
        body["reason"] = reason.strip()
    try:
        data = _unwrap(await repository.request_refund(token, order.order_id, body))
    except BackendUnavailable as e:
        logger.error("refunds.initiate unreachable order_id=%s amount=%s: %s", order.order_id, value, e)
        raise RefundFailure("Service de remboursement indisponible, réessayez plus tard", order_id=order.order_id) from e
    except BackendError as e:
        logger.error("refunds.initiate rejected order_id=%s amount=%s: %s", order.order_id, value, e)
        raise RefundFailure(f"Remboursement refusé: {e.message}", order_id=order.order_id) from e

    record = RefundRecord.from_payload(order.order_id, data, amount=value, reason=reason)
    if not record.refund_id:
        logger.error("refunds.initiate response without refund id order_id=%s", order.order_id)
    logger.info(
        "refunds.initiate order_id=%s refund_id=%s amount=%s status=%s",
        order.order_id, record.refund_id, record.amount, record.refund_status,
    )
    return record


async def refresh_refund(token: Optional[str], order_id: str, refund_id: str) -> RefundRecord:
    """Relit le statut passerelle d'un remboursement et renvoie un nouvel enregistrement."""
    order = await orders_service.get_order(token, order_id)
    current = next((r for r in order.refunds if r.refund_id == refund_id), None)
    try:
        data = _unwrap(await repository.fetch_refund(token, order_id, refund_id))
    except BackendError as e:
        raise RefundFailure(f"Statut du remboursement indisponible: {e.message}", order_id=order_id, refund_id=refund_id) from e

    fresh = RefundRecord.from_payload(order_id, data, amount=current.amount if current else None)
    if current is None:
        return fresh
    try:
        updated = current.with_gateway_status(fresh.refund_status, refunded_at=fresh.refunded_at, error=fresh.refund_error)
    except ValueError as e:
        logger.warning("refunds.refresh refused order_id=%s refund_id=%s: %s", order_id, refund_id, e)
        raise RefundFailure(str(e), order_id=order_id, refund_id=refund_id) from e
    if updated.refund_status != current.refund_status:
        logger.info("refunds.refresh refund_id=%s %s -> %s", refund_id, current.refund_status, updated.refund_status)
    return updated


def payment_display_state(order: Order) -> str:
    """
    État de paiement affiché au client; total et partiel ne sont jamais confondus.
    refunded > partially_refunded > refund_pending > refund_failed > paymentStatus
    """
    if order.payment_status == "refunded":
        return "refunded"
    processed = refunded_amount(order, (REFUND_PROCESSED,))
    if processed > 0 and processed >= order.total:
        return "refunded"
    if processed > 0:
        return "partially_refunded"
    if any(r.refund_status == REFUND_PENDING for r in order.refunds):
        return "refund_pending"
    if any(r.refund_status == REFUND_FAILED for r in order.refunds):
        return "refund_failed"
    return order.payment_status


def order_summary(order: Order) -> Dict[str, Any]:
    """Commande + état de paiement affiché et reste remboursable."""
    body = order.to_dict()
    body["paymentDisplayState"] = payment_display_state(order)
    body["refundableAmount"] = str(refundable_amount(order))
    return body
