"""
Payment Verification Handler: confronte la preuve normalisée au contexte de la tentative
puis délègue la vérification de signature au backend (le secret n'est jamais côté vitrine).
Toute erreur après débit possible porte le payment_id pour le support.
"""
from typing import Any, Dict, Optional
import logging

from storefront.errors import BackendError, BackendUnavailable, VerificationFailure
from storefront.orders import service as orders_service
from storefront.orders.models import Order
from storefront.payments import repository
from storefront.payments.context import CheckoutContext
from storefront.payments.proof import PaymentProof

logger = logging.getLogger(__name__)


def _support_message(message: str, payment_id: str) -> str:
    return f"{message} Contactez le support avec la référence paiement {payment_id}."


def _is_verified(data: Dict[str, Any]) -> bool:
    flag = data.get("verified")
    if flag is None:
        flag = data.get("success")
    return flag is True


async def verify_payment(token: Optional[str], proof: PaymentProof, context: CheckoutContext) -> Order:
    """
    - Commande passerelle différente du contexte -> VerificationFailure non retriable
    - Backend injoignable / refus / verified != true -> VerificationFailure non retriable
    - Succès -> commande relue (réponse ou GET /orders/{id})
    """
    if proof.gateway_order_id != context.gateway_order_id:
        logger.error(
            "payments.verify gateway order mismatch attempt=%s expected=%s received=%s payment_id=%s",
            context.attempt_id, context.gateway_order_id, proof.gateway_order_id, proof.payment_id,
        )
        raise VerificationFailure(
            _support_message("Le paiement ne correspond pas à cette commande.", proof.payment_id),
            payment_id=proof.payment_id,
            retriable=False,
        )

    body = {
        "gatewayOrderId": proof.gateway_order_id,
        "paymentId": proof.payment_id,
        "signature": proof.signature,
        "orderId": context.order_id,
    }
    try:
        data = await repository.verify_payment(token, body)
    except BackendUnavailable as e:
        logger.error("payments.verify backend unreachable attempt=%s payment_id=%s: %s", context.attempt_id, proof.payment_id, e)
        raise VerificationFailure(
            _support_message("Vérification du paiement impossible pour le moment.", proof.payment_id),
            payment_id=proof.payment_id,
            retriable=False,
        ) from e
    except BackendError as e:
        logger.error("payments.verify rejected attempt=%s payment_id=%s: %s", context.attempt_id, proof.payment_id, e)
        raise VerificationFailure(
            _support_message(f"Paiement refusé: {e.message}.", proof.payment_id),
            payment_id=proof.payment_id,
            retriable=False,
        ) from e

    data = data if isinstance(data, dict) else {}
    if not _is_verified(data):
        reason = data.get("message") or "signature invalide"
        logger.error("payments.verify not verified attempt=%s payment_id=%s: %s", context.attempt_id, proof.payment_id, reason)
        raise VerificationFailure(
            _support_message(f"Paiement non vérifié ({reason}).", proof.payment_id),
            payment_id=proof.payment_id,
            retriable=False,
        )

    logger.info("payments.verify ok attempt=%s order_id=%s payment_id=%s", context.attempt_id, context.order_id, proof.payment_id)
    payload = data.get("order")
    if isinstance(payload, dict):
        try:
            return Order.from_payload(payload)
        except ValueError:
            logger.warning("payments.verify order payload without id, re-reading order %s", context.order_id)
    return await orders_service.get_order(token, context.order_id)
