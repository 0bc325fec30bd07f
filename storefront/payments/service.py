"""
Cas d'usage 'checkout': orchestre cart, orders, gateway, session et verification.

Étapes de création strictement séquentielles pour une tentative:
sync panier -> commande backend -> commande passerelle -> options du widget.
Le widget est ensuite ouvert côté navigateur; ses callbacks (complete/dismiss/failed)
reviennent sur la tentative par son id.
"""
from typing import Any, Dict, Iterable, Optional
import logging

from storefront import config
from storefront.cart import service as cart_service
from storefront.cart.models import aggregate_lines
from storefront.errors import (
    CheckoutStateError,
    ConfigurationError,
    PricingError,
    StorefrontError,
    ValidationError,
    VerificationFailure,
)
from storefront.orders import service as orders_service
from storefront.orders.models import Order
from storefront.payments import gateway, session, verification
from storefront.payments.amounts import to_minor_units
from storefront.payments.context import CheckoutAttempt, CheckoutContext, CheckoutState, get_attempt_store
from storefront.payments.proof import normalize_payment_proof

logger = logging.getLogger(__name__)

RETRYABLE_STATES = (CheckoutState.FAILED, CheckoutState.VERIFICATION_FAILED, CheckoutState.CANCELLED)


def _user_id(user: Dict[str, Any]) -> str:
    return str(user.get("id") or user.get("sub") or "")


async def _open_payment(attempt: CheckoutAttempt, user: Dict[str, Any], order: Order, base_url: Optional[str]) -> CheckoutAttempt:
    """order_created -> gateway_order_created -> widget_open."""
    try:
        gateway_order = await gateway.create_gateway_order(user.get("token"), order)
    except StorefrontError as e:
        attempt.fail(e, retriable=not isinstance(e, ConfigurationError))
        raise

    context = CheckoutContext(
        attempt_id=attempt.attempt_id,
        user_id=attempt.user_id,
        order_id=order.order_id,
        order_number=order.order_number,
        gateway_order_id=gateway_order.gateway_order_id,
        amount_minor_units=gateway_order.amount_minor_units,
        currency=gateway_order.currency,
    )
    attempt.gateway_key = gateway_order.key
    return _launch_widget(attempt, context, user, order, base_url)


def _launch_widget(attempt: CheckoutAttempt, context: CheckoutContext, user: Dict[str, Any], order: Order, base_url: Optional[str]) -> CheckoutAttempt:
    attempt.bind_context(context)
    attempt.widget = session.build_widget_launch(context, attempt.gateway_key, user, order, base_url)
    attempt.transition(CheckoutState.WIDGET_OPEN)
    return attempt


def _reopen_payment(attempt: CheckoutAttempt, previous: CheckoutAttempt, user: Dict[str, Any], order: Order, base_url: Optional[str]) -> CheckoutAttempt:
    """
    Réutilise la commande passerelle de la tentative précédente: nouveau contexte
    (nouvel attemptId), même gatewayOrderId, même montant.
    """
    prior = previous.context
    try:
        amount = to_minor_units(order.total, prior.currency)
    except ValueError as e:
        error = PricingError(str(e), order_id=order.order_id)
        attempt.fail(error, retriable=False)
        raise error from e
    if amount != prior.amount_minor_units:
        error = PricingError(
            "Le montant de la commande a changé depuis l'ouverture du paiement",
            order_id=order.order_id,
        )
        attempt.fail(error, retriable=False)
        raise error

    context = CheckoutContext(
        attempt_id=attempt.attempt_id,
        user_id=attempt.user_id,
        order_id=order.order_id,
        order_number=order.order_number,
        gateway_order_id=prior.gateway_order_id,
        amount_minor_units=prior.amount_minor_units,
        currency=prior.currency,
    )
    attempt.gateway_key = previous.gateway_key
    return _launch_widget(attempt, context, user, order, base_url)


async def start_checkout(
    user: Dict[str, Any],
    items: Iterable[Any],
    shipping_address: Any,
    shipping_cost: Any = 0,
    coupon_id: Optional[str] = None,
    payment_method: str = orders_service.DEFAULT_PAYMENT_METHOD,
    expected_total: Any = None,
    base_url: Optional[str] = None,
) -> CheckoutAttempt:
    """
    Nouvelle tentative: aucune réutilisation de contexte, deux appels concurrents
    produisent deux commandes indépendantes.
    - Panier local vide / adresse incomplète -> ValidationError avant tout appel réseau
    - Échec de création de commande -> aucune commande passerelle
    - cod/cash: la tentative s'arrête à la commande (état placed, pas de widget)
    """
    lines = aggregate_lines(items)
    if not lines:
        raise ValidationError("Votre panier est vide", fields=["items"])
    address = orders_service.validate_address(shipping_address)
    orders_service.validate_shipping_cost(shipping_cost)
    method = orders_service.validate_payment_method(payment_method)

    token = user.get("token")
    attempt = get_attempt_store().create(_user_id(user))
    logger.info("checkout.start attempt=%s user=%s lines=%s", attempt.attempt_id, attempt.user_id, len(lines))

    report = await cart_service.sync_cart(lines, token)
    attempt.sync_report = report.to_dict()
    attempt.transition(CheckoutState.CART_SYNCED)

    try:
        order = await orders_service.create_order(
            token,
            address,
            shipping_cost=shipping_cost,
            coupon_id=coupon_id,
            payment_method=method,
            expected_total=expected_total,
            currency=config.CHECKOUT_CURRENCY,
        )
    except StorefrontError as e:
        attempt.fail(e, retriable=False)
        raise
    attempt.order = order
    attempt.transition(CheckoutState.ORDER_CREATED)

    if orders_service.is_offline_payment(method):
        attempt.transition(CheckoutState.PLACED)
        logger.info("checkout.placed attempt=%s order_id=%s method=%s", attempt.attempt_id, order.order_id, method)
        return attempt

    return await _open_payment(attempt, user, order, base_url)


async def retry_checkout(user: Dict[str, Any], attempt_id: str, base_url: Optional[str] = None) -> CheckoutAttempt:
    """
    Relance le paiement d'une commande existante: nouvelle tentative, nouveau contexte,
    même orderId (pas de nouvelle commande backend).
    La commande passerelle déjà créée est réutilisée; elle n'est créée ici que si
    la tentative précédente a échoué avant de l'obtenir.
    """
    store = get_attempt_store()
    previous = store.get(attempt_id, _user_id(user))
    if previous.state not in RETRYABLE_STATES or previous.order is None:
        raise CheckoutStateError(
            f"Cette tentative ne peut pas être relancée (état: {previous.state.value})",
            attempt_id=attempt_id,
            state=previous.state.value,
        )
    if previous.state != CheckoutState.CANCELLED and not previous.retriable:
        raise CheckoutStateError(
            "Échec non relançable: contactez le support",
            attempt_id=attempt_id,
            payment_id=previous.payment_id,
        )

    order = await orders_service.get_order(user.get("token"), previous.order.order_id)
    if order.payment_status == "paid":
        raise CheckoutStateError(f"Commande {order.order_number} déjà payée", order_id=order.order_id)
    if order.status != "pending":
        raise CheckoutStateError(f"Commande {order.order_number} non payable (statut: {order.status})", order_id=order.order_id)

    attempt = store.create(_user_id(user), retry_of=previous.attempt_id)
    attempt.order = order
    attempt.transition(CheckoutState.ORDER_CREATED)
    logger.info("checkout.retry attempt=%s retry_of=%s order_id=%s", attempt.attempt_id, previous.attempt_id, order.order_id)
    if previous.context is None:
        # la commande passerelle n'a jamais été créée (passerelle indisponible)
        return await _open_payment(attempt, user, order, base_url)
    return _reopen_payment(attempt, previous, user, order, base_url)


def _require_widget_open(attempt: CheckoutAttempt, action: str) -> None:
    if attempt.state != CheckoutState.WIDGET_OPEN:
        raise CheckoutStateError(
            f"Action '{action}' impossible dans l'état {attempt.state.value}",
            attempt_id=attempt.attempt_id,
            state=attempt.state.value,
        )


async def complete_checkout(user: Dict[str, Any], attempt_id: str, payload: Any) -> CheckoutAttempt:
    """
    Callback de succès du widget. Le passage à verification_pending précède tout await:
    un second callback concurrent pour la même tentative est refusé.
    """
    attempt = get_attempt_store().get(attempt_id, _user_id(user))
    _require_widget_open(attempt, "complete")
    attempt.transition(CheckoutState.VERIFICATION_PENDING)
    context = attempt.context

    try:
        proof = normalize_payment_proof(payload)
        attempt.payment_id = proof.payment_id
        order = await verification.verify_payment(user.get("token"), proof, context)
    except VerificationFailure as e:
        attempt.fail_verification(e)
        logger.warning(
            "checkout.verify failed attempt=%s payment_id=%s retriable=%s: %s",
            attempt.attempt_id, e.payment_id, e.retriable, e.message,
        )
        raise
    except StorefrontError as e:
        # relecture de commande en échec après une vérification réussie côté backend
        failure = VerificationFailure(e.message, payment_id=attempt.payment_id, retriable=False)
        attempt.fail_verification(failure)
        raise failure from e

    attempt.order = order
    attempt.transition(CheckoutState.VERIFIED)
    return attempt


def dismiss_checkout(user: Dict[str, Any], attempt_id: str) -> CheckoutAttempt:
    """Widget fermé sans paiement: cancelled, la commande reste pending, pas de vérification."""
    attempt = get_attempt_store().get(attempt_id, _user_id(user))
    if attempt.state == CheckoutState.CANCELLED:
        return attempt
    _require_widget_open(attempt, "dismiss")
    attempt.transition(CheckoutState.CANCELLED)
    return attempt


def report_payment_failure(user: Dict[str, Any], attempt_id: str, payload: Any) -> CheckoutAttempt:
    """
    Événement payment.failed du widget: journalisé, la tentative reste widget_open
    (le widget propose lui-même un nouvel essai).
    """
    attempt = get_attempt_store().get(attempt_id, _user_id(user))
    _require_widget_open(attempt, "failed")
    data = payload if isinstance(payload, dict) else {}
    error = data.get("error") if isinstance(data.get("error"), dict) else data
    metadata = error.get("metadata") if isinstance(error.get("metadata"), dict) else {}
    entry = {
        "code": error.get("code"),
        "description": error.get("description"),
        "source": error.get("source"),
        "step": error.get("step"),
        "reason": error.get("reason"),
        "paymentId": metadata.get("payment_id"),
    }
    entry = {k: v for k, v in entry.items() if v}
    attempt.gateway_errors.append(entry)
    logger.warning("checkout.payment_failed attempt=%s order_id=%s %s", attempt.attempt_id, attempt.order_id, entry)
    return attempt


def get_attempt(user: Dict[str, Any], attempt_id: str) -> CheckoutAttempt:
    return get_attempt_store().get(attempt_id, _user_id(user))
