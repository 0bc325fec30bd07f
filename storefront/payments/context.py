"""
Tentatives de checkout et leur contexte.

Une tentative = un passage dans la machine d'états:
idle -> cart_synced -> order_created -> gateway_order_created -> widget_open
     -> verification_pending -> verified | verification_failed
     -> cancelled (widget fermé sans paiement)
order_created -> placed (paiement à la livraison: ni passerelle ni widget)
et failed (échec d'une étape de création).

Le CheckoutContext est écrit une seule fois, quand la commande passerelle existe.
Les callbacks du widget relisent la tentative par son id dans le store: jamais de
contexte capturé au lancement puis réutilisé par une autre tentative.
"""
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
import logging
import uuid

from storefront.errors import AttemptNotFound, CheckoutStateError, StorefrontError, VerificationFailure
from storefront.orders.models import Order

logger = logging.getLogger(__name__)


class CheckoutState(str, Enum):
    IDLE = "idle"
    CART_SYNCED = "cart_synced"
    ORDER_CREATED = "order_created"
    GATEWAY_ORDER_CREATED = "gateway_order_created"
    WIDGET_OPEN = "widget_open"
    VERIFICATION_PENDING = "verification_pending"
    VERIFIED = "verified"
    VERIFICATION_FAILED = "verification_failed"
    CANCELLED = "cancelled"
    PLACED = "placed"
    FAILED = "failed"


# IDLE -> ORDER_CREATED: tentative de retry qui réutilise une commande existante
TRANSITIONS = {
    CheckoutState.IDLE: {CheckoutState.CART_SYNCED, CheckoutState.ORDER_CREATED, CheckoutState.FAILED},
    CheckoutState.CART_SYNCED: {CheckoutState.ORDER_CREATED, CheckoutState.FAILED},
    CheckoutState.ORDER_CREATED: {CheckoutState.GATEWAY_ORDER_CREATED, CheckoutState.PLACED, CheckoutState.FAILED},
    CheckoutState.GATEWAY_ORDER_CREATED: {CheckoutState.WIDGET_OPEN, CheckoutState.FAILED},
    CheckoutState.WIDGET_OPEN: {CheckoutState.VERIFICATION_PENDING, CheckoutState.CANCELLED},
    CheckoutState.VERIFICATION_PENDING: {CheckoutState.VERIFIED, CheckoutState.VERIFICATION_FAILED},
}

TERMINAL_STATES = (
    CheckoutState.VERIFIED,
    CheckoutState.VERIFICATION_FAILED,
    CheckoutState.CANCELLED,
    CheckoutState.PLACED,
    CheckoutState.FAILED,
)


@dataclass(frozen=True)
class CheckoutContext:
    attempt_id: str
    user_id: str
    order_id: str
    order_number: str
    gateway_order_id: str
    amount_minor_units: int
    currency: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "attemptId": self.attempt_id,
            "orderId": self.order_id,
            "orderNumber": self.order_number,
            "gatewayOrderId": self.gateway_order_id,
            "amountMinorUnits": self.amount_minor_units,
            "currency": self.currency,
        }


@dataclass
class CheckoutAttempt:
    attempt_id: str
    user_id: str
    state: CheckoutState = CheckoutState.IDLE
    retry_of: Optional[str] = None
    order: Optional[Order] = None
    sync_report: Optional[Dict[str, Any]] = None
    widget: Optional[Dict[str, Any]] = None
    # clé publique renvoyée avec la commande passerelle, reprise par les retries
    gateway_key: Optional[str] = None
    error: Optional[Dict[str, Any]] = None
    retriable: bool = False
    payment_id: Optional[str] = None
    gateway_errors: List[Dict[str, Any]] = field(default_factory=list)
    history: List[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    _context: Optional[CheckoutContext] = field(default=None, repr=False)

    @property
    def context(self) -> Optional[CheckoutContext]:
        return self._context

    @property
    def order_id(self) -> Optional[str]:
        return self.order.order_id if self.order else None

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def transition(self, target: CheckoutState) -> None:
        allowed = TRANSITIONS.get(self.state, set())
        if target not in allowed:
            raise CheckoutStateError(
                f"Transition interdite: {self.state.value} -> {target.value}",
                attempt_id=self.attempt_id,
                state=self.state.value,
            )
        logger.info("checkout.attempt %s %s -> %s", self.attempt_id, self.state.value, target.value)
        self.history.append(self.state.value)
        self.state = target

    def bind_context(self, context: CheckoutContext) -> None:
        """Écriture unique du contexte (passage à gateway_order_created)."""
        if self._context is not None:
            raise CheckoutStateError("Contexte de paiement déjà défini pour cette tentative", attempt_id=self.attempt_id)
        if context.attempt_id != self.attempt_id:
            raise CheckoutStateError("Contexte d'une autre tentative", attempt_id=self.attempt_id)
        self.transition(CheckoutState.GATEWAY_ORDER_CREATED)
        self._context = context

    def fail(self, error: StorefrontError, retriable: bool) -> None:
        """Échec d'une étape de création: état failed, l'erreur est annotée pour le client."""
        self.transition(CheckoutState.FAILED)
        self._annotate(error, retriable)

    def fail_verification(self, error: VerificationFailure) -> None:
        self.transition(CheckoutState.VERIFICATION_FAILED)
        self.payment_id = error.payment_id or self.payment_id
        self._annotate(error, error.retriable)

    def _annotate(self, error: StorefrontError, retriable: bool) -> None:
        self.retriable = retriable and self.order is not None
        error.extra.setdefault("attempt_id", self.attempt_id)
        error.extra.setdefault("order_id", self.order_id)
        error.extra["retriable"] = self.retriable
        self.error = error.to_dict()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "attemptId": self.attempt_id,
            "state": self.state.value,
            "retryOf": self.retry_of,
            "orderId": self.order_id,
            "orderNumber": self.order.order_number if self.order else None,
            "context": self._context.to_dict() if self._context else None,
            "sync": self.sync_report,
            "widget": self.widget if self.state == CheckoutState.WIDGET_OPEN else None,
            "error": self.error,
            "retriable": self.retriable,
            "paymentId": self.payment_id,
            "order": self.order.to_dict() if self.order else None,
            "createdAt": self.created_at.isoformat(),
        }


class AttemptStore:
    """
    Tentatives en mémoire, par processus (un seul event loop).
    Les plus anciennes sont évincées au-delà de max_attempts.
    """

    def __init__(self, max_attempts: int = 10000):
        self.max_attempts = max_attempts
        self._attempts: "OrderedDict[str, CheckoutAttempt]" = OrderedDict()

    def create(self, user_id: str, retry_of: Optional[str] = None) -> CheckoutAttempt:
        attempt = CheckoutAttempt(attempt_id=uuid.uuid4().hex, user_id=str(user_id), retry_of=retry_of)
        self._attempts[attempt.attempt_id] = attempt
        while len(self._attempts) > self.max_attempts:
            self._attempts.popitem(last=False)
        return attempt

    def get(self, attempt_id: str, user_id: str) -> CheckoutAttempt:
        """Tentative d'un autre utilisateur -> même réponse que tentative inconnue."""
        attempt = self._attempts.get(attempt_id)
        if attempt is None or attempt.user_id != str(user_id):
            raise AttemptNotFound("Tentative de paiement introuvable", attempt_id=attempt_id)
        return attempt

    def clear(self) -> None:
        self._attempts.clear()

    def __len__(self) -> int:
        return len(self._attempts)


_store: Optional[AttemptStore] = None


def get_attempt_store() -> AttemptStore:
    global _store
    if _store is None:
        _store = AttemptStore()
    return _store
