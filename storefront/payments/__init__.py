"""
Module 'payments' (feature-first): point d'entrée public des primitives de paiement.
Réunit conversion des montants, commande passerelle, normalisation de la preuve et contexte de tentative.
Les cas d'usage (service, verification, refunds) s'importent par leur module.
"""

from .amounts import to_minor_units, from_minor_units, quantize_amount, same_amount, currency_exponent
from .proof import PaymentProof, normalize_payment_proof
from .context import CheckoutAttempt, CheckoutContext, CheckoutState, AttemptStore, get_attempt_store
from .gateway import GatewayOrder, create_gateway_order
from .session import build_widget_launch

__all__ = [
    # amounts
    "to_minor_units",
    "from_minor_units",
    "quantize_amount",
    "same_amount",
    "currency_exponent",
    # proof
    "PaymentProof",
    "normalize_payment_proof",
    # context
    "CheckoutAttempt",
    "CheckoutContext",
    "CheckoutState",
    "AttemptStore",
    "get_attempt_store",
    # gateway
    "GatewayOrder",
    "create_gateway_order",
    # session
    "build_widget_launch",
]
