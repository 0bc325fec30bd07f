"""
Normalisation du callback de fin de paiement (widget Razorpay).

Les noms de champs du payload ne sont pas contractuels: selon la surface d'intégration
(checkout.js, SDK mobile, redirection, webhook relayé) on reçoit snake_case, camelCase
ou des noms génériques, parfois imbriqués sous "response"/"payload"/"data".
Le payload est traité comme un sac non typé, jamais comme une structure de confiance,
et n'est jamais persisté ni journalisé en entier (la signature ne sort pas d'ici sauf vers le backend).
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple
import json

from storefront.errors import MissingSignatureError, VerificationFailure

ORDER_ID_KEYS: Tuple[str, ...] = (
    "razorpay_order_id",
    "razorpayOrderId",
    "gateway_order_id",
    "gatewayOrderId",
    "order_id",
)
PAYMENT_ID_KEYS: Tuple[str, ...] = (
    "razorpay_payment_id",
    "razorpayPaymentId",
    "gateway_payment_id",
    "gatewayPaymentId",
    "payment_id",
    "paymentId",
)
SIGNATURE_KEYS: Tuple[str, ...] = (
    "razorpay_signature",
    "razorpaySignature",
    "gateway_signature",
    "gatewaySignature",
    "signature",
)
NESTED_KEYS: Tuple[str, ...] = ("response", "payload", "data")


@dataclass(frozen=True)
class PaymentProof:
    gateway_order_id: str
    payment_id: str
    signature: str

    def __repr__(self) -> str:
        return f"PaymentProof(gateway_order_id={self.gateway_order_id!r}, payment_id={self.payment_id!r}, signature=***)"


def _as_mapping(payload: Any) -> Dict[str, Any]:
    if isinstance(payload, (bytes, bytearray)):
        payload = payload.decode("utf-8", errors="replace")
    if isinstance(payload, str):
        try:
            payload = json.loads(payload)
        except ValueError:
            raise VerificationFailure("Réponse de paiement illisible (JSON invalide)")
    if not isinstance(payload, dict):
        raise VerificationFailure("Réponse de paiement illisible (objet attendu)")
    return payload


def _layers(payload: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Niveau racine puis un niveau d'imbrication (response/payload/data)."""
    layers = [payload]
    for key in NESTED_KEYS:
        nested = payload.get(key)
        if isinstance(nested, str):
            try:
                nested = json.loads(nested)
            except ValueError:
                nested = None
        if isinstance(nested, dict):
            layers.append(nested)
    return layers


def _pick(layers: List[Dict[str, Any]], keys: Tuple[str, ...], field_name: str) -> Optional[str]:
    """
    Première valeur non vide parmi les orthographes acceptées.
    - chaîne vide / espaces -> considérée absente
    - valeur non chaîne -> payload mal formé (retriable)
    """
    for layer in layers:
        for key in keys:
            if key not in layer or layer[key] is None:
                continue
            value = layer[key]
            if not isinstance(value, str):
                raise VerificationFailure(f"Champ {field_name} mal formé dans la réponse de paiement")
            value = value.strip()
            if value:
                return value
    return None


def normalize_payment_proof(payload: Any) -> PaymentProof:
    """
    Ramène le payload du widget au triplet canonique (gateway_order_id, payment_id, signature).
    - Signature absente sous toutes les orthographes -> MissingSignatureError (non retriable:
      un paiement a pu être débité sans preuve côté client; support avec payment_id).
    - Identifiant de commande/paiement absent, payload non objet -> VerificationFailure (retriable).
    """
    layers = _layers(_as_mapping(payload))
    payment_id = _pick(layers, PAYMENT_ID_KEYS, "payment_id")
    signature = _pick(layers, SIGNATURE_KEYS, "signature")
    gateway_order_id = _pick(layers, ORDER_ID_KEYS, "order_id")

    if not signature:
        ref = f" Référence paiement: {payment_id}." if payment_id else ""
        raise MissingSignatureError(
            "Signature de paiement absente: le paiement ne peut pas être prouvé, contactez le support." + ref,
            payment_id=payment_id,
        )

    missing = []
    if not gateway_order_id:
        missing.append("razorpay_order_id")
    if not payment_id:
        missing.append("razorpay_payment_id")
    if missing:
        raise VerificationFailure(
            f"Champs de paiement manquants: {', '.join(missing)}",
            payment_id=payment_id,
            retriable=True,
        )
    return PaymentProof(gateway_order_id=gateway_order_id, payment_id=payment_id, signature=signature)
