"""
Taxonomie d'erreurs de la vitrine.
- Chaque erreur porte un status_code HTTP et un code stable pour le front.
- Rendu JSON centralisé par app_setup.exceptions.register_exception_handlers.
- SyncFailure n'est jamais levée hors du synchroniseur (fail-open).
"""
from typing import Any, Dict, List, Optional


class StorefrontError(Exception):
    status_code = 500
    code = "storefront_error"

    def __init__(self, message: str, **extra: Any):
        super().__init__(message)
        self.message = message
        self.extra = extra

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"detail": self.message, "code": self.code}
        body.update({k: v for k, v in self.extra.items() if v is not None})
        return body


class ValidationError(StorefrontError):
    """Entrée invalide, corrigeable par l'utilisateur."""
    status_code = 400
    code = "validation_error"

    def __init__(self, message: str, fields: Optional[List[str]] = None, **extra: Any):
        super().__init__(message, fields=fields, **extra)
        self.fields = fields or []


class PricingError(StorefrontError):
    """Les montants du backend ne concordent pas avec ceux affichés ou envoyés."""
    status_code = 409
    code = "pricing_error"


class ConfigurationError(StorefrontError):
    """Intégration non configurée: action opérateur requise, pas de retry."""
    status_code = 500
    code = "configuration_error"


class GatewayUnavailable(StorefrontError):
    """Passerelle de paiement injoignable (transitoire)."""
    status_code = 503
    code = "gateway_unavailable"


class BackendError(StorefrontError):
    """Réponse d'erreur du backend REST."""
    status_code = 502
    code = "backend_error"

    def __init__(self, message: str, upstream_status: Optional[int] = None, payload: Any = None):
        super().__init__(message, upstream_status=upstream_status)
        self.upstream_status = upstream_status
        self.payload = payload


class BackendUnavailable(BackendError):
    status_code = 503
    code = "backend_unavailable"


class SyncFailure(StorefrontError):
    """Échec de synchronisation d'une ligne de panier (journalisé puis ignoré)."""
    code = "sync_failure"

    def __init__(self, message: str, product_id: str = "", variant_id: Optional[str] = None, operation: str = ""):
        super().__init__(message, product_id=product_id, variant_id=variant_id, operation=operation)
        self.product_id = product_id
        self.variant_id = variant_id
        self.operation = operation


class VerificationFailure(StorefrontError):
    """
    Échec de vérification du paiement.
    - retriable=True: payload mal formé, l'utilisateur peut relancer un paiement.
    - retriable=False: contacter le support avec payment_id.
    """
    status_code = 422
    code = "verification_failed"

    def __init__(self, message: str, payment_id: Optional[str] = None, retriable: bool = True):
        super().__init__(message, payment_id=payment_id, retriable=retriable)
        self.payment_id = payment_id
        self.retriable = retriable


class MissingSignatureError(VerificationFailure):
    code = "missing_signature"

    def __init__(self, message: str, payment_id: Optional[str] = None):
        super().__init__(message, payment_id=payment_id, retriable=False)


class RefundFailure(StorefrontError):
    status_code = 502
    code = "refund_failed"


class InvalidRefundAmount(ValidationError, RefundFailure):
    """Montant de remboursement hors de (0, total]: rejeté avant tout appel passerelle."""
    status_code = 400
    code = "invalid_refund_amount"


class CheckoutStateError(StorefrontError):
    """Transition interdite dans la machine d'états du checkout."""
    status_code = 409
    code = "invalid_checkout_state"


class AttemptNotFound(StorefrontError):
    status_code = 404
    code = "attempt_not_found"
