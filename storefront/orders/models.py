# module storefront.orders.models
"""Copies en lecture des commandes du backend (le backend reste propriétaire).
- Order: instantané immuable (id, numéro, montants, statuts, lignes figées, remboursements).
- ShippingAddress: adresse complète exigée avant création.
- RefundRecord: remboursement attaché à une commande, terminal une fois processed/failed.
"""
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from storefront.cart.models import CartLine, to_decimal

ORDER_STATUSES = ("pending", "paid", "processing", "shipped", "delivered", "cancelled", "refunded")
PAYMENT_STATUSES = ("pending", "created", "verification_pending", "paid", "failed", "refunded")

REFUND_PENDING = "pending"
REFUND_PROCESSED = "processed"
REFUND_FAILED = "failed"
REFUND_STATUSES = (REFUND_PENDING, REFUND_PROCESSED, REFUND_FAILED)
REFUND_TERMINAL = (REFUND_PROCESSED, REFUND_FAILED)

ADDRESS_FIELDS = ("street", "city", "state", "zipCode", "country")


def derive_order_number(order_id: str, created_at: Optional[datetime] = None) -> str:
    """Numéro lisible stable dérivé de l'id: ORD-<AAAAMMJJ>-<8 derniers caractères>."""
    day = (created_at or datetime.now(timezone.utc)).strftime("%Y%m%d")
    suffix = "".join(c for c in str(order_id) if c.isalnum())[-8:].upper()
    return f"ORD-{day}-{suffix}"


def _parse_datetime(value: Any) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


@dataclass(frozen=True)
class ShippingAddress:
    street: str
    city: str
    state: str
    zip_code: str
    country: str
    name: Optional[str] = None
    phone: Optional[str] = None

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "ShippingAddress":
        data = data or {}
        return cls(
            street=str(data.get("street") or data.get("address1") or "").strip(),
            city=str(data.get("city") or "").strip(),
            state=str(data.get("state") or "").strip(),
            zip_code=str(data.get("zipCode") or data.get("zip_code") or "").strip(),
            country=str(data.get("country") or "").strip(),
            name=(data.get("name") or None),
            phone=(data.get("phone") or None),
        )

    def missing_fields(self) -> List[str]:
        values = {
            "street": self.street,
            "city": self.city,
            "state": self.state,
            "zipCode": self.zip_code,
            "country": self.country,
        }
        return [name for name in ADDRESS_FIELDS if not values[name]]

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "street": self.street,
            "city": self.city,
            "state": self.state,
            "zipCode": self.zip_code,
            "country": self.country,
        }
        if self.name:
            body["name"] = self.name
        if self.phone:
            body["phone"] = self.phone
        return body


@dataclass(frozen=True)
class RefundRecord:
    order_id: str
    amount: Decimal
    refund_id: str
    refund_status: str = REFUND_PENDING
    reason: Optional[str] = None
    refunded_at: Optional[datetime] = None
    refund_error: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.refund_status in REFUND_TERMINAL

    def with_gateway_status(self, status: str, refunded_at: Optional[datetime] = None, error: Optional[str] = None) -> "RefundRecord":
        """Nouvel enregistrement portant le statut renvoyé par la passerelle (l'ancien n'est pas modifié)."""
        if self.is_terminal and status != self.refund_status:
            raise ValueError(f"Remboursement {self.refund_id} déjà terminal ({self.refund_status})")
        return replace(
            self,
            refund_status=status,
            refunded_at=refunded_at or self.refunded_at,
            refund_error=error if status == REFUND_FAILED else None,
        )

    @classmethod
    def from_payload(cls, order_id: str, data: Dict[str, Any], amount: Any = None, reason: Optional[str] = None) -> "RefundRecord":
        status = normalize_refund_status(data.get("refundStatus") or data.get("status"))
        return cls(
            order_id=str(order_id),
            amount=to_decimal(data.get("refundAmount", data.get("amount", amount))),
            refund_id=str(data.get("refundId") or data.get("id") or ""),
            refund_status=status,
            reason=data.get("reason") or reason,
            refunded_at=_parse_datetime(data.get("refundedAt") or data.get("processedAt")),
            refund_error=(data.get("refundError") or data.get("error") or None) if status == REFUND_FAILED else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "orderId": self.order_id,
            "refundId": self.refund_id,
            "amount": str(self.amount),
            "refundStatus": self.refund_status,
            "reason": self.reason,
            "refundedAt": self.refunded_at.isoformat() if self.refunded_at else None,
            "refundError": self.refund_error,
        }


def normalize_refund_status(value: Any) -> str:
    """
    Lit explicitement le statut passerelle.
    - processed/succeeded/success -> processed
    - failed/rejected/error -> failed
    - tout le reste (absent, created, accepted, ...) -> pending: jamais de succès implicite
    """
    status = str(value or "").strip().lower()
    if status in ("processed", "succeeded", "success", "completed"):
        return REFUND_PROCESSED
    if status in ("failed", "rejected", "error", "cancelled"):
        return REFUND_FAILED
    return REFUND_PENDING


@dataclass(frozen=True)
class Order:
    order_id: str
    order_number: str
    total: Decimal
    status: str = "pending"
    payment_status: str = "pending"
    payment_method: Optional[str] = None
    subtotal: Decimal = Decimal("0")
    tax: Decimal = Decimal("0")
    discount: Decimal = Decimal("0")
    shipping_cost: Decimal = Decimal("0")
    shipping_address: Optional[ShippingAddress] = None
    items: Tuple[CartLine, ...] = ()
    refunds: Tuple[RefundRecord, ...] = field(default_factory=tuple)
    created_at: Optional[datetime] = None

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "Order":
        """
        Construit un Order depuis la réponse backend (tolérant aux variantes id/_id, shipping/shippingCost).
        - orderNumber absent -> dérivé de l'id (stable pour la même commande)
        """
        if isinstance(data.get("data"), dict) and not data.get("id"):
            data = data["data"]
        order_id = str(data.get("id") or data.get("_id") or data.get("orderId") or "")
        if not order_id:
            raise ValueError("Réponse commande sans identifiant")
        created_at = _parse_datetime(data.get("createdAt"))
        items = tuple(
            line for line in (CartLine.from_payload(it) for it in data.get("items") or [] if isinstance(it, dict)) if line
        )
        refunds = tuple(
            RefundRecord.from_payload(order_id, r) for r in data.get("refunds") or [] if isinstance(r, dict)
        )
        address = data.get("shippingAddress")
        return cls(
            order_id=order_id,
            order_number=str(data.get("orderNumber") or derive_order_number(order_id, created_at)),
            total=to_decimal(data.get("total")),
            status=str(data.get("status") or "pending").lower(),
            payment_status=str(data.get("paymentStatus") or "pending").lower(),
            payment_method=data.get("paymentMethod") or None,
            subtotal=to_decimal(data.get("subtotal")),
            tax=to_decimal(data.get("tax")),
            discount=to_decimal(data.get("discount")),
            shipping_cost=to_decimal(data.get("shippingCost", data.get("shipping"))),
            shipping_address=ShippingAddress.from_payload(address) if isinstance(address, dict) else None,
            items=items,
            refunds=refunds,
            created_at=created_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.order_id,
            "orderNumber": self.order_number,
            "status": self.status,
            "paymentStatus": self.payment_status,
            "paymentMethod": self.payment_method,
            "subtotal": str(self.subtotal),
            "tax": str(self.tax),
            "discount": str(self.discount),
            "shippingCost": str(self.shipping_cost),
            "total": str(self.total),
            "shippingAddress": self.shipping_address.to_dict() if self.shipping_address else None,
            "items": [line.to_dict() for line in self.items],
            "refunds": [r.to_dict() for r in self.refunds],
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
