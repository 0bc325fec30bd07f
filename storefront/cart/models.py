"""
Lignes de panier (local et distant).
Identité d'une ligne: (product_id, variant_id ou "default"), jamais un id de ligne synthétique.
"""
from dataclasses import dataclass, replace
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional, Tuple

DEFAULT_VARIANT = "default"

LineKey = Tuple[str, str]


def line_key(product_id: str, variant_id: Optional[str] = None) -> LineKey:
    return (str(product_id), str(variant_id or DEFAULT_VARIANT))


def to_decimal(value: Any, default: str = "0") -> Decimal:
    """Convertit str|int|float|Decimal en Decimal (via str pour éviter les artefacts float)."""
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value)) if value is not None and value != "" else Decimal(default)
    except (InvalidOperation, ValueError):
        return Decimal(default)


@dataclass(frozen=True)
class CartLine:
    product_id: str
    quantity: int
    unit_price: Decimal = Decimal("0")
    variant_id: Optional[str] = None

    @property
    def key(self) -> LineKey:
        return line_key(self.product_id, self.variant_id)

    def with_quantity(self, quantity: int) -> "CartLine":
        return replace(self, quantity=quantity)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "productId": self.product_id,
            "variantId": self.variant_id,
            "quantity": self.quantity,
            "unitPrice": str(self.unit_price),
        }

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> Optional["CartLine"]:
        """
        Construit une ligne depuis un dict tolérant (front ou backend).
        - productId | product_id | product.id
        - variantId | variant_id
        - unitPrice | price
        Retourne None si la ligne est invalide (id vide, quantité < 1).
        """
        product = data.get("product") if isinstance(data.get("product"), dict) else {}
        product_id = str(data.get("productId") or data.get("product_id") or product.get("id") or "").strip()
        try:
            quantity = int(data.get("quantity") or 0)
        except (TypeError, ValueError):
            quantity = 0
        if not product_id or quantity < 1:
            return None
        variant_id = data.get("variantId") or data.get("variant_id") or None
        price = data.get("unitPrice", data.get("unit_price", data.get("price")))
        return cls(
            product_id=product_id,
            quantity=quantity,
            unit_price=to_decimal(price),
            variant_id=str(variant_id) if variant_id else None,
        )


def aggregate_lines(items: Iterable[Dict[str, Any]]) -> List[CartLine]:
    """
    Agrège un panier brut en lignes uniques par identité (produit + variante).
    - Ignore les lignes invalides (id vide, quantity <= 0).
    - Les quantités d'une même identité s'additionnent, le dernier prix l'emporte.
    - L'ordre de première apparition est conservé.
    """
    merged: Dict[LineKey, CartLine] = {}
    for raw in items or []:
        line = raw if isinstance(raw, CartLine) else CartLine.from_payload(raw or {})
        if line is None or line.quantity < 1:
            continue
        existing = merged.get(line.key)
        if existing:
            merged[line.key] = replace(line, quantity=existing.quantity + line.quantity)
        else:
            merged[line.key] = line
    return list(merged.values())


def cart_subtotal(lines: Iterable[CartLine]) -> Decimal:
    return sum((line.unit_price * line.quantity for line in lines), Decimal("0"))
