"""
Panier local (détenu côté client), stocké dans la session signée (SessionMiddleware).
C'est la source de vérité pour la *présence* des lignes au moment du checkout.
"""
from typing import Any, Dict, List, MutableMapping, Optional

from storefront.cart.models import CartLine, aggregate_lines, cart_subtotal, line_key

SESSION_KEY = "cart"


def load_cart(session: MutableMapping[str, Any]) -> List[CartLine]:
    return aggregate_lines(session.get(SESSION_KEY) or [])


def save_cart(session: MutableMapping[str, Any], lines: List[CartLine]) -> List[CartLine]:
    session[SESSION_KEY] = [line.to_dict() for line in lines]
    return lines


def add_item(session: MutableMapping[str, Any], line: CartLine) -> List[CartLine]:
    """
    Ajoute une ligne: même produit + même variante -> quantité cumulée et prix rafraîchi,
    sinon nouvelle ligne (deux variantes d'un même produit restent distinctes).
    """
    lines = load_cart(session)
    for i, existing in enumerate(lines):
        if existing.key == line.key:
            lines[i] = CartLine(
                product_id=existing.product_id,
                variant_id=existing.variant_id,
                quantity=existing.quantity + line.quantity,
                unit_price=line.unit_price,
            )
            return save_cart(session, lines)
    lines.append(line)
    return save_cart(session, lines)


def update_quantity(session: MutableMapping[str, Any], product_id: str, quantity: int, variant_id: Optional[str] = None) -> List[CartLine]:
    key = line_key(product_id, variant_id)
    lines = load_cart(session)
    if quantity < 1:
        return save_cart(session, [l for l in lines if l.key != key])
    return save_cart(session, [l.with_quantity(quantity) if l.key == key else l for l in lines])


def remove_item(session: MutableMapping[str, Any], product_id: str, variant_id: Optional[str] = None) -> List[CartLine]:
    key = line_key(product_id, variant_id)
    return save_cart(session, [l for l in load_cart(session) if l.key != key])


def clear_cart(session: MutableMapping[str, Any]) -> None:
    session.pop(SESSION_KEY, None)


def cart_view(lines: List[CartLine]) -> Dict[str, Any]:
    return {
        "items": [line.to_dict() for line in lines],
        "count": sum(line.quantity for line in lines),
        "subtotal": str(cart_subtotal(lines)),
    }
