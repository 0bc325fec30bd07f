from decimal import Decimal

from storefront.cart import local as local_cart
from storefront.cart.models import CartLine, aggregate_lines, cart_subtotal, line_key


def _line(pid, qty, price="10", variant=None):
    return CartLine(product_id=pid, quantity=qty, unit_price=Decimal(price), variant_id=variant)


def test_line_key_defaults_variant():
    assert line_key("p1") == ("p1", "default")
    assert line_key("p1", "red") == ("p1", "red")
    assert _line("p1", 1).key == line_key("p1", None)


def test_aggregate_lines_merges_and_skips_invalid():
    lines = aggregate_lines([
        {"productId": "p1", "quantity": 1, "unitPrice": "10"},
        {"product_id": "p1", "quantity": 2, "price": "12"},
        {"productId": "p1", "variantId": "red", "quantity": 1},
        {"productId": "", "quantity": 3},
        {"productId": "p2", "quantity": 0},
        {"product": {"id": "p3"}, "quantity": "2"},
    ])
    assert [(l.product_id, l.variant_id, l.quantity) for l in lines] == [
        ("p1", None, 3),
        ("p1", "red", 1),
        ("p3", None, 2),
    ]
    # le dernier prix l'emporte
    assert lines[0].unit_price == Decimal("12")


def test_add_item_merges_same_variant_only():
    session = {}
    local_cart.add_item(session, _line("p1", 1, "100"))
    local_cart.add_item(session, _line("p1", 2, "90"))
    lines = local_cart.add_item(session, _line("p1", 1, "100", variant="xl"))

    assert len(lines) == 2
    assert lines[0].quantity == 3
    assert lines[0].unit_price == Decimal("90")
    assert lines[1].variant_id == "xl"
    # la session contient du JSON sérialisable (cookie signé)
    assert session["cart"][0] == {"productId": "p1", "variantId": None, "quantity": 3, "unitPrice": "90"}


def test_update_remove_and_clear():
    session = {}
    local_cart.add_item(session, _line("p1", 1))
    local_cart.add_item(session, _line("p2", 1, variant="blue"))

    lines = local_cart.update_quantity(session, "p2", 4, variant_id="blue")
    assert [l.quantity for l in lines] == [1, 4]

    lines = local_cart.update_quantity(session, "p1", 0)
    assert [l.product_id for l in lines] == ["p2"]

    lines = local_cart.remove_item(session, "p2")  # mauvaise variante: rien
    assert len(lines) == 1
    assert local_cart.remove_item(session, "p2", "blue") == []

    local_cart.add_item(session, _line("p3", 1))
    local_cart.clear_cart(session)
    assert local_cart.load_cart(session) == []


def test_cart_view_and_subtotal():
    lines = [_line("p1", 2, "110"), _line("p2", 1, "0.50")]
    assert cart_subtotal(lines) == Decimal("220.50")
    view = local_cart.cart_view(lines)
    assert view["count"] == 3
    assert view["subtotal"] == "220.50"
