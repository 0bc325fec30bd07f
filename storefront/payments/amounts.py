"""
Conversion montant décimal <-> unités mineures (paise, centimes).
Point unique de conversion vers la passerelle: une erreur de facteur ici est silencieuse
et catastrophique, d'où des primitives nommées plutôt qu'un "* 100" en ligne.
"""
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Any

# Exposant ISO 4217 (nombre de décimales) des devises utilisées
CURRENCY_EXPONENTS = {
    "INR": 2,
    "USD": 2,
    "EUR": 2,
    "GBP": 2,
    "AED": 2,
    "SGD": 2,
    "JPY": 0,
    "KRW": 0,
    "BHD": 3,
    "KWD": 3,
}
DEFAULT_EXPONENT = 2


def currency_exponent(currency: str) -> int:
    return CURRENCY_EXPONENTS.get((currency or "").upper(), DEFAULT_EXPONENT)


def as_decimal(amount: Any) -> Decimal:
    """Décimal fini et positif ou nul; float converti via str (0.1 -> Decimal('0.1'))."""
    if isinstance(amount, bool):
        raise ValueError(f"Montant invalide: {amount!r}")
    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount).strip())
    except (InvalidOperation, ValueError):
        raise ValueError(f"Montant invalide: {amount!r}")
    if not value.is_finite():
        raise ValueError(f"Montant invalide: {amount!r}")
    if value < 0:
        raise ValueError(f"Montant négatif: {amount!r}")
    return value


def quantize_amount(amount: Any, currency: str = "INR") -> Decimal:
    exponent = currency_exponent(currency)
    return as_decimal(amount).quantize(Decimal(1).scaleb(-exponent), rounding=ROUND_HALF_UP)


def to_minor_units(amount: Any, currency: str = "INR") -> int:
    """220 / '220.00' / Decimal('220') en INR -> 22000 (arrondi au demi supérieur)."""
    exponent = currency_exponent(currency)
    return int(quantize_amount(amount, currency).scaleb(exponent))


def from_minor_units(minor: int, currency: str = "INR") -> Decimal:
    """22000 en INR -> Decimal('220.00')."""
    if isinstance(minor, bool) or not isinstance(minor, int):
        raise ValueError(f"Unités mineures invalides: {minor!r}")
    if minor < 0:
        raise ValueError(f"Unités mineures négatives: {minor!r}")
    exponent = currency_exponent(currency)
    return (Decimal(minor).scaleb(-exponent)).quantize(Decimal(1).scaleb(-exponent))


def same_amount(a: Any, b: Any, currency: str = "INR") -> bool:
    """Égalité à l'unité mineure près."""
    return to_minor_units(a, currency) == to_minor_units(b, currency)
