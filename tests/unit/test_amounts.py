from decimal import Decimal
import pytest

from storefront.payments.amounts import (
    currency_exponent,
    from_minor_units,
    quantize_amount,
    same_amount,
    to_minor_units,
)


@pytest.mark.parametrize("amount,expected", [
    (220, 22000),
    ("220.00", 22000),
    (Decimal("220"), 22000),
    (0.1, 10),
    ("19.99", 1999),
    ("0.005", 1),
    ("0.004", 0),
])
def test_to_minor_units_inr(amount, expected):
    assert to_minor_units(amount, "INR") == expected


def test_minor_units_round_trip_for_two_decimal_amounts():
    for raw in ("0.01", "1.10", "99.99", "1234.50", "220"):
        amount = Decimal(raw)
        assert from_minor_units(to_minor_units(amount, "INR"), "INR") == amount.quantize(Decimal("0.01"))


def test_float_artifacts_do_not_leak():
    assert to_minor_units(0.1 + 0.2, "INR") == 30


def test_zero_and_three_decimal_currencies():
    assert currency_exponent("jpy") == 0
    assert to_minor_units("1500", "JPY") == 1500
    assert to_minor_units("1.2345", "KWD") == 1235
    assert from_minor_units(1235, "KWD") == Decimal("1.235")
    # devise inconnue -> 2 décimales
    assert to_minor_units("1.5", "XYZ") == 150


@pytest.mark.parametrize("bad", [-1, "-0.01", "abc", "NaN", "Infinity", True, None])
def test_invalid_amounts_rejected(bad):
    with pytest.raises(ValueError):
        to_minor_units(bad, "INR")


@pytest.mark.parametrize("bad", [-5, 1.5, "100", False])
def test_from_minor_units_rejects_non_int(bad):
    with pytest.raises(ValueError):
        from_minor_units(bad, "INR")


def test_quantize_and_same_amount():
    assert quantize_amount("10.125", "INR") == Decimal("10.13")
    assert same_amount("220", Decimal("220.00"))
    assert not same_amount("220.00", "220.01")
