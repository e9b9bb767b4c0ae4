from decimal import Decimal

from tutorbill.app.core.money import non_negative, round_currency, round_hours, to_decimal


def test_to_decimal_accepts_numbers_and_numeric_strings():
    assert to_decimal(12) == Decimal("12")
    assert to_decimal(0.1) == Decimal("0.1")
    assert to_decimal(" 7.50 ") == Decimal("7.50")
    assert to_decimal(Decimal("3")) == Decimal("3")


def test_to_decimal_rejects_non_finite_and_junk():
    assert to_decimal(None) is None
    assert to_decimal("") is None
    assert to_decimal("ten") is None
    assert to_decimal(True) is None
    assert to_decimal(float("nan")) is None
    assert to_decimal(float("inf")) is None
    assert to_decimal({"amount": 1}) is None


def test_round_currency_is_half_away_from_zero():
    assert round_currency("2.675") == Decimal("2.68")
    assert round_currency("0.125") == Decimal("0.13")
    assert round_currency("-0.125") == Decimal("-0.13")
    assert round_currency(None) == Decimal("0.00")


def test_round_hours_to_thousandths():
    assert round_hours(Decimal(50) / Decimal(60)) == Decimal("0.833")
    assert round_hours("1.0005") == Decimal("1.001")
    assert round_hours("junk") == Decimal("0.000")


def test_non_negative():
    assert non_negative(-4) == 0
    assert non_negative("abc") == 0
    assert non_negative(4) == Decimal("4")
