from datetime import date
from decimal import Decimal

import pytest

from services.errors import ValidationError
from services.values import clean_str, one_of, parse_date, parse_hhmm, to_id, to_money, to_qty, to_rate


def test_to_money_accepts_comma_decimal_and_rounds_to_cents():
    assert to_money("1500,5") == Decimal("1500.50")
    assert to_money(12.345) == Decimal("12.34")
    assert to_money(" 7 ") == Decimal("7.00")


@pytest.mark.parametrize("raw", [None, "", "abc", True, "NaN"])
def test_to_money_rejects_garbage(raw):
    with pytest.raises(ValidationError):
        to_money(raw)


def test_to_money_sign_rules():
    with pytest.raises(ValidationError):
        to_money("-1")
    assert to_money("-1", allow_negative=True) == Decimal("-1.00")
    with pytest.raises(ValidationError):
        to_money("0", allow_zero=False)


def test_to_qty_is_strictly_positive():
    assert to_qty("2.5") == Decimal("2.500")
    with pytest.raises(ValidationError):
        to_qty("0")


def test_to_rate_blank_is_zero_and_upper_bound_is_enforced():
    assert to_rate("", "rate") == Decimal("0.0000")
    assert to_rate("10", "rate", places=Decimal("0.01"), max_value=Decimal("100")) == Decimal("10.00")
    with pytest.raises(ValidationError):
        to_rate("101", "rate", max_value=Decimal("100"))
    with pytest.raises(ValidationError):
        to_rate("-0.1", "rate")


def test_parse_date_and_time():
    assert parse_date("2026-10-19") == date(2026, 10, 19)
    assert parse_date("2026-10-19T08:00:00Z") == date(2026, 10, 19)
    assert parse_date("", default=date(2020, 1, 1)) == date(2020, 1, 1)
    with pytest.raises(ValidationError):
        parse_date("19/10/2026")
    assert parse_hhmm("8:05", "check_in") == "08:05"
    with pytest.raises(ValidationError):
        parse_hhmm("25:00", "check_in")


def test_small_parsers():
    assert to_id("12", "id") == 12
    with pytest.raises(ValidationError):
        to_id("0", "id")
    assert clean_str("  x  ") == "x"
    assert clean_str("   ") is None
    with pytest.raises(ValidationError):
        clean_str("", "name")
    assert one_of("INCOME", {"income", "expense"}, "type") == "income"
    with pytest.raises(ValidationError):
        one_of("gift", {"income", "expense"}, "type")
