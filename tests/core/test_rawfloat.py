from __future__ import annotations

from decimal import Decimal

import pytest
from pydantic import BaseModel, ValidationError

from tokenomy.core.rawfloat import Rawfloat, format_rawfloat, parse_rawfloat, round_rawfloat
from tokenomy.utils.exceptions import ParseError


@pytest.mark.parametrize(
    "value,expected",
    [
        (0, "0"),
        (0.0, "0"),
        ("0.00000000", "0"),
        (100, "100"),
        (123.0, "123"),
        (1.5, "1.5"),
        (-1.25, "-1.25"),
        (0.1, "0.1"),
        (1e-7, "0.0000001"),
        (0.000000016, "0.00000002"),
        (0.000000001, "0"),
        (-0.000000001, "0"),
        (0.123456789, "0.12345679"),
        ("0.000000005", "0.00000001"),
        ("1.23400000", "1.234"),
        (1e21, "1000000000000000000000"),
        (Decimal("12345678901234567890.123456789"), "12345678901234567890.12345679"),
    ],
)
def test_format_rawfloat(value, expected) -> None:
    assert format_rawfloat(value) == expected


def test_format_rawfloat_never_uses_exponent() -> None:
    for value in (1e-7, 1e21, 5e-9, Decimal("1E+5"), Decimal("2.5E-6")):
        text = format_rawfloat(value)
        assert "e" not in text.lower()
        fraction = text.partition(".")[2]
        assert len(fraction) <= 8


def test_format_rawfloat_is_idempotent() -> None:
    for value in (0.1 + 0.2, 1e-9, 0.000000016, 99999999.999999999, "-3.000000004", 7):
        once = format_rawfloat(value)
        assert format_rawfloat(parse_rawfloat(once)) == once


def test_format_rawfloat_rejects_non_finite() -> None:
    with pytest.raises(ValueError):
        format_rawfloat(float("nan"))
    with pytest.raises(ValueError):
        format_rawfloat(float("inf"))


def test_format_rawfloat_rejects_bool() -> None:
    with pytest.raises(ParseError):
        format_rawfloat(True)


def test_round_rawfloat_half_up() -> None:
    assert round_rawfloat(Decimal("1.234567895")) == Decimal("1.23456790")
    assert round_rawfloat("1.234567894") == Decimal("1.23456789")


def test_parse_rawfloat_accepts_text_and_bytes() -> None:
    assert parse_rawfloat("0.00000001") == Decimal("0.00000001")
    assert parse_rawfloat(" 12.5 ") == Decimal("12.5")
    assert parse_rawfloat(b"1.5") == Decimal("1.5")
    assert parse_rawfloat(3) == Decimal(3)


@pytest.mark.parametrize("text", ["abc", "", "1.2.3", "NaN", "Infinity", "-inf", "1_000", "0.000_1"])
def test_parse_rawfloat_rejects_invalid_text(text) -> None:
    with pytest.raises(ParseError) as exc:
        parse_rawfloat(text)
    assert exc.value.text == text
    assert isinstance(exc.value, ValueError)


class PriceQuote(BaseModel):
    price: Rawfloat
    amount: Rawfloat


def test_rawfloat_field_serializes_canonical_string() -> None:
    quote = PriceQuote.model_validate({"price": "0.000000016", "amount": 10})

    assert quote.price == Decimal("0.000000016")
    assert quote.model_dump()["price"] == Decimal("0.000000016")
    assert quote.model_dump_json() == '{"price":"0.00000002","amount":"10"}'


def test_rawfloat_field_rejects_garbage() -> None:
    with pytest.raises(ValidationError):
        PriceQuote.model_validate({"price": "cheap", "amount": "1"})
