"""가격·수량 값의 고정 정밀도 문자열 표현.

거래소는 가격과 수량을 JSON 숫자가 아닌 문자열로 주고받으며, 일부 요청은
문자열을 그대로 비교한다. 따라서 클라이언트와 서버가 같은 값을 바이트 단위로
같은 문자열로 표현해야 한다. 규칙은 다음과 같다.

1. 0 은 ``"0"`` 으로 표현한다 (``"0.00000000"`` 이 아님).
2. 소수부는 최대 ``MAX_PRECISION`` (8) 자리이며, 그 이상은 8번째 자리에서
   사사오입(ROUND_HALF_UP)한다. ``0.000000016`` 은 ``"0.00000002"``,
   ``0.000000001`` 은 ``"0"`` 이 된다.
3. 끝자리 0 과 남는 소수점은 제거한다. ``123.00`` 은 ``"123"``.
4. 지수 표기는 사용하지 않으며 정수부는 자릿수와 관계없이 그대로 유지한다.

내부 값은 ``Decimal`` 로 보관하고, 위 규칙은 JSON/폼 파라미터로 내보낼 때만
적용한다.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from typing import Annotated, Union

from pydantic import BeforeValidator, PlainSerializer

from ..utils.exceptions import ParseError

MAX_PRECISION = 8

NumberLike = Union[str, bytes, int, float, Decimal]

_QUANTUM = Decimal(1).scaleb(-MAX_PRECISION)


def to_decimal(value: NumberLike) -> Decimal:
    """숫자형 또는 문자열 값을 Decimal로 변환한다.

    float 은 ``repr`` 이 돌려주는 최단 왕복 표현을 거치므로
    ``0.1 + 0.2`` 는 ``Decimal("0.30000000000000004")`` 가 된다.
    """
    if isinstance(value, bool):
        raise ParseError(value)
    if isinstance(value, Decimal):
        return value
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(repr(value))
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="replace")
    if not isinstance(value, str):
        raise ParseError(value)
    # Decimal 은 "1_000" 같은 밑줄 구분 숫자도 받아들인다.
    if "_" in value:
        raise ParseError(value)
    try:
        return Decimal(value.strip())
    except (InvalidOperation, ValueError) as exc:
        raise ParseError(value) from exc


def parse_rawfloat(text: NumberLike) -> Decimal:
    """숫자 문자열을 Decimal 로 해석한다.

    유효한 십진수가 아니거나 NaN/Infinity 이면 ``ParseError`` 를 발생시킨다.
    """
    value = to_decimal(text)
    if not value.is_finite():
        raise ParseError(text)
    return value


def round_rawfloat(value: NumberLike) -> Decimal:
    """값을 최대 정밀도에서 사사오입한 Decimal 을 반환한다."""
    decimal_value = to_decimal(value)
    if not decimal_value.is_finite():
        raise ValueError(f"유한한 값만 반올림할 수 있습니다: {value!r}")
    with localcontext() as ctx:
        # quantize 결과의 유효숫자가 문맥 정밀도를 넘으면 InvalidOperation 이 난다.
        ctx.prec = max(ctx.prec, decimal_value.adjusted() + MAX_PRECISION + 2)
        return decimal_value.quantize(_QUANTUM, rounding=ROUND_HALF_UP)


def format_rawfloat(value: NumberLike) -> str:
    """값을 거래소 규격의 정규 문자열로 변환한다."""
    decimal_value = to_decimal(value)
    if decimal_value.is_zero():
        return "0"

    text = f"{round_rawfloat(decimal_value):f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    if text in ("-0", ""):
        return "0"
    return text


Rawfloat = Annotated[
    Decimal,
    BeforeValidator(parse_rawfloat),
    PlainSerializer(format_rawfloat, return_type=str, when_used="json"),
]
"""JSON 직렬화 시 정규 문자열로 내보내는 pydantic 필드 타입."""


__all__ = [
    "MAX_PRECISION",
    "NumberLike",
    "Rawfloat",
    "format_rawfloat",
    "parse_rawfloat",
    "round_rawfloat",
    "to_decimal",
]
