"""가격·수량 값 표현 등 전송 계층과 무관한 핵심 로직."""

from .rawfloat import MAX_PRECISION, Rawfloat, format_rawfloat, parse_rawfloat, round_rawfloat, to_decimal

__all__ = [
    "MAX_PRECISION",
    "Rawfloat",
    "format_rawfloat",
    "parse_rawfloat",
    "round_rawfloat",
    "to_decimal",
]
