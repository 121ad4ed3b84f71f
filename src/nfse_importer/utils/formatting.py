"""
Number, identifier and TXT line formatting shared by the exports.
"""
import math
import re
from decimal import ROUND_HALF_EVEN, Decimal
from typing import Optional, Sequence, Union

from ..models import FieldKind, Record, field_kind

Number = Union[int, float, Decimal]

# Whole-string Brazilian amount: optional R$, thousands dots, decimal comma
MONEY_TEXT = re.compile(r"^\s*(?:R\$\s*)?-?(?:\d{1,3}(?:\.\d{3})+|\d+)(?:,\d+)?\s*$")


def parse_money_text(value: str) -> Optional[float]:
    """
    Strict counterpart of ``parse_brl_money`` for stored values.

    "R$ 1.500,00" -> 1500.0; anything with stray characters -> None.
    """
    if not MONEY_TEXT.match(value):
        return None
    normalized = re.sub(r"\s", "", value).replace("R$", "")
    return float(normalized.replace(".", "").replace(",", "."))


def is_number(value) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        return False
    if isinstance(value, Decimal):
        return value.is_finite()
    return math.isfinite(value)


def round_half_even(value: Number, places: int = 2) -> Decimal:
    """
    Round to ``places`` decimals, midpoints to the nearest even digit.

    Floats go through their shortest repr so 2.345 rounds as the decimal
    2.345 (-> 2.34) rather than its binary approximation.
    """
    exponent = Decimal(1).scaleb(-places)
    return Decimal(str(value)).quantize(exponent, rounding=ROUND_HALF_EVEN)


def format_money(value, locale: str = "pt") -> str:
    """'1500,00' (pt) or '1500.00' (en); empty for non-numbers"""
    if not is_number(value):
        return ""
    text = f"{round_half_even(value):.2f}"
    return text.replace(".", ",") if locale == "pt" else text


def mask_cnpj(value: Optional[str]) -> str:
    """
    NN.NNN.NNN/NNNN-NN mask.

    Short inputs get the part of the mask their digits cover; digits
    beyond the 14th are dropped.
    """
    if not value:
        return ""
    digits = re.sub(r"\D", "", str(value))[:14]
    parts = [(digits[0:2], ""), (digits[2:5], "."), (digits[5:8], "."),
             (digits[8:12], "/"), (digits[12:14], "-")]
    masked = ""
    for chunk, separator in parts:
        if not chunk:
            break
        masked += separator + chunk
    return masked


def format_field(field: str, value, locale: str = "pt") -> str:
    """Render one value for the TXT layout"""
    if value is None:
        return ""
    if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
        return format_money(value, locale)
    kind = field_kind(field)
    if kind == FieldKind.MONEY and isinstance(value, str):
        parsed = parse_money_text(value)
        # Unparseable text is written as found; validation already flagged it
        return format_money(parsed, locale) if parsed is not None else value
    if kind == FieldKind.IDENTIFIER:
        return mask_cnpj(value)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def build_txt(records: Sequence[Record],
              schema: Sequence[str],
              decimal_locale: str = "pt",
              separator: str = ";") -> str:
    """One line per record, columns in schema order"""
    lines = []
    for record in records:
        lines.append(separator.join(
            format_field(field, record.get(field), decimal_locale) for field in schema
        ))
    return "\n".join(lines)
