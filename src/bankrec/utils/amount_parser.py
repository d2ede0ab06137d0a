"""Amount parsing utilities."""

import re
from decimal import Decimal, InvalidOperation

_CURRENCY_RE = re.compile(r"(?i)[$€£¥]|\b(?:COP|USD|EUR)\b")


def _normalize_separators(text: str) -> str:
    """Turn "1.234,56" and "1,234.56" into "1234.56".

    When both separators appear, the last one is the decimal mark. A lone
    comma followed by one or two digits is a decimal comma; other commas
    group thousands, as do repeated dots.
    """
    if "," in text and "." in text:
        if text.rfind(",") > text.rfind("."):
            return text.replace(".", "").replace(",", ".")
        return text.replace(",", "")
    if "," in text:
        head, _, tail = text.rpartition(",")
        if text.count(",") == 1 and 1 <= len(tail) <= 2:
            return f"{head}.{tail}"
        return text.replace(",", "")
    if text.count(".") > 1:
        return text.replace(".", "")
    return text


def parse_amount(amount_str: str) -> Decimal:
    """Parse an amount string into a Decimal.

    Handles various formats:
    - "123.45"
    - "$123.45", "COP 1.500.000,00"
    - "-123.45"
    - "1,234.56" and "1.234,56"
    - "(123.45)" (negative in parentheses)

    Args:
        amount_str: Amount string

    Returns:
        Decimal amount

    Raises:
        ValueError: If amount string cannot be parsed
    """
    if not amount_str or not amount_str.strip():
        raise ValueError("Empty amount string")

    text = amount_str.strip()

    is_negative = False
    if text.startswith("(") and text.endswith(")"):
        is_negative = True
        text = text[1:-1]

    text = _CURRENCY_RE.sub("", text).replace(" ", "").strip()
    text = _normalize_separators(text)

    try:
        amount = Decimal(text)
    except InvalidOperation as e:
        raise ValueError(f"Could not parse amount '{amount_str}'") from e
    if not amount.is_finite():
        raise ValueError(f"Could not parse amount '{amount_str}'")
    return -amount if is_negative else amount


def parse_optional_amount(amount_str: str | None) -> Decimal | None:
    """Like parse_amount, but blank cells yield None."""
    if amount_str is None or not amount_str.strip():
        return None
    return parse_amount(amount_str)
