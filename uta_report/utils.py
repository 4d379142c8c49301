"""
Cell Value Helpers.

Scalar conversions shared by the parser and the aggregators. Exchange
exports mix currency symbols, thousands separators and accounting-style
negatives, so these helpers degrade to a safe default instead of raising.
"""
import re
from typing import Any

_PAREN_NEGATIVE = re.compile(r'^\(.*\)$')
_SEPARATORS = re.compile(r'[, ]')
_NON_NUMERIC = re.compile(r'[^\d.+-]', re.ASCII)
_NUMBER_LITERAL = re.compile(r'^[+-]?(\d+\.?\d*|\.\d+)$', re.ASCII)


def to_upper(value: Any) -> str:
    if value is None:
        return ''
    return str(value).strip().upper()


def parse_number(value: Any) -> float:
    """
    Converts a raw cell string to a float.

    Rules:
    1. Empty input is 0.
    2. A value fully wrapped in parentheses is a negative magnitude,
       e.g. '(12.30)' -> -12.3.
    3. Commas and spaces are removed; anything other than digits, '.', '+'
       and '-' is discarded, so '$-5' -> -5.
    4. An empty, sign-only or otherwise malformed residue ('--', '1.2.3')
       is 0.

    Args:
        value (Any): The raw cell (usually a string, possibly None).

    Returns:
        float: The parsed number, never NaN.
    """
    s = '' if value is None else str(value).strip()
    if not s:
        return 0.0

    is_paren_negative = bool(_PAREN_NEGATIVE.match(s))
    core = s[1:-1] if is_paren_negative else s

    cleaned = _NON_NUMERIC.sub('', _SEPARATORS.sub('', core))
    if cleaned in ('', '-', '+'):
        return 0.0

    # Digits, dots and signs only: reject residues like '--5' or '1.2.3'
    if not _NUMBER_LITERAL.match(cleaned):
        return 0.0

    number = float(cleaned)
    return -number if is_paren_negative else number
