from __future__ import annotations

import base64
import binascii
import math
import re
from decimal import Decimal
from typing import Union

from .errors import MalformedDataError


Number = Union[int, float]

TAG = "FHE-"

_INT_RE = re.compile(r"^[+-]?\d+$")
_FLOAT_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")
_EXACT_INT_LIMIT = 2 ** 53


def _float_text(value: float) -> str:
    """Render a float the way JavaScript's Number#toString does.

    Existing ledger entries were written by a browser client, so integral
    floats carry no ``.0`` and the exponent form only kicks in below 1e-6
    or at 1e21 and above. Digits are the shortest round-trip repr.
    """
    if value == 0:
        return "0"
    sign, digit_tuple, exponent = Decimal(repr(value)).normalize().as_tuple()
    digits = "".join(str(d) for d in digit_tuple)
    k = len(digits)
    n = int(exponent) + k  # position of the decimal point relative to digits
    prefix = "-" if sign else ""

    if k <= n <= 21:
        return prefix + digits + "0" * (n - k)
    if 0 < n <= 21:
        return prefix + digits[:n] + "." + digits[n:]
    if -6 < n <= 0:
        return prefix + "0." + "0" * (-n) + digits
    e = n - 1
    e_text = f"e{'+' if e >= 0 else '-'}{abs(e)}"
    if k == 1:
        return prefix + digits + e_text
    return prefix + digits[0] + "." + digits[1:] + e_text


def number_to_text(value: Number) -> str:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"expected a number, got {type(value).__name__}")
    if isinstance(value, int):
        try:
            float(value)
        except OverflowError as ex:
            raise ValueError(f"integer {str(value)[:16]}... is outside the double range") from ex
        return str(value)
    if not math.isfinite(value):
        raise ValueError(f"cannot encode non-finite value {value!r}")
    return _float_text(value)


def _is_exact_double(val: int) -> bool:
    try:
        return float(val) == val
    except OverflowError:
        return False


def parse_number(text: str) -> Number:
    """Parse plain decimal text; integer text yields an int."""
    s = text.strip()
    if _INT_RE.match(s):
        val = int(s)
        # Past 2**53, digits no double holds exactly came from a float repr
        if abs(val) <= _EXACT_INT_LIMIT or _is_exact_double(val):
            return val
    if _FLOAT_RE.match(s):
        val = float(s)
        if math.isfinite(val):
            return val
    raise MalformedDataError(f"not a numeric value: {text!r}")


def encode(value: Number) -> str:
    """Obfuscate a number into a tagged string: ``FHE-`` + base64(decimal text)."""
    raw = number_to_text(value).encode("ascii")
    return TAG + base64.b64encode(raw).decode("ascii")


def decode(text: str) -> Number:
    """Recover the number behind `encode`'s output.

    Untagged input is parsed as plain numeric text (legacy entries).
    Raises MalformedDataError when the input is neither.
    """
    if not isinstance(text, str):
        raise MalformedDataError(f"expected text, got {type(text).__name__}")
    if not text.startswith(TAG):
        return parse_number(text)
    try:
        raw = base64.b64decode(text[len(TAG):], validate=True).decode("ascii")
    except (binascii.Error, UnicodeDecodeError) as ex:
        raise MalformedDataError(f"invalid obfuscated payload: {text[:32]!r}") from ex
    return parse_number(raw)


def is_encoded(text: str) -> bool:
    return isinstance(text, str) and text.startswith(TAG)


__all__ = ["TAG", "Number", "encode", "decode", "is_encoded", "number_to_text", "parse_number"]
