"""
Invite codes derived from a couple's relationship start date.

The code is the date's digits read as one integer and written in base 36,
so the same date always gives the same code. It is meant to be easy to share,
not secret.
"""
from datetime import date
from typing import Optional

CODE_LENGTH = 8
_ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"


def _to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(_ALPHABET[remainder])
    return "".join(reversed(digits))


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


def derive_invite_code(start_date: str) -> str:
    """2020-12-03 -> 20201203 -> base 36 -> '000C0ZCJ'"""
    number = int(start_date.replace("-", ""), 10)
    return _to_base36(number).rjust(CODE_LENGTH, "0")[:CODE_LENGTH]


def decode_invite_code(code: str) -> Optional[str]:
    """
    Recover the start date from a code, or None when the code does not
    come from a real calendar date.

    Any YYYYMMDD value is below 36**6, so encoding never truncates and a
    valid code always decodes back to its date.
    """
    code = normalize_code(code)
    if len(code) != CODE_LENGTH or any(ch not in _ALPHABET for ch in code):
        return None
    digits = str(int(code, 36)).rjust(8, "0")
    if len(digits) != 8:
        return None
    candidate = f"{digits[:4]}-{digits[4:6]}-{digits[6:]}"
    try:
        date.fromisoformat(candidate)
    except ValueError:
        return None
    if derive_invite_code(candidate) != code:
        return None
    return candidate
