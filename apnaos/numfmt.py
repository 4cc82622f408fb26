"""Integer parsing and formatting helpers used by the console."""

from __future__ import annotations

_UINT32_MASK = 0xFFFFFFFF


def atoi(s: str) -> int:
    """Parse an optional leading '-' and the digits that follow it.

    Parsing stops at the first non-digit; no digits at all yields 0.
    """
    sign = 1
    if s.startswith("-"):
        sign = -1
        s = s[1:]
    digits = []
    for ch in s:
        if not "0" <= ch <= "9":
            break
        digits.append(ch)
    return sign * int("".join(digits)) if digits else 0


def itoa(n: int) -> str:
    """Signed decimal representation of ``n``."""
    sign = "-" if n < 0 else ""
    return f"{sign}{abs(n)}"


def int_to_hex(num: int) -> str:
    """``0x`` followed by eight upper-case hex digits of a 32-bit value."""
    return f"0x{num & _UINT32_MASK:08X}"


def int_to_dec(num: int) -> str:
    """Unsigned decimal representation of a 32-bit value."""
    return str(num & _UINT32_MASK)


def int_to_str(value: int) -> str:
    """Decimal representation of a non-negative integer."""
    if value < 0:
        raise ValueError("int_to_str accepts only non-negative values")
    return str(value)