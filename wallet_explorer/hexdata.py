"""
Hex call data helpers.

Slices "0x"-prefixed call payloads at fixed ABI offsets: the selector
occupies bytes [0, 4) and argument word ``i`` occupies 32 bytes starting at
byte ``4 + 32 * i``. Short, absent or malformed payloads yield empty/None
results and never raise.
"""

from typing import Optional


SELECTOR_HEX_LENGTH = 8
WORD_HEX_LENGTH = 64
ADDRESS_HEX_LENGTH = 40

_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")


def strip_hex_prefix(data: Optional[str]) -> str:
    """Return the payload without its "0x" prefix ("" for None)."""
    if not data or not isinstance(data, str):
        return ""
    if data[:2] in ("0x", "0X"):
        return data[2:]
    return data


def is_hex(value: str) -> bool:
    return all(ch in _HEX_DIGITS for ch in value)


def selector(data: Optional[str]) -> str:
    """
    Return the 4-byte selector as lowercase "0x"-prefixed hex.

    Returns "" when the payload is shorter than four bytes.
    """
    body = strip_hex_prefix(data)
    if len(body) < SELECTOR_HEX_LENGTH:
        return ""
    head = body[:SELECTOR_HEX_LENGTH]
    if not is_hex(head):
        return ""
    return "0x" + head.lower()


def word(data: Optional[str], arg_index: int) -> Optional[str]:
    """
    Return argument word ``arg_index`` as 64 hex characters (no prefix).

    Returns None if the payload is too short to contain the whole word.
    """
    if arg_index < 0:
        return None
    body = strip_hex_prefix(data)
    start = SELECTOR_HEX_LENGTH + WORD_HEX_LENGTH * arg_index
    end = start + WORD_HEX_LENGTH
    if len(body) < end:
        return None
    chunk = body[start:end]
    if not is_hex(chunk):
        return None
    return chunk


def word_as_int(data: Optional[str], arg_index: int) -> Optional[int]:
    """Decode argument word ``arg_index`` as an unsigned 256-bit integer."""
    chunk = word(data, arg_index)
    if chunk is None:
        return None
    return int(chunk, 16)


def word_as_address(data: Optional[str], arg_index: int) -> Optional[str]:
    """Decode argument word ``arg_index`` as a right-aligned 20-byte address."""
    chunk = word(data, arg_index)
    if chunk is None:
        return None
    return "0x" + chunk[-ADDRESS_HEX_LENGTH:].lower()


def tail(data: Optional[str], hex_offset: int) -> str:
    """
    Return the payload from ``hex_offset`` characters into the unprefixed body.

    Prefixed and unprefixed input slice identically. The result is
    re-prefixed with "0x"; "" when nothing remains.
    """
    body = strip_hex_prefix(data)
    if len(body) <= hex_offset:
        return ""
    return "0x" + body[hex_offset:]
