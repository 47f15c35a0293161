"""
Address validation and normalization.

Every address reaching the core must be "0x" followed by exactly 40 hex
characters. Mixed-case input must also carry a valid EIP-55 checksum.
"""

import re
from typing import Optional

from eth_utils import is_checksum_address, to_checksum_address

from wallet_explorer.exceptions import InvalidAddressError


ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{40}$")


def is_valid_address(address: Optional[str]) -> bool:
    """Format check only: 0x plus 40 hex characters, any case."""
    return isinstance(address, str) and bool(ADDRESS_PATTERN.match(address))


def normalize_address(address: Optional[str], component: Optional[str] = None) -> str:
    """
    Return the checksummed form of ``address``.

    Raises:
        InvalidAddressError: On bad format or a failing mixed-case checksum.
    """
    if not is_valid_address(address):
        raise InvalidAddressError(
            message=f"Invalid address format: {address!r}",
            address=address if isinstance(address, str) else None,
            component=component,
        )

    body = address[2:]
    mixed_case = body != body.lower() and body != body.upper()
    if mixed_case and not is_checksum_address(address):
        raise InvalidAddressError(
            message=f"Address checksum mismatch: {address}",
            address=address,
            component=component,
        )

    return to_checksum_address(address)


def short_address(checksum_address: str) -> str:
    """Abbreviated form used in placeholders: 0x + 6 hex ... last 4 hex."""
    return f"{checksum_address[:8]}...{checksum_address[-4:]}"
