"""
Address format rules for the two chains.

Source chain (XRP Ledger): classic addresses are base58check over the Ripple
alphabet, version byte 0x00 followed by a 20-byte account id.

Destination chain (Flare): EVM addresses, 20 bytes of hex. All-lower or
all-upper hex is accepted as-is; mixed case must carry a valid EIP-55 checksum.
"""

from __future__ import annotations

import base58
from eth_utils import is_address

XRP_ACCOUNT_ID_VERSION = 0x00
XRP_ACCOUNT_ID_LENGTH = 20


def is_valid_xrp_address(address: str) -> bool:
    """True if `address` is a well-formed classic XRP Ledger address."""
    if not isinstance(address, str) or not address.startswith("r"):
        return False
    try:
        payload = base58.b58decode_check(address, alphabet=base58.RIPPLE_ALPHABET)
    except ValueError:
        # Bad alphabet character, non-ascii input, or checksum mismatch
        return False
    return (
        len(payload) == XRP_ACCOUNT_ID_LENGTH + 1
        and payload[0] == XRP_ACCOUNT_ID_VERSION
    )


def is_valid_flare_address(address: str) -> bool:
    """True if `address` is a 20-byte hex address with a consistent checksum."""
    if not isinstance(address, str):
        return False
    return is_address(address)
