"""
Security Utilities
Input validation for key material, addresses and amounts, plus log masking
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Optional
from web3 import Web3

_PRIVATE_KEY_PATTERN = re.compile(r'^(0x)?[a-fA-F0-9]{64}$')


def validate_address(address: str) -> bool:
    """Validate address format and, for mixed-case input, its checksum"""
    if not address:
        return False

    if not re.match(r'^0x[a-fA-F0-9]{40}$', address):
        return False

    body = address[2:]
    if body.islower() or body.isupper():
        return True

    return Web3.to_checksum_address(address) == address


def validate_private_key(private_key: str) -> bool:
    """Check that a private key is 32 bytes of hex"""
    if not private_key:
        return False
    return bool(_PRIVATE_KEY_PATTERN.match(private_key.strip()))


def validate_amount(amount: str, min_amount: float = 0.0, max_amount: float = None) -> Optional[Decimal]:
    """Validate and parse a native currency amount string"""
    try:
        amount_str = amount.strip()

        if not re.match(r'^\d*\.?\d+$', amount_str):
            return None

        value = Decimal(amount_str)

        if value <= Decimal(str(min_amount)):
            return None

        if max_amount is not None and value > Decimal(str(max_amount)):
            return None

        return value

    except (AttributeError, InvalidOperation):
        return None


def mask_address(address: str) -> str:
    """Mask address for logging (show only first 6 and last 4 characters)"""
    if not address or len(address) < 10:
        return "****"

    return f"{address[:6]}****{address[-4:]}"
