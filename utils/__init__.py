"""
Utils Module
Utility functions and helpers
"""

from .formatting import format_address, format_native, format_status
from .security import validate_address, validate_amount, validate_private_key, mask_address

__all__ = [
    'format_address', 'format_native', 'format_status',
    'validate_address', 'validate_amount', 'validate_private_key', 'mask_address'
]
