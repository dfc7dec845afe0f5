"""
Formatting Utilities
Helper functions for formatting addresses, amounts and launch status
"""

from typing import Any, Dict, Union
from web3 import Web3


def format_address(address: str, chars: int = 6) -> str:
    """Checksummed address shortened to its first and last characters"""
    if not Web3.is_address(address):
        return address

    address = Web3.to_checksum_address(address)
    return f"{address[:chars + 2]}...{address[-chars:]}"


def format_native(wei_amount: Union[int, str], symbol: str = "BNB", decimals: int = 6) -> str:
    """Format a wei amount in native currency units"""
    try:
        amount = Web3.from_wei(int(wei_amount), 'ether')
    except (ValueError, TypeError):
        return f"0 {symbol}"

    formatted = f"{amount:.{decimals}f}".rstrip('0').rstrip('.')
    return f"{formatted or '0'} {symbol}"


def format_status(status: Dict[str, Any]) -> str:
    """Format a strategy status dictionary as one line"""
    stage_emojis = {
        'idle': '⏸️',
        'initialized': '🟡',
        'executing': '🔄',
        'completed': '✅',
        'failed': '❌'
    }

    stage = status.get('stage', 'idle')
    line = f"{stage_emojis.get(stage, '❓')} [{status.get('progress', 0):>3}%] {stage}"

    if status.get('message'):
        line += f" - {status['message']}"
    if status.get('error'):
        line += f" (error: {status['error']})"

    return line
