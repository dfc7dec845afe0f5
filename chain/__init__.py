"""
Chain Module
Account registry, transaction dispatch and multi-account execution
"""

from .accounts import Account, AccountRegistry
from .dispatcher import (
    ExecutionOptions, Priority, ReceiptStatus, TransactionDispatcher,
    TransactionIntent, TransactionReceipt
)
from .executor import BatchExecutor
from .factory_contract import TokenFactoryContract
from .monitor import BuyerMonitor, BuyerDetection

__all__ = [
    'Account', 'AccountRegistry', 'ExecutionOptions', 'Priority', 'ReceiptStatus',
    'TransactionDispatcher', 'TransactionIntent', 'TransactionReceipt', 'BatchExecutor',
    'TokenFactoryContract', 'BuyerMonitor', 'BuyerDetection'
]
