"""
Transaction Dispatcher
Fills gas parameters, signs and submits transactions, and polls for receipts
"""

import asyncio
import logging
import time
from enum import Enum
from typing import Dict, Optional, Any
from dataclasses import dataclass, replace
from web3 import AsyncWeb3, Web3
from web3.exceptions import TransactionNotFound

from chain.accounts import AccountRegistry
from errors import GasEstimationError, SubmissionError, ConfirmationTimeoutError

logger = logging.getLogger(__name__)


def as_hex(value: Any) -> str:
    """Normalise hashes returned as bytes or strings"""
    return value if isinstance(value, str) else Web3.to_hex(value)


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


PRIORITY_GAS_FACTORS = {
    Priority.HIGH: 1.5,
    Priority.MEDIUM: 1.0,
    Priority.LOW: 0.8,
}


class ReceiptStatus(str, Enum):
    SUCCESS = "success"
    REVERTED = "reverted"


@dataclass(frozen=True)
class ExecutionOptions:
    """Per-call execution settings"""
    gas_multiplier: float = 1.2
    max_retries: int = 3
    confirmations: int = 1
    priority: Priority = Priority.MEDIUM
    retry_backoff: float = 0.5

    def merged(self, **overrides: Any) -> "ExecutionOptions":
        """Return a copy with non-None overrides applied"""
        values = {key: value for key, value in overrides.items() if value is not None}
        if 'priority' in values:
            values['priority'] = Priority(values['priority'])
        return replace(self, **values)


@dataclass(frozen=True)
class TransactionIntent:
    """Transaction to send; never mutated once built"""
    to: str
    data: bytes = b""
    value: int = 0
    sender: Optional[str] = None
    gas: Optional[int] = None
    gas_price: Optional[int] = None
    max_fee_per_gas: Optional[int] = None
    max_priority_fee_per_gas: Optional[int] = None
    nonce: Optional[int] = None

    def to_tx_params(self) -> Dict[str, Any]:
        """Convert to web3 transaction parameters, omitting unset fields"""
        params: Dict[str, Any] = {
            'to': Web3.to_checksum_address(self.to),
            'value': self.value,
            'data': Web3.to_hex(self.data) if self.data else "0x",
        }
        if self.sender:
            params['from'] = Web3.to_checksum_address(self.sender)
        if self.gas is not None:
            params['gas'] = self.gas
        if self.gas_price is not None:
            params['gasPrice'] = self.gas_price
        if self.max_fee_per_gas is not None:
            params['maxFeePerGas'] = self.max_fee_per_gas
        if self.max_priority_fee_per_gas is not None:
            params['maxPriorityFeePerGas'] = self.max_priority_fee_per_gas
        if self.nonce is not None:
            params['nonce'] = self.nonce
        return params


@dataclass(frozen=True)
class TransactionReceipt:
    """Terminal record of a mined transaction"""
    transaction_hash: str
    block_number: int
    block_hash: str
    status: ReceiptStatus
    sender: str
    recipient: Optional[str]
    contract_address: Optional[str]
    gas_used: int

    @property
    def succeeded(self) -> bool:
        return self.status == ReceiptStatus.SUCCESS

    @classmethod
    def from_web3(cls, receipt: Any) -> "TransactionReceipt":
        """Build from a web3 receipt mapping"""
        return cls(
            transaction_hash=as_hex(receipt['transactionHash']),
            block_number=int(receipt['blockNumber']),
            block_hash=as_hex(receipt['blockHash']),
            status=ReceiptStatus.SUCCESS if receipt['status'] == 1 else ReceiptStatus.REVERTED,
            sender=receipt['from'],
            recipient=receipt.get('to'),
            contract_address=receipt.get('contractAddress'),
            gas_used=int(receipt['gasUsed'])
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            'transaction_hash': self.transaction_hash,
            'block_number': self.block_number,
            'block_hash': self.block_hash,
            'status': self.status.value,
            'from': self.sender,
            'to': self.recipient,
            'contract_address': self.contract_address,
            'gas_used': self.gas_used
        }


class TransactionDispatcher:
    """Signs and submits transactions on behalf of registry accounts"""

    def __init__(self, async_w3: AsyncWeb3, registry: AccountRegistry, chain_id: int,
                 poll_interval: float = 2.0):
        self.async_w3 = async_w3
        self.registry = registry
        self.chain_id = chain_id
        self.poll_interval = poll_interval

        # Same-account dispatches are serialised so pending nonces stay unique
        self._nonce_locks: Dict[str, asyncio.Lock] = {}

    async def prepare(self, intent: TransactionIntent, options: ExecutionOptions) -> TransactionIntent:
        """Return a copy of the intent with gas limit and gas price filled in"""
        updates: Dict[str, Any] = {}

        if intent.gas is None:
            try:
                estimate = await self.async_w3.eth.estimate_gas(intent.to_tx_params())
            except Exception as e:
                raise GasEstimationError(f"Gas estimation failed: {e}") from e
            updates['gas'] = int(estimate * options.gas_multiplier)

        if intent.gas_price is None and intent.max_fee_per_gas is None:
            updates['gas_price'] = await self._get_priority_gas_price(options.priority)

        return replace(intent, **updates)

    async def _get_priority_gas_price(self, priority: Priority) -> int:
        """Scale the network gas price by the priority factor"""
        try:
            base_gas_price = await self.async_w3.eth.gas_price
        except Exception as e:
            raise GasEstimationError(f"Gas price lookup failed: {e}") from e

        return int(base_gas_price * PRIORITY_GAS_FACTORS[Priority(priority)])

    async def dispatch(self, address: str, intent: TransactionIntent, options: ExecutionOptions) -> str:
        """Prepare, sign and submit a transaction from a managed account"""
        signer = self.registry.get_signer(address)
        if signer is None or self.registry.get_account(address) is None:
            raise SubmissionError(f"Account not found: {address}", address=address)

        prepared = await self.prepare(replace(intent, sender=address), options)

        lock = self._nonce_locks.setdefault(address, asyncio.Lock())
        async with lock:
            try:
                nonce = prepared.nonce
                if nonce is None:
                    nonce = await self.async_w3.eth.get_transaction_count(address, 'pending')

                tx = prepared.to_tx_params()
                tx.pop('from', None)
                tx['nonce'] = nonce
                tx['chainId'] = self.chain_id

                signed = signer.sign_transaction(tx)
                tx_hash = await self.async_w3.eth.send_raw_transaction(signed.raw_transaction)
            except Exception as e:
                raise SubmissionError(f"Transaction execution failed for {address}: {e}", address=address) from e

        tx_hash_hex = as_hex(tx_hash)
        logger.info(f"Submitted transaction {tx_hash_hex} from {address} (nonce {nonce})")
        return tx_hash_hex

    async def await_confirmation(self, tx_hash: str, confirmations: int = 1,
                                 timeout: Optional[float] = None) -> Optional[TransactionReceipt]:
        """Poll until the receipt exists and has the requested confirmations"""
        if len(self.registry) == 0:
            logger.error(f"No accounts available to poll confirmation of {tx_hash}")
            return None

        deadline = time.monotonic() + timeout if timeout else None

        while True:
            try:
                raw_receipt = await self.async_w3.eth.get_transaction_receipt(tx_hash)
            except TransactionNotFound:
                raw_receipt = None
            except Exception as e:
                logger.error(f"Error checking receipt for {tx_hash}: {e}")
                raw_receipt = None

            if raw_receipt is not None and raw_receipt.get('status') is not None:
                receipt = TransactionReceipt.from_web3(raw_receipt)
                try:
                    current_block = await self.async_w3.eth.block_number
                except Exception as e:
                    logger.error(f"Error reading block number: {e}")
                else:
                    if current_block - receipt.block_number + 1 >= confirmations:
                        logger.debug(f"Transaction {tx_hash} confirmed in block {receipt.block_number}")
                        return receipt

            if deadline is not None and time.monotonic() >= deadline:
                raise ConfirmationTimeoutError(tx_hash, timeout)

            await asyncio.sleep(self.poll_interval)
