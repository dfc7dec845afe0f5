"""
Buyer Monitor
Watches a freshly launched token for purchases by external (non-managed) addresses
"""

import asyncio
import logging
import time
from typing import Callable, Iterable, List, Optional, Set, Any
from dataclasses import dataclass
from web3 import AsyncWeb3, Web3

from chain.dispatcher import as_hex
from config import TRANSFER_TOPIC, ZERO_ADDRESS

logger = logging.getLogger(__name__)


@dataclass
class BuyerDetection:
    """External buyer observed in a Transfer log"""
    buyer: str
    token_address: str
    block_number: int
    transaction_hash: str


def _topic_to_address(topic: Any) -> str:
    """Decode an indexed address topic"""
    topic_hex = as_hex(topic)
    return Web3.to_checksum_address("0x" + topic_hex[-40:])


class BuyerMonitor:
    """Polls token Transfer logs and collects external buyer addresses"""

    def __init__(self, async_w3: AsyncWeb3, poll_interval: float = 1.0):
        self.async_w3 = async_w3
        self.poll_interval = poll_interval

        # Detection callbacks
        self.detection_callbacks: List[Callable[[BuyerDetection], Any]] = []

    def add_detection_callback(self, callback: Callable[[BuyerDetection], Any]) -> None:
        """Add callback for newly detected buyers"""
        self.detection_callbacks.append(callback)

    async def watch(self, token_address: str, duration: float, exclude: Iterable[str],
                    from_block: Optional[int] = None, sources: Iterable[str] = ()) -> Set[str]:
        """Collect distinct external buyers for the given duration

        Only transfers sent by the token contract or one of ``sources`` count as
        purchases; mints and wallet-to-wallet transfers are skipped.
        """
        token_address = Web3.to_checksum_address(token_address)
        sellers = {address.lower() for address in sources}
        sellers.add(token_address.lower())
        ignored = {address.lower() for address in exclude}
        ignored.update(sellers)
        ignored.add(ZERO_ADDRESS.lower())

        if from_block is None:
            from_block = await self.async_w3.eth.block_number

        buyers: Set[str] = set()
        seen_logs: Set[tuple] = set()
        deadline = time.monotonic() + duration

        logger.info(f"Monitoring {token_address} for external buyers for {duration}s")

        while True:
            try:
                logs = await self.async_w3.eth.get_logs({
                    'address': token_address,
                    'topics': [TRANSFER_TOPIC],
                    'fromBlock': from_block,
                    'toBlock': 'latest'
                })
            except Exception as e:
                logger.error(f"Error fetching Transfer logs for {token_address}: {e}")
                logs = []

            for log in logs:
                await self._handle_log(log, token_address, sellers, ignored, buyers, seen_logs)

            if time.monotonic() >= deadline:
                break

            await asyncio.sleep(min(self.poll_interval, max(deadline - time.monotonic(), 0)))

        logger.info(f"Monitoring complete. Detected {len(buyers)} external buyers for {token_address}")
        return buyers

    async def _handle_log(self, log: Any, token_address: str, sellers: Set[str], ignored: Set[str],
                          buyers: Set[str], seen_logs: Set[tuple]) -> None:
        """Record the recipient of a purchase Transfer log if it is external"""
        try:
            topics = log['topics']
            if len(topics) < 3:
                return

            key = (as_hex(log['transactionHash']), int(log.get('logIndex', 0)))
            if key in seen_logs:
                return
            seen_logs.add(key)

            sender = _topic_to_address(topics[1])
            if sender.lower() not in sellers:
                return

            buyer = _topic_to_address(topics[2])
            if buyer.lower() in ignored or buyer in buyers:
                return

            buyers.add(buyer)
            detection = BuyerDetection(
                buyer=buyer,
                token_address=token_address,
                block_number=int(log['blockNumber']),
                transaction_hash=key[0]
            )
            logger.info(f"External buyer detected: {buyer} in block {detection.block_number}")
            await self._notify_callbacks(detection)

        except Exception as e:
            logger.error(f"Error handling Transfer log: {e}")

    async def _notify_callbacks(self, detection: BuyerDetection) -> None:
        """Notify all registered callbacks"""
        for callback in self.detection_callbacks:
            try:
                if asyncio.iscoroutinefunction(callback):
                    await callback(detection)
                else:
                    callback(detection)
            except Exception as e:
                logger.error(f"Error in detection callback: {e}")
