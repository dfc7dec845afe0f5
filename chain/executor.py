"""
Batch Executor
Runs the dispatcher across many accounts, concurrently or as a timed sequence
"""

import asyncio
import logging
from typing import List, Optional, Sequence

from chain.dispatcher import TransactionDispatcher, TransactionIntent, ExecutionOptions
from errors import ArityMismatchError, GasEstimationError

logger = logging.getLogger(__name__)


class BatchExecutor:
    """Parallel and sequential multi-account transaction execution"""

    def __init__(self, dispatcher: TransactionDispatcher):
        self.dispatcher = dispatcher

    async def dispatch_with_retry(self, address: str, intent: TransactionIntent,
                                  options: ExecutionOptions) -> str:
        """Dispatch, retrying only failures that happened before submission"""
        attempt = 0
        while True:
            try:
                return await self.dispatcher.dispatch(address, intent, options)
            except GasEstimationError as e:
                if attempt >= options.max_retries:
                    raise
                delay = options.retry_backoff * (2 ** attempt)
                attempt += 1
                logger.warning(
                    f"Gas estimation failed for {address} (attempt {attempt}/{options.max_retries}), "
                    f"retrying in {delay:.2f}s: {e}"
                )
                await asyncio.sleep(delay)

    async def execute_parallel(self, addresses: Sequence[str], intents: Sequence[TransactionIntent],
                               options: ExecutionOptions,
                               max_concurrency: Optional[int] = None) -> List[str]:
        """Dispatch all transactions concurrently; any failure fails the batch"""
        if len(addresses) != len(intents):
            raise ArityMismatchError(len(addresses), len(intents))

        semaphore = asyncio.Semaphore(max_concurrency) if max_concurrency else None

        async def run(address: str, intent: TransactionIntent) -> str:
            if semaphore is None:
                return await self.dispatch_with_retry(address, intent, options)
            async with semaphore:
                return await self.dispatch_with_retry(address, intent, options)

        results = await asyncio.gather(
            *(run(address, intent) for address, intent in zip(addresses, intents)),
            return_exceptions=True
        )

        first_error: Optional[BaseException] = None
        for address, result in zip(addresses, results):
            if isinstance(result, BaseException):
                logger.error(f"Transaction failed for account {address}: {result}")
                if first_error is None:
                    first_error = result

        if first_error is not None:
            raise first_error

        logger.info(f"Parallel batch of {len(results)} transactions submitted")
        return list(results)

    async def execute_sequential(self, addresses: Sequence[str], intents: Sequence[TransactionIntent],
                                 delay: float, options: ExecutionOptions,
                                 wait_for_confirmation: bool = False,
                                 confirmation_timeout: Optional[float] = None) -> List[str]:
        """Dispatch one at a time in order, sleeping between dispatches"""
        if len(addresses) != len(intents):
            raise ArityMismatchError(len(addresses), len(intents))

        hashes: List[str] = []

        for i, (address, intent) in enumerate(zip(addresses, intents)):
            tx_hash = await self.dispatch_with_retry(address, intent, options)
            hashes.append(tx_hash)

            if wait_for_confirmation:
                await self.dispatcher.await_confirmation(
                    tx_hash, options.confirmations, timeout=confirmation_timeout
                )

            if i < len(addresses) - 1 and delay > 0:
                await asyncio.sleep(delay)

        logger.info(f"Sequential batch of {len(hashes)} transactions submitted")
        return hashes
