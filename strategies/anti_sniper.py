"""
Anti-Sniper Strategy
Monitors for sniper activity and implements countermeasures
"""

import asyncio
import logging
from enum import Enum
from typing import Set, Tuple

from chain.dispatcher import Priority
from chain.monitor import BuyerMonitor
from errors import LaunchAbortedError
from strategies.base import (
    AntiSniperStrategyOptions, Countermeasure, LaunchStrategy, StrategyStage,
    StrategyType, TokenLaunchContext
)

logger = logging.getLogger(__name__)


class CountermeasureOutcome(str, Enum):
    NOT_TRIGGERED = "not_triggered"
    PROCEEDED = "proceeded"
    DELAYED = "delayed"
    NOT_IMPLEMENTED = "not_implemented"


class AntiSniperStrategy(LaunchStrategy):
    """Creates token, watches for external buyers, then reacts before buying"""

    strategy_type = StrategyType.ANTI_SNIPER

    def __init__(self, resources):
        super().__init__(resources)
        self.external_buyers: Set[str] = set()

    @classmethod
    def default_options(cls) -> AntiSniperStrategyOptions:
        return AntiSniperStrategyOptions(
            name="Anti-Sniper",
            description="Monitors for sniper activity and implements countermeasures",
            monitor_duration=10.0,
            trigger_threshold=2,
            countermeasures=Countermeasure.DELAY,
            gas_multiplier=1.4,
            max_retries=3,
            confirmations=1
        )

    async def _run(self, context: TokenLaunchContext) -> Tuple[str, str]:
        primary = self._require_accounts()[0]

        token_address, receipt = await self._create_token(context, primary)

        self._set_status(
            StrategyStage.EXECUTING, 40,
            message="Token created. Monitoring for sniper activity..."
        )

        await self._monitor_for_snipers(token_address, receipt.block_number)

        outcome = await self._apply_countermeasure()
        logger.info(f"Countermeasure outcome for {token_address}: {outcome.value}")

        addresses, intents = self._purchase_plan(token_address, context, self.registry.active_accounts())
        if intents:
            self._set_status(StrategyStage.EXECUTING, 90, message=f"Executing {len(intents)} purchases...")
            hashes = await self.executor.execute_parallel(
                addresses, intents, self._execution_options(Priority.HIGH)
            )
            self._record_transactions(addresses, hashes, "buy")

        return token_address, f"Anti-sniper launch completed. Token address: {token_address}"

    async def _monitor_for_snipers(self, token_address: str, from_block: int) -> None:
        """Record distinct external buyers seen during the monitor window"""
        monitor = self.resources.monitor or BuyerMonitor(
            self.executor.dispatcher.async_w3, poll_interval=self.options.poll_interval
        )

        buyers = await monitor.watch(
            token_address,
            self.options.monitor_duration,
            exclude=self.registry.list_addresses(),
            from_block=from_block,
            sources=[self.resources.factory_contract.factory_address]
        )
        self.external_buyers.update(buyers)

        self._set_status(
            StrategyStage.EXECUTING, 70,
            message=f"Monitoring complete. Detected {len(self.external_buyers)} external buyers"
        )

    async def _apply_countermeasure(self) -> CountermeasureOutcome:
        """React to sniper activity once the threshold is reached"""
        detected = len(self.external_buyers)
        if detected < self.options.trigger_threshold:
            return CountermeasureOutcome.NOT_TRIGGERED

        countermeasure = Countermeasure(self.options.countermeasures)
        self._set_status(
            StrategyStage.EXECUTING, 80,
            message=f"Executing {countermeasure.value} countermeasures..."
        )
        logger.warning(
            f"Sniper activity detected: {detected} external buyers "
            f"(threshold {self.options.trigger_threshold}), applying {countermeasure.value}"
        )

        if countermeasure == Countermeasure.ABORT:
            raise LaunchAbortedError(detected, self.options.trigger_threshold)

        if countermeasure == Countermeasure.DELAY:
            await asyncio.sleep(self.options.countermeasure_delay)
            return CountermeasureOutcome.DELAYED

        if countermeasure == Countermeasure.DUMP:
            logger.warning("Dump countermeasure is not implemented, continuing with purchases")
            self._set_status(
                StrategyStage.EXECUTING, 80,
                message="Dump countermeasure not implemented, continuing with purchases"
            )
            return CountermeasureOutcome.NOT_IMPLEMENTED

        return CountermeasureOutcome.PROCEEDED

    async def cleanup(self) -> None:
        """Forget buyers detected during the last run"""
        self.external_buyers.clear()
