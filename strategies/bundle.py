"""
Bundle Launch Strategy
Creates the token and executes all purchases as one parallel batch
"""

import logging
from typing import Tuple

from chain.dispatcher import Priority
from strategies.base import (
    BundleStrategyOptions, LaunchStrategy, StrategyStage, StrategyType, TokenLaunchContext
)

logger = logging.getLogger(__name__)


class BundleLaunchStrategy(LaunchStrategy):
    """Creates token and executes all buys in rapid succession"""

    strategy_type = StrategyType.BUNDLE

    @classmethod
    def default_options(cls) -> BundleStrategyOptions:
        return BundleStrategyOptions(
            name="Bundle Launch",
            description="Creates token and executes all buys in rapid succession",
            execute_all_at_once=True,
            max_concurrent_transactions=10,
            # Higher gas multiplier for competitive environment
            gas_multiplier=1.5,
            max_retries=2,
            confirmations=1
        )

    async def _run(self, context: TokenLaunchContext) -> Tuple[str, str]:
        accounts = self._require_accounts()
        primary = accounts[0]

        token_address, _ = await self._create_token(context, primary)

        self._set_status(
            StrategyStage.EXECUTING, 50,
            message=f"Token created at {token_address}. Preparing purchases..."
        )

        addresses, intents = self._purchase_plan(token_address, context, self.registry.active_accounts())
        if not intents:
            return token_address, (
                f"Token created successfully at {token_address}, but no accounts available for purchasing"
            )

        self._set_status(StrategyStage.EXECUTING, 70, message=f"Executing {len(intents)} purchases...")

        options = self._execution_options(Priority.HIGH)
        if self.options.execute_all_at_once:
            hashes = await self.executor.execute_parallel(
                addresses, intents, options,
                max_concurrency=self.options.max_concurrent_transactions
            )
        else:
            hashes = await self.executor.execute_sequential(addresses, intents, 0, options)

        self._record_transactions(addresses, hashes, "buy")
        logger.info(f"Bundle purchases submitted: {len(hashes)} transactions")

        return token_address, f"Bundle launch completed. Token address: {token_address}"
