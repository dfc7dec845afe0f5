"""
Staggered Launch Strategy
Creates the token from the primary account, then buys from the others one at a time
"""

import logging
from typing import Tuple

from chain.dispatcher import Priority
from strategies.base import (
    LaunchStrategy, StaggeredStrategyOptions, StrategyStage, StrategyType, TokenLaunchContext
)

logger = logging.getLogger(__name__)


class StaggeredLaunchStrategy(LaunchStrategy):
    """Creates token with the primary account, followed by timed purchases"""

    strategy_type = StrategyType.STAGGERED

    @classmethod
    def default_options(cls) -> StaggeredStrategyOptions:
        return StaggeredStrategyOptions(
            name="Staggered Launch",
            description="Creates token with immediate dev wallet buy, followed by timed purchases",
            delay_between_transactions=1.0,
            wait_for_confirmation=True,
            gas_multiplier=1.3,
            max_retries=3,
            confirmations=1
        )

    async def _run(self, context: TokenLaunchContext) -> Tuple[str, str]:
        primary = self._require_accounts()[0]

        token_address, _ = await self._create_token(context, primary)

        self._set_status(
            StrategyStage.EXECUTING, 40,
            message="Token created. Starting staggered purchases..."
        )

        # Everyone except the creator buys, in priority order
        buyers = [account for account in self.registry.active_accounts() if account.address != primary.address]
        addresses, intents = self._purchase_plan(token_address, context, buyers)

        if not intents:
            return token_address, (
                f"Staggered launch completed. Token address: {token_address}. "
                f"No additional purchases were made"
            )

        options = self._execution_options(
            Priority.MEDIUM,
            confirmations=self.options.confirmations if self.options.wait_for_confirmation else 0
        )

        hashes = await self.executor.execute_sequential(
            addresses, intents,
            self.options.delay_between_transactions,
            options,
            wait_for_confirmation=self.options.wait_for_confirmation,
            confirmation_timeout=self.resources.confirmation_timeout
        )

        self._record_transactions(addresses, hashes, "buy")
        logger.info(f"Staggered purchases submitted: {len(hashes)} transactions")

        return token_address, f"Staggered launch completed. Token address: {token_address}"
