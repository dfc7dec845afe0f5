"""
Launch Engine
Orchestrates platform registration, strategy execution and direct purchases
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from web3 import Web3

from api.client import PlatformClient, TokenCreateRequest
from chain.accounts import AccountRegistry
from chain.dispatcher import ExecutionOptions, Priority
from config import (
    Config, DEFAULT_TOKEN_PARAMS, LAUNCH_COMPLETED_MESSAGE, LAUNCH_FAILED_MESSAGE, LAUNCH_STARTED_MESSAGE
)
from database import LaunchJournal, LaunchRecord, TransactionRecord
from errors import LaunchError, TokenCreationError
from notify.telegram import TelegramNotifier
from strategies.base import (
    BuyOptions, LaunchStrategy, StrategyStage, StrategyStatus, StrategyType, TokenLaunchContext
)
from strategies.factory import StrategyFactory
from utils.formatting import format_status
from utils.security import mask_address, validate_address

logger = logging.getLogger(__name__)


@dataclass
class CreateTokenOptions:
    """Caller request for one token launch"""
    name: str
    symbol: str
    decimals: int = DEFAULT_TOKEN_PARAMS["decimals"]
    total_supply: str = str(DEFAULT_TOKEN_PARAMS["total_supply"])
    description: str = DEFAULT_TOKEN_PARAMS["description"]
    image_path: Optional[str] = None
    logo_url: Optional[str] = None
    telegram: Optional[str] = None
    twitter: Optional[str] = None
    website: Optional[str] = None
    buy: BuyOptions = field(default_factory=BuyOptions)
    strategy: StrategyType = StrategyType.BUNDLE
    strategy_options: Dict[str, Any] = field(default_factory=dict)


@dataclass
class LaunchResult:
    """Outcome of a successful launch"""
    token_address: str
    strategy_status: StrategyStatus
    transaction_hashes: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            'token_address': self.token_address,
            'strategy_status': self.strategy_status.to_dict(),
            'transaction_hashes': list(self.transaction_hashes)
        }


class LaunchEngine:
    """Core engine for orchestrating the token creation process"""

    def __init__(self, config: Config, registry: AccountRegistry, api: PlatformClient,
                 factory: StrategyFactory, notifier: Optional[TelegramNotifier] = None,
                 journal: Optional[LaunchJournal] = None):
        self.config = config
        self.registry = registry
        self.api = api
        self.factory = factory
        self.notifier = notifier
        self.journal = journal

        # Last known token address, kept for reporting partial progress
        self.last_token_address: Optional[str] = None

    async def setup_accounts(self) -> List[str]:
        """Register the primary wallet, then buyer wallets in order"""
        keys = self.config.all_private_keys
        labels = []
        if self.config.primary_private_key:
            labels.append("Primary")
        labels.extend(f"Buyer {i}" for i in range(1, len(self.config.buyer_private_keys) + 1))

        addresses = await self.registry.add_accounts(keys, labels)
        logger.info(f"Registered {len(addresses)} accounts")
        return addresses

    async def create_token(self, options: CreateTokenOptions) -> LaunchResult:
        """Register the token on the platform and launch it with the selected strategy"""
        self.last_token_address = None

        primary = self.registry.primary_account()
        if primary is None:
            raise TokenCreationError("No accounts available for token creation")

        await self.api.login(self.registry.get_signer(primary.address))
        user_info = await self.api.get_user_info()
        logger.info(f"Authenticated as: {mask_address((user_info or {}).get('address') or primary.address)}")

        logo_url = options.logo_url
        if not logo_url:
            if not options.image_path:
                raise TokenCreationError("An image path or logo URL is required")
            logo_url = await self.api.upload_image(options.image_path)

        created = await self.api.create_token(TokenCreateRequest(
            name=options.name,
            symbol=options.symbol,
            decimals=options.decimals,
            total_supply=options.total_supply,
            description=options.description,
            logo_url=logo_url,
            telegram=options.telegram,
            twitter=options.twitter,
            website=options.website
        ))

        token_address = created.token_address
        if not token_address:
            logger.info("Waiting for token contract address...")
            token_address = await self.api.wait_for_token_address(
                created.token_id,
                self.config.token_address_attempts,
                self.config.token_address_interval
            )
        if not validate_address(token_address or ""):
            raise TokenCreationError(f"Platform returned an invalid token address: {token_address!r}")
        self.last_token_address = Web3.to_checksum_address(token_address)
        logger.info(f"Token contract address: {self.last_token_address}")

        strategy = await self._build_strategy(options)
        launch_id = await self._journal_start(options)
        await self._notify(LAUNCH_STARTED_MESSAGE.format(
            name=options.name, symbol=options.symbol, strategy=options.strategy.value
        ))

        context = TokenLaunchContext(
            name=options.name,
            symbol=options.symbol,
            create_arg=created.create_arg,
            signature=created.signature,
            contract_address=self.last_token_address,
            buy=options.buy
        )

        try:
            # execute() always runs cleanup itself
            final_address = await strategy.execute(context)
        except Exception as e:
            status = strategy.get_status()
            self.last_token_address = status.token_address or self.last_token_address
            await self._journal_finish(launch_id, strategy, status)
            await self._notify(LAUNCH_FAILED_MESSAGE.format(
                token_address=self.last_token_address or "unknown", error=e
            ))
            raise

        self.last_token_address = final_address
        status = strategy.get_status()
        await self._journal_finish(launch_id, strategy, status)
        await self._notify(LAUNCH_COMPLETED_MESSAGE.format(
            token_address=final_address, status=status.message
        ))

        return LaunchResult(
            token_address=final_address,
            strategy_status=status,
            transaction_hashes=strategy.transaction_hashes
        )

    async def buy_tokens(self, token_address: str, amount: str) -> Dict[str, str]:
        """Buy from every buyer account, logging and skipping individual failures"""
        primary = self.registry.primary_account()
        buyers = [
            account for account in self.registry.active_accounts()
            if primary is None or account.address != primary.address
        ]
        if not buyers:
            logger.info("No buyer accounts configured")
            return {}

        intent = self.factory.resources.factory_contract.build_buy_intent(
            token_address, Web3.to_wei(amount, 'ether')
        )
        options = ExecutionOptions(
            gas_multiplier=self.config.gas_multiplier,
            max_retries=self.config.max_retries,
            confirmations=self.config.confirmations,
            priority=Priority.MEDIUM
        )

        hashes: Dict[str, str] = {}
        for account in buyers:
            try:
                tx_hash = await self.factory.resources.executor.dispatch_with_retry(
                    account.address, intent, options
                )
            except LaunchError as e:
                logger.error(f"Failed to buy tokens with account {account.label}: {e}")
                continue

            hashes[account.address] = tx_hash
            logger.info(f"Bought tokens with account {account.label}, tx: {tx_hash}")

        return hashes

    async def _build_strategy(self, options: CreateTokenOptions) -> LaunchStrategy:
        """Build the selected strategy with its variant defaults and the caller's options"""
        builders = {
            StrategyType.BUNDLE: self.factory.create_bundle_strategy,
            StrategyType.STAGGERED: self.factory.create_staggered_strategy,
            StrategyType.ANTI_SNIPER: self.factory.create_anti_sniper_strategy,
        }
        strategy_type = StrategyType(options.strategy)

        strategy = await builders[strategy_type](dict(options.strategy_options))
        strategy.add_status_listener(lambda status: logger.info(format_status(status.to_dict())))
        return strategy

    async def _notify(self, text: str) -> None:
        if self.notifier is not None:
            await self.notifier.send(text)

    async def _journal_start(self, options: CreateTokenOptions) -> Optional[int]:
        if self.journal is None:
            return None

        return await self.journal.record_launch(LaunchRecord(
            id=None,
            token_name=options.name,
            token_symbol=options.symbol,
            strategy=StrategyType(options.strategy).value,
            stage=StrategyStage.EXECUTING.value,
            token_address=self.last_token_address
        ))

    async def _journal_finish(self, launch_id: Optional[int], strategy: LaunchStrategy,
                              status: StrategyStatus) -> None:
        if self.journal is None or launch_id is None:
            return

        await self.journal.update_launch(
            launch_id, status.stage.value, token_address=status.token_address, error=status.error
        )
        for tx in strategy.transactions:
            await self.journal.record_transaction(TransactionRecord(
                launch_id=launch_id, tx_hash=tx.tx_hash, account=tx.account, kind=tx.kind
            ))
