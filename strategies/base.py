"""
Launch Strategy Base
Shared state machine, option types and token-creation flow for launch strategies
"""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union
from web3 import Web3

from chain.accounts import Account, AccountRegistry
from chain.dispatcher import ExecutionOptions, Priority, TransactionIntent, TransactionReceipt
from chain.executor import BatchExecutor
from chain.factory_contract import TokenFactoryContract
from chain.monitor import BuyerMonitor
from errors import TokenCreationError

logger = logging.getLogger(__name__)


class StrategyType(str, Enum):
    BUNDLE = "bundle"
    STAGGERED = "staggered"
    ANTI_SNIPER = "anti-sniper"


class StrategyStage(str, Enum):
    IDLE = "idle"
    INITIALIZED = "initialized"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"


class Countermeasure(str, Enum):
    NONE = "none"
    DELAY = "delay"
    ABORT = "abort"
    DUMP = "dump"


@dataclass(frozen=True)
class StrategyStatus:
    """Snapshot of a strategy's progress"""
    stage: StrategyStage = StrategyStage.IDLE
    progress: int = 0
    message: Optional[str] = None
    error: Optional[str] = None
    token_address: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            'stage': self.stage.value,
            'progress': self.progress,
            'message': self.message,
            'error': self.error,
            'token_address': self.token_address
        }


@dataclass(frozen=True)
class StrategyOptions:
    """Options common to all strategies"""
    name: str = ""
    description: str = ""
    gas_multiplier: float = 1.2
    max_retries: int = 3
    confirmations: int = 1


@dataclass(frozen=True)
class BundleStrategyOptions(StrategyOptions):
    execute_all_at_once: bool = True
    max_concurrent_transactions: Optional[int] = 10


@dataclass(frozen=True)
class StaggeredStrategyOptions(StrategyOptions):
    delay_between_transactions: float = 1.0  # seconds
    wait_for_confirmation: bool = True


@dataclass(frozen=True)
class AntiSniperStrategyOptions(StrategyOptions):
    monitor_duration: float = 10.0  # seconds
    trigger_threshold: int = 2  # distinct external buyers
    countermeasures: Countermeasure = Countermeasure.DELAY
    countermeasure_delay: float = 5.0
    poll_interval: float = 1.0


@dataclass(frozen=True)
class BuyOptions:
    enabled: bool = False
    buy_amount: str = "0.1"  # native currency per account


@dataclass(frozen=True)
class TokenLaunchContext:
    """Everything a strategy needs to create and buy a token"""
    name: str
    symbol: str
    create_arg: Optional[str] = None
    signature: Optional[str] = None
    contract_address: Optional[str] = None
    buy: BuyOptions = field(default_factory=BuyOptions)


@dataclass(frozen=True)
class SubmittedTransaction:
    """Transaction sent by a strategy run"""
    tx_hash: str
    account: str
    kind: str  # 'create', 'buy'


@dataclass
class StrategyResources:
    """Collaborators shared by every strategy built by one factory"""
    registry: AccountRegistry
    executor: BatchExecutor
    factory_contract: TokenFactoryContract
    create_token_fee_wei: int
    confirmation_timeout: Optional[float] = None
    monitor: Optional[BuyerMonitor] = None
    retry_backoff: float = 0.5


def merge_options(current: StrategyOptions, overrides: Union[StrategyOptions, Mapping[str, Any], None]) -> StrategyOptions:
    """Apply overrides to options, ignoring keys the variant does not know"""
    if overrides is None:
        return current

    if isinstance(overrides, StrategyOptions):
        overrides = {f.name: getattr(overrides, f.name) for f in fields(overrides)}

    known = {f.name for f in fields(current)}
    values = {key: value for key, value in overrides.items() if key in known and value is not None}

    ignored = set(overrides) - known
    if ignored:
        logger.debug(f"Ignoring options not used by {type(current).__name__}: {sorted(ignored)}")

    if 'countermeasures' in values:
        values['countermeasures'] = Countermeasure(values['countermeasures'])

    return replace(current, **values)


class LaunchStrategy(ABC):
    """Create-then-buy state machine shared by all launch strategies"""

    strategy_type: StrategyType

    def __init__(self, resources: StrategyResources):
        self.resources = resources
        self.options = self.default_options()
        self.transactions: List[SubmittedTransaction] = []
        self.token_address: Optional[str] = None

        self._status = StrategyStatus()
        self._status_lock = threading.Lock()
        self._status_listeners: List[Callable[[StrategyStatus], None]] = []

    @classmethod
    @abstractmethod
    def default_options(cls) -> StrategyOptions:
        """Built-in options used when initialize() is skipped"""

    @property
    def name(self) -> str:
        return self.options.name

    @property
    def description(self) -> str:
        return self.options.description

    @property
    def transaction_hashes(self) -> List[str]:
        return [tx.tx_hash for tx in self.transactions]

    @property
    def registry(self) -> AccountRegistry:
        return self.resources.registry

    @property
    def executor(self) -> BatchExecutor:
        return self.resources.executor

    async def initialize(self, options: Union[StrategyOptions, Mapping[str, Any], None] = None) -> None:
        """Merge caller options over the variant defaults"""
        self.options = merge_options(self.default_options(), options)
        self._set_status(
            StrategyStage.INITIALIZED, 10,
            message=f"Strategy initialized with {self.strategy_type.value} launch options"
        )
        logger.info(f"Initialized {self.options.name} strategy")

    async def execute(self, context: TokenLaunchContext) -> str:
        """Run the strategy; status always ends in completed or failed"""
        self.transactions = []
        self.token_address = None
        try:
            self._set_status(StrategyStage.EXECUTING, 20, message=f"Preparing for {self.options.name}...")
            token_address, message = await self._run(context)

            self._set_status(StrategyStage.COMPLETED, 100, message=message, token_address=token_address)
            logger.info(message)
            return token_address

        except Exception as e:
            self._set_status(
                StrategyStage.FAILED, 0,
                message=f"{self.options.name} failed",
                error=str(e) or type(e).__name__,
                token_address=self.token_address
            )
            logger.error(f"{self.options.name} failed: {e}")
            raise

        finally:
            await self.cleanup()

    @abstractmethod
    async def _run(self, context: TokenLaunchContext) -> Tuple[str, str]:
        """Variant-specific flow returning (token address, completion message)"""

    def add_status_listener(self, listener: Callable[[StrategyStatus], None]) -> None:
        """Register a callback invoked on every status transition"""
        self._status_listeners.append(listener)

    def get_status(self) -> StrategyStatus:
        """Get the latest status snapshot"""
        with self._status_lock:
            return self._status

    async def cleanup(self) -> None:
        """Release strategy-local tracking state"""

    def _set_status(self, stage: StrategyStage, progress: int, message: Optional[str] = None,
                    error: Optional[str] = None, token_address: Optional[str] = None) -> None:
        status = StrategyStatus(
            stage=stage, progress=progress, message=message, error=error, token_address=token_address
        )
        with self._status_lock:
            self._status = status

        for listener in self._status_listeners:
            try:
                listener(status)
            except Exception as e:
                logger.error(f"Error in status listener: {e}")

    def _execution_options(self, priority: Priority, **overrides: Any) -> ExecutionOptions:
        """Merge strategy options into per-call execution options"""
        values = {
            'gas_multiplier': self.options.gas_multiplier,
            'max_retries': self.options.max_retries,
            'confirmations': self.options.confirmations,
            'priority': priority,
        }
        values.update(overrides)
        return ExecutionOptions(retry_backoff=self.resources.retry_backoff).merged(**values)

    def _record_transactions(self, addresses: List[str], hashes: List[str], kind: str) -> None:
        for address, tx_hash in zip(addresses, hashes):
            self.transactions.append(SubmittedTransaction(tx_hash=tx_hash, account=address, kind=kind))

    def _require_accounts(self) -> List[Account]:
        accounts = self.registry.active_accounts()
        if not accounts:
            raise TokenCreationError("No accounts available for token creation")
        return accounts

    async def _create_token(self, context: TokenLaunchContext, creator: Account) -> Tuple[str, TransactionReceipt]:
        """Submit the factory createToken transaction and resolve the token address"""
        if not context.create_arg or not context.signature:
            raise TokenCreationError(
                "Missing required createArg or signature - cannot proceed with token creation"
            )

        intent = self.resources.factory_contract.build_create_token_intent(
            context.create_arg, context.signature, self.resources.create_token_fee_wei
        )

        self._set_status(StrategyStage.EXECUTING, 30, message="Creating token contract...")

        options = self._execution_options(Priority.HIGH)
        tx_hash = await self.executor.dispatch_with_retry(creator.address, intent, options)
        self._record_transactions([creator.address], [tx_hash], "create")

        receipt = await self.executor.dispatcher.await_confirmation(
            tx_hash, max(1, options.confirmations), timeout=self.resources.confirmation_timeout
        )

        if receipt is None or not receipt.succeeded:
            raise TokenCreationError(f"Token creation failed. Transaction hash: {tx_hash}")

        token_address = receipt.contract_address or context.contract_address
        if not token_address:
            raise TokenCreationError("Could not determine token contract address")

        if not Web3.is_address(token_address):
            raise TokenCreationError(f"Invalid token contract address: {token_address}")

        token_address = Web3.to_checksum_address(token_address)
        self.token_address = token_address

        if not await self.resources.factory_contract.is_contract_deployed(token_address):
            raise TokenCreationError(f"No contract code at token address {token_address}")

        logger.info(f"Token {context.symbol} created at {token_address} (tx {tx_hash})")
        return token_address, receipt

    def _purchase_plan(self, token_address: str, context: TokenLaunchContext,
                       accounts: List[Account]) -> Tuple[List[str], List[TransactionIntent]]:
        """Build one buy transaction per account"""
        if not context.buy.enabled:
            return [], []

        amount_wei = Web3.to_wei(context.buy.buy_amount, 'ether')
        addresses = [account.address for account in accounts]
        intents = [
            self.resources.factory_contract.build_buy_intent(token_address, amount_wei)
            for _ in accounts
        ]
        return addresses, intents
