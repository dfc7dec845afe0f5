"""
Token Launcher - Main Application
Command-line entry point for multi-wallet token launches
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional
from web3 import AsyncWeb3

from api.client import PlatformClient
from chain.accounts import AccountRegistry
from chain.dispatcher import TransactionDispatcher
from chain.executor import BatchExecutor
from chain.factory_contract import TokenFactoryContract
from config import Config, DEFAULT_TOKEN_PARAMS
from database import LaunchJournal
from engine import CreateTokenOptions, LaunchEngine
from errors import LaunchError
from notify.telegram import TelegramNotifier
from strategies.base import BuyOptions, Countermeasure, StrategyResources, StrategyType
from strategies.factory import StrategyFactory
from utils.formatting import format_address, format_native, format_status
from utils.security import validate_address, validate_amount

logger = logging.getLogger(__name__)


def configure_logging(config: Config, verbose: bool = False) -> None:
    """Log to the configured file and stdout"""
    level = logging.DEBUG if verbose else getattr(logging, config.log_level, logging.INFO)
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(config.log_file),
            logging.StreamHandler(sys.stdout)
        ]
    )


class LauncherApp:
    """Wires configuration, chain access and the launch engine together"""

    def __init__(self, config: Config):
        self.config = config

        self.async_w3 = None
        self.registry = None
        self.api = None
        self.journal = None
        self.engine = None

    async def initialize(self) -> None:
        """Initialize all launcher components"""
        logger.info("Initializing token launcher...")

        self.config.validate()

        self.async_w3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(self.config.rpc_url))
        chain_id = await self.async_w3.eth.chain_id
        if chain_id != self.config.chain_id:
            raise LaunchError(f"Invalid chain ID: {chain_id}, expected {self.config.chain_id}")
        logger.info(f"Connected to chain {chain_id}")

        self.registry = AccountRegistry(self.async_w3)
        dispatcher = TransactionDispatcher(
            self.async_w3, self.registry, self.config.chain_id,
            poll_interval=self.config.receipt_poll_interval
        )
        resources = StrategyResources(
            registry=self.registry,
            executor=BatchExecutor(dispatcher),
            factory_contract=TokenFactoryContract(self.config.factory_address, self.async_w3),
            create_token_fee_wei=self.config.create_token_fee_wei,
            confirmation_timeout=self.config.confirmation_timeout_or_none
        )

        self.api = PlatformClient(self.config)

        if self.config.journal_path:
            self.journal = LaunchJournal(self.config.journal_path)
            await self.journal.initialize()

        self.engine = LaunchEngine(
            self.config,
            self.registry,
            self.api,
            StrategyFactory(resources),
            notifier=TelegramNotifier(self.config.telegram_token, self.config.telegram_chat_id),
            journal=self.journal
        )
        await self.engine.setup_accounts()

        logger.info("Token launcher initialized successfully")

    async def shutdown(self) -> None:
        """Release network clients"""
        if self.api:
            await self.api.close()
        if self.async_w3:
            await self.async_w3.provider.disconnect()

    async def create_token(self, args: argparse.Namespace) -> int:
        options = build_create_options(args)

        try:
            result = await self.engine.create_token(options)
        except Exception as e:
            logger.error(f"Error creating token: {e}")
            if self.engine.last_token_address:
                print(f"Token address: {self.engine.last_token_address}")
            print(f"Error creating token: {e}")
            return 1

        print(format_status(result.strategy_status.to_dict()))
        print(f"Token address: {result.token_address}")
        for tx_hash in result.transaction_hashes:
            print(f"  tx: {tx_hash}")
        return 0

    async def buy_tokens(self, args: argparse.Namespace) -> int:
        hashes = await self.engine.buy_tokens(args.token, args.amount)
        for address, tx_hash in hashes.items():
            print(f"{format_address(address)} tx: {tx_hash}")

        buyers = len(self.registry.active_accounts()) - 1
        if buyers > 0 and len(hashes) < buyers:
            print(f"{buyers - len(hashes)} of {buyers} purchases failed")
            return 1
        return 0

    async def show_balances(self) -> int:
        balances = await self.registry.refresh_balances()
        for account in self.registry.active_accounts():
            balance = balances.get(account.address, account.balance)
            print(f"{account.label:<12} {format_address(account.address)} {format_native(balance)}")
        return 0


def _positive_amount(value: str) -> str:
    if validate_amount(value) is None:
        raise argparse.ArgumentTypeError(f"invalid amount: {value}")
    return value


def _token_address(value: str) -> str:
    if not validate_address(value):
        raise argparse.ArgumentTypeError(f"invalid token address: {value}")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="token-launcher",
        description="Launch a token and coordinate purchases across multiple wallets"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    create = subparsers.add_parser("create-token", help="Create a new token and run a launch strategy")
    create.add_argument("-n", "--name", required=True, help="Token name")
    create.add_argument("-s", "--symbol", required=True, help="Token symbol")
    create.add_argument("-d", "--decimals", type=int, default=DEFAULT_TOKEN_PARAMS["decimals"],
                        help="Token decimals")
    create.add_argument("-t", "--total-supply", default=str(DEFAULT_TOKEN_PARAMS["total_supply"]),
                        help="Token total supply")
    create.add_argument("--description", default=DEFAULT_TOKEN_PARAMS["description"],
                        help="Token description")
    create.add_argument("--telegram", help="Telegram URL")
    create.add_argument("--twitter", help="Twitter URL")
    create.add_argument("--website", help="Website URL")

    image = create.add_mutually_exclusive_group(required=True)
    image.add_argument("-i", "--image", dest="image_path", help="Path to token image")
    image.add_argument("--logo-url", help="URL of an already uploaded logo")

    create.add_argument("-b", "--buy", action="store_true", help="Buy tokens after creation")
    create.add_argument("--buy-amount", type=_positive_amount, default=DEFAULT_TOKEN_PARAMS["buy_amount"],
                        help="Amount to buy per wallet in native currency")
    create.add_argument("--strategy", choices=[t.value for t in StrategyType], default=StrategyType.BUNDLE.value,
                        help="Launch strategy")
    create.add_argument("--delay", type=float, help="Seconds between purchases (staggered)")
    create.add_argument("--no-wait", action="store_true",
                        help="Do not wait for each purchase to confirm (staggered)")
    create.add_argument("--monitor-duration", type=float, help="Seconds to watch for snipers (anti-sniper)")
    create.add_argument("--trigger-threshold", type=int, help="External buyers that trigger countermeasures")
    create.add_argument("--countermeasures", choices=[c.value for c in Countermeasure],
                        help="Countermeasure when snipers are detected (anti-sniper)")
    create.add_argument("--gas-multiplier", type=float, help="Gas limit multiplier")

    buy = subparsers.add_parser("buy", help="Buy an existing token from every buyer wallet")
    buy.add_argument("token", type=_token_address, help="Token contract address")
    buy.add_argument("-a", "--amount", type=_positive_amount, default=DEFAULT_TOKEN_PARAMS["buy_amount"],
                     help="Amount to buy per wallet in native currency")

    subparsers.add_parser("balances", help="Show balances of the configured wallets")
    return parser


def build_create_options(args: argparse.Namespace) -> CreateTokenOptions:
    """Map parsed arguments onto a launch request"""
    strategy_options = {
        'gas_multiplier': args.gas_multiplier,
        'delay_between_transactions': args.delay,
        'monitor_duration': args.monitor_duration,
        'trigger_threshold': args.trigger_threshold,
        'countermeasures': args.countermeasures,
    }
    if args.no_wait:
        strategy_options['wait_for_confirmation'] = False

    return CreateTokenOptions(
        name=args.name,
        symbol=args.symbol,
        decimals=args.decimals,
        total_supply=args.total_supply,
        description=args.description,
        image_path=args.image_path,
        logo_url=args.logo_url,
        telegram=args.telegram,
        twitter=args.twitter,
        website=args.website,
        buy=BuyOptions(enabled=args.buy, buy_amount=args.buy_amount),
        strategy=StrategyType(args.strategy),
        strategy_options={key: value for key, value in strategy_options.items() if value is not None}
    )


async def run(args: argparse.Namespace, config: Config) -> int:
    app = LauncherApp(config)
    try:
        await app.initialize()
        if args.command == "create-token":
            return await app.create_token(args)
        if args.command == "buy":
            return await app.buy_tokens(args)
        return await app.show_balances()
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        print(f"Error: {e}")
        return 1
    finally:
        await app.shutdown()


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point"""
    args = build_parser().parse_args(argv)

    try:
        config = Config.from_env()
    except LaunchError as e:
        print(f"Configuration error: {e}")
        return 1

    configure_logging(config, args.verbose)

    try:
        return asyncio.run(run(args, config))
    except KeyboardInterrupt:
        logger.info("Launcher stopped by user")
        return 1


if __name__ == '__main__':
    sys.exit(main())
