"""
Launcher Configuration
Core constants, contract ABIs, and environment loading
"""

import os
import logging
from dataclasses import dataclass, field, replace
from typing import Dict, Any, List, Optional, Tuple
from dotenv import load_dotenv
from web3 import Web3

from errors import ConfigError
from utils.security import validate_private_key

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_RPC_URL = "https://bsc-dataseed.binance.org/"
DEFAULT_FACTORY_ADDRESS = "0x5c952063c7fc8610FFDB798152D69F0B9550762b"
DEFAULT_API_BASE_URL = "https://four.meme/meme-api/v1"

API_PATHS = {
    "nonce": "/private/user/nonce/generate",
    "login": "/private/user/login/dex",
    "user_info": "/private/user/info",
    "upload": "/private/token/upload",
    "create": "/private/token/create",
    "details": "/private/token/details",
}


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}")


def _load_buyer_keys() -> Tuple[str, ...]:
    """Read BUYER_WALLET_<n>_PRIVATE_KEY until the first gap"""
    keys: List[str] = []
    index = 1
    while True:
        key = os.getenv(f"BUYER_WALLET_{index}_PRIVATE_KEY")
        if not key:
            break
        keys.append(key)
        index += 1
    return tuple(keys)


@dataclass(frozen=True)
class Config:
    """Launcher configuration, passed explicitly into every component"""

    # Chain
    rpc_url: str = DEFAULT_RPC_URL
    chain_id: int = 56
    factory_address: str = DEFAULT_FACTORY_ADDRESS
    create_token_fee: str = "0.009"  # native currency

    # Execution defaults
    gas_multiplier: float = 1.2
    max_retries: int = 3
    confirmations: int = 1
    receipt_poll_interval: float = 2.0
    confirmation_timeout: float = 0  # 0 = wait forever

    # Token platform API
    api_base_url: str = DEFAULT_API_BASE_URL
    api_requests_per_second: int = 5
    token_address_attempts: int = 30
    token_address_interval: float = 2.0

    # Wallets
    primary_private_key: str = field(default="", repr=False)
    buyer_private_keys: Tuple[str, ...] = field(default=(), repr=False)

    # Notifications
    telegram_token: str = field(default="", repr=False)
    telegram_chat_id: str = ""

    # Launch journal (empty = disabled)
    journal_path: str = ""

    # Logging
    log_level: str = "INFO"
    log_file: str = "launcher.log"

    @classmethod
    def from_env(cls, **overrides: Any) -> "Config":
        """Build configuration from environment variables"""
        config = cls(
            rpc_url=os.getenv("RPC_URL", DEFAULT_RPC_URL),
            chain_id=_env_int("CHAIN_ID", 56),
            factory_address=os.getenv("FACTORY_ADDRESS", DEFAULT_FACTORY_ADDRESS),
            create_token_fee=os.getenv("CREATE_TOKEN_FEE", "0.009"),
            gas_multiplier=_env_float("GAS_MULTIPLIER", 1.2),
            max_retries=_env_int("MAX_RETRIES", 3),
            confirmations=_env_int("CONFIRMATIONS", 1),
            receipt_poll_interval=_env_float("RECEIPT_POLL_INTERVAL", 2.0),
            confirmation_timeout=_env_float("CONFIRMATION_TIMEOUT", 0),
            api_base_url=os.getenv("API_BASE_URL", DEFAULT_API_BASE_URL).rstrip("/"),
            api_requests_per_second=_env_int("API_REQUESTS_PER_SECOND", 5),
            token_address_attempts=_env_int("TOKEN_ADDRESS_ATTEMPTS", 30),
            token_address_interval=_env_float("TOKEN_ADDRESS_INTERVAL", 2.0),
            primary_private_key=os.getenv("PRIMARY_WALLET_PRIVATE_KEY", ""),
            buyer_private_keys=_load_buyer_keys(),
            telegram_token=os.getenv("TELEGRAM_TOKEN", ""),
            telegram_chat_id=os.getenv("TELEGRAM_CHAT_ID", ""),
            journal_path=os.getenv("JOURNAL_PATH", ""),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            log_file=os.getenv("LOG_FILE", "launcher.log"),
        )
        if overrides:
            config = replace(config, **overrides)
        return config

    def validate(self) -> None:
        """Validate critical configuration"""
        if not self.rpc_url:
            raise ConfigError("RPC_URL is required")

        if not Web3.is_address(self.factory_address):
            raise ConfigError(f"FACTORY_ADDRESS is not a valid address: {self.factory_address}")

        if not self.primary_private_key:
            raise ConfigError("PRIMARY_WALLET_PRIVATE_KEY environment variable is required")

        if not validate_private_key(self.primary_private_key):
            raise ConfigError("PRIMARY_WALLET_PRIVATE_KEY is not a 32-byte hex key")

        for i, key in enumerate(self.buyer_private_keys, start=1):
            if not validate_private_key(key):
                raise ConfigError(f"Buyer wallet key #{i} is not a 32-byte hex key")

        if self.gas_multiplier <= 0:
            raise ConfigError("GAS_MULTIPLIER must be positive")

        # Notifications are optional
        if self.telegram_token and not self.telegram_chat_id:
            logger.warning("TELEGRAM_TOKEN set without TELEGRAM_CHAT_ID - notifications disabled")

    @property
    def create_token_fee_wei(self) -> int:
        return Web3.to_wei(self.create_token_fee, "ether")

    @property
    def api_endpoints(self) -> Dict[str, str]:
        return {name: f"{self.api_base_url}{path}" for name, path in API_PATHS.items()}

    @property
    def confirmation_timeout_or_none(self) -> Optional[float]:
        return self.confirmation_timeout if self.confirmation_timeout > 0 else None

    @property
    def all_private_keys(self) -> List[str]:
        keys = [self.primary_private_key] if self.primary_private_key else []
        return keys + list(self.buyer_private_keys)


# Token factory ABI (minimal)
FACTORY_ABI = [
    {
        "inputs": [
            {"internalType": "bytes", "name": "createArg", "type": "bytes"},
            {"internalType": "bytes", "name": "signature", "type": "bytes"}
        ],
        "name": "createToken",
        "outputs": [],
        "stateMutability": "payable",
        "type": "function"
    }
]

# keccak("Transfer(address,address,uint256)")
TRANSFER_TOPIC = "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

DEFAULT_HEADERS = {
    "accept": "application/json, text/plain, */*",
    "accept-language": "en-US,en;q=0.8",
    "content-type": "application/json",
    "sec-fetch-dest": "empty",
    "sec-fetch-mode": "cors",
    "sec-fetch-site": "same-origin",
    "Referer": "https://four.meme/",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}

# Login constants for the token platform
VERIFY_TYPE_LOGIN = "LOGIN"
NETWORK_CODE = "BSC"
WALLET_NAME = "MetaMask"
LOGIN_MESSAGE_TEMPLATE = "I am signing my one-time nonce: {nonce}"

DEFAULT_TOKEN_PARAMS: Dict[str, Any] = {
    "decimals": 18,
    "description": "Created with the token launcher",
    "total_supply": 1000000000,
    "buy_amount": "0.1",
}

# Message templates
LAUNCH_STARTED_MESSAGE = "🚀 Launching {name} ({symbol}) with {strategy} strategy"
LAUNCH_COMPLETED_MESSAGE = "✅ Launch completed\n\nToken: {token_address}\nStatus: {status}"
LAUNCH_FAILED_MESSAGE = "❌ Launch failed\n\nToken: {token_address}\nError: {error}"
