"""
Pytest configuration and fixtures for launcher tests.
"""

import sys
import types
from pathlib import Path

import pytest
from eth_account import Account as EthAccount
from web3 import Web3
from web3.exceptions import TransactionNotFound

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from chain.accounts import AccountRegistry  # noqa: E402
from chain.dispatcher import TransactionDispatcher  # noqa: E402
from chain.executor import BatchExecutor  # noqa: E402
from chain.factory_contract import TokenFactoryContract  # noqa: E402
from strategies.base import StrategyResources  # noqa: E402

CHAIN_ID = 56
FACTORY_ADDRESS = "0x5c952063c7fc8610FFDB798152D69F0B9550762b"
TOKEN_ADDRESS = "0x1111111111111111111111111111111111111111"
CREATE_FEE_WEI = 10 ** 16

# Deterministic test keys
PRIVATE_KEYS = ["0x" + f"{i:064x}" for i in range(1, 8)]
ADDRESSES = [EthAccount.from_key(key).address for key in PRIVATE_KEYS]


async def _value(value):
    return value


class FakeEth:
    """In-memory stand-in for AsyncWeb3.eth"""

    def __init__(self):
        self.block = 100
        self.gas_price_value = 5 * 10 ** 9
        self.gas_estimate = 21000
        self.chain_id_value = CHAIN_ID

        self.balances = {}
        self.nonces = {}
        self.receipts = {}
        self.sent = []
        self.logs = []
        self.code = {TOKEN_ADDRESS: b"\x60\x80"}

        self.fail_estimates = 0
        self.fail_gas_price = False
        self.fail_send_from = set()
        self.fail_balance_for = set()
        self.revert_next = False
        self.estimate_calls = 0

    @property
    def gas_price(self):
        if self.fail_gas_price:
            raise ValueError("gas price unavailable")
        return _value(self.gas_price_value)

    @property
    def block_number(self):
        return _value(self.block)

    @property
    def chain_id(self):
        return _value(self.chain_id_value)

    async def estimate_gas(self, tx):
        self.estimate_calls += 1
        if self.fail_estimates > 0:
            self.fail_estimates -= 1
            raise ValueError("execution reverted")
        return self.gas_estimate

    async def get_transaction_count(self, address, block_identifier="latest"):
        return self.nonces.get(address, 0)

    async def get_balance(self, address):
        if address in self.fail_balance_for:
            raise ConnectionError("rpc unavailable")
        return self.balances.get(address, 10 ** 18)

    async def get_code(self, address):
        return self.code.get(address, b"")

    async def send_raw_transaction(self, raw):
        sender = EthAccount.recover_transaction(raw)
        if sender in self.fail_send_from:
            raise ValueError("insufficient funds for gas * price + value")

        tx_hash = Web3.keccak(raw)
        self.block += 1
        self.nonces[sender] = self.nonces.get(sender, 0) + 1
        self.sent.append({'hash': Web3.to_hex(tx_hash), 'from': sender, 'raw': raw})

        status = 0 if self.revert_next else 1
        self.revert_next = False
        self.receipts[Web3.to_hex(tx_hash)] = {
            'transactionHash': tx_hash,
            'blockNumber': self.block,
            'blockHash': Web3.keccak(text=f"block-{self.block}"),
            'status': status,
            'from': sender,
            'to': None,
            'contractAddress': None,
            'gasUsed': self.gas_estimate,
        }
        return tx_hash

    async def get_transaction_receipt(self, tx_hash):
        receipt = self.receipts.get(tx_hash)
        if receipt is None:
            raise TransactionNotFound(f"Transaction with hash: {tx_hash} not found")
        return receipt

    async def get_logs(self, filter_params):
        address = filter_params['address'].lower()
        from_block = filter_params.get('fromBlock', 0)
        return [
            log for log in self.logs
            if log['address'].lower() == address and log['blockNumber'] >= from_block
        ]

    def add_transfer(self, token, sender, recipient, block=None, log_index=0):
        """Append a Transfer log for a token"""
        def topic(address):
            return Web3.to_bytes(hexstr="0x" + address[2:].lower().rjust(64, "0"))

        self.logs.append({
            'address': token,
            'topics': [
                Web3.to_bytes(hexstr="0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"),
                topic(sender),
                topic(recipient),
            ],
            'transactionHash': Web3.keccak(text=f"{token}-{recipient}-{len(self.logs)}"),
            'logIndex': log_index,
            'blockNumber': self.block if block is None else block,
        })


class FakeMonitor:
    """Buyer monitor returning a fixed set of detected buyers"""

    def __init__(self, buyers=()):
        self.buyers = set(buyers)
        self.calls = []

    async def watch(self, token_address, duration, exclude, from_block=None, sources=()):
        self.calls.append({
            'token_address': token_address,
            'duration': duration,
            'exclude': list(exclude),
            'from_block': from_block,
            'sources': list(sources),
        })
        return set(self.buyers)


@pytest.fixture
def fake_eth():
    return FakeEth()


@pytest.fixture
def async_w3(fake_eth):
    return types.SimpleNamespace(eth=fake_eth)


@pytest.fixture
def registry(async_w3):
    return AccountRegistry(async_w3)


@pytest.fixture
def dispatcher(async_w3, registry):
    return TransactionDispatcher(async_w3, registry, CHAIN_ID, poll_interval=0.01)


@pytest.fixture
def executor(dispatcher):
    return BatchExecutor(dispatcher)


@pytest.fixture
def factory_contract(async_w3):
    return TokenFactoryContract(FACTORY_ADDRESS, async_w3)


@pytest.fixture
def monitor():
    return FakeMonitor()


@pytest.fixture
def resources(registry, executor, factory_contract, monitor):
    return StrategyResources(
        registry=registry,
        executor=executor,
        factory_contract=factory_contract,
        create_token_fee_wei=CREATE_FEE_WEI,
        monitor=monitor,
        retry_backoff=0
    )


def pytest_configure(config):
    """Configure pytest."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )


@pytest.fixture
def private_keys():
    return list(PRIVATE_KEYS)


@pytest.fixture
def addresses():
    return list(ADDRESSES)


@pytest.fixture
def token_address():
    return TOKEN_ADDRESS
