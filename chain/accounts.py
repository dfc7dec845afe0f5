"""
Account Registry
Holds the managed signing accounts and their per-account metadata
"""

import logging
from typing import Dict, List, Optional, Any
from dataclasses import dataclass
from datetime import datetime, timezone
from web3 import AsyncWeb3
from eth_account import Account as EthAccount
from eth_account.signers.local import LocalAccount

from errors import AccountInitError
from utils.security import mask_address

logger = logging.getLogger(__name__)


@dataclass
class Account:
    """Managed account record, owned by the registry"""
    address: str
    label: str
    balance: int
    priority: int
    is_active: bool = True
    added_at: datetime = None

    def __post_init__(self):
        if self.added_at is None:
            self.added_at = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            'address': self.address,
            'label': self.label,
            'balance': self.balance,
            'priority': self.priority,
            'is_active': self.is_active,
            'added_at': self.added_at.isoformat()
        }


class AccountRegistry:
    """Sole owner of managed accounts and their signers"""

    def __init__(self, async_w3: AsyncWeb3):
        self.async_w3 = async_w3

        # Insertion order is preserved and defines default priority
        self._accounts: Dict[str, Account] = {}
        self._signers: Dict[str, LocalAccount] = {}

    async def add_account(self, private_key: str, label: Optional[str] = None) -> str:
        """Derive the address, fetch its balance and register the account"""
        try:
            signer = EthAccount.from_key(private_key)
        except Exception as e:
            raise AccountInitError(f"Failed to add account: invalid private key ({type(e).__name__})") from e

        address = signer.address
        if address in self._accounts:
            logger.info(f"Account already registered: {mask_address(address)}")
            return address

        try:
            balance = await self.async_w3.eth.get_balance(address)
        except Exception as e:
            raise AccountInitError(f"Failed to add account {address}: {e}") from e

        account = Account(
            address=address,
            label=label or address[:8],
            balance=balance,
            priority=len(self._accounts)
        )

        self._accounts[address] = account
        self._signers[address] = signer

        logger.info(f"Added account {account.label} ({mask_address(address)}) with priority {account.priority}")
        return address

    async def add_accounts(self, private_keys: List[str], labels: Optional[List[str]] = None) -> List[str]:
        """Add accounts one by one, stopping at the first failure"""
        addresses: List[str] = []

        for i, private_key in enumerate(private_keys):
            label = labels[i] if labels and i < len(labels) else None
            addresses.append(await self.add_account(private_key, label))

        return addresses

    def list_addresses(self) -> List[str]:
        """Get all account addresses in insertion order"""
        return list(self._accounts.keys())

    def get_account(self, address: str) -> Optional[Account]:
        """Get account record by address"""
        return self._accounts.get(address)

    def get_signer(self, address: str) -> Optional[LocalAccount]:
        """Resolve the signer for an address"""
        return self._signers.get(address)

    def active_accounts(self) -> List[Account]:
        """Get active accounts ordered by priority"""
        return sorted(
            (account for account in self._accounts.values() if account.is_active),
            key=lambda account: account.priority
        )

    def primary_account(self) -> Optional[Account]:
        """Get the active account with the lowest priority value"""
        active = self.active_accounts()
        return active[0] if active else None

    def is_managed(self, address: str) -> bool:
        """Check whether an address belongs to the registry (case-insensitive)"""
        lowered = address.lower()
        return any(managed.lower() == lowered for managed in self._accounts)

    def deactivate(self, address: str) -> bool:
        """Deactivate an account; records are never deleted"""
        account = self._accounts.get(address)
        if not account:
            return False

        account.is_active = False
        logger.info(f"Deactivated account {account.label} ({mask_address(address)})")
        return True

    async def refresh_balances(self) -> Dict[str, int]:
        """Refresh cached balances, skipping accounts whose lookup fails"""
        balances: Dict[str, int] = {}

        for address, account in self._accounts.items():
            try:
                balance = await self.async_w3.eth.get_balance(address)
            except Exception as e:
                logger.error(f"Failed to update balance for {address}: {e}")
                continue

            account.balance = balance
            balances[address] = balance

        return balances

    def __len__(self) -> int:
        return len(self._accounts)
