"""
Token Factory Contract
Builds create/buy transactions for the token platform's factory contract
"""

import logging
from typing import Union
from web3 import Web3, AsyncWeb3

from chain.dispatcher import TransactionIntent
from config import FACTORY_ABI
from errors import TokenCreationError

logger = logging.getLogger(__name__)

HexLike = Union[str, bytes]


def _to_bytes(value: HexLike) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    try:
        return Web3.to_bytes(hexstr=value)
    except (TypeError, ValueError) as e:
        raise TokenCreationError(f"Malformed hex payload {value!r}: {e}")


class TokenFactoryContract:
    """Token factory integration class"""

    def __init__(self, factory_address: str, async_w3: AsyncWeb3 = None):
        self.factory_address = Web3.to_checksum_address(factory_address)
        self.async_w3 = async_w3

        # Offline instance used for calldata encoding only
        self._contract = Web3().eth.contract(address=self.factory_address, abi=FACTORY_ABI)

    def encode_create_token(self, create_arg: HexLike, signature: HexLike) -> bytes:
        """ABI-encode createToken(createArg, signature)"""
        calldata = self._contract.encode_abi(
            "createToken", args=[_to_bytes(create_arg), _to_bytes(signature)]
        )
        return Web3.to_bytes(hexstr=calldata)

    def build_create_token_intent(self, create_arg: HexLike, signature: HexLike,
                                  fee_wei: int) -> TransactionIntent:
        """Build the token creation transaction, paying the creation fee"""
        return TransactionIntent(
            to=self.factory_address,
            data=self.encode_create_token(create_arg, signature),
            value=fee_wei
        )

    @staticmethod
    def build_buy_intent(token_address: str, amount_wei: int) -> TransactionIntent:
        """Buy by sending native currency straight to the token contract"""
        return TransactionIntent(
            to=Web3.to_checksum_address(token_address),
            value=amount_wei
        )

    async def is_contract_deployed(self, address: str) -> bool:
        """Check whether code exists at an address"""
        if self.async_w3 is None:
            return False

        try:
            code = await self.async_w3.eth.get_code(Web3.to_checksum_address(address))
            return len(code) > 0
        except Exception as e:
            logger.error(f"Error checking contract code at {address}: {e}")
            return False
