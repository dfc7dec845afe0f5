"""
Tests for factory contract transaction builders.
"""

import pytest
from web3 import Web3


def test_create_token_intent_pays_fee_to_factory(factory_contract):
    intent = factory_contract.build_create_token_intent("0x" + "ab" * 32, "0x" + "cd" * 65, 10 ** 16)

    selector = Web3.keccak(text="createToken(bytes,bytes)")[:4]
    assert intent.to == factory_contract.factory_address
    assert intent.value == 10 ** 16
    assert intent.data[:4] == bytes(selector)
    assert bytes.fromhex("ab" * 32) in intent.data


def test_create_token_accepts_raw_bytes(factory_contract):
    from_hex = factory_contract.encode_create_token("0x" + "01" * 10, "0x" + "02" * 10)
    from_bytes = factory_contract.encode_create_token(b"\x01" * 10, b"\x02" * 10)

    assert from_hex == from_bytes


def test_buy_intent_sends_value_to_token(factory_contract, token_address):
    intent = factory_contract.build_buy_intent(token_address.lower(), Web3.to_wei("0.1", "ether"))

    assert intent.to == Web3.to_checksum_address(token_address)
    assert intent.value == 10 ** 17
    assert intent.data == b""


@pytest.mark.asyncio
async def test_is_contract_deployed(factory_contract, fake_eth):
    address = "0x4444444444444444444444444444444444444444"
    assert await factory_contract.is_contract_deployed(address) is False

    fake_eth.code[Web3.to_checksum_address(address)] = b"\x60\x80"
    assert await factory_contract.is_contract_deployed(address) is True
