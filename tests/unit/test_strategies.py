"""
Tests for the launch strategy state machine and its three variants.
"""

import threading

import pytest

from errors import LaunchAbortedError, SubmissionError, TokenCreationError
from strategies.anti_sniper import AntiSniperStrategy, CountermeasureOutcome
from strategies.base import (
    BuyOptions, Countermeasure, StrategyStage, StrategyStatus, TokenLaunchContext, merge_options
)
from strategies.bundle import BundleLaunchStrategy
from strategies.staggered import StaggeredLaunchStrategy

CREATE_ARG = "0x" + "ab" * 64
SIGNATURE = "0x" + "cd" * 65

SNIPERS = {
    "0x2222222222222222222222222222222222222222",
    "0x3333333333333333333333333333333333333333",
}


def make_context(token_address, buy=True, amount="0.1", **overrides):
    values = dict(
        name="Test Token",
        symbol="TEST",
        create_arg=CREATE_ARG,
        signature=SIGNATURE,
        contract_address=token_address,
        buy=BuyOptions(enabled=buy, buy_amount=amount)
    )
    values.update(overrides)
    return TokenLaunchContext(**values)


@pytest.mark.asyncio
@pytest.mark.parametrize("initialize_first", [True, False])
async def test_bundle_launch_with_three_accounts(resources, registry, fake_eth, private_keys,
                                                 addresses, token_address, initialize_first):
    await registry.add_accounts(private_keys[:3])
    strategy = BundleLaunchStrategy(resources)
    if initialize_first:
        await strategy.initialize({'gas_multiplier': 1.3})
        assert strategy.get_status().stage == StrategyStage.INITIALIZED
        assert strategy.get_status().progress == 10

    result = await strategy.execute(make_context(token_address))

    status = strategy.get_status()
    assert result == token_address
    assert status.stage == StrategyStage.COMPLETED
    assert status.progress == 100
    assert status.token_address == token_address

    # One creation plus one purchase per account
    assert len(fake_eth.sent) == 4
    assert [tx.kind for tx in strategy.transactions] == ["create", "buy", "buy", "buy"]
    assert sorted(tx.account for tx in strategy.transactions[1:]) == sorted(addresses[:3])


@pytest.mark.asyncio
async def test_bundle_without_buying_completes_after_creation(resources, registry, fake_eth,
                                                              private_keys, token_address):
    await registry.add_accounts(private_keys[:2])
    strategy = BundleLaunchStrategy(resources)

    await strategy.execute(make_context(token_address, buy=False))

    assert len(fake_eth.sent) == 1
    assert "no accounts available for purchasing" in strategy.get_status().message


@pytest.mark.asyncio
async def test_bundle_fails_loudly_when_a_purchase_fails(resources, registry, fake_eth,
                                                         private_keys, addresses, token_address):
    await registry.add_accounts(private_keys[:3])
    fake_eth.fail_send_from.add(addresses[2])
    strategy = BundleLaunchStrategy(resources)

    with pytest.raises(SubmissionError):
        await strategy.execute(make_context(token_address))

    status = strategy.get_status()
    assert status.stage == StrategyStage.FAILED
    assert status.progress == 0
    assert addresses[2] in status.error
    # The token itself was created, so it is still reported
    assert status.token_address == token_address


@pytest.mark.asyncio
async def test_bundle_can_buy_sequentially(resources, registry, fake_eth, private_keys, addresses, token_address):
    await registry.add_accounts(private_keys[:3])
    strategy = BundleLaunchStrategy(resources)
    await strategy.initialize({'execute_all_at_once': False})

    await strategy.execute(make_context(token_address))

    assert [tx['from'] for tx in fake_eth.sent[1:]] == addresses[:3]


@pytest.mark.asyncio
async def test_creation_requires_accounts(resources, token_address):
    strategy = BundleLaunchStrategy(resources)

    with pytest.raises(TokenCreationError):
        await strategy.execute(make_context(token_address))

    assert strategy.get_status().stage == StrategyStage.FAILED


@pytest.mark.asyncio
async def test_creation_requires_create_arg_and_signature(resources, registry, fake_eth, private_keys, token_address):
    await registry.add_account(private_keys[0])
    strategy = BundleLaunchStrategy(resources)

    with pytest.raises(TokenCreationError):
        await strategy.execute(make_context(token_address, create_arg=None))

    assert fake_eth.sent == []


@pytest.mark.asyncio
async def test_reverted_creation_fails_launch(resources, registry, fake_eth, private_keys, token_address):
    await registry.add_accounts(private_keys[:2])
    fake_eth.revert_next = True
    strategy = BundleLaunchStrategy(resources)

    with pytest.raises(TokenCreationError) as exc_info:
        await strategy.execute(make_context(token_address))

    assert "Transaction hash" in str(exc_info.value)
    assert len(fake_eth.sent) == 1


@pytest.mark.asyncio
async def test_invalid_token_address_fails_launch(resources, registry, private_keys):
    await registry.add_account(private_keys[0])
    strategy = BundleLaunchStrategy(resources)

    with pytest.raises(TokenCreationError):
        await strategy.execute(make_context("0x1234"))


@pytest.mark.asyncio
async def test_malformed_create_arg_fails_launch(resources, registry, fake_eth, private_keys, token_address):
    await registry.add_account(private_keys[0])
    strategy = BundleLaunchStrategy(resources)

    with pytest.raises(TokenCreationError):
        await strategy.execute(make_context(token_address, create_arg="0xZZ"))

    assert strategy.get_status().stage == StrategyStage.FAILED
    assert fake_eth.sent == []


@pytest.mark.asyncio
async def test_token_without_contract_code_fails_launch(resources, registry, fake_eth, private_keys, token_address):
    await registry.add_account(private_keys[0])
    fake_eth.code.clear()
    strategy = BundleLaunchStrategy(resources)

    with pytest.raises(TokenCreationError):
        await strategy.execute(make_context(token_address))

    assert strategy.get_status().token_address == token_address


@pytest.mark.asyncio
@pytest.mark.parametrize("initialize_first", [True, False])
async def test_staggered_with_only_primary_account(resources, registry, fake_eth, private_keys,
                                                   token_address, initialize_first):
    await registry.add_account(private_keys[0])
    strategy = StaggeredLaunchStrategy(resources)
    if initialize_first:
        await strategy.initialize()

    result = await strategy.execute(make_context(token_address))

    status = strategy.get_status()
    assert result == token_address
    assert status.stage == StrategyStage.COMPLETED
    assert "No additional purchases were made" in status.message
    assert len(fake_eth.sent) == 1


@pytest.mark.asyncio
async def test_staggered_buys_from_other_accounts_in_order(resources, registry, fake_eth,
                                                           private_keys, addresses, token_address):
    await registry.add_accounts(private_keys[:4])
    strategy = StaggeredLaunchStrategy(resources)
    await strategy.initialize({'delay_between_transactions': 0.01, 'wait_for_confirmation': False})

    await strategy.execute(make_context(token_address))

    assert fake_eth.sent[0]['from'] == addresses[0]
    assert [tx['from'] for tx in fake_eth.sent[1:]] == addresses[1:4]


@pytest.mark.asyncio
async def test_anti_sniper_abort_sends_no_purchases(resources, registry, fake_eth, monitor,
                                                    private_keys, token_address):
    await registry.add_accounts(private_keys[:3])
    monitor.buyers = set(SNIPERS)
    strategy = AntiSniperStrategy(resources)
    await strategy.initialize({'countermeasures': 'abort', 'trigger_threshold': 2, 'monitor_duration': 0})

    with pytest.raises(LaunchAbortedError) as exc_info:
        await strategy.execute(make_context(token_address))

    assert exc_info.value.detected_buyers == 2
    assert len(fake_eth.sent) == 1
    assert [tx.kind for tx in strategy.transactions] == ["create"]
    assert strategy.get_status().stage == StrategyStage.FAILED
    # cleanup ran even though the launch failed
    assert strategy.external_buyers == set()


@pytest.mark.asyncio
async def test_anti_sniper_below_threshold_buys_normally(resources, registry, fake_eth, monitor,
                                                         private_keys, addresses, token_address):
    await registry.add_accounts(private_keys[:2])
    monitor.buyers = {next(iter(SNIPERS))}
    strategy = AntiSniperStrategy(resources)
    await strategy.initialize({'countermeasures': 'abort', 'trigger_threshold': 2})

    await strategy.execute(make_context(token_address))

    assert len(fake_eth.sent) == 3
    assert strategy.get_status().stage == StrategyStage.COMPLETED
    assert monitor.calls[0]['exclude'] == addresses[:2]
    assert monitor.calls[0]['from_block'] == fake_eth.receipts[fake_eth.sent[0]['hash']]['blockNumber']
    assert monitor.calls[0]['sources'] == [resources.factory_contract.factory_address]


@pytest.mark.asyncio
async def test_anti_sniper_dump_is_reported_as_not_implemented(resources, registry, monitor, private_keys):
    await registry.add_account(private_keys[0])
    monitor.buyers = set(SNIPERS)
    strategy = AntiSniperStrategy(resources)
    await strategy.initialize({'countermeasures': Countermeasure.DUMP})
    strategy.external_buyers.update(SNIPERS)

    outcome = await strategy._apply_countermeasure()

    assert outcome == CountermeasureOutcome.NOT_IMPLEMENTED
    assert "not implemented" in strategy.get_status().message


@pytest.mark.asyncio
async def test_anti_sniper_delay_countermeasure_then_buys(resources, registry, fake_eth, monitor,
                                                          private_keys, token_address):
    await registry.add_accounts(private_keys[:2])
    monitor.buyers = set(SNIPERS)
    strategy = AntiSniperStrategy(resources)
    await strategy.initialize({'countermeasure_delay': 0})

    await strategy.execute(make_context(token_address))

    assert strategy.options.countermeasures == Countermeasure.DELAY
    assert len(fake_eth.sent) == 3
    assert strategy.get_status().stage == StrategyStage.COMPLETED


@pytest.mark.asyncio
async def test_cleanup_is_idempotent(resources):
    strategy = AntiSniperStrategy(resources)
    strategy.external_buyers.update(SNIPERS)

    await strategy.cleanup()
    await strategy.cleanup()

    assert strategy.external_buyers == set()


@pytest.mark.asyncio
async def test_status_listeners_see_every_transition(resources, registry, private_keys, token_address):
    await registry.add_account(private_keys[0])
    strategy = BundleLaunchStrategy(resources)
    seen = []
    strategy.add_status_listener(lambda status: seen.append(status.progress))

    await strategy.execute(make_context(token_address, buy=False))

    assert seen[0] == 20
    assert seen[-1] == 100
    assert seen == sorted(seen)


def test_status_is_readable_from_another_thread(resources):
    strategy = BundleLaunchStrategy(resources)
    statuses = []

    thread = threading.Thread(target=lambda: statuses.append(strategy.get_status()))
    thread.start()
    thread.join()

    assert statuses == [StrategyStatus()]


def test_merge_options_ignores_unknown_and_none_values():
    defaults = StaggeredLaunchStrategy.default_options()

    merged = merge_options(defaults, {
        'delay_between_transactions': 2.5,
        'monitor_duration': 30,
        'gas_multiplier': None,
    })

    assert merged.delay_between_transactions == 2.5
    assert merged.gas_multiplier == defaults.gas_multiplier
    assert not hasattr(merged, 'monitor_duration')
