import pytest

from ember_agents.agents.lending.intent import LendingAction, LendingPayload, Slot
from ember_agents.agents.lending.oracle import RawSlots
from ember_agents.agents.lending.providers import CatalogOptionProvider, unconstrained_options
from ember_agents.agents.lending.refinement import merge_raw_slots, refine_payload


def test_merge_applies_valid_values_and_reports_touched_slots():
    payload = LendingPayload(provided_chain_name="base", specified_chain_name="Base")
    raw = RawSlots(action="Borrow", chain_name="arbitrum", amount="1.50", token_name="weth")

    merged, touched = merge_raw_slots(payload, raw)

    assert touched == {Slot.ACTION, Slot.CHAIN_NAME, Slot.TOKEN_NAME, Slot.AMOUNT}
    assert merged.action is LendingAction.BORROW
    assert merged.amount == "1.50"
    assert merged.provided_chain_name == "arbitrum"
    assert merged.specified_chain_name is None
    assert merged.provided_token_name == "weth"
    # the input payload is left alone
    assert payload.specified_chain_name == "Base"


def test_merge_ignores_invalid_action_and_amount():
    merged, touched = merge_raw_slots(LendingPayload(), RawSlots(action="stake", amount="lots"))

    assert touched == frozenset()
    assert merged.is_empty()


def test_merge_keeps_existing_amount_when_new_one_is_ambiguous():
    payload = LendingPayload(amount="2")
    merged, touched = merge_raw_slots(payload, RawSlots(amount="1,000"))

    assert touched == frozenset()
    assert merged.amount == "2"


def test_merge_stores_long_amounts_verbatim():
    amount = "1" + "0" * 30
    merged, touched = merge_raw_slots(LendingPayload(), RawSlots(amount=amount))

    assert touched == {Slot.AMOUNT}
    assert merged.amount == amount


def test_merge_of_empty_extraction_touches_nothing():
    payload = LendingPayload(action=LendingAction.SUPPLY)
    merged, touched = merge_raw_slots(payload, RawSlots())

    assert touched == frozenset()
    assert merged == payload


@pytest.mark.asyncio
async def test_refine_normalizes_provided_values(provider, oracle):
    payload = LendingPayload(provided_token_name="weth", provided_chain_name="arbitrum one")

    result = await refine_payload(payload, provider, oracle)

    assert result.refusal is False
    assert result.payload.specified_token_name == "WETH"
    assert result.payload.specified_chain_name == "Arbitrum"
    assert payload.specified_token_name is None
    # chain options were recomputed once the token was confirmed
    chain_call = [call for call in oracle.normalize_calls if call[2] == Slot.CHAIN_NAME][0]
    assert chain_call[1] == ("Arbitrum", "Base", "Ethereum")


@pytest.mark.asyncio
async def test_unmatched_value_stays_pending_without_refusal(provider, oracle):
    result = await refine_payload(LendingPayload(provided_chain_name="solana"), provider, oracle)

    assert result.refusal is False
    assert result.payload.provided_chain_name == "solana"
    assert result.payload.specified_chain_name is None
    assert result.options.chain_options == ["Arbitrum", "Base", "Ethereum"]


@pytest.mark.asyncio
async def test_value_excluded_by_dependent_slot_is_refused(provider, oracle):
    payload = LendingPayload(
        provided_token_name="arb",
        specified_token_name="ARB",
        provided_chain_name="base",
    )

    result = await refine_payload(payload, provider, oracle)

    assert result.refusal is True
    assert result.refusal_slot == Slot.CHAIN_NAME
    assert result.refused_value == "base"
    assert result.payload.provided_chain_name is None
    assert result.payload.specified_chain_name is None
    assert result.payload.specified_token_name == "ARB"
    assert result.options.chain_options == ["Arbitrum"]


@pytest.mark.asyncio
async def test_simultaneous_incompatible_values_refuse_exactly_one_slot(provider, oracle):
    payload = LendingPayload(provided_token_name="arb", provided_chain_name="base")

    result = await refine_payload(payload, provider, oracle)

    assert result.refusal is True
    assert result.refusal_slot == Slot.CHAIN_NAME
    assert result.payload.specified_token_name == "ARB"
    assert result.payload.provided_chain_name is None


@pytest.mark.asyncio
async def test_token_excluded_by_specified_chain_is_refused(provider, oracle):
    payload = LendingPayload(
        provided_chain_name="base",
        specified_chain_name="Base",
        provided_token_name="wbtc",
    )

    result = await refine_payload(payload, provider, oracle)

    assert result.refusal_slot == Slot.TOKEN_NAME
    assert result.payload.provided_token_name is None
    assert result.payload.specified_chain_name == "Base"
    assert result.options.token_options == ["WETH"]


@pytest.mark.asyncio
async def test_refine_is_idempotent(provider, oracle):
    first = await refine_payload(
        LendingPayload(action=LendingAction.REPAY, provided_token_name="wbtc", provided_chain_name="solana"),
        provider,
        oracle,
    )
    second = await refine_payload(first.payload, provider, oracle)

    assert second.payload == first.payload
    assert second.options == first.options
    assert second.refusal is False


@pytest.mark.asyncio
async def test_stale_pair_after_catalog_change_refuses_older_slot(oracle):
    catalog = {"WETH": ["Arbitrum", "Base"], "ARB": ["Arbitrum"]}
    provider = CatalogOptionProvider(catalog)
    payload = LendingPayload(
        provided_token_name="weth",
        specified_token_name="WETH",
        provided_chain_name="base",
        specified_chain_name="Base",
    )
    assert (await refine_payload(payload, provider, oracle)).refusal is False

    # WETH is delisted on Base between turns
    changed = CatalogOptionProvider({"WETH": ["Arbitrum"], "ARB": ["Arbitrum"]})
    result = await refine_payload(payload, changed, oracle)

    assert result.refusal is True
    assert result.refusal_slot == Slot.TOKEN_NAME
    assert result.refused_value == "weth"
    assert result.payload.specified_chain_name == "Base"
    assert result.payload.specified_token_name is None


@pytest.mark.asyncio
async def test_unconstrained_options_leave_value_pending(oracle):
    class UnconstrainedProvider:
        async def get_options(self, payload):
            return unconstrained_options()

    result = await refine_payload(LendingPayload(provided_token_name="weth"), UnconstrainedProvider(), oracle)

    assert result.payload.specified_token_name is None
    assert result.payload.provided_token_name == "weth"
    assert oracle.normalize_calls == []
