"""Refinement of a lending payload against the live option sets.

``merge_raw_slots`` folds one utterance's raw values into a payload copy and
``refine_payload`` turns raw values into canonical ones, detects conflicting
combinations and reports the option sets that remain for unresolved slots.
Neither function mutates its input payload.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import FrozenSet, List, Optional, Set, Tuple

from ember_agents.agents.lending.intent import (
    NORMALIZED_SLOTS,
    LendingAction,
    LendingPayload,
    ParameterOptions,
    Slot,
    parse_amount,
)
from ember_agents.agents.lending.oracle import DisambiguationOracle, RawSlots
from ember_agents.agents.lending.providers import OptionProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RefinementResult:
    options: ParameterOptions
    payload: LendingPayload
    refusal: bool = False
    refusal_slot: Optional[Slot] = None
    refused_value: Optional[str] = None


def merge_raw_slots(payload: LendingPayload, raw: RawSlots) -> Tuple[LendingPayload, FrozenSet[Slot]]:
    """Return a payload copy with the raw values applied and the slots they touched."""

    merged = payload.copy()
    touched: Set[Slot] = set()

    action = LendingAction.parse(raw.action)
    if action is not None:
        merged.action = action
        touched.add(Slot.ACTION)
    elif raw.action is not None:
        logger.info("Ignoring unsupported action %r", raw.action)

    amount = parse_amount(raw.amount)
    if amount is not None:
        merged.amount = amount
        touched.add(Slot.AMOUNT)
    elif raw.amount is not None:
        logger.info("Ignoring non-numeric amount %r", raw.amount)

    if raw.chain_name is not None:
        merged.provide(Slot.CHAIN_NAME, raw.chain_name)
        touched.add(Slot.CHAIN_NAME)

    if raw.token_name is not None:
        merged.provide(Slot.TOKEN_NAME, raw.token_name)
        touched.add(Slot.TOKEN_NAME)

    return merged, frozenset(touched)


def _without_context(payload: LendingPayload, slot: Slot) -> LendingPayload:
    """Copy of ``payload`` where no other slot constrains ``slot``'s options."""

    context = payload.copy()
    for other in NORMALIZED_SLOTS:
        if other != slot:
            context.reset_slot(other)
    return context


async def _conflicts_with_context(
    payload: LendingPayload,
    slot: Slot,
    raw_value: str,
    constrained: List[str],
    provider: OptionProvider,
    oracle: DisambiguationOracle,
) -> bool:
    """True when ``raw_value`` names an option that only the other slots rule out."""

    if all(payload.specified(other) is None for other in NORMALIZED_SLOTS if other != slot):
        return False
    catalog = (await provider.get_options(_without_context(payload, slot))).for_slot(slot)
    if not catalog:
        return False
    excluded = [option for option in catalog if option not in constrained]
    if not excluded:
        return False
    return await oracle.normalize(raw_value, excluded, slot) is not None


def _stale_slot(
    payload: LendingPayload,
    options: ParameterOptions,
    confirmed: List[Slot],
) -> Optional[Slot]:
    """Find a specified value the other specified values no longer allow.

    The value confirmed during this refinement is trusted; the older one is refused.
    """

    conflicting = [
        slot
        for slot in NORMALIZED_SLOTS
        if payload.specified(slot) is not None
        and options.for_slot(slot) is not None
        and payload.specified(slot) not in options.for_slot(slot)
    ]
    if not conflicting:
        return None
    stale = [slot for slot in conflicting if slot not in confirmed]
    return (stale or conflicting)[0]


async def refine_payload(
    payload: LendingPayload,
    provider: OptionProvider,
    oracle: DisambiguationOracle,
) -> RefinementResult:
    refined = payload.copy()
    confirmed: List[Slot] = []
    refusal_slot: Optional[Slot] = None
    refused_value: Optional[str] = None

    for slot in NORMALIZED_SLOTS:
        raw_value = refined.provided(slot)
        if raw_value is None or refined.specified(slot) is not None:
            continue

        # Options are queried per slot so a value confirmed just before narrows this one.
        slot_options = (await provider.get_options(refined)).for_slot(slot)
        if slot_options is None:
            logger.debug("No option set for %s yet; %r stays pending", slot.value, raw_value)
            continue

        canonical = await oracle.normalize(raw_value, slot_options, slot)
        if canonical is not None and canonical in slot_options:
            refined.specify(slot, canonical)
            confirmed.append(slot)
            continue

        if refusal_slot is None and await _conflicts_with_context(
            refined, slot, raw_value, slot_options, provider, oracle
        ):
            refusal_slot = slot
            refused_value = raw_value

    options = await provider.get_options(refined)

    if refusal_slot is None:
        refusal_slot = _stale_slot(refined, options, confirmed)
        if refusal_slot is not None:
            refused_value = refined.provided(refusal_slot) or refined.specified(refusal_slot)

    if refusal_slot is not None:
        logger.info(
            "Refusing %s=%r: not valid together with %s",
            refusal_slot.value,
            refused_value,
            refined.to_public(),
        )
        refined.reset_slot(refusal_slot)
        options = await provider.get_options(refined)

    return RefinementResult(
        options=options,
        payload=refined,
        refusal=refusal_slot is not None,
        refusal_slot=refusal_slot,
        refused_value=refused_value,
    )
