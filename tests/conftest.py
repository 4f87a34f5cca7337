import re
from typing import List, Optional, Sequence

import pytest

from ember_agents.agents.lending.controller import LendingConversationController
from ember_agents.agents.lending.dispatcher import LoggingDispatcher
from ember_agents.agents.lending.intent import LendingAction, ParameterOptions, Slot
from ember_agents.agents.lending.oracle import RawSlots
from ember_agents.agents.lending.providers import CatalogOptionProvider

CATALOG = {
    "WETH": ["Arbitrum", "Base", "Ethereum"],
    "WBTC": ["Arbitrum", "Ethereum"],
    "ARB": ["Arbitrum"],
}

_TOKEN_WORDS = ("weth", "wbtc", "arb", "usdc", "doge")
_CHAIN_WORDS = ("arbitrum one", "arbitrum", "ethereum", "base", "solana")
_AMOUNT = re.compile(r"\b\d+(?:[.,]\d+)?\b")


class KeywordOracle:
    """Deterministic stand-in for the LLM oracle.

    Extraction picks known words out of the utterance verbatim; normalization is a
    case-insensitive prefix match against the offered options.
    """

    def __init__(self):
        self.normalize_calls: List[tuple] = []
        self.extract_calls: List[str] = []

    async def extract_raw_slots(self, utterance: str, options: ParameterOptions, history=()) -> RawSlots:
        self.extract_calls.append(utterance)
        words = re.findall(r"[a-z]+", utterance.lower())
        text = " ".join(words)
        action = next((a for a in LendingAction.values() if a in words), None)
        token = next((w for w in _TOKEN_WORDS if w in words), None)
        chain = next((c for c in _CHAIN_WORDS if re.search(rf"\b{c}\b", text)), None)
        amount = _AMOUNT.search(utterance)
        return RawSlots(
            action=action,
            token_name=token,
            chain_name=chain,
            amount=amount.group(0) if amount else None,
        )

    async def normalize(self, raw_value: str, canonical_options: Sequence[str], slot: Slot) -> Optional[str]:
        self.normalize_calls.append((raw_value, tuple(canonical_options), slot))
        value = raw_value.lower()
        for option in canonical_options:
            if value == option.lower() or value.startswith(option.lower() + " "):
                return option
        return None


@pytest.fixture
def catalog():
    return {token: list(chains) for token, chains in CATALOG.items()}


@pytest.fixture
def provider(catalog):
    return CatalogOptionProvider(catalog)


@pytest.fixture
def oracle():
    return KeywordOracle()


@pytest.fixture
def dispatcher():
    return LoggingDispatcher()


@pytest.fixture
def controller(provider, oracle, dispatcher):
    return LendingConversationController(provider, oracle, dispatcher)
